"""Configuration management for the HR Workflow Designer."""

import os
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator, model_validator
from enum import Enum

from .models.core import ValidationExtension


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SimulationBackendType(str, Enum):
    """Where simulations run."""
    LOCAL = "local"
    HTTP = "http"


class AppConfig(BaseModel):
    """Application configuration settings."""

    # Application settings
    app_name: str = Field(default="HR Workflow Designer", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    reload: bool = Field(default=False, description="Enable auto-reload in development")

    # Simulation settings
    simulation_backend: SimulationBackendType = Field(
        default=SimulationBackendType.LOCAL,
        description="Run simulations in-process or against a remote service"
    )
    simulation_url: Optional[str] = Field(
        default=None,
        description="Base URL of the remote simulation service"
    )
    simulation_timeout: float = Field(
        default=30.0,
        description="Seconds to wait for a simulation before failing it"
    )
    simulation_latency: float = Field(
        default=0.0,
        description="Artificial delay of the local backend in seconds"
    )
    simulation_step_seconds: float = Field(
        default=1.0,
        description="Logical time between consecutive trace steps"
    )

    # Automation catalog settings
    automation_catalog_url: Optional[str] = Field(
        default=None,
        description="URL returning the automation catalog; built-in list when unset"
    )
    automation_catalog_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for the automation catalog"
    )

    # Workflow rules
    allow_self_loops: bool = Field(default=True, description="Accept edges from a node to itself")
    allow_duplicate_edges: bool = Field(default=True, description="Accept repeated edges between two nodes")
    validation_extensions: List[ValidationExtension] = Field(
        default_factory=list,
        description="Opt-in validation checks run before every simulation"
    )

    # Logging settings
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: int = Field(default=10485760, description="Maximum log file size in bytes")  # 10MB
    log_backup_count: int = Field(default=5, description="Number of log backup files to keep")
    structured_logging: bool = Field(default=False, description="Emit JSON log lines")

    # Performance monitoring settings
    slow_request_threshold: float = Field(
        default=5.0,
        description="Slow request threshold in seconds"
    )
    enable_performance_monitoring: bool = Field(
        default=True,
        description="Enable performance monitoring middleware"
    )

    # Security settings
    cors_origins: list = Field(
        default=["*"],
        description="CORS allowed origins"
    )
    cors_methods: list = Field(
        default=["GET", "POST", "PUT", "DELETE"],
        description="CORS allowed methods"
    )

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator('simulation_timeout', 'automation_catalog_timeout', 'simulation_step_seconds')
    @classmethod
    def validate_positive(cls, v):
        """Validate timeouts and intervals."""
        if v <= 0:
            raise ValueError("Value must be greater than zero")
        return v

    @field_validator('simulation_latency')
    @classmethod
    def validate_latency(cls, v):
        """Validate artificial latency."""
        if v < 0:
            raise ValueError("Simulation latency cannot be negative")
        return v

    @model_validator(mode='after')
    def validate_simulation_target(self):
        """A remote backend needs somewhere to send requests."""
        if self.simulation_backend == SimulationBackendType.HTTP and not self.simulation_url:
            raise ValueError("simulation_url is required when simulation_backend is 'http'")
        return self

    def get_uvicorn_config(self) -> Dict[str, Any]:
        """Get Uvicorn server configuration."""
        return {
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level.value.lower(),
            "access_log": self.debug
        }

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Create configuration from environment variables."""
        def get_env(key: str, default=None, type_func=str):
            """Get environment variable with type conversion."""
            value = os.getenv(f"HR_WORKFLOW_{key}")
            if value is None:
                return default
            if type_func == bool:
                return str(value).lower() in ('true', '1', 'yes', 'on')
            elif type_func == list:
                return [item.strip() for item in value.split(',') if item.strip()] if value else default
            return type_func(value)

        return cls(
            app_name=get_env("APP_NAME", "HR Workflow Designer"),
            app_version=get_env("APP_VERSION", "1.0.0"),
            debug=get_env("DEBUG", False, bool),
            host=get_env("HOST", "0.0.0.0"),
            port=get_env("PORT", 8000, int),
            reload=get_env("RELOAD", False, bool),
            simulation_backend=SimulationBackendType(get_env("SIMULATION_BACKEND", "local")),
            simulation_url=get_env("SIMULATION_URL", None),
            simulation_timeout=get_env("SIMULATION_TIMEOUT", 30.0, float),
            simulation_latency=get_env("SIMULATION_LATENCY", 0.0, float),
            simulation_step_seconds=get_env("SIMULATION_STEP_SECONDS", 1.0, float),
            automation_catalog_url=get_env("AUTOMATION_CATALOG_URL", None),
            automation_catalog_timeout=get_env("AUTOMATION_CATALOG_TIMEOUT", 10.0, float),
            allow_self_loops=get_env("ALLOW_SELF_LOOPS", True, bool),
            allow_duplicate_edges=get_env("ALLOW_DUPLICATE_EDGES", True, bool),
            validation_extensions=get_env("VALIDATION_EXTENSIONS", [], list),
            log_level=LogLevel(get_env("LOG_LEVEL", "INFO")),
            log_format=get_env("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=get_env("LOG_FILE", None),
            log_max_size=get_env("LOG_MAX_SIZE", 10485760, int),
            log_backup_count=get_env("LOG_BACKUP_COUNT", 5, int),
            structured_logging=get_env("STRUCTURED_LOGGING", False, bool),
            slow_request_threshold=get_env("SLOW_REQUEST_THRESHOLD", 5.0, float),
            enable_performance_monitoring=get_env("ENABLE_PERFORMANCE_MONITORING", True, bool),
            cors_origins=get_env("CORS_ORIGINS", ["*"], list),
            cors_methods=get_env("CORS_METHODS", ["GET", "POST", "PUT", "DELETE"], list)
        )


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """Load configuration from a .env file and environment variables."""
    global _config
    from dotenv import load_dotenv

    if config_file and os.path.exists(config_file):
        load_dotenv(config_file)
    elif os.path.exists('.env'):
        load_dotenv('.env')

    _config = AppConfig.from_env()

    return _config


def reset_config():
    """Reset the global configuration instance (mainly for testing)."""
    global _config
    _config = None


def validate_config(config: AppConfig) -> None:
    """Validate configuration settings that depend on the environment."""
    errors = []

    if config.log_file:
        log_dir = os.path.dirname(config.log_file)
        if log_dir and not os.path.exists(log_dir):
            try:
                os.makedirs(log_dir, exist_ok=True)
            except OSError as e:
                errors.append(f"Cannot create log directory {log_dir}: {e}")

    for url in (config.simulation_url, config.automation_catalog_url):
        if url and not url.startswith(("http://", "https://")):
            errors.append(f"Unsupported URL scheme: {url}")

    if errors:
        raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")


# Environment-specific configurations
def get_development_config() -> AppConfig:
    """Get development configuration."""
    return AppConfig(
        debug=True,
        reload=True,
        log_level=LogLevel.DEBUG,
        simulation_latency=0.5,
        enable_performance_monitoring=True
    )


def get_production_config() -> AppConfig:
    """Get production configuration."""
    return AppConfig(
        debug=False,
        reload=False,
        log_level=LogLevel.INFO,
        structured_logging=True,
        enable_performance_monitoring=True,
        cors_origins=[]  # Restrict CORS in production
    )


def get_testing_config() -> AppConfig:
    """Get testing configuration."""
    return AppConfig(
        debug=True,
        log_level=LogLevel.WARNING,
        simulation_timeout=5.0,
        enable_performance_monitoring=False
    )
