"""Application factory for creating FastAPI instances."""

from datetime import timedelta
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import AppConfig, SimulationBackendType, get_config, validate_config
from .core.automation_catalog import (
    AutomationCatalog,
    builtin_automation_source,
    remote_automation_source,
)
from .core.exceptions import ConfigurationError, WorkflowDesignerError, create_error_response
from .core.logging import setup_logging, get_logger
from .core.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    PerformanceMonitoringMiddleware,
    status_code_for_error,
)
from .core.registry import WorkflowRegistry
from .core.simulation import (
    HttpSimulationBackend,
    LocalSimulationBackend,
    SimulationBackend,
    SimulationEngine,
)
from .core.validator import WorkflowValidator
from .api.endpoints import router, init_dependencies


class ApplicationState:
    """Container for application state and components."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.registry: Optional[WorkflowRegistry] = None
        self.catalog: Optional[AutomationCatalog] = None
        self.validator: Optional[WorkflowValidator] = None
        self.local_backend: Optional[LocalSimulationBackend] = None
        self.engine: Optional[SimulationEngine] = None
        self.logger = None


# Global application state
app_state = ApplicationState()


def initialize_core_components(config: AppConfig, logger) -> tuple:
    """Build the registry, catalog, validator and simulation engine."""
    registry = WorkflowRegistry(
        allow_self_loops=config.allow_self_loops,
        allow_duplicate_edges=config.allow_duplicate_edges
    )
    catalog = AutomationCatalog()
    validator = WorkflowValidator(extensions=config.validation_extensions, catalog=catalog)
    local_backend = LocalSimulationBackend(
        catalog=catalog,
        step_interval=timedelta(seconds=config.simulation_step_seconds),
        latency=config.simulation_latency
    )

    backend: SimulationBackend = local_backend
    if config.simulation_backend == SimulationBackendType.HTTP:
        if not config.simulation_url:
            raise ConfigurationError(
                "simulation_url is required for the http simulation backend",
                config_key="simulation_url"
            )
        backend = HttpSimulationBackend(config.simulation_url, timeout=config.simulation_timeout)

    engine = SimulationEngine(backend, validator=validator, timeout=config.simulation_timeout)

    logger.info(f"Core components initialized ({backend.name} simulation backend)")
    return registry, catalog, validator, local_backend, engine


async def load_automation_catalog(catalog: AutomationCatalog, config: AppConfig) -> None:
    """Read the automation catalog once from the configured source."""
    if config.automation_catalog_url:
        source = remote_automation_source(
            config.automation_catalog_url,
            timeout=config.automation_catalog_timeout
        )
    else:
        source = builtin_automation_source()
    await catalog.load(source)


def create_lifespan_handler(config: AppConfig):
    """Create application lifespan handler."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.structured_logging,
            max_size=config.log_max_size,
            backup_count=config.log_backup_count
        )
        logger.info(f"Starting {config.app_name} v{config.app_version}")

        try:
            registry, catalog, validator, local_backend, engine = initialize_core_components(config, logger)
            await load_automation_catalog(catalog, config)

            app_state.config = config
            app_state.registry = registry
            app_state.catalog = catalog
            app_state.validator = validator
            app_state.local_backend = local_backend
            app_state.engine = engine
            app_state.logger = logger

            init_dependencies(
                registry=registry,
                catalog=catalog,
                engine=engine,
                validator=validator,
                local_backend=local_backend
            )
            logger.info("Application startup completed successfully")
        except Exception as e:
            logger.error(f"Application startup failed: {e}")
            raise

        yield

        logger.info(f"Shutting down {config.app_name}")

    return lifespan


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Create and configure FastAPI application instance."""
    if config is None:
        config = get_config()

    validate_config(config)

    app = FastAPI(
        title=config.app_name,
        description="Design, validate and simulate HR workflows",
        version=config.app_version,
        debug=config.debug,
        lifespan=create_lifespan_handler(config)
    )

    @app.exception_handler(WorkflowDesignerError)
    async def workflow_designer_error_handler(request: Request, exc: WorkflowDesignerError):
        return JSONResponse(
            status_code=status_code_for_error(exc),
            content=create_error_response(exc)
        )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )

    app.add_middleware(ErrorHandlingMiddleware)
    if config.enable_performance_monitoring:
        app.add_middleware(PerformanceMonitoringMiddleware, slow_request_threshold=config.slow_request_threshold)
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(router)
    add_health_endpoints(app, config)

    return app


def add_health_endpoints(app: FastAPI, config: AppConfig) -> None:
    """Add health check endpoints to the application."""

    @app.get("/")
    async def root():
        """Root endpoint for basic health check."""
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @app.get("/health")
    async def health_check():
        """Health check including component status."""
        catalog = app_state.catalog
        return {
            "status": "healthy",
            "service": config.app_name.lower().replace(" ", "-"),
            "version": config.app_version,
            "simulation_backend": config.simulation_backend.value,
            "automations_loaded": bool(catalog and catalog.is_loaded),
            "automation_count": len(catalog.list_automations()) if catalog else 0
        }
