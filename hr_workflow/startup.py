"""Application startup script and CLI interface."""

import argparse
import asyncio
import sys
from datetime import timedelta
from typing import List, Optional

from .config import (
    AppConfig,
    LogLevel,
    load_config,
    get_development_config,
    get_production_config,
    get_testing_config,
    validate_config
)
from .core.automation_catalog import AutomationCatalog, DEFAULT_AUTOMATIONS
from .core.exceptions import WorkflowDesignerError
from .core.logging import get_logger, setup_logging
from .core.serialization import loads_workflow
from .core.simulation import LocalSimulationBackend, SimulationEngine
from .core.validator import WorkflowValidator
from .models.core import ValidationExtension


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="HR Workflow Designer - design, validate and simulate HR workflows"
    )

    parser.add_argument("--host", help="Host to bind the server to")
    parser.add_argument("--port", type=int, help="Port to bind the server to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument(
        "--env",
        choices=["development", "production", "testing"],
        help="Environment configuration preset"
    )
    parser.add_argument("--config", help="Path to a .env configuration file")
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        help="Logging level"
    )
    parser.add_argument("--log-file", help="Path to log file")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Run the workflow designer service")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_subparsers.add_parser("validate", help="Validate configuration")

    for name, help_text in (
        ("validate", "Validate a workflow file"),
        ("simulate", "Validate and simulate a workflow file"),
    ):
        command_parser = subparsers.add_parser(name, help=help_text)
        command_parser.add_argument("file", help="Workflow JSON file")
        command_parser.add_argument(
            "--extension",
            action="append",
            choices=[extension.value for extension in ValidationExtension],
            help="Opt-in validation check, may be repeated"
        )

    return parser


def load_configuration(args: argparse.Namespace) -> AppConfig:
    """Load configuration based on command line arguments."""
    if args.env == "development":
        config = get_development_config()
    elif args.env == "production":
        config = get_production_config()
    elif args.env == "testing":
        config = get_testing_config()
    else:
        config = load_config(args.config)

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.reload:
        overrides["reload"] = True
    if args.log_level:
        overrides["log_level"] = LogLevel(args.log_level)
    if args.log_file:
        overrides["log_file"] = args.log_file
    if args.debug:
        overrides["debug"] = True

    if overrides:
        config = AppConfig.model_validate({**config.model_dump(), **overrides})
    return config


def run_server(config: AppConfig):
    """Run the workflow designer service."""
    import uvicorn
    from .factory import create_app

    logger = get_logger(__name__)
    logger.info(f"Starting server on {config.host}:{config.port}")
    uvicorn.run(create_app(config), **config.get_uvicorn_config())


def _read_workflow(path: str):
    with open(path, "r", encoding="utf-8") as handle:
        return loads_workflow(handle.read())


def _extensions(args: argparse.Namespace, config: AppConfig) -> List[ValidationExtension]:
    if args.extension:
        return [ValidationExtension(extension) for extension in args.extension]
    return list(config.validation_extensions)


def validate_workflow_command(path: str, extensions: List[ValidationExtension]) -> int:
    """Print validation findings for a workflow file; exit status 1 if any."""
    workflow = _read_workflow(path)
    catalog = AutomationCatalog(DEFAULT_AUTOMATIONS)
    issues = WorkflowValidator(extensions=extensions, catalog=catalog).validate(workflow)

    if not issues:
        print(f"{path}: valid ({len(workflow.nodes)} nodes, {len(workflow.edges)} edges)")
        return 0
    for issue in issues:
        print(f"{path}: [{issue.code.value}] {issue.message}")
    return 1


async def simulate_workflow_command(
    path: str,
    extensions: List[ValidationExtension],
    config: AppConfig
) -> int:
    """Print the simulated execution trace of a workflow file."""
    workflow = _read_workflow(path)
    catalog = AutomationCatalog(DEFAULT_AUTOMATIONS)
    engine = SimulationEngine(
        LocalSimulationBackend(
            catalog=catalog,
            step_interval=timedelta(seconds=config.simulation_step_seconds)
        ),
        validator=WorkflowValidator(extensions=extensions, catalog=catalog),
        timeout=config.simulation_timeout
    )
    outcome = await engine.run(workflow)

    if not outcome.success:
        for error in outcome.errors:
            print(f"Error: {error}")
        return 1
    for step in outcome.steps:
        print(f"{step.timestamp.isoformat()}  {step.status.value:<9}  {step.title}  ({step.details})")
    return 0


def show_configuration(config: AppConfig):
    """Show current configuration."""
    print("Current Configuration:")
    print(f"  App Name: {config.app_name}")
    print(f"  Version: {config.app_version}")
    print(f"  Debug: {config.debug}")
    print(f"  Host: {config.host}")
    print(f"  Port: {config.port}")
    print(f"  Log Level: {config.log_level.value}")
    print(f"  Simulation Backend: {config.simulation_backend.value}")
    print(f"  Simulation URL: {config.simulation_url}")
    print(f"  Simulation Timeout: {config.simulation_timeout}s")
    print(f"  Automation Catalog URL: {config.automation_catalog_url or 'built-in'}")
    print(f"  Validation Extensions: {', '.join(e.value for e in config.validation_extensions) or 'none'}")


def validate_configuration_command(config: AppConfig):
    """Validate configuration and show results."""
    try:
        validate_config(config)
        print("Configuration validation: PASSED")
    except ValueError as e:
        print("Configuration validation: FAILED")
        print(f"Error: {e}")
        sys.exit(1)


def main(argv: Optional[List[str]] = None):
    """Main entry point for the command line interface."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config = load_configuration(args)
        validate_config(config)

        if args.command == "run" or args.command is None:
            run_server(config)

        elif args.command == "config":
            if args.config_command == "show":
                show_configuration(config)
            elif args.config_command == "validate":
                validate_configuration_command(config)
            else:
                print("Configuration command required. Use --help for options.")
                sys.exit(1)

        elif args.command in ("validate", "simulate"):
            setup_logging(level=config.log_level.value if args.log_level else "WARNING")
            extensions = _extensions(args, config)
            if args.command == "validate":
                sys.exit(validate_workflow_command(args.file, extensions))
            sys.exit(asyncio.run(simulate_workflow_command(args.file, extensions, config)))

        else:
            parser.print_help()

    except (WorkflowDesignerError, OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
