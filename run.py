#!/usr/bin/env python3
"""
notevault command line.

    python run.py --action server --reload --verbose
    python run.py --action sweep
    python run.py --action worker | scheduler
    python run.py --action config
    python run.py --action test --test-type unit
"""

import asyncio
import subprocess
import sys
from pathlib import Path

import click

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from notevault.backend.core.logging import get_logger, setup_logging

ACTIONS = {
    "server": "Start the API server",
    "sweep": "Delete expired notes once",
    "worker": "Start the taskiq worker",
    "scheduler": "Start the taskiq scheduler",
    "config": "Display configuration",
    "test": "Run test suite",
    "info": "Show this information",
}

TASKIQ_TARGETS = {
    "worker": "notevault.backend.tasks.broker:broker",
    "scheduler": "notevault.backend.tasks.scheduler:scheduler",
}

TEST_PATHS = {"all": "tests/", "unit": "tests/unit", "integration": "tests/integration"}


def validate_project_root() -> Path:
    """Exit unless run.py sits next to the .project_root marker."""
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


def _log_level(verbose: bool, debug: bool) -> str:
    if debug:
        return "DEBUG"
    return "INFO" if verbose else "WARNING"


@click.command()
@click.option("--action", type=click.Choice(list(ACTIONS)), default="info", help="Action to perform.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output (INFO level logging).")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output (DEBUG level logging).")
@click.option("--host", default=None, help="Bind address (server action).")
@click.option("--port", default=None, type=int, help="Bind port (server action).")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes (server action).")
@click.option(
    "--test-type",
    type=click.Choice(list(TEST_PATHS)),
    default="all",
    help="Test suite to run (test action).",
)
def main(
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
    test_type: str,
) -> None:
    """
    Note Service Entry Point.

    The sweep action deletes expired notes once and exits; worker and
    scheduler run the same sweep on the configured cron through taskiq
    and need Redis.
    """
    validate_project_root()

    log_level = _log_level(verbose, debug)
    setup_logging(level=log_level, format_type="console")
    logger = get_logger(__name__)
    logger.debug("Starting application", extra={"action": action, "log_level": log_level})

    if action == "server":
        run_server(logger, host, port, reload)
    elif action == "sweep":
        run_sweep(logger)
    elif action in TASKIQ_TARGETS:
        _run_process(logger, [sys.executable, "-m", "taskiq", action, TASKIQ_TARGETS[action]], action)
    elif action == "config":
        show_config(logger)
    elif action == "test":
        run_tests(logger, test_type)
    else:
        show_info(logger)


def _run_process(logger, cmd: list[str], label: str) -> None:
    """Run a child process in the foreground, exiting with its failure code."""
    logger.info("Starting process", extra={"label": label, "cmd": cmd})
    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        logger.info("Process stopped", extra={"label": label})
    except subprocess.CalledProcessError as e:
        logger.error("Process exited with error", extra={"label": label, "exit_code": e.returncode})
        sys.exit(e.returncode)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    from notevault.backend.core.config import get_app_config

    server = get_app_config().application.server
    bind_host = host or server.host
    bind_port = port or server.port

    cmd = [
        sys.executable, "-m", "uvicorn", "notevault.backend.main:app",
        "--host", bind_host,
        "--port", str(bind_port),
    ]
    if reload:
        cmd.append("--reload")

    click.echo(f"Serving notes at http://{bind_host}:{bind_port} (Ctrl+C to stop)")
    _run_process(logger, cmd, "server")


def run_sweep(logger) -> None:
    """Delete expired notes once and release the pool."""
    from notevault.backend.core.database import dispose_engine
    from notevault.backend.core.exceptions import DatabaseError
    from notevault.backend.tasks.sweeper import sweep_expired_notes

    async def _sweep_once() -> dict:
        try:
            return await sweep_expired_notes()
        finally:
            await dispose_engine()

    try:
        result = asyncio.run(_sweep_once())
    except DatabaseError as e:
        logger.error("Sweep failed", extra={"error": e.message})
        click.echo(click.style(f"Sweep failed: {e.message}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"Deleted {result['deleted']} expired note(s)")


def show_config(logger) -> None:
    """Print every YAML section. Settings (secrets) are never loaded here."""
    from notevault.backend.core.config import get_app_config

    try:
        config = get_app_config()
    except (FileNotFoundError, ValueError) as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        click.echo(click.style(f"Error loading configuration: {e}", fg="red"))
        sys.exit(1)

    sections = {
        "Application": config.application,
        "Database": config.database,
        "Logging": config.logging,
        "Feature Flags": config.features,
        "Security": config.security,
        "Notes": config.notes,
        "Concurrency": config.concurrency,
    }
    for title, section in sections.items():
        click.echo(f"\n{title} (from YAML):")
        click.echo("-" * 40)
        _echo_tree(section.model_dump(), indent=2)


def _echo_tree(values: dict, indent: int) -> None:
    pad = " " * indent
    for key, value in values.items():
        if isinstance(value, dict):
            click.echo(f"{pad}{key}:")
            _echo_tree(value, indent + 2)
        else:
            click.echo(f"{pad}{key}: {value}")


def run_tests(logger, test_type: str) -> None:
    cmd = [sys.executable, "-m", "pytest", TEST_PATHS[test_type], "-v"]
    logger.info("Running tests", extra={"type": test_type})
    click.echo(f"Running: {' '.join(cmd)}\n")
    sys.exit(subprocess.run(cmd).returncode)


def show_info(logger) -> None:
    from notevault.backend.core.config import get_app_config

    app = get_app_config().application
    click.echo(f"{app.name} {app.version}")
    click.echo(app.description)

    click.echo("\nAvailable Actions:")
    for name, summary in ACTIONS.items():
        click.echo(f"  --action {name:<11}{summary}")
    click.echo("\nLogging Options:")
    click.echo("  --verbose, -v       INFO level logging")
    click.echo("  --debug, -d         DEBUG level logging")

    logger.debug("Info displayed")


if __name__ == "__main__":
    main()
