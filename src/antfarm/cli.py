"""Command-line interface for Antfarm."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import AntfarmConfig, load_config
from .daemon.supervisor import DaemonSupervisor
from .dispatch.trigger import WakeTrigger
from .error_handling import AntfarmError, ConfigurationError
from .gateway.client import load_gateway_config

console = Console()


def setup_logging(
    *,
    verbose: bool = False,
    config: AntfarmConfig | None = None,
) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    # Clean up existing handlers first to prevent resource leaks
    cleanup_logging()

    show_path = level == logging.DEBUG
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=show_path),
    ]

    if config and config.state_dir:
        config.ensure_directories()
        log_file = config.state_dir / "antfarm.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def cleanup_logging() -> None:
    """Clean up logging handlers to prevent ResourceWarnings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """Antfarm - workflow step dispatch and dashboard daemon control."""
    try:
        ctx.ensure_object(dict)
        loaded_config = load_config(config)
        ctx.obj["config"] = loaded_config
        ctx.obj["verbose"] = verbose

        setup_logging(verbose=verbose, config=loaded_config)
    except (OSError, ValueError, RuntimeError) as e:
        config_error = ConfigurationError(
            f"Failed to load configuration: {e}",
            config_path=config,
        )
        config_error.display_to_user()
        sys.exit(1)


@cli.group("config")
def config_cmd() -> None:
    """Configuration commands."""


@config_cmd.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: AntfarmConfig = ctx.obj["config"]
    gateway = load_gateway_config(config.gateway_config_path)

    table = Table()
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("State Directory", str(config.state_dir))
    table.add_row("PID File", str(config.pid_file))
    table.add_row("Daemon Log", str(config.log_file))
    table.add_row("Database", str(config.db_path))
    table.add_row("Gateway Config", str(config.gateway_config_path))
    table.add_row("Gateway URL", gateway.url)
    table.add_row("Gateway Token", "***" if gateway.token else "Not configured")

    console.print(table)


@cli.group()
def dashboard() -> None:
    """Dashboard daemon commands."""


@dashboard.command("start")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on")
@click.pass_context
def dashboard_start(ctx: click.Context, port: int | None) -> None:
    """Start the dashboard daemon in the background."""
    config: AntfarmConfig = ctx.obj["config"]
    supervisor = DaemonSupervisor(config)

    try:
        info = asyncio.run(supervisor.start_daemon(port))
    except AntfarmError as e:
        e.display_to_user()
        sys.exit(1)

    console.print(
        f"[green]Dashboard running (PID {info.pid}) on port {info.port}[/green]",
    )


@dashboard.command("stop")
@click.pass_context
def dashboard_stop(ctx: click.Context) -> None:
    """Stop the dashboard daemon."""
    config: AntfarmConfig = ctx.obj["config"]

    if DaemonSupervisor(config).stop_daemon():
        console.print("[green]Dashboard stopped[/green]")
    else:
        console.print("[yellow]Dashboard is not running[/yellow]")


@dashboard.command("status")
@click.pass_context
def dashboard_status(ctx: click.Context) -> None:
    """Show whether the dashboard daemon is running."""
    config: AntfarmConfig = ctx.obj["config"]
    status = DaemonSupervisor(config).get_daemon_status()

    if status.running:
        console.print(f"🟢 Dashboard: [green]Running (PID {status.pid})[/green]")
    else:
        console.print("🔴 Dashboard: [red]Not running[/red]")


@cli.command()
@click.argument("run_id")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds to wait for the wake request (defaults to the gateway timeout)",
)
@click.pass_context
def wake(ctx: click.Context, run_id: str, timeout: float | None) -> None:
    """Wake the agent owning the next pending step of RUN_ID."""
    config: AntfarmConfig = ctx.obj["config"]
    trigger = WakeTrigger.from_config(config)

    trigger.wake_next_agent(run_id)
    trigger.wait_pending(timeout or config.gateway_request_timeout + 1)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
