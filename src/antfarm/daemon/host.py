"""Entry point of the dashboard daemon process.

Spawned by :class:`antfarm.daemon.supervisor.DaemonSupervisor` as
``python -m antfarm.daemon.host PORT``. The process binds its port, records
its own PID, serves the dashboard and removes the PID file when told to stop.
"""

import logging
import signal
import socket
import sys
from pathlib import Path

import click

from antfarm.config import AntfarmConfig
from antfarm.daemon.registry import ProcessRegistry

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3333


def parse_port(value: str | None) -> int:
    """Port from the command line, falling back to the default when invalid."""
    try:
        port = int(value) if value is not None else DEFAULT_PORT
    except ValueError:
        return DEFAULT_PORT
    if not 0 < port < 65536:
        return DEFAULT_PORT
    return port


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket before anything else so readiness implies a bound port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def install_signal_handlers(registry: ProcessRegistry) -> None:
    """Remove the PID file and exit on SIGTERM/SIGINT."""

    def signal_handler(signum: int, frame: object) -> None:
        logger.info("Received signal %s, stopping dashboard", signum)
        registry.release()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def _setup_daemon_logging() -> None:
    """Log to stderr; the supervisor appends it to the daemon log file."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def serve(sock: socket.socket, db_path: Path) -> None:
    """Run the dashboard app on an already bound socket."""
    import uvicorn

    from antfarm.dashboard.app import create_app
    from antfarm.storage.steps import StepStore

    app = create_app(StepStore(db_path))
    host, port = sock.getsockname()[:2]
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="info"))
    server.run(sockets=[sock])


@click.command()
@click.argument("port", required=False)
@click.option("--host", default=None, help="Interface to listen on")
@click.option(
    "--pid-file",
    type=click.Path(path_type=Path),
    default=None,
    help="PID file to record this process in",
)
@click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Runs and steps database",
)
def main(
    port: str | None,
    host: str | None,
    pid_file: Path | None,
    db_path: Path | None,
) -> None:
    """Run the Antfarm dashboard in the foreground."""
    _setup_daemon_logging()
    defaults = AntfarmConfig()
    registry = ProcessRegistry(pid_file or defaults.pid_file)

    sock = bind_socket(host or defaults.dashboard_host, parse_port(port))
    install_signal_handlers(registry)
    pid = registry.record_self()
    logger.info("Dashboard process %s listening on %s", pid, sock.getsockname())

    try:
        serve(sock, db_path or defaults.db_path)
    finally:
        registry.release()
        sock.close()


if __name__ == "__main__":
    main()
