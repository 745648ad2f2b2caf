"""Configuration management for Antfarm."""

from pathlib import Path

import tomli
from pydantic import BaseModel, Field, field_validator


class AntfarmConfig(BaseModel):
    """Main configuration for Antfarm.

    Every per-user location the dispatcher and the dashboard supervisor touch
    lives here, so tests can point the whole system at a temporary directory.
    """

    # Paths
    state_dir: Path = Field(default=Path("~/.openclaw/antfarm"), validate_default=True)
    gateway_config_path: Path = Field(
        default=Path("~/.openclaw/openclaw.json"),
        validate_default=True,
    )

    # Dashboard daemon
    dashboard_host: str = Field(default="127.0.0.1")
    dashboard_port: int = Field(default=3333)

    # Timeout Settings (seconds)
    gateway_request_timeout: float = Field(default=10.0)
    daemon_start_timeout: float = Field(default=3.0)
    daemon_poll_interval: float = Field(default=0.1)

    @field_validator("state_dir", "gateway_config_path", mode="before")
    @classmethod
    def expand_paths(cls, v: Path | str) -> Path:
        """Expand user home directory in paths."""
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @property
    def pid_file(self) -> Path:
        """PID file written by the dashboard daemon."""
        return self.state_dir / "dashboard.pid"

    @property
    def log_file(self) -> Path:
        """Combined stdout/stderr of the dashboard daemon."""
        return self.state_dir / "dashboard.log"

    @property
    def db_path(self) -> Path:
        """SQLite database holding runs and steps."""
        return self.state_dir / "antfarm.db"

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.state_dir.mkdir(parents=True, exist_ok=True)


def load_config(config_path: Path | None = None) -> AntfarmConfig:
    """Load configuration from file or defaults."""
    if config_path is None:
        possible_paths = [
            Path.home() / ".config" / "antfarm" / "config.toml",  # User config
            Path.cwd() / "antfarm.toml",  # Current directory
        ]

        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            config_data = tomli.load(f)
        return AntfarmConfig(**config_data)
    # Use defaults
    return AntfarmConfig()
