"""Environment-driven controller configuration and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from platformdirs import user_data_dir

from zypin.contracts import DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT

DEFAULT_LOG_LEVEL = "info"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_HOME = Path.home() / ".zypin"
STATE_FILE_NAME = "processes.json"
PID_FILE_NAME = "controller.pid"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def default_plugin_paths(cwd: Path | None = None) -> list[Path]:
    """Return local then per-user provider roots, local first."""
    base = cwd or Path.cwd()
    return [
        base / "zypin_plugins",
        Path(user_data_dir("zypin")) / "plugins",
    ]


@dataclass(frozen=True)
class ZypinConfig:
    """Resolved settings for one controller invocation."""

    log_level: str = DEFAULT_LOG_LEVEL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    home: Path = DEFAULT_HOME
    plugin_paths: list[Path] = field(default_factory=default_plugin_paths)
    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = DEFAULT_SERVER_PORT

    @property
    def state_path(self) -> Path:
        return self.home / STATE_FILE_NAME

    @property
    def pid_path(self) -> Path:
        return self.home / PID_FILE_NAME

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"

    @property
    def server_url(self) -> str:
        return f"http://{self.server_host}:{self.server_port}"

    @property
    def probe_timeout_seconds(self) -> float:
        # Probes are bounded well below the operation timeout.
        return max(0.5, min(self.timeout_ms / 1000.0, 5.0))


def _int_from_env(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _plugin_paths_from_env(raw: str | None) -> list[Path]:
    if not raw or not raw.strip():
        return default_plugin_paths()
    paths = [Path(item).expanduser() for item in raw.split(os.pathsep) if item.strip()]
    return paths or default_plugin_paths()


def load_config(environ: Mapping[str, str] | None = None) -> ZypinConfig:
    """Build config from environment variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    log_level = str(env.get("ZYPIN_LOG_LEVEL", DEFAULT_LOG_LEVEL)).strip().lower() or DEFAULT_LOG_LEVEL
    if log_level not in _LOG_LEVELS:
        log_level = DEFAULT_LOG_LEVEL
    home_raw = str(env.get("ZYPIN_HOME", "")).strip()
    return ZypinConfig(
        log_level=log_level,
        timeout_ms=_int_from_env(env.get("ZYPIN_TIMEOUT"), DEFAULT_TIMEOUT_MS),
        home=Path(home_raw).expanduser() if home_raw else DEFAULT_HOME,
        plugin_paths=_plugin_paths_from_env(env.get("ZYPIN_PLUGIN_PATHS")),
        server_host=str(env.get("ZYPIN_SERVER_HOST", DEFAULT_SERVER_HOST)).strip() or DEFAULT_SERVER_HOST,
        server_port=_int_from_env(env.get("ZYPIN_SERVER_PORT"), DEFAULT_SERVER_PORT),
    )


def resolve_log_level(name: str) -> int:
    return _LOG_LEVELS.get(str(name).strip().lower(), logging.INFO)


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure root logging once for the command process."""
    logging.basicConfig(
        level=resolve_log_level(level),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    logging.getLogger("zypin").setLevel(resolve_log_level(level))
