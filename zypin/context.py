"""Per-command wiring of config, registry, supervisor and status server."""

from __future__ import annotations

from dataclasses import dataclass

from zypin.config import ZypinConfig, load_config
from zypin.registry.catalog import ProviderRegistry
from zypin.server.status_server import StatusServer
from zypin.supervisor.process_manager import ProcessSupervisor
from zypin.supervisor.state_store import JsonStateStore


@dataclass
class ZypinContext:
    config: ZypinConfig
    registry: ProviderRegistry
    supervisor: ProcessSupervisor
    server: StatusServer


def build_context(config: ZypinConfig | None = None) -> ZypinContext:
    """Construct the collaborators one command invocation needs."""
    cfg = config or load_config()
    registry = ProviderRegistry(cfg.plugin_paths)
    supervisor = ProcessSupervisor(
        JsonStateStore(cfg.state_path),
        start_options={"timeout": cfg.timeout_ms},
    )
    server = StatusServer(
        supervisor,
        host=cfg.server_host,
        port=cfg.server_port,
        probe_timeout=cfg.probe_timeout_seconds,
    )
    return ZypinContext(config=cfg, registry=registry, supervisor=supervisor, server=server)
