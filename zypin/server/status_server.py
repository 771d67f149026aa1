"""Embedded status server lifecycle and the cross-process liveness probe."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from dataclasses import dataclass
from typing import Any

import httpx
import uvicorn

from zypin.contracts import DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT, HEALTH_ENDPOINT
from zypin.errors import StatusServerError
from zypin.server.app import create_app

logger = logging.getLogger("zypin.server.status_server")

STARTUP_TIMEOUT_SECONDS = 10.0
PROBE_TIMEOUT_SECONDS = 3.0


@dataclass(frozen=True)
class StatusProbe:
    """Outcome of probing a controller's status endpoint."""

    is_running: bool
    url: str
    status_code: int | None = None
    error: str | None = None
    payload: Any = None


def is_port_in_use(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex((host, port)) == 0


async def probe_status(url: str, *, timeout_seconds: float = PROBE_TIMEOUT_SECONDS) -> StatusProbe:
    """Return running=True when the endpoint answers with a 2xx; never raises."""
    base_url = url.rstrip("/")
    timeout = httpx.Timeout(timeout_seconds)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(f"{base_url}{HEALTH_ENDPOINT}")
    except (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError) as exc:
        return StatusProbe(is_running=False, url=base_url, error=str(exc) or type(exc).__name__)
    payload = None
    if response.is_success:
        try:
            payload = response.json()
        except ValueError:
            logger.debug("Status endpoint %s returned a non-JSON body", base_url)
    return StatusProbe(
        is_running=response.is_success,
        url=base_url,
        status_code=response.status_code,
        payload=payload,
    )


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves SIGINT/SIGTERM to the controlling command."""

    def install_signal_handlers(self) -> None:
        return None

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class StatusServer:
    """Runs the status app inside the current event loop on a fixed port."""

    def __init__(
        self,
        supervisor,
        *,
        host: str = DEFAULT_SERVER_HOST,
        port: int = DEFAULT_SERVER_PORT,
        startup_timeout: float = STARTUP_TIMEOUT_SECONDS,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
    ) -> None:
        self.supervisor = supervisor
        self.host = host
        self.port = port
        self.startup_timeout = startup_timeout
        self.probe_timeout = probe_timeout
        self._server: _EmbeddedServer | None = None
        self._task: asyncio.Task | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._task is not None and not self._task.done()

    async def _serve(self, server: _EmbeddedServer) -> None:
        try:
            await server.serve()
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind.
            raise StatusServerError(
                f"Status server exited during startup (code {exc.code})", port=self.port
            ) from exc

    async def start_server(self) -> None:
        """Start listening; returns immediately if already running."""
        if self.is_running:
            logger.info("Server is already running")
            return
        self._server = None
        self._task = None
        if is_port_in_use(self.host, self.port):
            raise StatusServerError(f"Port {self.port} is already in use", port=self.port)

        config = uvicorn.Config(
            create_app(self.supervisor),
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
            lifespan="off",
        )
        server = _EmbeddedServer(config)
        task = asyncio.create_task(self._serve(server))
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout
        while not server.started:
            if task.done():
                exc = task.exception()
                if isinstance(exc, StatusServerError):
                    raise exc
                raise StatusServerError(f"Status server stopped before listening: {exc}", port=self.port)
            if loop.time() > deadline:
                server.should_exit = True
                with contextlib.suppress(Exception):
                    await task
                raise StatusServerError(
                    f"Status server did not start within {self.startup_timeout}s", port=self.port
                )
            await asyncio.sleep(0.05)

        self._server = server
        self._task = task
        logger.info("Zypin server running on port %s", self.port)

    async def stop_server(self) -> None:
        """Stop listening; returns immediately if not running."""
        if self._server is None or self._task is None:
            logger.info("Server is not running")
            return
        server, task = self._server, self._task
        self._server = None
        self._task = None
        server.should_exit = True
        try:
            await task
        except StatusServerError as exc:
            logger.error("Error stopping server: %s", exc)
        logger.info("Server stopped")

    async def status(self, url: str | None = None) -> StatusProbe:
        return await probe_status(url or self.url, timeout_seconds=self.probe_timeout)
