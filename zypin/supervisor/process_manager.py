"""Start, track and terminate provider processes across controller invocations."""

from __future__ import annotations

import asyncio
import inspect
import logging
import signal
from typing import Any, Callable, Mapping, Optional

from zypin.contracts import CAPABILITY_START
from zypin.errors import SpawnError, StatePersistenceError
from zypin.supervisor.models import ProcessRecord
from zypin.supervisor.process_probe import process_exists, terminate_pid

logger = logging.getLogger("zypin.supervisor.process_manager")


def _coerce_pid(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        pid = int(value)
    except (TypeError, ValueError):
        return None
    return pid if pid > 0 else None


def extract_pid(handle: Any) -> Optional[int]:
    """Pull a pid out of whatever a provider's start operation returned."""
    if handle is None:
        return None
    if isinstance(handle, int):
        return _coerce_pid(handle)
    if isinstance(handle, Mapping):
        return _coerce_pid(handle.get("pid"))
    return _coerce_pid(getattr(handle, "pid", None))


def _record_pid(record: Any) -> Optional[int]:
    if isinstance(record, Mapping):
        return _coerce_pid(record.get("pid"))
    return None


class ProcessSupervisor:
    """Owns the persisted name -> {pid, startTime} table.

    The table is loaded once at construction and trusted as-is; liveness is
    only checked when a start for the same name is attempted or when
    processes are being stopped.
    """

    def __init__(
        self,
        store,
        *,
        probe: Callable[[int], bool] = process_exists,
        terminate: Callable[[int], bool] = terminate_pid,
        start_options: Mapping[str, Any] | None = None,
    ) -> None:
        self.store = store
        self._probe = probe
        self._terminate = terminate
        self.start_options = dict(start_options or {})
        self.processes: dict[str, Any] = self.store.load()

    def _persist(self) -> None:
        try:
            self.store.save(self.processes)
        except StatePersistenceError as exc:
            logger.error("%s", exc)

    async def _spawn(self, name: str, provider: Any) -> int:
        try:
            result = provider.start(dict(self.start_options))
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            raise SpawnError(str(exc)) from exc
        pid = extract_pid(result)
        if pid is None:
            raise SpawnError(f"{name} start returned no usable process id")
        return pid

    async def start_package(self, name: str, provider: Any) -> bool:
        """Start provider under name unless a live process is already tracked."""
        existing = self.processes.get(name)
        if existing is not None:
            pid = _record_pid(existing)
            if pid is not None and self._probe(pid):
                logger.info("Package %s is already running (PID: %s)", name, pid)
                return False
            logger.info("Package %s was running but process is dead, cleaning up...", name)
            del self.processes[name]
            self._persist()

        if CAPABILITY_START not in getattr(provider, "capabilities", ()):
            logger.error("Package %s does not have start capability", name)
            return False

        logger.info("Starting %s...", name)
        try:
            pid = await self._spawn(name, provider)
        except SpawnError as exc:
            logger.error("Error starting %s: %s", name, exc)
            return False

        record = ProcessRecord.started_now(name, pid)
        self.processes[name] = record.to_state()
        self._persist()
        logger.info("%s started (PID: %s)", name, pid)
        return True

    def get_status(self) -> dict[str, Any]:
        """Snapshot of tracked records. Entries are not re-checked for liveness."""
        packages = [
            dict(record) if isinstance(record, Mapping) else record
            for record in self.processes.values()
        ]
        return {"running": len(packages), "packages": packages}

    def _stop_record(self, name: str, record: Any) -> None:
        pid = _record_pid(record)
        logger.info("Stopping %s (PID: %s)...", name, pid)
        if pid is None or not self._terminate(pid):
            logger.warning("Process %s (PID: %s) was already dead or doesn't exist", name, pid)

    def stop_package(self, name: str) -> bool:
        """Terminate and forget one tracked package."""
        record = self.processes.pop(name, None)
        if record is None:
            logger.info("Package %s is not tracked", name)
            return False
        self._stop_record(name, record)
        self._persist()
        return True

    def cleanup(self) -> None:
        """Terminate every tracked process and persist the empty table."""
        if not self.processes:
            return
        logger.info("Cleaning up processes...")
        for name, record in list(self.processes.items()):
            self._stop_record(name, record)
        self.processes.clear()
        self._persist()

    def install_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        on_signal: Callable[[], None] | None = None,
    ) -> None:
        """Run cleanup (then on_signal) when SIGINT or SIGTERM is delivered."""

        def _handle() -> None:
            logger.info("Termination signal received")
            self.cleanup()
            if on_signal is not None:
                on_signal()

        for sig in (signal.SIGINT, signal.SIGTERM):
            if loop is not None:
                try:
                    loop.add_signal_handler(sig, _handle)
                    continue
                except (NotImplementedError, RuntimeError):
                    pass
            signal.signal(sig, lambda _signum, _frame: _handle())
