"""Durable JSON table of supervised processes shared across invocations.

Writes go to a temp file that replaces the state file, while an advisory
exclusive lock on a sidecar `.lock` file serializes writers from overlapping
controller invocations.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator

from zypin.errors import StatePersistenceError

logger = logging.getLogger("zypin.supervisor.state_store")


def _lock_handle(handle) -> None:
    if os.name == "nt":
        import msvcrt

        msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)  # type: ignore[attr-defined]
        return
    import fcntl

    fcntl.flock(handle.fileno(), fcntl.LOCK_EX)


def _unlock_handle(handle) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            return
        return
    import fcntl

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    except OSError:
        return


class JsonStateStore:
    """Read and rewrite the supervisor's name -> process record mapping."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the advisory writer lock for the duration of the block."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a+b") as handle:
            _lock_handle(handle)
            try:
                yield
            finally:
                _unlock_handle(handle)

    def load(self) -> dict[str, Any]:
        """Return persisted table; missing or corrupt files yield {}."""
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable process state %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring process state %s: expected object", self.path)
            return {}
        return raw

    def save(self, table: dict[str, Any]) -> None:
        """Atomically replace the state file with table."""
        try:
            with self.locked():
                temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
                temp_path.write_text(json.dumps(table, indent=2), encoding="utf-8")
                temp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise StatePersistenceError(f"Failed to save process state to {self.path}: {exc}") from exc
