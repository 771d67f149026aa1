"""Non-destructive pid liveness probe and best-effort termination."""

from __future__ import annotations

import logging
import os
import signal
import sys

logger = logging.getLogger("zypin.supervisor.process_probe")


def process_exists(pid: int) -> bool:
    """Check whether pid exists in the current process table."""
    if pid <= 0:
        return False
    if sys.platform == "win32":
        import ctypes

        kernel32 = ctypes.windll.kernel32
        SYNCHRONIZE = 0x00100000
        handle = kernel32.OpenProcess(SYNCHRONIZE, 0, pid)
        if handle != 0:
            kernel32.CloseHandle(handle)
            return True
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def terminate_pid(pid: int) -> bool:
    """Probe then send SIGTERM. Returns False when the process was already gone."""
    if not process_exists(pid):
        return False
    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        # Exited between probe and signal.
        return False
    except PermissionError as exc:
        logger.warning("Not permitted to signal pid %s: %s", pid, exc)
        return False
    except OSError as exc:
        logger.debug("Signal to pid %s failed: %s", pid, exc)
        return False
    return True
