"""Tests for the status endpoint, embedded server lifecycle and liveness probe."""

import socket
import unittest

from fastapi.testclient import TestClient

from zypin.errors import StatusServerError
from zypin.server.app import create_app
from zypin.server.status_server import StatusServer, probe_status


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class _FakeSupervisor:
    def __init__(self, packages=None) -> None:
        self.packages = list(packages or [])

    def get_status(self) -> dict:
        return {"running": len(self.packages), "packages": list(self.packages)}


class _BrokenSupervisor:
    def get_status(self) -> dict:
        raise RuntimeError("table unavailable")


class StatusEndpointTests(unittest.TestCase):
    """Validate the health payload shape served to remote callers."""

    def test_health_returns_supervisor_snapshot(self) -> None:
        record = {"name": "selenium", "pid": 10, "startTime": "2026-01-01T00:00:00+00:00"}
        client = TestClient(create_app(_FakeSupervisor([record])))

        response = client.get("/api/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"running": 1, "packages": [record]})

    def test_health_reports_internal_errors(self) -> None:
        client = TestClient(create_app(_BrokenSupervisor()))

        response = client.get("/api/health")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["success"], False)


class StatusProbeTests(unittest.IsolatedAsyncioTestCase):
    """Validate probe never raises and maps failures to not running."""

    async def test_nothing_listening_is_not_running(self) -> None:
        url = f"http://127.0.0.1:{_free_port()}"

        probe = await probe_status(url, timeout_seconds=1.0)

        self.assertFalse(probe.is_running)
        self.assertIsNone(probe.status_code)
        self.assertTrue(probe.error)

    async def test_invalid_url_is_not_running(self) -> None:
        probe = await probe_status("not a url", timeout_seconds=1.0)
        self.assertFalse(probe.is_running)
        self.assertTrue(probe.error)


class StatusServerLifecycleTests(unittest.IsolatedAsyncioTestCase):
    """Validate idempotent start/stop against a real listening socket."""

    async def test_start_and_stop_are_idempotent(self) -> None:
        record = {"name": "selenium", "pid": 10, "startTime": "2026-01-01T00:00:00+00:00"}
        server = StatusServer(_FakeSupervisor([record]), port=_free_port(), probe_timeout=2.0)

        await server.stop_server()
        await server.start_server()
        await server.start_server()
        self.assertTrue(server.is_running)

        probe = await server.status()
        self.assertTrue(probe.is_running)
        self.assertEqual(probe.status_code, 200)
        self.assertEqual(probe.payload, {"running": 1, "packages": [record]})

        await server.stop_server()
        await server.stop_server()
        self.assertFalse(server.is_running)

        probe = await server.status()
        self.assertFalse(probe.is_running)

    async def test_port_in_use_raises(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]
            server = StatusServer(_FakeSupervisor(), port=port)

            with self.assertRaises(StatusServerError) as cm:
                await server.start_server()

        self.assertEqual(cm.exception.port, port)
        self.assertFalse(server.is_running)


if __name__ == "__main__":
    unittest.main()
