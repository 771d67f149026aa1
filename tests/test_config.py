"""Tests for environment-driven controller configuration."""

import logging
import os
import unittest
from pathlib import Path

from zypin.config import (
    DEFAULT_HOME,
    DEFAULT_TIMEOUT_MS,
    load_config,
    resolve_log_level,
)


class ConfigTests(unittest.TestCase):
    def test_defaults_without_environment(self) -> None:
        config = load_config({})
        self.assertEqual(config.log_level, "info")
        self.assertEqual(config.timeout_ms, DEFAULT_TIMEOUT_MS)
        self.assertEqual(config.home, DEFAULT_HOME)
        self.assertEqual(config.server_port, 8421)
        self.assertEqual(config.server_url, "http://127.0.0.1:8421")
        self.assertEqual(config.state_path, DEFAULT_HOME / "processes.json")
        self.assertEqual(len(config.plugin_paths), 2)

    def test_environment_overrides(self) -> None:
        config = load_config(
            {
                "ZYPIN_LOG_LEVEL": "DEBUG",
                "ZYPIN_TIMEOUT": "5000",
                "ZYPIN_HOME": "/tmp/zypin-home",
                "ZYPIN_PLUGIN_PATHS": os.pathsep.join(["/opt/a", "/opt/b"]),
                "ZYPIN_SERVER_PORT": "9000",
            }
        )
        self.assertEqual(config.log_level, "debug")
        self.assertEqual(config.timeout_ms, 5000)
        self.assertEqual(config.pid_path, Path("/tmp/zypin-home") / "controller.pid")
        self.assertEqual(config.plugin_paths, [Path("/opt/a"), Path("/opt/b")])
        self.assertEqual(config.server_port, 9000)
        self.assertEqual(config.probe_timeout_seconds, 5.0)

    def test_invalid_values_fall_back(self) -> None:
        config = load_config({"ZYPIN_TIMEOUT": "soon", "ZYPIN_SERVER_PORT": "-1", "ZYPIN_LOG_LEVEL": "loud"})
        self.assertEqual(config.timeout_ms, DEFAULT_TIMEOUT_MS)
        self.assertEqual(config.server_port, 8421)
        self.assertEqual(config.log_level, "info")

    def test_probe_timeout_has_floor(self) -> None:
        self.assertEqual(load_config({"ZYPIN_TIMEOUT": "100"}).probe_timeout_seconds, 0.5)

    def test_resolve_log_level(self) -> None:
        self.assertEqual(resolve_log_level("warn"), logging.WARNING)
        self.assertEqual(resolve_log_level("unknown"), logging.INFO)


if __name__ == "__main__":
    unittest.main()
