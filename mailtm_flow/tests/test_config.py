"""Testes do carregamento de configuração."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from mailtm_flow.core.config import (
    AppConfig,
    ConfigLoader,
    MailTmAPIConfig,
    TriggerConfig,
    WorkflowConfig,
    get_config,
    reset_config,
    set_config,
)
from mailtm_flow.core.exceptions import InvalidConfigException

ENV_KEYS = [
    "MAILTM_BASE_URL",
    "MAILTM_TIMEOUT",
    "MAILTM_POLL_INTERVAL",
    "MAILTM_MARK_AS_READ",
    "MAILTM_FIRST_POLL",
    "MAILTM_WAIT_TIMEOUT",
    "MAILTM_WAIT_INTERVAL",
    "MAILTM_DELETE_DELAY",
    "MAILTM_LOG_LEVEL",
    "MAILTM_LOG_FILE",
    "LOG_LEVEL",
    "LOG_FILE",
]


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._env = patch.dict(os.environ, {}, clear=False)
        self._env.start()
        for key in ENV_KEYS:
            os.environ.pop(key, None)
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._env.stop()
        self._tmp.cleanup()
        reset_config()

    def _write(self, text: str) -> Path:
        path = self.dir / "mailtm.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_defaults_without_file(self) -> None:
        config = ConfigLoader.load(self.dir / "ausente.yaml")

        self.assertEqual(config.api.base_url, "https://api.mail.tm")
        self.assertEqual(config.trigger.poll_interval, 60)
        self.assertTrue(config.trigger.mark_as_read)
        self.assertTrue(config.trigger.emit_on_first_poll)
        self.assertEqual(config.workflow.timeout, 60)
        self.assertEqual(config.bulk_delete.delay, 0.15)

    def test_yaml_values_and_env_overrides(self) -> None:
        path = self._write(
            "api:\n  base_url: https://mail.example/\n"
            "trigger:\n  poll_interval: 30\n  first_poll: skip\n"
            "workflow:\n  timeout: 90\n"
            "logging:\n  nivel_minimo: WARNING\n"
        )
        os.environ["MAILTM_POLL_INTERVAL"] = "45"
        os.environ["MAILTM_MARK_AS_READ"] = "false"

        config = ConfigLoader.load(path)

        self.assertEqual(config.api.base_url, "https://mail.example")
        self.assertEqual(config.trigger.poll_interval, 45)
        self.assertFalse(config.trigger.mark_as_read)
        self.assertFalse(config.trigger.emit_on_first_poll)
        self.assertEqual(config.workflow.timeout, 90)
        self.assertEqual(config.logging.nivel_minimo, "WARNING")

    def test_unknown_keys_are_ignored(self) -> None:
        config = ConfigLoader.load(self._write("trigger:\n  poll_interval: 20\n  extra: 1\n"))
        self.assertEqual(config.trigger.poll_interval, 20)

    def test_poll_interval_below_minimum(self) -> None:
        with self.assertRaises(InvalidConfigException):
            TriggerConfig(poll_interval=5)
        os.environ["MAILTM_POLL_INTERVAL"] = "9"
        with self.assertRaises(InvalidConfigException):
            ConfigLoader.load(self.dir / "ausente.yaml")

    def test_invalid_values(self) -> None:
        with self.assertRaises(InvalidConfigException):
            TriggerConfig(first_poll="sometimes")
        with self.assertRaises(InvalidConfigException):
            WorkflowConfig(timeout=0)
        with self.assertRaises(InvalidConfigException):
            MailTmAPIConfig(base_url="ftp://mail")

    def test_invalid_yaml_and_log_level(self) -> None:
        with self.assertRaises(InvalidConfigException):
            ConfigLoader.load(self._write("api: [unclosed\n"))
        with self.assertRaises(InvalidConfigException):
            ConfigLoader.load(self._write("- just\n- a list\n"))
        with self.assertRaises(InvalidConfigException):
            ConfigLoader.load(self._write("logging:\n  nivel_minimo: VERBOSE\n"))

    def test_global_config(self) -> None:
        custom = AppConfig(trigger=TriggerConfig(poll_interval=12))
        set_config(custom)
        self.assertIs(get_config(), custom)
        reset_config()
        self.assertIsNone(get_config(auto_load=False))


if __name__ == "__main__":
    unittest.main()
