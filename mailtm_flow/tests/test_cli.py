"""Testes da CLI que não dependem de rede."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from mailtm_flow.cli import _require_credentials, app
from mailtm_flow.core.config import reset_config
from mailtm_flow.core.exceptions import AuthenticationException
from mailtm_flow.infrastructure.api import AuthSession
from mailtm_flow.models.mailtm import Credentials


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()
        self._env = patch.dict(os.environ, {}, clear=False)
        self._env.start()
        for key in ("MAILTM_ADDRESS", "MAILTM_PASSWORD", "MAILTM_POLL_INTERVAL"):
            os.environ.pop(key, None)

    def tearDown(self) -> None:
        self._env.stop()
        reset_config()

    def test_commands_requiring_credentials(self) -> None:
        for command in (["messages"], ["wait"], ["purge", "--yes"], ["watch"]):
            result = self.runner.invoke(app, command)
            self.assertEqual(result.exit_code, 2, command)

    def test_invalid_config_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "mailtm.yaml"
            path.write_text("trigger:\n  poll_interval: 1\n", encoding="utf-8")

            result = self.runner.invoke(app, ["--config", str(path), "domains"])

        self.assertEqual(result.exit_code, 2)

    def test_credentials_are_carried_to_authentication(self) -> None:
        authenticate = AsyncMock(side_effect=AuthenticationException("Credenciais recusadas"))
        with patch.object(AuthSession, "authenticate", authenticate):
            result = self.runner.invoke(app, ["messages", "-a", "a@x.io", "-p", "segredo"])

        self.assertEqual(result.exit_code, 1)
        authenticate.assert_awaited_once_with("a@x.io", "segredo")

    def test_credentials_hide_password(self) -> None:
        credentials = _require_credentials("a@x.io", "segredo")

        self.assertEqual(credentials, Credentials("a@x.io", "segredo"))
        self.assertNotIn("segredo", repr(credentials))

    def test_watch_rejects_short_interval(self) -> None:
        result = self.runner.invoke(app, ["watch", "-a", "a@x.io", "-p", "pw", "--interval", "3"])
        self.assertEqual(result.exit_code, 2)


if __name__ == "__main__":
    unittest.main()
