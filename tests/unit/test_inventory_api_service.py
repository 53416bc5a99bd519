"""Unit tests for the inventory API service entry point."""

from __future__ import annotations

import dataclasses
import os
import unittest
from unittest import mock

from stockscan.config.settings import Settings
from stockscan.services import inventory_api


def _settings(**overrides) -> Settings:
    with mock.patch.dict(os.environ, {}, clear=True):
        base = Settings.from_env()
    return dataclasses.replace(base, **overrides)


class InventoryApiMainTests(unittest.TestCase):
    def _run(self, cfg: Settings, argv: list[str]) -> tuple[int, mock.MagicMock]:
        with mock.patch.object(
            inventory_api.config_settings, "get_settings", return_value=cfg
        ), mock.patch.object(inventory_api.uvicorn, "run") as run:
            code = inventory_api.main(argv)
        return code, run

    def test_refuses_to_start_without_accounts(self) -> None:
        with self.assertLogs("stockscan.services.inventory_api", level="ERROR") as logs:
            code, run = self._run(_settings(), ["--no-retention"])
        self.assertEqual(code, 1)
        run.assert_not_called()
        self.assertIn("STOCKSCAN_USERS", logs.output[0])

    def test_refuses_malformed_account_spec(self) -> None:
        with self.assertLogs("stockscan.services.inventory_api", level="ERROR"):
            code, run = self._run(_settings(users=("nopassword",)), ["--no-retention"])
        self.assertEqual(code, 1)
        run.assert_not_called()

    def test_serves_configured_accounts_on_loopback_by_default(self) -> None:
        cfg = _settings(users=("admin:s3cret",), jwt_secret="test-secret")
        code, run = self._run(cfg, ["--no-retention", "--port", "9001"])
        self.assertEqual(code, 0)
        run.assert_called_once()
        self.assertEqual(run.call_args.kwargs["host"], "127.0.0.1")
        self.assertEqual(run.call_args.kwargs["port"], 9001)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
