"""Unit tests for the scanner service runner."""

from __future__ import annotations

import contextlib
import io
import json
import os
import tempfile
import unittest
from unittest import mock

from stockscan.capture.clock import ManualScheduler
from stockscan.config.settings import Settings
from stockscan.services import scanner
from stockscan.warehouse.modal import StockModal
from stockscan.warehouse.models import Product, ProductFound, ProductNotFound

REPLAY = [
    {"type": "type", "text": "4006381333931"},
    {"type": "wait", "ms": 100},
    {"type": "type", "text": "4006381333931\n"},
    {"type": "mode", "mode": "camera"},
    {"type": "wait", "ms": 300},
    {"type": "decode", "data": "ABC"},
    {"type": "decode", "data": "ABC"},
    {"type": "decode", "data": "ABC"},
]


def _settings() -> Settings:
    with mock.patch.dict(os.environ, {}, clear=True):
        return Settings.from_env()


class ScannerReplayTests(unittest.TestCase):
    def _write_replay(self, events: list[dict]) -> str:
        with tempfile.NamedTemporaryFile("w", suffix=".jsonl", delete=False) as handle:
            handle.write("# replayed wedge and camera input\n")
            for event in events:
                handle.write(json.dumps(event) + "\n")
        self.addCleanup(os.unlink, handle.name)
        return handle.name

    def test_offline_replay_emits_scans_and_summary(self) -> None:
        path = self._write_replay(REPLAY)
        out = io.StringIO()
        with mock.patch.object(scanner.config_settings, "get_settings", return_value=_settings()):
            with contextlib.redirect_stdout(out):
                code = scanner.main(["--replay", path, "--offline"])
        self.assertEqual(code, 0)

        output = out.getvalue()
        split = output.index("{\n")
        events = [json.loads(line) for line in output[:split].splitlines() if line.strip()]
        summary = json.loads(output[split:])

        self.assertEqual(
            [(event["value"], event["mode"]) for event in events],
            [("4006381333931", "keyboard"), ("ABC", "camera")],
        )
        self.assertEqual(summary["mode"], "camera")
        self.assertEqual(summary["last_scanned"], "ABC")
        self.assertEqual([record["value"] for record in summary["history"]], ["ABC", "4006381333931"])
        self.assertEqual(summary["submitted"], 0)

    def test_bad_replay_file_fails(self) -> None:
        with tempfile.NamedTemporaryFile("w", suffix=".jsonl", delete=False) as handle:
            handle.write('{"type": "teleport"}\n')
        self.addCleanup(os.unlink, handle.name)
        with mock.patch.object(scanner.config_settings, "get_settings", return_value=_settings()):
            self.assertEqual(scanner.main(["--replay", handle.name, "--offline"]), 1)

    def test_read_events_skips_comments_and_rejects_garbage(self) -> None:
        events = scanner.read_events(["", "# note", '{"type": "key", "key": "Enter"}'])
        self.assertEqual(events, [{"type": "key", "key": "Enter"}])
        with self.assertRaises(scanner.ReplayError):
            scanner.read_events(["not json"])


class _Gateway:
    def __init__(self) -> None:
        self.products = {"123": Product(barcode="123", name="Widget", current_stock=4)}

    async def lookup_product(self, barcode: str):
        product = self.products.get(barcode)
        return ProductFound(product) if product else ProductNotFound(barcode)

    async def create_from(self, command):
        raise AssertionError("not used")

    async def apply_adjustment(self, command):
        raise AssertionError("not used")


class LookupReporterTests(unittest.IsolatedAsyncioTestCase):
    async def test_reports_outcome_and_closes_modal(self) -> None:
        scheduler = ManualScheduler()
        modal = StockModal(_Gateway(), scheduler)
        closed: list[bool] = []
        modal.add_close_listener(lambda: closed.append(True))
        reporter = scanner.LookupReporter(modal, scheduler)

        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            reporter.begin_lookup("123")
            reporter.begin_lookup("999")
            await reporter.wait_idle()

        lines = [json.loads(line) for line in out.getvalue().splitlines()]
        by_barcode = {line["barcode"]: line for line in lines}
        self.assertTrue(by_barcode["123"]["found"])
        self.assertEqual(by_barcode["123"]["current_stock"], 4)
        self.assertFalse(by_barcode["999"]["found"])
        self.assertFalse(modal.visible)
        self.assertTrue(closed)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
