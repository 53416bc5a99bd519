"""Unit tests for the completion handler, cooldown and history."""

from __future__ import annotations

import unittest
from datetime import datetime, timezone

from stockscan.capture.clock import ManualScheduler
from stockscan.capture.completion import CompletionHandler
from stockscan.capture.cooldown import Cooldown
from stockscan.capture.history import CompletedScan, ScanHistory
from stockscan.capture.modes import ScanMode


class _RecordingFrontend:
    def __init__(self, mode: ScanMode) -> None:
        self.mode = mode
        self.resets = 0
        self.accepted = 0

    def reset_input(self) -> None:
        self.resets += 1

    def on_scan_accepted(self) -> None:
        self.accepted += 1


class _RecordingSubmitter:
    def __init__(self) -> None:
        self.scans: list[CompletedScan] = []

    def submit(self, scan: CompletedScan) -> None:
        self.scans.append(scan)


class _RecordingLookup:
    def __init__(self) -> None:
        self.barcodes: list[str] = []

    def begin_lookup(self, barcode: str) -> None:
        self.barcodes.append(barcode)


class _CountingHaptics:
    def __init__(self) -> None:
        self.successes = 0

    def success(self) -> None:
        self.successes += 1

    def impact(self, strength) -> None:
        return None


class CompletionHandlerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler = ManualScheduler()
        self.submitter = _RecordingSubmitter()
        self.lookup = _RecordingLookup()
        self.haptics = _CountingHaptics()
        self.keyboard = _RecordingFrontend(ScanMode.KEYBOARD)
        self.camera = _RecordingFrontend(ScanMode.CAMERA)
        self.handler = CompletionHandler(
            self.scheduler,
            history=ScanHistory(maxlen=20),
            cooldown=Cooldown(window_ms=2000),
            submitter=self.submitter,
            lookup=self.lookup,
            haptics=self.haptics,
            clock=lambda: datetime(2024, 5, 1, tzinfo=timezone.utc),
        )
        self.handler.register(self.keyboard)
        self.handler.register(self.camera)

    def test_accepted_scan_fans_out_once(self) -> None:
        heard: list[str] = []
        self.handler.subscribe(lambda scan: heard.append(scan.value))

        scan = self.handler.complete("  4006381333931 ", ScanMode.KEYBOARD)

        self.assertIsNotNone(scan)
        self.assertEqual(scan.value, "4006381333931")
        self.assertEqual(scan.acquisition_mode, ScanMode.KEYBOARD)
        self.assertEqual(self.handler.history.values(), ["4006381333931"])
        self.assertEqual([s.value for s in self.submitter.scans], ["4006381333931"])
        self.assertEqual(self.lookup.barcodes, ["4006381333931"])
        self.assertEqual(self.haptics.successes, 1)
        self.assertEqual(heard, ["4006381333931"])
        self.assertEqual(self.keyboard.accepted, 1)
        self.assertEqual(self.camera.accepted, 0)
        self.assertEqual(self.handler.last_scanned, "4006381333931")

    def test_empty_candidate_resets_originating_frontend_only(self) -> None:
        self.assertIsNone(self.handler.complete("   ", ScanMode.KEYBOARD))
        self.assertEqual(self.keyboard.resets, 1)
        self.assertEqual(self.camera.resets, 0)
        self.assertEqual(len(self.handler.history), 0)
        self.assertEqual(self.submitter.scans, [])

    def test_duplicate_inside_cooldown_is_dropped_silently(self) -> None:
        self.handler.complete("ABC", ScanMode.KEYBOARD)
        self.scheduler.advance_ms(1999)
        self.assertIsNone(self.handler.complete("ABC", ScanMode.CAMERA))

        self.assertEqual(len(self.handler.history), 1)
        self.assertEqual(len(self.submitter.scans), 1)
        self.assertEqual(self.haptics.successes, 1)
        self.assertEqual(self.camera.accepted, 0)

    def test_duplicate_after_cooldown_is_accepted(self) -> None:
        self.handler.complete("ABC", ScanMode.KEYBOARD)
        self.scheduler.advance_ms(2001)
        self.assertIsNotNone(self.handler.complete("ABC", ScanMode.KEYBOARD))
        self.assertEqual(self.handler.history.values(), ["ABC", "ABC"])

    def test_cooldown_only_remembers_the_latest_value(self) -> None:
        self.handler.complete("A", ScanMode.KEYBOARD)
        self.handler.complete("B", ScanMode.KEYBOARD)
        self.assertIsNotNone(self.handler.complete("A", ScanMode.KEYBOARD))
        self.assertEqual(self.handler.history.values(), ["A", "B", "A"])

    def test_history_is_newest_first_and_capped(self) -> None:
        for index in range(25):
            self.handler.complete(f"code-{index}", ScanMode.KEYBOARD)
        values = self.handler.history.values()
        self.assertEqual(len(values), 20)
        self.assertEqual(values[0], "code-24")
        self.assertEqual(values[-1], "code-5")

    def test_clear_history_keeps_cooldown(self) -> None:
        self.handler.complete("ABC", ScanMode.KEYBOARD)
        self.handler.clear_history()
        self.assertIsNone(self.handler.last_scanned)
        self.assertIsNone(self.handler.complete("ABC", ScanMode.KEYBOARD))


class CooldownTests(unittest.TestCase):
    def test_window_boundary(self) -> None:
        cooldown = Cooldown(window_ms=2000)
        cooldown.record("ABC", 10.0)
        self.assertTrue(cooldown.suppresses("ABC", 11.5))
        self.assertFalse(cooldown.suppresses("XYZ", 11.5))
        self.assertFalse(cooldown.suppresses("ABC", 12.0))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
