"""Unit tests for background scan submission."""

from __future__ import annotations

import unittest
from datetime import datetime, timezone

import httpx

from stockscan.capture.clock import AsyncioScheduler
from stockscan.capture.history import CompletedScan
from stockscan.capture.modes import ScanMode
from stockscan.capture.submission import BackgroundSubmitter
from stockscan.warehouse.client import WarehouseClient
from stockscan.warehouse.errors import TransportError


class _Recorder:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, ScanMode, str]] = []

    async def submit_scan(self, value: str, mode: ScanMode, device_tag: str):
        self.calls.append((value, mode, device_tag))
        if value in self.fail_on:
            raise TransportError("offline")
        return None


def _scan(value: str) -> CompletedScan:
    return CompletedScan(value, ScanMode.KEYBOARD, datetime(2024, 5, 1, tzinfo=timezone.utc))


class BackgroundSubmitterTests(unittest.IsolatedAsyncioTestCase):
    async def test_submits_without_blocking_and_counts_outcomes(self) -> None:
        recorder = _Recorder(fail_on={"bad"})
        submitter = BackgroundSubmitter(recorder, "linux", AsyncioScheduler())

        submitter.submit(_scan("good"))
        submitter.submit(_scan("bad"))
        self.assertEqual(recorder.calls, [])
        self.assertEqual(submitter.pending, 2)

        with self.assertLogs("stockscan.capture.submission", level="ERROR"):
            await submitter.wait_idle()

        self.assertEqual(
            recorder.calls,
            [("good", ScanMode.KEYBOARD, "linux"), ("bad", ScanMode.KEYBOARD, "linux")],
        )
        self.assertEqual(submitter.delivered, 1)
        self.assertEqual(submitter.failures, 1)
        self.assertEqual(submitter.pending, 0)

    async def test_malformed_reply_counts_as_failure(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(201, json={"success": True}))
        async with WarehouseClient(
            "http://inventory.test",
            token="tok",
            http_client=httpx.AsyncClient(transport=transport),
        ) as client:
            submitter = BackgroundSubmitter(client, "linux", AsyncioScheduler())
            submitter.submit(_scan("123"))
            with self.assertLogs("stockscan.capture.submission", level="ERROR"):
                await submitter.wait_idle()

        self.assertEqual(submitter.delivered, 0)
        self.assertEqual(submitter.failures, 1)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
