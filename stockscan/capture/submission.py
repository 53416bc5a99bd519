"""Fire-and-forget delivery of accepted scans."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from ..warehouse.errors import WarehouseError
from .clock import Scheduler
from .history import CompletedScan
from .modes import ScanMode

logger = logging.getLogger(__name__)


class ScanRecorder(Protocol):
    async def submit_scan(self, value: str, mode: ScanMode, device_tag: str) -> Any:
        ...


class BackgroundSubmitter:
    """Posts each accepted scan without blocking the capture pipeline.

    Failures are logged and dropped: the scan already lives in local history
    and is neither retried nor queued.
    """

    def __init__(self, recorder: ScanRecorder, device_tag: str, scheduler: Scheduler) -> None:
        self._recorder = recorder
        self._device_tag = device_tag
        self._scheduler = scheduler
        self._tasks: set[asyncio.Task[Any]] = set()
        self.delivered = 0
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, scan: CompletedScan) -> None:
        task = self._scheduler.spawn(self._deliver(scan))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, scan: CompletedScan) -> None:
        try:
            await self._recorder.submit_scan(scan.value, scan.acquisition_mode, self._device_tag)
        except WarehouseError as exc:
            self.failures += 1
            logger.error("failed to save scan %s: %s", scan.value, exc)
            return
        self.delivered += 1

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
