"""Camera acquisition with consistent-read confirmation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..config import constants
from .clock import Scheduler, TimerSlot
from .modes import ScanMode

logger = logging.getLogger(__name__)

CandidateSink = Callable[[str, ScanMode], object]


@dataclass
class PendingValidation:
    candidate_value: str | None = None
    consistent_read_count: int = 0
    window_deadline: float | None = None

    def reset(self) -> None:
        self.candidate_value = None
        self.consistent_read_count = 0
        self.window_deadline = None


class CameraAcquisition:
    """Accepts a decode only after repeated identical reads.

    A single frame is weak evidence (motion blur, partial frames), so a value
    must be decoded ``required_reads`` times inside one validation window.
    After activation and after every accepted scan, decodes are ignored until
    the alignment delay elapses.
    """

    mode = ScanMode.CAMERA

    def __init__(
        self,
        scheduler: Scheduler,
        sink: CandidateSink,
        *,
        required_reads: int = constants.DEFAULT_REQUIRED_CONSISTENT_READS,
        window_ms: int = constants.DEFAULT_VALIDATION_WINDOW_MS,
        alignment_delay_ms: int = constants.DEFAULT_SCAN_DELAY_MS,
    ) -> None:
        self._sink = sink
        self._required_reads = max(1, required_reads)
        self._window_ms = window_ms
        self._alignment_delay_ms = alignment_delay_ms
        self._window = TimerSlot(scheduler, "validation-window")
        self._alignment = TimerSlot(scheduler, "alignment")
        self.pending = PendingValidation()
        self.scan_ready = False
        self.active = False

    @property
    def validation_progress(self) -> int:
        return self.pending.consistent_read_count

    def activate(self) -> None:
        self.active = True
        self._arm_alignment()

    def deactivate(self) -> None:
        self.active = False
        self.scan_ready = False
        self._alignment.cancel()
        self.reset_input()

    def on_decode(self, data: str) -> None:
        if not self.active or not self.scan_ready:
            return
        value = data.strip()
        if not value:
            return

        if value == self.pending.candidate_value:
            self.pending.consistent_read_count += 1
            if self.pending.consistent_read_count >= self._required_reads:
                self._window.cancel()
                self.pending.reset()
                self._sink(value, self.mode)
            return

        self.pending.candidate_value = value
        self.pending.consistent_read_count = 1
        self.pending.window_deadline = self._window.arm(self._window_ms, self._expire)

    def _expire(self) -> None:
        logger.debug(
            "validation window expired for %s after %s reads",
            self.pending.candidate_value,
            self.pending.consistent_read_count,
        )
        self.pending.reset()

    def _arm_alignment(self) -> None:
        self.scan_ready = False
        self._alignment.arm(self._alignment_delay_ms, self._mark_ready)

    def _mark_ready(self) -> None:
        self.scan_ready = True

    def reset_input(self) -> None:
        self._window.cancel()
        self.pending.reset()

    def on_scan_accepted(self) -> None:
        if self.active:
            self._arm_alignment()
