"""Keyboard-wedge acquisition with an inactivity flush."""

from __future__ import annotations

import logging
from typing import Callable

from ..config import constants
from .clock import Scheduler, TimerSlot
from .modes import ScanMode

logger = logging.getLogger(__name__)

TERMINATOR_KEYS = frozenset({"Enter", "Return", "\n", "\r"})

CandidateSink = Callable[[str, ScanMode], object]


class KeyboardAcquisition:
    """Turns a wedge scanner's keystrokes into discrete submissions.

    The device gives no end-of-scan signal besides an optional terminator, so
    every character restarts the inactivity timer and the buffer is flushed
    when it fires. Scans arriving closer together than the timeout without a
    terminator merge into one.
    """

    mode = ScanMode.KEYBOARD

    def __init__(
        self,
        scheduler: Scheduler,
        sink: CandidateSink,
        *,
        inactivity_ms: int = constants.DEFAULT_INACTIVITY_TIMEOUT_MS,
        focus_input: Callable[[], None] | None = None,
    ) -> None:
        self._sink = sink
        self._inactivity_ms = inactivity_ms
        self._focus_input = focus_input
        self._timer = TimerSlot(scheduler, "inactivity")
        self._buffer = ""
        self.active = False

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def timer_pending(self) -> bool:
        return self._timer.active

    def activate(self) -> None:
        self.active = True
        self.reset_input()

    def deactivate(self) -> None:
        self.active = False
        self._timer.cancel()
        self._buffer = ""

    def feed(self, text: str) -> None:
        if not self.active:
            return
        for char in text:
            if char in TERMINATOR_KEYS:
                self.submit()
                continue
            self._buffer += char
            self._timer.arm(self._inactivity_ms, self._flush)

    def press_key(self, key: str) -> None:
        if not self.active:
            return
        if key in TERMINATOR_KEYS:
            self.submit()
        elif len(key) == 1:
            self.feed(key)

    def submit(self) -> None:
        self._timer.cancel()
        self._flush()

    def _flush(self) -> None:
        value, self._buffer = self._buffer, ""
        logger.debug("keyboard buffer submitted (%s chars)", len(value))
        self._sink(value, self.mode)

    def reset_input(self) -> None:
        self._timer.cancel()
        self._buffer = ""
        if self._focus_input is not None:
            self._focus_input()

    def on_scan_accepted(self) -> None:
        self.reset_input()
