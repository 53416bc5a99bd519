"""Scan screen surface wiring both front-ends to one completion handler."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from ..config import constants
from ..config.settings import Settings
from .camera import CameraAcquisition
from .clock import Scheduler
from .completion import CompletionHandler, LookupLauncher, ScanListener, ScanSubmitter
from .cooldown import Cooldown
from .feedback import HapticStrength, Haptics, NullHaptics
from .history import ScanHistory
from .keyboard import KeyboardAcquisition
from .modes import ScanMode, toggle_mode
from .system_clipboard import ClipboardWriter

logger = logging.getLogger(__name__)


class ScanSession:
    """One scan screen instance.

    Only the front-end for the current mode is live; switching modes or
    losing focus cancels its timers and clears its transient state while the
    history and cooldown survive.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        mode: ScanMode = ScanMode.KEYBOARD,
        submitter: ScanSubmitter | None = None,
        lookup: LookupLauncher | None = None,
        haptics: Haptics | None = None,
        clipboard: ClipboardWriter | None = None,
        focus_input: Callable[[], None] | None = None,
        inactivity_timeout_ms: int = constants.DEFAULT_INACTIVITY_TIMEOUT_MS,
        scan_delay_ms: int = constants.DEFAULT_SCAN_DELAY_MS,
        required_consistent_reads: int = constants.DEFAULT_REQUIRED_CONSISTENT_READS,
        validation_window_ms: int = constants.DEFAULT_VALIDATION_WINDOW_MS,
        cooldown_ms: int = constants.DEFAULT_COOLDOWN_MS,
        history_size: int = constants.DEFAULT_HISTORY_SIZE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._haptics = haptics or NullHaptics()
        self._clipboard = clipboard
        self._focus_input = focus_input
        self.history = ScanHistory(maxlen=history_size)
        self.cooldown = Cooldown(window_ms=cooldown_ms)
        self.completion = CompletionHandler(
            scheduler,
            history=self.history,
            cooldown=self.cooldown,
            submitter=submitter,
            lookup=lookup,
            haptics=self._haptics,
            clock=clock,
        )
        self.keyboard = KeyboardAcquisition(
            scheduler,
            self.completion.complete,
            inactivity_ms=inactivity_timeout_ms,
            focus_input=self.refocus,
        )
        self.camera = CameraAcquisition(
            scheduler,
            self.completion.complete,
            required_reads=required_consistent_reads,
            window_ms=validation_window_ms,
            alignment_delay_ms=scan_delay_ms,
        )
        self.completion.register(self.keyboard)
        self.completion.register(self.camera)
        self._mode = mode
        self.focused = False

    @classmethod
    def from_settings(cls, scheduler: Scheduler, settings: Settings, **kwargs: Any) -> "ScanSession":
        return cls(
            scheduler,
            inactivity_timeout_ms=settings.inactivity_timeout_ms,
            scan_delay_ms=settings.scan_delay_ms,
            required_consistent_reads=settings.required_consistent_reads,
            validation_window_ms=settings.validation_window_ms,
            cooldown_ms=settings.cooldown_ms,
            history_size=settings.history_size,
            **kwargs,
        )

    @property
    def mode(self) -> ScanMode:
        return self._mode

    @property
    def last_scanned(self) -> str | None:
        return self.completion.last_scanned

    @property
    def buffer(self) -> str:
        return self.keyboard.buffer

    @property
    def validation_progress(self) -> int:
        return self.camera.validation_progress

    def subscribe(self, listener: ScanListener) -> None:
        self.completion.subscribe(listener)

    def _frontend(self, mode: ScanMode) -> KeyboardAcquisition | CameraAcquisition:
        if mode == ScanMode.CAMERA:
            return self.camera
        return self.keyboard

    def focus(self) -> None:
        self.focused = True
        self._frontend(self._mode).activate()

    def blur(self) -> None:
        self.focused = False
        self.keyboard.deactivate()
        self.camera.deactivate()

    def switch_mode(self, mode: ScanMode | None = None) -> ScanMode:
        target = mode if mode is not None else toggle_mode(self._mode)
        if target == self._mode:
            return self._mode
        self._frontend(self._mode).deactivate()
        self._mode = target
        if self.focused:
            self._frontend(target).activate()
        logger.info("scan mode switched to %s", target.value)
        return target

    def type_text(self, text: str) -> None:
        self.keyboard.feed(text)

    def press_key(self, key: str) -> None:
        self.keyboard.press_key(key)

    def on_barcode_decoded(self, data: str) -> None:
        self.camera.on_decode(data)

    def clear_history(self) -> None:
        self.completion.clear_history()
        self._haptics.impact(HapticStrength.MEDIUM)
        self.refocus()

    def copy_last_scan(self) -> bool:
        value = self.last_scanned
        if not value or self._clipboard is None:
            return False
        self._clipboard.write_text(value)
        self._haptics.impact(HapticStrength.LIGHT)
        self.refocus()
        return True

    def refocus(self) -> None:
        if self._mode == ScanMode.KEYBOARD and self._focus_input is not None:
            self._focus_input()
