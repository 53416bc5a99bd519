"""Single convergence point for accepted scans."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from .clock import Scheduler
from .cooldown import Cooldown
from .feedback import Haptics, NullHaptics
from .history import CompletedScan, ScanHistory
from .modes import ScanMode

logger = logging.getLogger(__name__)

ScanListener = Callable[[CompletedScan], None]


class Acquisition(Protocol):
    """A front-end producing raw candidate strings for one mode."""

    mode: ScanMode

    def reset_input(self) -> None:
        ...

    def on_scan_accepted(self) -> None:
        ...


class ScanSubmitter(Protocol):
    def submit(self, scan: CompletedScan) -> None:
        ...


class LookupLauncher(Protocol):
    def begin_lookup(self, barcode: str) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompletionHandler:
    """Dedupes candidates, records history and fans out to collaborators.

    Everything here runs synchronously on the event loop; network work is
    handed to the submitter and the lookup launcher, which never block.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        history: ScanHistory | None = None,
        cooldown: Cooldown | None = None,
        submitter: ScanSubmitter | None = None,
        lookup: LookupLauncher | None = None,
        haptics: Haptics | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self.history = history if history is not None else ScanHistory()
        self.cooldown = cooldown if cooldown is not None else Cooldown()
        self.submitter = submitter
        self.lookup = lookup
        self._haptics = haptics or NullHaptics()
        self._clock = clock or _utcnow
        self._frontends: dict[ScanMode, Acquisition] = {}
        self._listeners: list[ScanListener] = []

    def register(self, frontend: Acquisition) -> None:
        self._frontends[frontend.mode] = frontend

    def subscribe(self, listener: ScanListener) -> None:
        self._listeners.append(listener)

    @property
    def last_scanned(self) -> str | None:
        latest = self.history.latest
        return latest.value if latest else None

    def complete(self, raw: str, mode: ScanMode) -> CompletedScan | None:
        value = raw.strip()
        frontend = self._frontends.get(mode)
        if not value:
            if frontend is not None:
                frontend.reset_input()
            return None

        now = self._scheduler.now()
        if self.cooldown.suppresses(value, now):
            logger.debug("suppressed duplicate %s scan %s", mode.value, value)
            return None

        self.cooldown.record(value, now)
        scan = CompletedScan(value=value, acquisition_mode=mode, timestamp=self._clock())
        self.history.prepend(scan)
        logger.info("accepted %s scan %s", mode.value, value)

        self._haptics.success()
        if self.submitter is not None:
            self.submitter.submit(scan)
        if self.lookup is not None:
            self.lookup.begin_lookup(value)
        for listener in list(self._listeners):
            listener(scan)
        if frontend is not None:
            frontend.on_scan_accepted()
        return scan

    def clear_history(self) -> None:
        self.history.clear()
