"""Periodic deletion of old scan records."""

from __future__ import annotations

import logging
import threading

from ..config.settings import Settings
from ..warehouse.errors import WarehouseError
from .services import InventoryService

logger = logging.getLogger(__name__)


class ScanRetentionJob:
    def __init__(
        self,
        service: InventoryService,
        *,
        retention_days: int,
        interval_seconds: float,
    ) -> None:
        self._service = service
        self.retention_days = retention_days
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def from_settings(cls, service: InventoryService, settings: Settings) -> "ScanRetentionJob":
        return cls(
            service,
            retention_days=settings.scan_retention_days,
            interval_seconds=settings.cleanup_interval_seconds,
        )

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        try:
            deleted = self._service.cleanup_scans(self.retention_days)
        except WarehouseError as exc:
            logger.error("scan cleanup failed: %s", exc)
            return 0
        if deleted:
            logger.info(
                "deleted %s scans older than %s days", deleted, self.retention_days
            )
        return deleted

    def run(self) -> None:
        """Block until ``stop`` is called, cleaning up once per interval."""

        logger.info(
            "scan retention running every %ss (keep %s days)",
            self.interval_seconds,
            self.retention_days,
        )
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
        logger.info("scan retention stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run, name="scan-retention", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
