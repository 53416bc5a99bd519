"""In-memory scan history."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from ..config import constants
from .modes import ScanMode


@dataclass(frozen=True)
class CompletedScan:
    value: str
    acquisition_mode: ScanMode
    timestamp: datetime


class ScanHistory:
    """Newest-first ring of accepted scans."""

    def __init__(self, maxlen: int = constants.DEFAULT_HISTORY_SIZE) -> None:
        self._records: deque[CompletedScan] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._records.maxlen or 0

    def prepend(self, scan: CompletedScan) -> None:
        self._records.appendleft(scan)

    def clear(self) -> None:
        self._records.clear()

    @property
    def latest(self) -> CompletedScan | None:
        return self._records[0] if self._records else None

    def records(self) -> list[CompletedScan]:
        return list(self._records)

    def values(self) -> list[str]:
        return [record.value for record in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CompletedScan]:
        return iter(self._records)
