"""Single-slot duplicate suppression for accepted barcodes."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import constants


@dataclass(frozen=True)
class CooldownEntry:
    value: str
    expires_at: float


class Cooldown:
    """Remembers only the most recently accepted value."""

    def __init__(self, window_ms: int = constants.DEFAULT_COOLDOWN_MS) -> None:
        self.window_ms = window_ms
        self.entry: CooldownEntry | None = None

    def suppresses(self, value: str, now: float) -> bool:
        entry = self.entry
        return entry is not None and entry.value == value and now < entry.expires_at

    def record(self, value: str, now: float) -> CooldownEntry:
        self.entry = CooldownEntry(value=value, expires_at=now + self.window_ms / 1000.0)
        return self.entry
