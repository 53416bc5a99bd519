"""Haptic feedback adapters."""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class HapticStrength(Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


class Haptics(Protocol):
    def success(self) -> None:
        ...

    def impact(self, strength: HapticStrength) -> None:
        ...


class NullHaptics:
    def success(self) -> None:
        return None

    def impact(self, strength: HapticStrength) -> None:
        return None


class LoggingHaptics:
    """Terminal stand-in for device vibration; optionally rings the bell."""

    def __init__(self, *, bell: bool = False, stream: TextIO | None = None) -> None:
        self._bell = bell
        self._stream = stream or sys.stderr

    def success(self) -> None:
        logger.debug("haptic success")
        if self._bell:
            self._stream.write("\a")
            self._stream.flush()

    def impact(self, strength: HapticStrength) -> None:
        logger.debug("haptic impact %s", strength.value)
