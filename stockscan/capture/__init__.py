"""Barcode capture pipeline: keyboard-wedge and camera acquisition."""

from __future__ import annotations

from .camera import CameraAcquisition, PendingValidation
from .clock import AsyncioScheduler, ManualScheduler, Scheduler, TimerSlot
from .completion import CompletionHandler
from .cooldown import Cooldown, CooldownEntry
from .feedback import HapticStrength, Haptics, LoggingHaptics, NullHaptics
from .history import CompletedScan, ScanHistory
from .keyboard import KeyboardAcquisition
from .modes import ScanMode, toggle_mode
from .session import ScanSession
from .submission import BackgroundSubmitter
from .system_clipboard import ClipboardUnavailable, SystemClipboard

__all__ = [
    "CameraAcquisition",
    "PendingValidation",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "TimerSlot",
    "CompletionHandler",
    "Cooldown",
    "CooldownEntry",
    "HapticStrength",
    "Haptics",
    "LoggingHaptics",
    "NullHaptics",
    "CompletedScan",
    "ScanHistory",
    "KeyboardAcquisition",
    "ScanMode",
    "toggle_mode",
    "ScanSession",
    "BackgroundSubmitter",
    "ClipboardUnavailable",
    "SystemClipboard",
]
