"""Acquisition modes for the scan screen."""

from __future__ import annotations

from enum import Enum


class ScanMode(Enum):
    KEYBOARD = "keyboard"
    CAMERA = "camera"


def toggle_mode(mode: ScanMode) -> ScanMode:
    """Return the other acquisition mode."""

    if mode == ScanMode.CAMERA:
        return ScanMode.KEYBOARD
    return ScanMode.CAMERA
