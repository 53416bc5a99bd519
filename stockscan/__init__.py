"""Barcode capture and inventory runtime package."""

__version__ = "0.1.0"

from .config import constants, settings

__all__ = [
    "capture",
    "config",
    "services",
    "warehouse",
    "constants",
    "settings",
]
