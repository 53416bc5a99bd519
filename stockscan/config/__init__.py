"""Configuration helpers for stockscan services."""

from . import constants
from .settings import Settings, get_settings

__all__ = ["constants", "Settings", "get_settings"]
