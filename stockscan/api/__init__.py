"""API package for the inventory service."""

from .app import create_app, get_app
from .retention import ScanRetentionJob
from .services import InventoryService

__all__ = ["create_app", "get_app", "InventoryService", "ScanRetentionJob"]
