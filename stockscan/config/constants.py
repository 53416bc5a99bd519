"""Shared runtime constants for stockscan services."""

import sys

SERVICE_NAMES = [
    "scanner",
    "inventory_api",
]

DEFAULT_API_BASE_URL = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT = 15.0
DEFAULT_DEVICE_TAG = sys.platform

DEFAULT_INACTIVITY_TIMEOUT_MS = 100
DEFAULT_SCAN_DELAY_MS = 300
DEFAULT_REQUIRED_CONSISTENT_READS = 3
DEFAULT_VALIDATION_WINDOW_MS = 500
DEFAULT_COOLDOWN_MS = 2000
DEFAULT_HISTORY_SIZE = 20

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8000
DEFAULT_USERS: list[str] = []
DEFAULT_BCRYPT_ROUNDS = 12
DEFAULT_TOKEN_TTL_SECONDS = 7 * 24 * 3600
DEFAULT_SCAN_RETENTION_DAYS = 3
DEFAULT_CLEANUP_INTERVAL_SECONDS = 24 * 3600.0

DEFAULT_SCANS_PAGE_LIMIT = 50
DEFAULT_ALL_SCANS_PAGE_LIMIT = 100
DEFAULT_PRODUCTS_PAGE_LIMIT = 50
DEFAULT_INVENTORY_VALUE_DAYS = 30
DEFAULT_CATEGORY_COLOR = "#3b82f6"
