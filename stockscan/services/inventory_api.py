"""Reference inventory API server."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

import uvicorn

from ..api.app import create_app
from ..api.retention import ScanRetentionJob
from ..api.services import InventoryService
from ..config import settings as config_settings
from ..warehouse.errors import WarehouseError

logger = logging.getLogger(__name__)

SERVICE_NAME = "inventory_api"


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog=SERVICE_NAME, description="Serve the inventory API")
    parser.add_argument("--host", help="Override the bind address")
    parser.add_argument("--port", type=int, help="Override the listen port")
    parser.add_argument(
        "--no-retention", action="store_true", help="Disable the scan retention job"
    )
    args = parser.parse_args(argv)

    cfg = config_settings.get_settings()
    host = args.host or cfg.api_host
    port = args.port or cfg.api_port
    if not cfg.users:
        logger.error(
            "%s refusing to start: no accounts configured; set STOCKSCAN_USERS=user:password[:Full Name]",
            SERVICE_NAME,
        )
        return 1
    try:
        service = InventoryService.from_settings(cfg)
    except (ValueError, WarehouseError) as exc:
        logger.error("%s cannot load accounts: %s", SERVICE_NAME, exc)
        return 1
    logger.info(
        "%s starting on %s:%s users=%s retention=%sd",
        SERVICE_NAME,
        host,
        port,
        len(cfg.users),
        cfg.scan_retention_days,
    )
    retention = None
    if not args.no_retention:
        retention = ScanRetentionJob.from_settings(service, cfg)
        retention.start()
    try:
        uvicorn.run(create_app(service), host=host, port=port, log_level="info")
    finally:
        if retention is not None:
            retention.stop()
    return 0
