"""``stockscan-cli``: run a scan station or the inventory API, or inspect settings."""

from __future__ import annotations

import argparse
import dataclasses
import importlib
import json
import logging
import sys
from typing import Any, Callable, Sequence

from . import __version__
from .config import constants, settings

logger = logging.getLogger("stockscan.cli")

_SECRET_FIELDS = ("api_token", "password", "jwt_secret")
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _service_entrypoint(name: str) -> Callable[[Sequence[str]], Any]:
    module = importlib.import_module(f"stockscan.services.{name}")
    return module.main


def _redacted(cfg: settings.Settings) -> dict[str, Any]:
    values = dataclasses.asdict(cfg)
    for key in _SECRET_FIELDS:
        if values.get(key):
            values[key] = "***"
    values["users"] = [spec.split(":", 1)[0] for spec in cfg.users]
    return values


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stockscan-cli", description="Barcode capture and inventory services"
    )
    parser.add_argument("--version", action="version", version=f"stockscan {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command")

    service = commands.add_parser("service", help="Run a service by name")
    service.add_argument("--name", choices=constants.SERVICE_NAMES, required=True)
    service.add_argument(
        "service_args", nargs=argparse.REMAINDER, help="Arguments passed to the service"
    )

    commands.add_parser("settings", help="Print the resolved settings with secrets masked")
    return parser


def _run_service(args: argparse.Namespace, cfg: settings.Settings) -> int:
    logger.info(
        "starting %s (api=%s device=%s)", args.name, cfg.api_base_url, cfg.device_tag
    )
    forwarded = list(args.service_args)
    if forwarded[:1] == ["--"]:
        forwarded = forwarded[1:]
    result = _service_entrypoint(args.name)(forwarded)
    return result if isinstance(result, int) else 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if args.command is None:
        parser.print_help()
        return 1

    _configure_logging(args.verbose)
    cfg = settings.get_settings()
    if args.command == "settings":
        print(json.dumps(_redacted(cfg), indent=2))
        return 0
    return _run_service(args, cfg)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
