"""Terminal scan station: keyboard-wedge or replayed input into the capture pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Iterable, Sequence, TextIO

from ..capture import (
    AsyncioScheduler,
    BackgroundSubmitter,
    ClipboardUnavailable,
    CompletedScan,
    LoggingHaptics,
    ManualScheduler,
    ScanHistory,
    ScanMode,
    ScanSession,
    SystemClipboard,
)
from ..capture.clock import Scheduler
from ..config import settings as config_settings
from ..warehouse import ModalState, StockModal, WarehouseClient, WarehouseError

logger = logging.getLogger(__name__)

SERVICE_NAME = "scanner"

EVENT_TYPES = ("type", "key", "decode", "mode", "wait", "clear", "focus", "blur")


class ReplayError(ValueError):
    pass


def _print_json(payload: dict[str, Any], stream: TextIO | None = None) -> None:
    print(json.dumps(payload), file=stream or sys.stdout, flush=True)


def _history_records(history: ScanHistory) -> list[dict]:
    return [
        {
            "value": record.value,
            "mode": record.acquisition_mode.value,
            "timestamp": record.timestamp.isoformat(),
        }
        for record in history.records()
    ]


def _emit_summary(session: ScanSession, submitter: BackgroundSubmitter | None) -> None:
    payload = {
        "mode": session.mode.value,
        "last_scanned": session.last_scanned,
        "history": _history_records(session.history),
        "submitted": submitter.delivered if submitter else 0,
        "failed": submitter.failures if submitter else 0,
    }
    print(json.dumps(payload, indent=2))


def _report_scan(scan: CompletedScan) -> None:
    _print_json({"event": "scan", "value": scan.value, "mode": scan.acquisition_mode.value})


class LookupReporter:
    """Runs each lookup through the modal, prints the outcome and dismisses it."""

    def __init__(self, modal: StockModal, scheduler: Scheduler) -> None:
        self.modal = modal
        self._scheduler = scheduler
        self._tasks: set[asyncio.Task[Any]] = set()

    def begin_lookup(self, barcode: str) -> None:
        task = self._scheduler.spawn(self._lookup(barcode))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _lookup(self, barcode: str) -> None:
        state = await self.modal.open(barcode)
        if state == ModalState.FOUND_FORM and self.modal.product is not None:
            product = self.modal.product
            _print_json(
                {
                    "event": "lookup",
                    "barcode": barcode,
                    "found": True,
                    "name": product.name,
                    "current_stock": product.current_stock,
                }
            )
        elif state == ModalState.NOT_FOUND_FORM:
            _print_json(
                {
                    "event": "lookup",
                    "barcode": barcode,
                    "found": False,
                    "error": self.modal.error or None,
                }
            )
        else:
            return
        self.modal.close()

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def parse_event(raw: str) -> dict[str, Any]:
    try:
        event = json.loads(raw)
    except ValueError as exc:
        raise ReplayError(f"invalid event {raw!r}: {exc}") from exc
    if not isinstance(event, dict) or event.get("type") not in EVENT_TYPES:
        raise ReplayError(f"unknown event {raw!r}")
    return event


def read_events(lines: Iterable[str]) -> list[dict[str, Any]]:
    events = []
    for line in lines:
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        events.append(parse_event(text))
    return events


def apply_event(session: ScanSession, event: dict[str, Any]) -> float:
    """Feed one event into the session; return the milliseconds to wait afterwards."""

    kind = event["type"]
    if kind == "type":
        session.type_text(str(event.get("text", "")))
    elif kind == "key":
        session.press_key(str(event.get("key", "Enter")))
    elif kind == "decode":
        session.on_barcode_decoded(str(event.get("data", "")))
    elif kind == "mode":
        target = event.get("mode")
        session.switch_mode(ScanMode(target) if target else None)
    elif kind == "clear":
        session.clear_history()
    elif kind == "focus":
        session.focus()
    elif kind == "blur":
        session.blur()
    elif kind == "wait":
        return float(event.get("ms", 0))
    return 0.0


async def _settle(
    submitter: BackgroundSubmitter | None, reporter: LookupReporter | None
) -> None:
    await asyncio.sleep(0)
    if submitter is not None:
        await submitter.wait_idle()
    if reporter is not None:
        await reporter.wait_idle()


async def _replay(
    session: ScanSession,
    scheduler: ManualScheduler,
    events: list[dict[str, Any]],
    submitter: BackgroundSubmitter | None,
    reporter: LookupReporter | None,
) -> None:
    for event in events:
        wait_ms = apply_event(session, event)
        if wait_ms:
            scheduler.advance_ms(wait_ms)
        await _settle(submitter, reporter)


async def _read_stdin(session: ScanSession, stream: TextIO) -> None:
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, stream.readline)
        if not line:
            break
        text = line.rstrip("\r\n")
        if text.startswith("{"):
            try:
                wait_ms = apply_event(session, parse_event(text))
            except (ReplayError, ValueError) as exc:
                logger.warning("ignoring input: %s", exc)
                continue
            if wait_ms:
                await asyncio.sleep(wait_ms / 1000.0)
            continue
        session.type_text(text)
        session.press_key("Enter")
        # let wedge timers and spawned requests run between lines
        await asyncio.sleep(0)


async def _connect(args: argparse.Namespace, cfg: config_settings.Settings) -> WarehouseClient | None:
    if args.offline:
        return None
    client = WarehouseClient(
        args.api_url or cfg.api_base_url,
        token=cfg.api_token or None,
        timeout=cfg.request_timeout,
    )
    if client.token:
        return client
    if not cfg.username or not cfg.password:
        await client.aclose()
        raise WarehouseError("no API token or username/password configured")
    user = await client.login(cfg.username, cfg.password)
    logger.info("logged in as %s", user.username)
    return client


async def _run(args: argparse.Namespace, cfg: config_settings.Settings) -> int:
    events: list[dict[str, Any]] | None = None
    if args.replay:
        try:
            with open(args.replay, encoding="utf-8") as handle:
                events = read_events(handle)
        except (OSError, ReplayError) as exc:
            logger.error("cannot load replay file: %s", exc)
            return 1

    clipboard = None
    if args.copy_last:
        try:
            clipboard = SystemClipboard()
        except ClipboardUnavailable as exc:
            logger.error("clipboard access failed: %s", exc)
            return 1

    try:
        client = await _connect(args, cfg)
    except WarehouseError as exc:
        logger.error("authentication failed: %s", exc)
        return 1

    virtual_clock = ManualScheduler() if events is not None else None
    scheduler: Scheduler = virtual_clock or AsyncioScheduler()
    haptics = LoggingHaptics(bell=args.bell)
    submitter = None
    reporter = None
    if client is not None:
        submitter = BackgroundSubmitter(client, args.device_tag or cfg.device_tag, scheduler)
        if not args.no_lookup:
            modal = StockModal(client, scheduler, haptics=haptics)
            reporter = LookupReporter(modal, scheduler)

    session = ScanSession.from_settings(
        scheduler,
        cfg,
        mode=ScanMode(args.mode),
        submitter=submitter,
        lookup=reporter,
        haptics=haptics,
        clipboard=clipboard,
        focus_input=lambda: logger.debug("scan input focused"),
    )
    if reporter is not None:
        reporter.modal.add_close_listener(session.refocus)
    session.subscribe(_report_scan)
    session.focus()

    try:
        if events is not None and virtual_clock is not None:
            await _replay(session, virtual_clock, events, submitter, reporter)
        else:
            logger.info("%s reading barcodes from stdin (mode=%s)", SERVICE_NAME, session.mode.value)
            await _read_stdin(session, sys.stdin)
        session.blur()
        await _settle(submitter, reporter)
    finally:
        if client is not None:
            await client.aclose()

    _emit_summary(session, submitter)
    if args.copy_last and not session.copy_last_scan():
        logger.warning("nothing to copy")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="scanner", description="Run a barcode scan station")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ScanMode],
        default=ScanMode.KEYBOARD.value,
        help="Initial acquisition mode",
    )
    parser.add_argument("--replay", help="JSON-lines file of input events to replay")
    parser.add_argument("--api-url", help="Override the inventory API base URL")
    parser.add_argument("--device-tag", help="Device info sent with each scan")
    parser.add_argument("--offline", action="store_true", help="Skip scan submission and lookup")
    parser.add_argument("--no-lookup", action="store_true", help="Submit scans without product lookup")
    parser.add_argument("--copy-last", action="store_true", help="Copy the last scan to the clipboard")
    parser.add_argument("--bell", action="store_true", help="Ring the terminal bell on each scan")

    args = parser.parse_args(argv)
    cfg = config_settings.get_settings()
    return asyncio.run(_run(args, cfg))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
