"""System clipboard helpers for copying scanned barcodes."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import Mapping, Protocol, Sequence

logger = logging.getLogger(__name__)


class ClipboardUnavailable(RuntimeError):
    pass


class ClipboardWriter(Protocol):
    def write_text(self, value: str) -> None:
        ...


_WAYLAND_TOOLS: Sequence[tuple[str, Sequence[str], Sequence[str]]] = (
    ("wl-copy", ("wl-paste", "--no-newline"), ("wl-copy",)),
)
_X11_TOOLS: Sequence[tuple[str, Sequence[str], Sequence[str]]] = (
    ("xclip", ("xclip", "-selection", "clipboard", "-o"), ("xclip", "-selection", "clipboard")),
    ("xsel", ("xsel", "--clipboard", "--output"), ("xsel", "--clipboard", "--input")),
)


def _is_wayland(env: Mapping[str, str]) -> bool:
    return "wayland" in env.get("XDG_SESSION_TYPE", "").lower() or bool(env.get("WAYLAND_DISPLAY"))


class SystemClipboard:
    """Clipboard adapter that shells out to wl-clipboard, xclip or xsel."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        env = env if env is not None else os.environ
        candidates = list(_X11_TOOLS)
        if _is_wayland(env):
            candidates = list(_WAYLAND_TOOLS) + candidates
        selected = self._find_tool(candidates)
        if selected is None:
            raise ClipboardUnavailable(
                "clipboard helpers missing; install wl-clipboard, xclip, or xsel"
            )
        self.tool, self._read_cmd, self._write_cmd = selected
        logger.debug("using %s for clipboard access", self.tool)

    def _find_tool(
        self, candidates: Sequence[tuple[str, Sequence[str], Sequence[str]]]
    ) -> tuple[str, list[str], list[str]] | None:
        for name, read_cmd, write_cmd in candidates:
            if shutil.which(name):
                return name, list(read_cmd), list(write_cmd)
        return None

    def read_text(self) -> str:
        result = subprocess.run(self._read_cmd, check=True, capture_output=True, text=True)
        return result.stdout.rstrip("\n")

    def write_text(self, value: str) -> None:
        subprocess.run(self._write_cmd, check=True, input=value, text=True)
