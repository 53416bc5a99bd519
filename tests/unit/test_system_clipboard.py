"""Unit tests for the system clipboard adapter."""

from __future__ import annotations

import subprocess
import unittest
from unittest import mock

from stockscan.capture.system_clipboard import ClipboardUnavailable, SystemClipboard


class SystemClipboardTests(unittest.TestCase):
    def test_prefers_wl_copy_on_wayland(self) -> None:
        with mock.patch("stockscan.capture.system_clipboard.shutil.which", return_value="/usr/bin/x"):
            clipboard = SystemClipboard(env={"XDG_SESSION_TYPE": "wayland"})
        self.assertEqual(clipboard.tool, "wl-copy")

    def test_falls_back_to_xsel(self) -> None:
        def _which(name: str):
            return "/usr/bin/xsel" if name == "xsel" else None

        with mock.patch("stockscan.capture.system_clipboard.shutil.which", side_effect=_which):
            clipboard = SystemClipboard(env={"DISPLAY": ":0"})
        self.assertEqual(clipboard.tool, "xsel")

    def test_missing_tools_raise(self) -> None:
        with mock.patch("stockscan.capture.system_clipboard.shutil.which", return_value=None):
            with self.assertRaises(ClipboardUnavailable):
                SystemClipboard(env={})

    def test_write_and_read_shell_out(self) -> None:
        with mock.patch("stockscan.capture.system_clipboard.shutil.which", return_value="/usr/bin/xclip"):
            clipboard = SystemClipboard(env={})
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="4006381333931\n")
        with mock.patch(
            "stockscan.capture.system_clipboard.subprocess.run", return_value=completed
        ) as run:
            clipboard.write_text("4006381333931")
            self.assertEqual(clipboard.read_text(), "4006381333931")
        write_call = run.call_args_list[0]
        self.assertEqual(write_call.args[0], ["xclip", "-selection", "clipboard"])
        self.assertEqual(write_call.kwargs["input"], "4006381333931")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
