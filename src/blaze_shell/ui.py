# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import ANSI, FormattedText
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import clear as pt_clear
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style

from .transcript import TranscriptEntry

if TYPE_CHECKING:
    from .kernel import Kernel  # pragma: no cover


# ----------------------------
# Config helpers (read through kernel.config.get_path)
# ----------------------------


def _cfg_get_path(kernel: Kernel | None, path: str, default):
    if kernel is None:
        return default
    cfg = getattr(kernel, "config", None)
    if cfg is None or not hasattr(cfg, "get_path"):
        return default
    try:
        return cfg.get_path(path, default)
    except Exception:
        return default


def _cfg_dict(kernel: Kernel | None, path: str, default: dict) -> dict:
    val = _cfg_get_path(kernel, path, default)
    return val if isinstance(val, dict) else default


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        # transcript entry kinds
        "blaze.command": "#5f87ff bold",
        "blaze.output": "",
        "blaze.error": "#ff5f5f",
        "blaze.system": "#ffa501 bold",
        # prompt
        "blaze.prompt": "#5f87ff",
    }


def _build_style(kernel: Kernel | None) -> Style:
    base = _default_style_dict()
    overrides = _cfg_dict(kernel, "ui.theme.style", {})
    # only keep string->string
    for k, v in list(overrides.items()):
        if isinstance(k, str) and isinstance(v, str):
            base[k] = v
    return Style.from_dict(base)


def _replace_text(buffer, text: str) -> None:
    buffer.document = Document(text, cursor_position=len(text))


# ----------------------------
# PromptSession UI
# ----------------------------


class PromptToolkitUI:
    """
    Terminal-friendly UI for a Blaze session:
      - Keeps normal terminal scrollback + drag-select copy.
      - Transcript entries are printed as they land in the kernel's
        LineBuffer (styled by entry kind).
      - Hotkeys:
          * Tab: complete command / path; repeated Tab cycles candidates
          * Up / Down: walk command history
          * Ctrl+L: clear the screen
    """

    def __init__(self, kernel: Kernel | None = None) -> None:
        self.kernel = kernel
        self.session: PromptSession[str] | None = None
        self._style = _build_style(kernel)

        # Tab cycling state: text the cycle started from, the text we
        # last inserted, and the current candidate index.
        self._tab_seed = ""
        self._tab_result: str | None = None
        self._tab_cycle = 0

    # ---------- session ----------

    def _ensure_session(self) -> None:
        if self.session is not None:
            return

        key_bindings = (
            self.build_key_bindings(self.kernel)
            if self.kernel else None
        )

        self.session = PromptSession(
            key_bindings=key_bindings,
            style=self._style,
        )

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        self._reset_tab()
        with patch_stdout():
            return self.session.prompt(ANSI(prompt + " "))

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline)."""
        if not text:
            return
        print_formatted_text(ANSI(text), style=self._style, end="")

    def write_entry(self, entry: TranscriptEntry) -> None:
        """Print one transcript line in the style of its kind."""
        print_formatted_text(
            FormattedText([(f"class:blaze.{entry.kind.value}", entry.content)]),
            style=self._style,
        )

    def clear(self) -> None:
        pt_clear()

    # ---------- tab cycling ----------

    def _reset_tab(self) -> None:
        self._tab_seed = ""
        self._tab_result = None
        self._tab_cycle = 0

    def next_completion(self, kernel: Kernel, text: str) -> str | None:
        """Return the completion to insert for a Tab press on `text`.

        Pressing Tab again on text we just inserted moves to the next
        candidate for the text the cycle started from; anything else starts over.
        """
        if self._tab_result is not None and text == self._tab_result:
            self._tab_cycle += 1
        else:
            self._tab_seed = text
            self._tab_cycle = 0

        completed = kernel.complete(self._tab_seed, self._tab_cycle)
        if completed is None:
            self._reset_tab()
            return None

        self._tab_result = completed
        return completed

    # ---------- keybindings ----------

    def build_key_bindings(self, kernel: Kernel) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("c-l")
        def _(event):
            try:
                event.app.renderer.clear()
            except Exception:
                pass
            try:
                event.current_buffer.reset()
            except Exception:
                pass
            event.app.invalidate()

        @kb.add("tab")
        def _(event):
            buf = event.current_buffer
            completed = self.next_completion(kernel, buf.text)
            if completed is not None:
                _replace_text(buf, completed)

        @kb.add("up")
        def _(event):
            entry = kernel.history_previous()
            if entry is not None:
                _replace_text(event.current_buffer, entry)

        @kb.add("down")
        def _(event):
            entry = kernel.history_next()
            if entry is not None:
                _replace_text(event.current_buffer, entry)

        return kb
