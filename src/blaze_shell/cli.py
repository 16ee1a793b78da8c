# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Blaze Shell CLI entry point and REPL loop.

Design:
- CLI owns process startup and output wiring.
- Kernel is the session engine (config+policy+executor+store injected).
- UI is terminal-friendly PromptSession (keeps scrollback + copy/select).
- Commands run on the kernel's worker thread; transcript lines reach the
  terminal through the LineBuffer hooks as they are produced.
"""

from __future__ import annotations

import os
from collections.abc import Callable

from . import config
from .kernel import Kernel, create_kernel, write_crash_log
from .transcript import TranscriptEntry
from .ui import PromptToolkitUI


def format_entry(entry: TranscriptEntry) -> str:
    """Render a transcript line with ANSI colors for the legacy UI."""
    color = config.ANSI_COLORS.get(
        config.KIND_COLORS.get(entry.kind.value, "reset"),
        config.ANSI_COLORS["reset"],
    )
    return f"{color}{entry.content}{config.ANSI_COLORS['reset']}"


def connect_output(
    kernel: Kernel,
    ui: PromptToolkitUI | None = None,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Route the kernel's transcript to the terminal."""
    if ui is not None:
        kernel.buffer.on_append = ui.write_entry
        kernel.buffer.on_clear = ui.clear
        return

    kernel.buffer.on_append = lambda entry: output_fn(format_entry(entry))
    kernel.buffer.on_clear = lambda: output_fn(config.CLEAR_SCREEN)


def run_repl(
    kernel: Kernel,
    ui: PromptToolkitUI | None = None,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Run the standard Blaze REPL loop."""
    try:
        while kernel.running:
            try:
                prompt = kernel.prompt()

                if ui is not None:
                    line = ui.read(prompt)
                else:
                    line = input_fn(prompt + " ")

                line = (line or "").strip()
                if not line:
                    continue

                try:
                    kernel.dispatch(line).result()
                except Exception as e:
                    # Unhandled exception - write crash log
                    write_crash_log(
                        e, cwd=kernel.session.cwd, raw_command=line
                    )
                    error_msg = (
                        f"[ERROR] Unhandled exception: "
                        f"{type(e).__name__}: {e}"
                    )
                    if ui is not None:
                        ui.write(error_msg + "\n")
                    else:
                        output_fn(error_msg)
                    # Continue session

            except (KeyboardInterrupt, EOFError):
                msg = "\nBye!\n"
                if ui is not None:
                    ui.write(msg)
                else:
                    output_fn(msg)
                break
    finally:
        kernel.shutdown()


def main() -> None:
    """Main entry point for Blaze Shell."""
    # Explicit wiring: config + policy + executor + store injected into kernel
    kernel = create_kernel()

    # If user explicitly disables prompt_toolkit UI:
    if os.environ.get("BLAZE_LEGACY_UI") == "1":
        connect_output(kernel)
        kernel.start()
        run_repl(kernel)
        return

    # Default: PromptToolkitUI (keeps terminal scrollback/copy/select)
    ui = PromptToolkitUI(kernel)
    connect_output(kernel, ui=ui)
    kernel.start()

    run_repl(kernel, ui=ui)
