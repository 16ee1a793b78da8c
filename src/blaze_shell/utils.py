# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Utility functions for Blaze Shell.
"""

from __future__ import annotations

from enum import Enum, auto


class LexerState(Enum):
    """States for the argument splitter."""
    NORMAL = auto()
    DOUBLE_QUOTE = auto()


def split_args(line: str) -> list[str]:
    """Split a command line into argument tokens.

    This is intentionally not shell parsing:
    - whitespace outside quotes separates tokens (runs collapse)
    - a double quote toggles quoted mode, where whitespace is literal
    - backslash + double quote emits a literal quote
    - any other backslash is kept as-is
    - &, |, ;, >, < are ordinary characters
    - an unterminated quote is closed at end of input

    Args:
        line: Raw input line

    Returns:
        List of tokens (possibly empty)
    """
    args: list[str] = []
    current: list[str] = []
    state = LexerState.NORMAL

    i = 0
    while i < len(line):
        ch = line[i]

        if ch == '"':
            if state == LexerState.NORMAL:
                state = LexerState.DOUBLE_QUOTE
            else:
                state = LexerState.NORMAL
            i += 1
            continue

        if ch == '\\':
            if i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            current.append(ch)
            i += 1
            continue

        if ch.isspace() and state == LexerState.NORMAL:
            if current:
                args.append(''.join(current))
                current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    if current:
        args.append(''.join(current))

    return args


def decode_output(data: bytes) -> str:
    """Decode process output leniently (invalid sequences replaced)."""
    return data.decode("utf-8", errors="replace")


def split_output_lines(text: str) -> list[str]:
    """Split decoded output into display lines (no trailing newlines).

    Only ``\\n`` ends a line; a ``\\r`` before it is dropped. Other Unicode
    line boundaries (form feed, U+2028, ...) stay inside the line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]

