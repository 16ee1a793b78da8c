# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Prefix-based tab completion.

- Typing the command name (one token, no trailing whitespace):
  complete against builtins + currently allowed externals.
- Typing an argument: complete the last token as a filesystem path
  relative to the session's working directory.

``cycle_index`` counts consecutive Tab presses so repeated presses cycle
through the sorted candidates.
"""

from __future__ import annotations

import os
from collections.abc import Iterable


class TabCompleter:
    def __init__(self, command_names: Iterable[str], sep: str = os.sep):
        self.command_names = sorted({name.lower() for name in command_names})
        self.sep = sep

    def command_candidates(self, prefix: str) -> list[str]:
        prefix = prefix.lower()
        return [n for n in self.command_names if n.startswith(prefix)]

    def path_candidates(self, cwd: str, partial: str) -> tuple[str, list[str]] | None:
        """Return (dir_part, matching entry names) for a partial path.

        Returns None if the directory cannot be read.
        """
        cut = max(partial.rfind("/"), partial.rfind("\\"))
        if cut >= 0:
            dir_part, file_prefix = partial[:cut + 1], partial[cut + 1:]
        else:
            dir_part, file_prefix = "", partial

        if not dir_part:
            search_dir = cwd
        elif os.path.isabs(dir_part):
            search_dir = dir_part
        else:
            search_dir = os.path.join(cwd, dir_part)

        try:
            with os.scandir(search_dir) as it:
                entries = list(it)
        except OSError:
            return None

        wanted = file_prefix.lower()
        names: set[str] = set()
        for entry in entries:
            if not entry.name.lower().startswith(wanted):
                continue
            try:
                is_dir = entry.is_dir()
            except OSError:
                is_dir = False
            names.add(entry.name + self.sep if is_dir else entry.name)
        return dir_part, sorted(names)

    def complete(self, text: str, cwd: str, cycle_index: int) -> str | None:
        tokens = text.split()
        if not tokens:
            return None

        trailing_space = text[-1].isspace()

        if len(tokens) == 1 and not trailing_space:
            matches = self.command_candidates(tokens[0])
            if not matches:
                return None
            return matches[cycle_index % len(matches)]

        partial = "" if trailing_space else tokens[-1]
        found = self.path_candidates(cwd, partial)
        if found is None:
            return None
        dir_part, matches = found
        if not matches:
            return None
        chosen = matches[cycle_index % len(matches)]

        if trailing_space:
            head = text
        else:
            cut = max(
                (i for i, ch in enumerate(text) if ch.isspace()), default=-1
            )
            head = text[:cut + 1]

        return f"{head}{dir_part}{chosen}"
