# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Allowlist policy for external commands.

One table of (platform, fs_mode, command) triples replaces per-build
hardcoded arrays. The table is built from the ``allowlist`` section of
the packaged YAML defaults:

- common:   allowed everywhere
- windows / unix: platform-only names
- mutating: filesystem-mutating names, allowed only in FsMode.UNSAFE
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import FsMode, Platform, YAMLConfig

AllowTable = frozenset[tuple[Platform, FsMode, str]]

DEFAULT_COMMON = (
    "ls", "dir", "echo", "vim", "whoami", "cat", "grep", "curl", "wget", "ip",
)
DEFAULT_PLATFORM_ONLY: dict[Platform, tuple[str, ...]] = {
    Platform.WINDOWS: ("type", "ipconfig"),
    Platform.UNIX: ("ifconfig",),
}
DEFAULT_MUTATING = ("mkdir", "rm", "del", "mv")


def build_table(
    common: Iterable[str],
    platform_only: dict[Platform, Iterable[str]],
    mutating: Iterable[str],
) -> AllowTable:
    """Expand the name lists into the full (platform, mode, name) table."""
    common = tuple(common)
    mutating = tuple(mutating)
    rows: set[tuple[Platform, FsMode, str]] = set()
    for platform in Platform:
        names = common + tuple(platform_only.get(platform, ()))
        for mode in FsMode:
            for name in names:
                rows.add((platform, mode, name))
            if mode is FsMode.UNSAFE:
                for name in mutating:
                    rows.add((platform, mode, name))
    return frozenset(rows)


DEFAULT_TABLE = build_table(DEFAULT_COMMON, DEFAULT_PLATFORM_ONLY, DEFAULT_MUTATING)


class Allowlist:
    """Decides whether a program name may be executed externally."""

    def __init__(
        self,
        platform: Platform,
        fs_mode: FsMode,
        table: AllowTable = DEFAULT_TABLE,
    ):
        self.platform = platform
        self.fs_mode = fs_mode
        self._allowed = frozenset(
            name for (p, m, name) in table
            if p is platform and m is fs_mode
        )

    @classmethod
    def from_config(
        cls, cfg: YAMLConfig, platform: Platform, fs_mode: FsMode
    ) -> Allowlist:
        section = cfg.allowlist
        if not section:
            return cls(platform, fs_mode)

        def _names(key: str) -> list[str]:
            val = section.get(key, []) or []
            return [str(n) for n in val] if isinstance(val, list) else []

        table = build_table(
            _names("common"),
            {p: _names(p.value) for p in Platform},
            _names("mutating"),
        )
        return cls(platform, fs_mode, table)

    def is_allowed(self, name: str) -> bool:
        """Case-sensitive membership test; callers lowercase first."""
        return name in self._allowed

    def allowed_commands(self) -> list[str]:
        return sorted(self._allowed)
