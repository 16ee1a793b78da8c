# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Platform translation of logical command names.

Maps a logical program name + raw argument tokens to the concrete
ExecutionRequest for the current OS. Unix is identity. Windows remaps
Unix-flavored names (ls -> dir, cat -> type, grep -> findstr, ...)
from the ``translations.windows`` table in system.yaml.

Names that are cmd.exe builtins (dir, type, del, move, ...) cannot be
spawned directly, so those requests run through the command processor
with AutoRun disabled (/D) and every argument escaped so &, |, <, >
and friends stay literal.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from .config import Platform, YAMLConfig

# Characters cmd.exe treats as operators outside quotes
CMD_METACHARACTERS = '^&|<>()%!"'

RM_FLAGS = frozenset({"-r", "-R", "-rf", "-fr", "-f"})


class TranslationError(ValueError):
    """A request that cannot be expressed on this platform."""


def quote_cmd_arg(arg: str) -> str:
    """Quote/escape one argument for a cmd.exe command line.

    Arguments with embedded whitespace are wrapped in double quotes
    (inside which operators are literal). Other arguments get a caret
    before every metacharacter.
    """
    if arg == "":
        return '""'
    if any(ch.isspace() for ch in arg):
        return '"' + arg.replace('"', '""') + '"'
    out: list[str] = []
    for ch in arg:
        if ch in CMD_METACHARACTERS:
            out.append("^")
        out.append(ch)
    return "".join(out)


@dataclass(frozen=True)
class ExecutionRequest:
    """One external invocation, built fresh per command."""

    program: str
    args: tuple[str, ...] = ()
    working_dir: str = "."
    via_command_processor: bool = False
    # Logical name the user typed (for messages and direct operations)
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.program

    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def command_line(self) -> str:
        """cmd.exe line for command-processor requests (no profile/AutoRun)."""
        inner = " ".join(
            [self.program, *(quote_cmd_arg(a) for a in self.args)]
        )
        return f'cmd.exe /D /S /C "{inner}"'

    def popen_args(self) -> str | list[str]:
        """What to hand to the process-creation call.

        Direct spawns pass an argv list; the platform quotes arguments
        that contain whitespace. Command-processor requests pass the
        escaped command line.
        """
        if self.via_command_processor:
            return self.command_line()
        return self.argv()


@dataclass(frozen=True)
class Translation:
    program: str
    command_processor: bool = False


DEFAULT_WINDOWS_TABLE: dict[str, Translation] = {
    "ls": Translation("dir", True),
    "dir": Translation("dir", True),
    "cat": Translation("type", True),
    "type": Translation("type", True),
    "grep": Translation("findstr"),
    "ip": Translation("ipconfig"),
    "mv": Translation("move", True),
    "mkdir": Translation("mkdir", True),
    "echo": Translation("echo", True),
    "whoami": Translation("whoami"),
}


class PlatformTranslator:
    """Turns (name, args) into the ExecutionRequest for this platform."""

    def __init__(
        self,
        platform: Platform,
        windows_table: dict[str, Translation] | None = None,
    ):
        self.platform = platform
        self.windows_table = (
            dict(DEFAULT_WINDOWS_TABLE)
            if windows_table is None else windows_table
        )

    @classmethod
    def from_config(
        cls, cfg: YAMLConfig, platform: Platform
    ) -> PlatformTranslator:
        raw: Any = cfg.translations.get("windows")
        if not isinstance(raw, dict):
            return cls(platform)

        table: dict[str, Translation] = {}
        for name, entry in raw.items():
            if isinstance(entry, str):
                table[str(name)] = Translation(entry)
            elif isinstance(entry, dict) and entry.get("program"):
                table[str(name)] = Translation(
                    str(entry["program"]),
                    bool(entry.get("command_processor", False)),
                )
        return cls(platform, table)

    def translate(
        self, program: str, args: list[str], cwd: str
    ) -> ExecutionRequest:
        if self.platform is Platform.UNIX:
            return ExecutionRequest(
                program=program, args=tuple(args), working_dir=cwd,
                name=program,
            )

        if program in ("rm", "del"):
            return self._translate_delete(program, args, cwd)

        mapped = self.windows_table.get(program)
        if mapped is None:
            return ExecutionRequest(
                program=program, args=tuple(args), working_dir=cwd,
                name=program,
            )

        return ExecutionRequest(
            program=mapped.program,
            args=tuple(args),
            working_dir=cwd,
            via_command_processor=mapped.command_processor,
            name=program,
        )

    def _translate_delete(
        self, program: str, args: list[str], cwd: str
    ) -> ExecutionRequest:
        """rm/del -> ``rmdir /S /Q`` for directories, ``del`` for files.

        Raises:
            TranslationError: targets mix directories and files, which no
                single cmd.exe builtin removes
        """
        targets = [a for a in args if a not in RM_FLAGS]

        kinds: set[bool] = set()
        for target in targets:
            path = target if os.path.isabs(target) else os.path.join(cwd, target)
            kinds.add(os.path.isdir(path))
        if len(kinds) > 1:
            raise TranslationError(
                "cannot remove files and directories in one command"
            )

        if True in kinds:
            return ExecutionRequest(
                program="rmdir",
                args=("/S", "/Q", *targets),
                working_dir=cwd,
                via_command_processor=True,
                name=program,
            )
        return ExecutionRequest(
            program="del",
            args=tuple(targets),
            working_dir=cwd,
            via_command_processor=True,
            name=program,
        )
