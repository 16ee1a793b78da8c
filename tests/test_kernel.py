# tests/test_kernel.py
"""
Kernel tests with dependency injection.
Kernel should only route and record - actual work is delegated to the
allowlist, translator, executor and history store.
"""
from __future__ import annotations

import threading
from pathlib import Path

import pytest

import blaze_shell.kernel as kernel_mod
from blaze_shell.config import (
    FsMode,
    Platform,
    RuntimeSettings,
    Strategy,
    load_system_config,
)
from blaze_shell.executor import BlockingExecutor, StreamingExecutor
from blaze_shell.kernel import Kernel, create_kernel, denial_message
from blaze_shell.policy import Allowlist
from blaze_shell.session import Session
from blaze_shell.transcript import EntryKind, TranscriptEntry
from blaze_shell.translator import ExecutionRequest, PlatformTranslator

# ----------------------------------------------------------------
# Boundary tests (hard gates)
# ----------------------------------------------------------------


def test_kernel_module_does_not_spawn_or_load_yaml_directly() -> None:
    """
    HARD BOUNDARY:
    - Kernel must not spawn processes itself (executors do that).
    - Kernel must not parse YAML itself (config.py does that).
    """
    text = Path(kernel_mod.__file__).read_text(encoding="utf-8")
    forbidden = ["import subprocess", "subprocess.", "import yaml", "yaml.safe_load", "shell=True"]
    hits = [s for s in forbidden if s in text]
    assert not hits, f"Kernel must delegate execution/config. Found: {hits}"


# ----------------------------------------------------------------
# Mock dependencies
# ----------------------------------------------------------------


class FakeHistoryStore:
    def __init__(self, lines: list[str] | None = None):
        self.lines = list(lines or [])
        self.appended: list[str] = []

    def load(self, limit: int) -> list[str]:
        return self.lines[-limit:] if limit > 0 else []

    def append(self, command: str) -> None:
        self.appended.append(command)


class FakeExecutor:
    def __init__(self, lines: list[TranscriptEntry] | None = None, exc: Exception | None = None):
        self.requests: list[ExecutionRequest] = []
        self.lines = lines if lines is not None else [TranscriptEntry.output("ran")]
        self.exc = exc

    def execute(self, request, emit):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        for line in self.lines:
            emit(line)
        return 0


def make_kernel(
    tmp_path: Path,
    platform: Platform = Platform.UNIX,
    fs_mode: FsMode = FsMode.STANDARD,
    executor: FakeExecutor | None = None,
    store: FakeHistoryStore | None = None,
    with_config: bool = True,
) -> Kernel:
    return Kernel(
        allowlist=Allowlist(platform, fs_mode),
        translator=PlatformTranslator(platform),
        executor=executor or FakeExecutor(),
        history_store=store or FakeHistoryStore(),
        config=load_system_config() if with_config else None,
        session=Session(cwd=str(tmp_path)),
    )


def contents(k: Kernel, kind: EntryKind | None = None) -> list[str]:
    return [e.content for e in k.buffer.snapshot() if kind is None or e.kind is kind]


@pytest.fixture(autouse=True)
def isolated_data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data = tmp_path / "data"
    monkeypatch.setenv("BLAZE_DATA_HOME", str(data))
    return data


# ----------------------------------------------------------------
# start
# ----------------------------------------------------------------


def test_start_writes_banner_and_loads_history(tmp_path: Path) -> None:
    store = FakeHistoryStore(["ls", "pwd"])
    k = make_kernel(tmp_path, store=store)
    k.start()

    assert k.running is True
    assert k.session.command_history == ["ls", "pwd"]
    assert contents(k, EntryKind.SYSTEM) == [
        "⚡ Blaze Terminal v0.1.0",
        "Type 'help' for available commands.",
        "",
    ]


def test_start_without_config_has_no_banner(tmp_path: Path) -> None:
    k = make_kernel(tmp_path, with_config=False)
    k.start()
    assert len(k.buffer) == 0


def test_start_respects_history_limit(tmp_path: Path) -> None:
    k = make_kernel(tmp_path, store=FakeHistoryStore([f"c{i}" for i in range(10)]))
    k.history_limit = 3
    k.start(show_banner=False)
    assert k.session.command_history == ["c7", "c8", "c9"]


# ----------------------------------------------------------------
# Routing
# ----------------------------------------------------------------


def test_empty_input_is_ignored(tmp_path: Path) -> None:
    store = FakeHistoryStore()
    k = make_kernel(tmp_path, store=store)
    k.handle_command("   ")
    assert len(k.buffer) == 0
    assert store.appended == []
    assert k.session.command_history == []


def test_command_entry_echoes_prompt_and_line(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    k.handle_command("  pwd  ")
    snap = k.buffer.snapshot()
    assert snap[0] == TranscriptEntry.command(f"{tmp_path} > pwd")
    assert snap[1] == TranscriptEntry.output(str(tmp_path))


def test_submitted_commands_are_recorded(tmp_path: Path) -> None:
    store = FakeHistoryStore()
    k = make_kernel(tmp_path, store=store)
    k.session.command_history = ["old"]
    k.history_previous()

    k.handle_command("echo hi")
    k.handle_command("nope")

    assert store.appended == ["echo hi", "nope"]
    assert k.session.command_history == ["old", "echo hi", "nope"]
    assert k.session.history_cursor is None


def test_denied_command_message(tmp_path: Path) -> None:
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor)
    k.handle_command("python -c 1")

    assert contents(k, EntryKind.ERROR) == [
        "Command 'python' is not allowed. Type 'help' for a list of available commands."
    ]
    assert executor.requests == []
    assert denial_message("x") == (
        "Command 'x' is not allowed. Type 'help' for a list of available commands."
    )


def test_mutating_command_denied_outside_unsafe(tmp_path: Path) -> None:
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor, fs_mode=FsMode.STANDARD)
    k.handle_command("rm file.txt")
    assert executor.requests == []
    assert contents(k, EntryKind.ERROR)[0].startswith("Command 'rm' is not allowed.")


def test_mutating_command_allowed_in_unsafe(tmp_path: Path) -> None:
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor, fs_mode=FsMode.UNSAFE)
    k.handle_command("mkdir out")
    assert [r.program for r in executor.requests] == ["mkdir"]


def test_program_name_is_lowercased(tmp_path: Path) -> None:
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor)
    k.handle_command('ECHO "a b" c')

    req = executor.requests[0]
    assert req.program == "echo"
    assert req.args == ("a b", "c")
    assert req.working_dir == str(tmp_path)
    assert contents(k, EntryKind.OUTPUT) == ["ran"]


def test_windows_translation_is_applied(tmp_path: Path) -> None:
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor, platform=Platform.WINDOWS)
    k.handle_command("grep TODO main.rs")
    req = executor.requests[0]
    assert req.program == "findstr"
    assert req.name == "grep"


def test_untranslatable_request_is_reported_not_run(tmp_path: Path) -> None:
    (tmp_path / "build").mkdir()
    (tmp_path / "a.txt").write_text("x", encoding="utf-8")
    executor = FakeExecutor()
    k = make_kernel(
        tmp_path, executor=executor, platform=Platform.WINDOWS, fs_mode=FsMode.UNSAFE
    )
    k.handle_command("rm a.txt build")
    assert executor.requests == []
    assert contents(k, EntryKind.ERROR) == [
        "rm: cannot remove files and directories in one command"
    ]
    assert k.running


def test_metacharacters_reach_executor_as_arguments(tmp_path: Path) -> None:
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor)
    k.handle_command("echo hello && rm file.txt")
    assert executor.requests[0].args == ("hello", "&&", "rm", "file.txt")


def test_only_quotes_produces_no_execution(tmp_path: Path) -> None:
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor)
    k.handle_command('""')
    assert executor.requests == []
    assert contents(k, EntryKind.COMMAND) == [f'{tmp_path} > ""']


# ----------------------------------------------------------------
# Builtins via the kernel
# ----------------------------------------------------------------


def test_clear_empties_transcript(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    k.start()
    k.handle_command("pwd")
    k.handle_command("clear")
    assert len(k.buffer) == 0


def test_exit_stops_session(tmp_path: Path) -> None:
    k = make_kernel(tmp_path)
    k.start()
    k.handle_command("exit")
    assert k.running is False


def test_cd_changes_prompt_and_cwd(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    executor = FakeExecutor()
    k = make_kernel(tmp_path, executor=executor)
    k.handle_command("cd sub")
    assert Path(k.session.cwd) == (tmp_path / "sub").resolve()
    assert k.prompt() == f"{k.session.cwd} >"

    k.handle_command("ls")
    assert executor.requests[0].working_dir == k.session.cwd


def test_help_lists_allowed(tmp_path: Path) -> None:
    k = make_kernel(tmp_path, fs_mode=FsMode.SAFE)
    k.handle_command("help")
    assert contents(k, EntryKind.SYSTEM)[-1].startswith("Allowed system commands (safe mode):")


# ----------------------------------------------------------------
# Crash handling
# ----------------------------------------------------------------


def test_unexpected_exception_is_logged_and_reported(
    tmp_path: Path, isolated_data_home: Path
) -> None:
    k = make_kernel(tmp_path, executor=FakeExecutor(exc=RuntimeError("kaboom")))
    k.start()
    k.handle_command("curl example.com")

    errors = contents(k, EntryKind.ERROR)
    assert errors == ["Error: RuntimeError: kaboom"]
    assert k.running is True

    log = isolated_data_home / "blaze" / "logs" / "crash.log"
    text = log.read_text(encoding="utf-8")
    assert "raw=curl example.com" in text
    assert "error=RuntimeError: kaboom" in text
    assert "traceback:" in text


def test_write_crash_log_swallows_failures(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    monkeypatch.setenv("BLAZE_DATA_HOME", str(blocker))
    kernel_mod.write_crash_log(ValueError("x"), cwd="/", raw_command="ls")


# ----------------------------------------------------------------
# dispatch / UI hooks
# ----------------------------------------------------------------


def test_dispatch_runs_on_worker_thread(tmp_path: Path) -> None:
    seen: list[str] = []

    class ThreadRecordingExecutor(FakeExecutor):
        def execute(self, request, emit):
            seen.append(threading.current_thread().name)
            return super().execute(request, emit)

    k = make_kernel(tmp_path, executor=ThreadRecordingExecutor())
    try:
        k.dispatch("echo one").result(timeout=5)
        k.dispatch("echo two").result(timeout=5)
    finally:
        k.shutdown()

    assert len(seen) == 2
    assert all(name.startswith("blaze-exec") for name in seen)
    assert contents(k, EntryKind.COMMAND) == [f"{tmp_path} > echo one", f"{tmp_path} > echo two"]


def test_history_navigation_delegates_to_session(tmp_path: Path) -> None:
    k = make_kernel(tmp_path, store=FakeHistoryStore(["a", "b"]))
    k.start(show_banner=False)
    assert k.history_previous() == "b"
    assert k.history_previous() == "a"
    assert k.history_next() == "b"
    assert k.history_next() == ""


def test_complete_uses_session_cwd(tmp_path: Path) -> None:
    (tmp_path / "readme.md").write_text("", encoding="utf-8")
    k = make_kernel(tmp_path)
    assert k.complete("ec", 0) == "echo"
    assert k.complete("cat re", 0) == "cat readme.md"


# ----------------------------------------------------------------
# Wiring
# ----------------------------------------------------------------


def _settings(strategy: Strategy) -> RuntimeSettings:
    return RuntimeSettings(
        platform=Platform.UNIX, strategy=strategy, fs_mode=FsMode.SAFE, timeout=3.0,
        max_lines=50,
    )


def test_create_kernel_blocking(tmp_path: Path) -> None:
    k = create_kernel(settings=_settings(Strategy.BLOCKING), history_store=FakeHistoryStore())
    assert isinstance(k.executor, BlockingExecutor)
    assert k.executor.timeout == 3.0
    assert k.buffer.max_lines == 50
    assert k.allowlist.fs_mode is FsMode.SAFE


def test_create_kernel_streaming(tmp_path: Path) -> None:
    k = create_kernel(settings=_settings(Strategy.STREAMING), history_store=FakeHistoryStore())
    assert isinstance(k.executor, StreamingExecutor)


def test_create_kernel_default_history_location(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("USERPROFILE", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    k = create_kernel(settings=_settings(Strategy.BLOCKING))
    assert k.history_store.path == tmp_path / ".blaze_history"
