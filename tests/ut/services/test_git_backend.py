"""GitCli 单元测试（注入假执行器，不依赖本机 git）"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

from gitcache.core.exceptions import ArchiveError, UpstreamFetchError, WorkspaceError
from gitcache.services.git_backend import GitCli
from gitcache.utils.shell import CommandResult


class RecordingExecutor:
    """记录命令行；execute 返回预设结果，spawn 运行给定的 Python 片段"""

    def __init__(self, result: CommandResult | None = None, script: str = "") -> None:
        self.result = result or CommandResult(returncode=0, stdout="", stderr="")
        self.script = script
        self.commands: list[list[str]] = []

    def execute(self, args, *, env=None, timeout=None) -> CommandResult:  # noqa: ARG002
        self.commands.append(list(args))
        return self.result

    def spawn(self, args, *, env=None) -> subprocess.Popen[bytes]:  # noqa: ARG002
        self.commands.append(list(args))
        return subprocess.Popen(  # noqa: S603
            [sys.executable, "-c", self.script],
            stdout=subprocess.PIPE, stderr=subprocess.PIPE,
        )


GIT_DIR = Path("/cache/abc")


class TestCommandLines:
    def test_init(self) -> None:
        ex = RecordingExecutor()
        GitCli(executor=ex).init_bare(GIT_DIR)
        assert ex.commands == [["git", "--git-dir", "/cache/abc", "init", "--bare"]]

    def test_fetch_forces_same_name_ref(self) -> None:
        ex = RecordingExecutor()
        GitCli(git_bin="/usr/bin/git", executor=ex).fetch_branch(GIT_DIR, "https://h/r.git", "main")
        assert ex.commands == [
            ["/usr/bin/git", "--git-dir", "/cache/abc", "fetch", "https://h/r.git", "+main:main"],
        ]

    def test_resolve_strips_newline(self) -> None:
        ex = RecordingExecutor(CommandResult(0, "a" * 40 + "\n", ""))
        assert GitCli(executor=ex).resolve_ref(GIT_DIR, "main") == "a" * 40
        assert ex.commands[0][-2:] == ["rev-parse", "main"]


class TestFailures:
    def test_init_failure(self) -> None:
        ex = RecordingExecutor(CommandResult(1, "", "permission denied"))
        with pytest.raises(WorkspaceError, match="permission denied"):
            GitCli(executor=ex).init_bare(GIT_DIR)

    def test_fetch_failure(self) -> None:
        ex = RecordingExecutor(CommandResult(128, "", "fatal: couldn't find remote ref nope"))
        with pytest.raises(UpstreamFetchError, match="rc=128"):
            GitCli(executor=ex).fetch_branch(GIT_DIR, "https://h/r.git", "nope")

    def test_resolve_failure(self) -> None:
        ex = RecordingExecutor(CommandResult(128, "", "unknown revision"))
        with pytest.raises(UpstreamFetchError):
            GitCli(executor=ex).resolve_ref(GIT_DIR, "main")

    def test_stderr_truncated(self) -> None:
        ex = RecordingExecutor(CommandResult(1, "", "x" * 5000))
        with pytest.raises(WorkspaceError) as info:
            GitCli(executor=ex).init_bare(GIT_DIR)
        assert len(str(info.value)) < 700


class TestExportArchive:
    def test_streams_stdout(self) -> None:
        ex = RecordingExecutor(script="import sys; sys.stdout.buffer.write(b'tar-bytes')")
        with GitCli(executor=ex).export_archive(GIT_DIR, "c0ffee", "src") as stream:
            assert stream.read() == b"tar-bytes"
        assert ex.commands[0][-4:] == ["archive", "--format", "tar", "c0ffee:src"]

    def test_nonzero_exit(self) -> None:
        ex = RecordingExecutor(
            script="import sys; sys.stderr.write('fatal: not a tree object'); sys.exit(128)",
        )
        with pytest.raises(ArchiveError, match="not a tree object") as info, \
                GitCli(executor=ex).export_archive(GIT_DIR, "c0ffee", "") as stream:
            assert stream.read() == b""
        assert info.value.returncode == 128

    def test_unread_output_is_drained(self) -> None:
        ex = RecordingExecutor(script="import sys; sys.stdout.buffer.write(b'z' * (1 << 20))")
        with GitCli(executor=ex).export_archive(GIT_DIR, "c0ffee", "") as stream:
            assert stream.read(10) == b"z" * 10

    def test_caller_error_kills_process(self) -> None:
        ex = RecordingExecutor(script="import time; time.sleep(30)")
        with pytest.raises(RuntimeError, match="reader failed"), \
                GitCli(executor=ex).export_archive(GIT_DIR, "c0ffee", ""):
            raise RuntimeError("reader failed")

    def test_spawn_failure(self) -> None:
        class Broken(RecordingExecutor):
            def spawn(self, args, *, env=None):  # noqa: ARG002
                raise FileNotFoundError("git")

        with pytest.raises(ArchiveError, match="无法启动"), \
                GitCli(executor=Broken()).export_archive(GIT_DIR, "c0ffee", ""):
            pass
