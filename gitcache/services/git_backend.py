"""GitBackend 的子进程实现

所有命令均以 `git --git-dir <workspace>` 调用，非零退出码是唯一的失败信号；
stderr 只用于日志与错误信息，不做解析。
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from gitcache.core.exceptions import ArchiveError, UpstreamFetchError, WorkspaceError
from gitcache.utils.shell import CommandExecutor, CommandResult, get_executor

logger = logging.getLogger(__name__)

_STDERR_LIMIT = 500
_DRAIN_CHUNK = 64 * 1024


def _tail(stderr: str | bytes) -> str:
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", "replace")
    return stderr.strip()[:_STDERR_LIMIT]


class GitCli:
    """调用本机 git 可执行文件"""

    def __init__(self, git_bin: str = "git", executor: CommandExecutor | None = None) -> None:
        self.git_bin = git_bin
        self._executor = executor

    @property
    def executor(self) -> CommandExecutor:
        return self._executor or get_executor()

    def _args(self, git_dir: Path, *args: str) -> list[str]:
        return [self.git_bin, "--git-dir", str(git_dir), *args]

    def _run(self, git_dir: Path, *args: str) -> CommandResult:
        return self.executor.execute(self._args(git_dir, *args))

    def init_bare(self, git_dir: Path) -> None:
        r = self._run(git_dir, "init", "--bare")
        if not r.success:
            raise WorkspaceError(
                f"git init --bare 失败 (rc={r.returncode}): {_tail(r.stderr)}",
            )

    def fetch_branch(self, git_dir: Path, repo: str, branch: str) -> None:
        r = self._run(git_dir, "fetch", repo, f"+{branch}:{branch}")
        if not r.success:
            raise UpstreamFetchError(
                f"git fetch {branch} 失败 (rc={r.returncode}): {_tail(r.stderr)}",
            )

    def resolve_ref(self, git_dir: Path, ref: str) -> str:
        r = self._run(git_dir, "rev-parse", ref)
        if not r.success:
            raise UpstreamFetchError(
                f"git rev-parse {ref} 失败 (rc={r.returncode}): {_tail(r.stderr)}",
            )
        return r.stdout.strip()

    @contextmanager
    def export_archive(self, git_dir: Path, commit: str, tree: str) -> Iterator[BinaryIO]:
        """启动 git archive，产出其 stdout

        调用方读取过程中出错时终止子进程并原样抛出调用方的异常；
        正常读完后排空剩余输出、等待退出，非零退出抛 ArchiveError。
        """
        try:
            proc = self.executor.spawn(
                self._args(git_dir, "archive", "--format", "tar", f"{commit}:{tree}"),
            )
        except OSError as e:
            raise ArchiveError(f"无法启动 git archive: {e}") from e
        assert proc.stdout is not None  # noqa: S101
        try:
            yield proc.stdout
        except BaseException:
            proc.kill()
            proc.communicate()
            raise

        # 丢弃 tar 结束块之后的剩余输出，避免子进程阻塞在写管道上
        while proc.stdout.read(_DRAIN_CHUNK):
            pass
        _, stderr = proc.communicate()
        if proc.returncode != 0:
            raise ArchiveError(
                f"git archive {commit}:{tree} 失败 (rc={proc.returncode}): {_tail(stderr)}",
                returncode=proc.returncode,
            )
        logger.debug("git archive %s:%s 完成", commit, tree)
