"""领域协议定义

编排逻辑只依赖 GitBackend 抽象，不关心子进程如何启动、如何流式读取。
默认实现为 gitcache.services.git_backend.GitCli；测试时注入假实现即可。

使用 typing.Protocol 而非 ABC，使实现类无需继承即可满足协议。
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from pathlib import Path
from typing import BinaryIO, Protocol


class GitBackend(Protocol):
    """委托 git 工具的能力接口"""

    def init_bare(self, git_dir: Path) -> None:
        """将目录初始化为空 bare 仓库，失败抛 WorkspaceError"""
        ...

    def fetch_branch(self, git_dir: Path, repo: str, branch: str) -> None:
        """拉取 repo 的 branch 到本地同名 ref，失败抛 UpstreamFetchError"""
        ...

    def resolve_ref(self, git_dir: Path, ref: str) -> str:
        """解析 ref 为 commit id，失败抛 UpstreamFetchError"""
        ...

    def export_archive(
        self, git_dir: Path, commit: str, tree: str,
    ) -> AbstractContextManager[BinaryIO]:
        """导出 tar 流

        返回上下文管理器，进入时给出可增量读取的 tar 字节流；
        正常退出时若 git 非零退出则抛 ArchiveError。
        """
        ...
