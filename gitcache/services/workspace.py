"""工作空间管理 - 按缓存键维护本地 bare 镜像

职责：
- 首次使用时创建目录并 git init --bare
- 复用已有目录前做轻量结构检查
- 列出缓存根目录下的所有镜像
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from gitcache.core.cache_key import KEY_LENGTH, key_for
from gitcache.core.exceptions import GitCacheError, WorkspaceError
from gitcache.core.models import Workspace
from gitcache.core.protocols import GitBackend

logger = logging.getLogger(__name__)

_DIR_MODE = 0o755


class WorkspaceManager:
    """工作空间管理器"""

    def __init__(self, cache_root: str | Path, backend: GitBackend) -> None:
        self.cache_root = Path(cache_root)
        self._backend = backend

    def path_for(self, identifier: str) -> Path:
        return self.cache_root / key_for(identifier)

    def ensure(self, identifier: str) -> Workspace:
        """确保 identifier 对应的镜像存在，返回工作空间"""
        key = key_for(identifier)
        git_dir = self.cache_root / key
        try:
            git_dir.stat()
        except FileNotFoundError:
            return self._create(key, git_dir)
        except OSError as e:
            raise WorkspaceError(f"无法检查工作空间 {git_dir}: {e}") from e

        self._check_bare(git_dir)
        logger.debug("复用工作空间: %s", git_dir, extra={"cache_key": key})
        return Workspace(key=key, path=git_dir)

    def _create(self, key: str, git_dir: Path) -> Workspace:
        try:
            git_dir.mkdir(mode=_DIR_MODE, parents=True)
        except FileExistsError:
            # 并发创建（其他进程未走同一把锁时），按已存在处理
            self._check_bare(git_dir)
            return Workspace(key=key, path=git_dir)
        except OSError as e:
            raise WorkspaceError(f"无法创建工作空间 {git_dir}: {e}") from e

        try:
            self._backend.init_bare(git_dir)
        except GitCacheError:
            # 目录由本次调用创建，初始化失败则删除，下次请求重新初始化
            shutil.rmtree(git_dir, ignore_errors=True)
            raise
        logger.info("已初始化工作空间: %s", git_dir, extra={"cache_key": key})
        return Workspace(key=key, path=git_dir, created=True)

    @staticmethod
    def _check_bare(git_dir: Path) -> None:
        """已有目录必须像 bare 仓库（HEAD 文件 + objects 目录），否则不使用也不删除"""
        if not git_dir.is_dir():
            raise WorkspaceError(f"工作空间路径不是目录: {git_dir}")
        if not (git_dir / "HEAD").is_file() or not (git_dir / "objects").is_dir():
            raise WorkspaceError(f"工作空间不是有效的 bare 仓库: {git_dir}")

    def list_workspaces(self) -> list[dict[str, Any]]:
        """列出缓存根目录下的镜像及其本地分支"""
        result: list[dict[str, Any]] = []
        if not self.cache_root.is_dir():
            return result
        for child in sorted(self.cache_root.iterdir()):
            if not child.is_dir() or len(child.name) != KEY_LENGTH:
                continue
            result.append({
                "key": child.name,
                "path": str(child),
                "branches": self._list_branches(child),
                "valid": (child / "HEAD").is_file() and (child / "objects").is_dir(),
            })
        return result

    @staticmethod
    def _list_branches(git_dir: Path) -> list[str]:
        """读取 refs/heads 下的松散 ref 与 packed-refs"""
        names: set[str] = set()
        heads = git_dir / "refs" / "heads"
        if heads.is_dir():
            names.update(
                p.relative_to(heads).as_posix() for p in heads.rglob("*") if p.is_file()
            )
        packed = git_dir / "packed-refs"
        if packed.is_file():
            for line in packed.read_text(encoding="utf-8").splitlines():
                parts = line.split(" ", 1)
                if len(parts) == 2 and parts[1].startswith("refs/heads/"):
                    names.add(parts[1][len("refs/heads/"):])
        return sorted(names)
