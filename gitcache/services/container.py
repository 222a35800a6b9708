"""服务容器 - 统一依赖注入

所有服务通过容器获取，同一容器内的实例共享状态（按键锁表等）。
CLI 和 Web 层均应通过 get_container() 获取服务，而非直接构造。

依赖关系图（→ 表示依赖）:
  fetcher     → workspaces, coordinator, archiver, locks
  workspaces  → backend
  coordinator → backend
  archiver    → backend

用法:
    container = ServiceContainer()
    result = container.fetcher.fetch(request, sink=stream)

    # 显式注入配置 / 后端（测试）
    container = ServiceContainer(config=cfg, backend=FakeBackend())
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitcache.core.config import Config
    from gitcache.core.protocols import GitBackend
    from gitcache.services.archive import ArchiveStreamer
    from gitcache.services.fetch_coordinator import FetchCoordinator
    from gitcache.services.fetch_service import FetchService
    from gitcache.services.locks import KeyedLocks
    from gitcache.services.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None, backend: GitBackend | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from gitcache.core.config import get_config
            config = get_config()
        self._config = config
        if backend is not None:
            self._instances["backend"] = backend

    @property
    def config(self) -> Config:
        return self._config

    @property
    def backend(self) -> GitBackend:
        if "backend" not in self._instances:
            from gitcache.services.git_backend import GitCli
            self._instances["backend"] = GitCli(git_bin=self._config.git_bin)
        return self._instances["backend"]  # type: ignore[return-value]

    @property
    def locks(self) -> KeyedLocks:
        if "locks" not in self._instances:
            from gitcache.services.locks import KeyedLocks
            self._instances["locks"] = KeyedLocks(
                lock_root=self._config.cache_root,
                timeout=self._config.lock_timeout,
            )
        return self._instances["locks"]  # type: ignore[return-value]

    @property
    def workspaces(self) -> WorkspaceManager:
        if "workspaces" not in self._instances:
            from gitcache.services.workspace import WorkspaceManager
            self._instances["workspaces"] = WorkspaceManager(
                cache_root=self._config.cache_root,
                backend=self.backend,
            )
        return self._instances["workspaces"]  # type: ignore[return-value]

    @property
    def coordinator(self) -> FetchCoordinator:
        if "coordinator" not in self._instances:
            from gitcache.services.fetch_coordinator import FetchCoordinator
            self._instances["coordinator"] = FetchCoordinator(self.backend)
        return self._instances["coordinator"]  # type: ignore[return-value]

    @property
    def archiver(self) -> ArchiveStreamer:
        if "archiver" not in self._instances:
            from gitcache.services.archive import ArchiveStreamer
            self._instances["archiver"] = ArchiveStreamer(self.backend)
        return self._instances["archiver"]  # type: ignore[return-value]

    @property
    def fetcher(self) -> FetchService:
        if "fetcher" not in self._instances:
            from gitcache.services.fetch_service import FetchService
            self._instances["fetcher"] = FetchService(
                workspaces=self.workspaces,
                coordinator=self.coordinator,
                archiver=self.archiver,
                locks=self.locks,
            )
        return self._instances["fetcher"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def set_container(container: ServiceContainer) -> None:
    """替换全局容器（Web 应用工厂 / 测试注入）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = container


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
