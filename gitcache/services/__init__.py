"""服务层 - 工作空间 / 拉取 / 归档 / 编排

依赖关系:
  FetchService → WorkspaceManager → GitBackend
               → FetchCoordinator → GitBackend
               → ArchiveStreamer  → GitBackend
               → KeyedLocks
"""

from gitcache.services.archive import ArchiveStreamer
from gitcache.services.fetch_coordinator import FetchCoordinator
from gitcache.services.fetch_service import FetchService
from gitcache.services.git_backend import GitCli
from gitcache.services.locks import KeyedLocks
from gitcache.services.workspace import WorkspaceManager

__all__ = [
    "ArchiveStreamer",
    "FetchCoordinator",
    "FetchService",
    "GitCli",
    "KeyedLocks",
    "WorkspaceManager",
]
