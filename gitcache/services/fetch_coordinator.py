"""拉取协调器 - 上游分支拉取与分支头解析"""

from __future__ import annotations

import logging

from gitcache.core.exceptions import UpstreamFetchError
from gitcache.core.models import Workspace
from gitcache.core.protocols import GitBackend

logger = logging.getLogger(__name__)


class FetchCoordinator:
    """拉取上游分支到镜像的同名本地 ref"""

    def __init__(self, backend: GitBackend) -> None:
        self._backend = backend

    def fetch_upstream(self, workspace: Workspace, identifier: str, branch: str) -> None:
        """拉取 branch，本层不重试"""
        logger.info(
            "拉取上游: %s %s", identifier, branch,
            extra={"cache_key": workspace.key, "phase": "fetch"},
        )
        self._backend.fetch_branch(workspace.path, identifier, branch)

    def resolve_head(self, workspace: Workspace, identifier: str, branch: str) -> str:
        """总是先拉取，再解析分支头 commit

        结果只对本次请求有效，不能作为缓存命中的依据。
        """
        self.fetch_upstream(workspace, identifier, branch)
        commit = self._backend.resolve_ref(workspace.path, branch)
        if not commit:
            raise UpstreamFetchError(f"分支 {branch} 解析结果为空")
        logger.info(
            "分支头: %s -> %s", branch, commit,
            extra={"cache_key": workspace.key, "phase": "resolve"},
        )
        return commit
