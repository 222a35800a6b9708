"""拉取编排服务 - 单次归档请求的完整流程

状态机:
  INIT → WORKSPACE_READY → COMMIT_KNOWN → ARCHIVE_ATTEMPTED
       → DONE
       → RETRY_FETCH → ARCHIVE_RETRIED → DONE | FAILED

策略:
  - 未指定 commit 时先拉取并解析分支头，此后不再拉取
  - 已指定 commit 时先乐观地直接归档（镜像中大概率已有该 commit，
    本地归档比网络往返便宜），失败才拉取一次并重试一次
  - 同一缓存键的所有镜像操作在 KeyedLocks 下串行执行

注意: 输出是流式写出的，后期失败时下游可能已收到不完整的数据，不做回滚。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from gitcache.core.cache_key import key_for
from gitcache.core.exceptions import (
    ArchiveError,
    GitCacheError,
    StreamError,
    ValidationError,
)
from gitcache.core.models import FetchRequest, FetchResult, FetchState, Workspace
from gitcache.services.archive import ArchiveStreamer, open_compressed
from gitcache.services.fetch_coordinator import FetchCoordinator
from gitcache.services.locks import KeyedLocks
from gitcache.services.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class FetchService:
    """归档请求编排"""

    def __init__(
        self,
        workspaces: WorkspaceManager,
        coordinator: FetchCoordinator,
        archiver: ArchiveStreamer,
        locks: KeyedLocks,
    ) -> None:
        self._workspaces = workspaces
        self._coordinator = coordinator
        self._archiver = archiver
        self._locks = locks

    def fetch(
        self,
        request: FetchRequest,
        *,
        sink: BinaryIO | None = None,
        output_dir: str = "",
        on_output_path: Callable[[str], None] | None = None,
    ) -> FetchResult:
        """执行一次归档请求

        参数:
            request: 归档请求
            sink: 直接写出的二进制流（output_dir 为空时使用）
            output_dir: 非空时写入 <output_dir>/<commit>.<format>
            on_output_path: 写文件模式下，创建文件前回调告知文件路径

        异常:
            ValidationError / WorkspaceError / UpstreamFetchError /
            ArchiveError / StreamError
        """
        request.validate()
        if sink is None and not output_dir:
            raise ValidationError("必须指定输出流或输出目录")

        key = key_for(request.repo)
        result = FetchResult(commit=request.commit, format=request.format)
        with self._locks.hold(key):
            try:
                self._run(request, result, sink, output_dir, on_output_path)
            except GitCacheError as e:
                logger.warning(
                    "请求失败 [%s] (%s): %s", e.code, result.state.value, e,
                    extra={"cache_key": key, "phase": result.state.value},
                )
                self._enter(result, FetchState.FAILED, key)
                raise
        return result

    def _run(
        self,
        request: FetchRequest,
        result: FetchResult,
        sink: BinaryIO | None,
        output_dir: str,
        on_output_path: Callable[[str], None] | None,
    ) -> None:
        ws = self._workspaces.ensure(request.repo)
        self._enter(result, FetchState.WORKSPACE_READY, ws.key)

        have_fetched = False
        if not request.commit:
            result.commit = self._coordinator.resolve_head(ws, request.repo, request.branch)
            result.fetch_count += 1
            have_fetched = True
        self._enter(result, FetchState.COMMIT_KNOWN, ws.key)

        try:
            with self._open_output(result, sink, output_dir, on_output_path) as out, \
                    open_compressed(out, request.format) as w:
                self._archive(ws, request, result, w, have_fetched=have_fetched)
        except OSError as e:
            raise StreamError(f"写出归档失败: {e}") from e

        self._enter(result, FetchState.DONE, ws.key)

    def _archive(
        self,
        ws: Workspace,
        request: FetchRequest,
        result: FetchResult,
        out: BinaryIO,
        *,
        have_fetched: bool,
    ) -> None:
        """乐观归档一次，必要时拉取后再试一次（最多两次）"""
        try:
            result.archive_attempts += 1
            self._archiver.export_tree(ws, result.commit, request.tree, out)
            self._enter(result, FetchState.ARCHIVE_ATTEMPTED, ws.key)
            return
        except ArchiveError:
            self._enter(result, FetchState.ARCHIVE_ATTEMPTED, ws.key)
            if have_fetched:
                # 已是最新数据，commit 确实不可用或子目录无效
                raise
            logger.info(
                "镜像中没有 %s，拉取后重试", result.commit,
                extra={"cache_key": ws.key, "phase": "archive"},
            )

        self._enter(result, FetchState.RETRY_FETCH, ws.key)
        self._coordinator.fetch_upstream(ws, request.repo, request.branch)
        result.fetch_count += 1

        result.archive_attempts += 1
        self._enter(result, FetchState.ARCHIVE_RETRIED, ws.key)
        self._archiver.export_tree(ws, result.commit, request.tree, out)

    @contextmanager
    def _open_output(
        self,
        result: FetchResult,
        sink: BinaryIO | None,
        output_dir: str,
        on_output_path: Callable[[str], None] | None,
    ) -> Iterator[BinaryIO]:
        if not output_dir:
            assert sink is not None  # noqa: S101
            yield sink
            return

        path = Path(output_dir) / result.filename
        result.output_path = str(path)
        if on_output_path is not None:
            on_output_path(str(path))
        try:
            f = open(path, "wb")  # noqa: SIM115
        except OSError as e:
            raise StreamError(f"无法创建输出文件 {path}: {e}") from e
        with f:
            yield f

    @staticmethod
    def _enter(result: FetchResult, state: FetchState, key: str) -> None:
        logger.debug(
            "%s → %s", result.state.value, state.value,
            extra={"cache_key": key, "phase": state.value},
        )
        result.state = state
