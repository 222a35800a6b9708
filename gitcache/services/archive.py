"""归档输出 - 将 git archive 的 tar 流改写为确定性字节流

git archive 以 <commit>:<tree> 形式导出时，条目修改时间取自当前时间，
同一 commit 两次导出的字节不同。这里逐条目读取原始 tar 流，将修改时间
统一重置为纪元 0 后重新编码，输出只取决于 (commit, 子目录)。

处理方式为拉取式流水线：
  iter_entries     - 惰性产出 (TarInfo, 内容读取器)，不可重启
  write_normalized - 逐条目规整并写出，写完一条再拉取下一条
整个过程不在内存中缓存整棵树。
"""

from __future__ import annotations

import contextlib
import gzip
import logging
import tarfile
from collections.abc import Iterable, Iterator
from typing import BinaryIO

from gitcache.core.exceptions import StreamError
from gitcache.core.models import Workspace
from gitcache.core.protocols import GitBackend

logger = logging.getLogger(__name__)

NORMALIZED_MTIME = 0
_TIME_PAX_KEYS = ("mtime", "atime", "ctime")

Entry = tuple[tarfile.TarInfo, BinaryIO | None]


def iter_entries(reader: tarfile.TarFile) -> Iterator[Entry]:
    """从流式 TarFile 惰性产出条目

    内容读取器只在产出后、拉取下一条之前有效。
    """
    for member in reader:
        # 未知类型按普通文件处理
        if member.isreg() or member.type not in tarfile.SUPPORTED_TYPES:
            yield member, reader.extractfile(member)
        else:
            yield member, None


def normalize_member(member: tarfile.TarInfo, global_headers: dict[str, str]) -> tarfile.TarInfo:
    """重置修改时间，去掉时间类与全局头重复的 PAX 记录"""
    member.mtime = NORMALIZED_MTIME
    for key in _TIME_PAX_KEYS:
        member.pax_headers.pop(key, None)
    for key, value in global_headers.items():
        if member.pax_headers.get(key) == value:
            del member.pax_headers[key]
    return member


def write_normalized(
    entries: Iterable[Entry],
    dst: BinaryIO,
    global_headers: dict[str, str] | None = None,
) -> int:
    """将条目规整后写成 tar 流，返回条目数

    每个条目严格复制声明的字节数，读不足时 tarfile 抛 OSError/ReadError。
    出错时不写 tar 结束块，下游拿到的是明显不完整的归档。
    """
    global_headers = dict(global_headers or {})
    writer = tarfile.open(
        fileobj=dst, mode="w|", format=tarfile.PAX_FORMAT,
        pax_headers=global_headers,
    )
    count = 0
    for member, content in entries:
        writer.addfile(normalize_member(member, global_headers), content)
        count += 1
    writer.close()
    return count


@contextlib.contextmanager
def open_compressed(sink: BinaryIO, fmt: str) -> Iterator[BinaryIO]:
    """tgz 时在 sink 外包一层 gzip（头部 mtime 为 0、不含文件名）"""
    if fmt != "tgz":
        yield sink
        return

    gz = gzip.GzipFile(filename="", mode="wb", fileobj=sink, mtime=0)
    try:
        yield gz  # type: ignore[misc]
    except BaseException:
        # 已有异常在传播，收尾失败不再覆盖它
        with contextlib.suppress(OSError):
            gz.close()
        raise
    gz.close()


class ArchiveStreamer:
    """调用 git archive 并输出规整后的 tar 流"""

    def __init__(self, backend: GitBackend) -> None:
        self._backend = backend

    def export_tree(self, workspace: Workspace, commit: str, tree: str, sink: BinaryIO) -> int:
        """导出 commit:tree 到 sink，返回条目数

        异常:
            ArchiveError: git archive 非零退出（commit 不在镜像中等）
            StreamError: 复制过程中读写不完整
        """
        reader: tarfile.TarFile | None = None
        count = 0
        with self._backend.export_archive(workspace.path, commit, tree) as stream:
            try:
                reader = tarfile.open(fileobj=stream, mode="r|")
            except tarfile.TarError:
                # 没有可读的归档；由上下文退出时的 git 退出码决定错误类型
                reader = None
            else:
                count = self._rewrite(reader, sink)

        if reader is None:
            raise StreamError(f"git archive {commit}:{tree} 未输出有效 tar 流")
        logger.info(
            "归档完成: %s:%s (%d 个条目)", commit, tree, count,
            extra={"cache_key": workspace.key, "phase": "archive"},
        )
        return count

    @staticmethod
    def _rewrite(reader: tarfile.TarFile, sink: BinaryIO) -> int:
        try:
            return write_normalized(iter_entries(reader), sink, reader.pax_headers)
        except (tarfile.TarError, OSError) as e:
            raise StreamError(f"归档条目复制中断: {e}") from e
