"""核心数据模型

请求、工作空间与结果的数据类集中定义，服务层与 Web/CLI 层统一从此处导入。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from gitcache.core.exceptions import ValidationError

SUPPORTED_FORMATS = ("tar", "tgz")


class FetchState(str, Enum):
    """单次请求的编排状态"""

    INIT = "init"
    WORKSPACE_READY = "workspace_ready"
    COMMIT_KNOWN = "commit_known"
    ARCHIVE_ATTEMPTED = "archive_attempted"
    RETRY_FETCH = "retry_fetch"
    ARCHIVE_RETRIED = "archive_retried"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FetchRequest:
    """归档请求，空字符串表示未指定"""

    repo: str
    branch: str
    commit: str = ""
    tree: str = ""  # 子目录，空为整棵树
    format: str = "tgz"

    def validate(self) -> None:
        """校验必填字段，失败抛 ValidationError（不触发任何 I/O）"""
        if not self.repo:
            raise ValidationError("必须指定 repo")
        if not self.branch:
            raise ValidationError("必须指定 branch（即使已知 commit，也可能需要据此拉取）")
        if not self.format:
            raise ValidationError("必须指定 format，例如 tgz")
        if self.format not in SUPPORTED_FORMATS:
            raise ValidationError(
                f"format 仅支持 {'/'.join(SUPPORTED_FORMATS)}: {self.format}",
            )
        # 以 - 开头的值会被 git 当作选项解析
        if self.repo.startswith("-"):
            raise ValidationError(f"repo 不能以 - 开头: {self.repo}")
        _check_ref("branch", self.branch)
        if self.commit:
            _check_ref("commit", self.commit)


def _check_ref(field_name: str, value: str) -> None:
    """只拦截会改变 git 命令行含义的值，其余交给 git 判断

    - 以 - 开头会被当作选项
    - : 会拆开 fetch 的 refspec 或 archive 的 <commit>:<tree>
    - NUL 无法作为子进程参数
    """
    if value.startswith("-"):
        raise ValidationError(f"{field_name} 不能以 - 开头: {value}")
    if ":" in value or "\0" in value:
        raise ValidationError(f"{field_name} 包含非法字符: {value!r}")


def archive_filename(commit: str, fmt: str) -> str:
    """输出文件名 <commit>.<format>，commit 中的 / 替换为 _"""
    return f"{commit.replace('/', '_')}.{fmt}"


@dataclass
class Workspace:
    """本地 bare 镜像"""

    key: str
    path: Path
    created: bool = False  # 本次调用新建并初始化


@dataclass
class FetchResult:
    """单次请求的摘要（成功时 state 为 DONE）"""

    commit: str
    format: str
    output_path: str = ""  # 仅写文件模式
    fetch_count: int = 0
    archive_attempts: int = 0
    state: FetchState = FetchState.INIT

    @property
    def filename(self) -> str:
        return archive_filename(self.commit, self.format)
