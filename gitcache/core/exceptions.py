"""统一异常体系

所有业务异常继承 GitCacheError，按失败阶段区分类型。
Web 层据 http_status 映射响应码，CLI 层据此输出友好提示。

  校验失败        → ValidationError     (400, 无副作用)
  工作空间失败    → WorkspaceError      (500)
  上游拉取失败    → UpstreamFetchError  (502, 调用方可重试)
  归档失败        → ArchiveError        (502, 内部已重试一次)
  流复制失败      → StreamError         (500)
"""

from __future__ import annotations


class GitCacheError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"
    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(GitCacheError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(GitCacheError):
    """请求字段校验失败"""

    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class WorkspaceError(GitCacheError):
    """缓存目录创建、检查或加锁失败"""

    code = "WORKSPACE_ERROR"


class UpstreamFetchError(GitCacheError):
    """git fetch / rev-parse 失败（网络、鉴权、分支不存在）"""

    code = "UPSTREAM_ERROR"
    http_status = 502


class ArchiveError(GitCacheError):
    """git archive 非零退出（commit 不存在、子目录非法等）"""

    code = "ARCHIVE_ERROR"
    http_status = 502

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class StreamError(GitCacheError):
    """归档条目复制时读写不完整，或输出目标无法打开"""

    code = "STREAM_ERROR"
