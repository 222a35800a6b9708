"""Web 层统一响应辅助函数"""

from __future__ import annotations

from flask import Response, jsonify

from gitcache.core.exceptions import GitCacheError


def error_response(exc: GitCacheError) -> tuple[Response, int]:
    """业务异常 → JSON 错误响应，状态码取自异常类型"""
    return jsonify(error=str(exc), code=exc.code), exc.http_status
