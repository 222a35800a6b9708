"""仓库标识 → 缓存键

缓存按不可信字符串（仓库 URL）多租户共享，必须使用密码学哈希，
避免构造出与他人工作空间碰撞的标识。键同时作为目录名，十六进制摘要
不含路径分隔符。
"""

from __future__ import annotations

import hashlib

KEY_LENGTH = 64


def key_for(identifier: str) -> str:
    """返回仓库标识的 SHA-256 十六进制摘要（小写，64 字符）"""
    return hashlib.sha256(identifier.encode("utf-8", "surrogatepass")).hexdigest()
