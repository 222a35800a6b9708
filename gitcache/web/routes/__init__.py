"""Web 路由模块 - Blueprint 集合

- fetch_bp.py: 归档下载 (/fetch)
- core_bp.py: 健康检查与缓存查看 (/healthz, /api/workspaces)
"""

from gitcache.web.routes.core_bp import core_bp
from gitcache.web.routes.fetch_bp import fetch_bp

__all__ = [
    "core_bp",
    "fetch_bp",
]
