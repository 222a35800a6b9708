"""核心 API Blueprint

职责:
- 健康检查
- 列出缓存中的镜像
"""

from __future__ import annotations

from flask import Blueprint, Response, jsonify

from gitcache import __version__

core_bp = Blueprint("core", __name__)


def _svc():  # type: ignore[no-untyped-def]
    from gitcache.services.container import get_container
    return get_container()


@core_bp.route("/healthz")
def healthz() -> Response:
    return jsonify(status="ok", version=__version__)


@core_bp.route("/api/workspaces")
def workspaces() -> Response:
    container = _svc()
    return jsonify(
        cache_root=str(container.config.cache_root),
        workspaces=container.workspaces.list_workspaces(),
    )
