"""归档下载 Blueprint

GET/POST /fetch?repo=...&branch=...&commit=...&tree=...&format=tgz

归档先写入 SpooledTemporaryFile（小于 spool_max_size 时留在内存，
超过后落盘），成功后再整体发送：失败时客户端拿到明确的错误码而不是
截断的归档，按键锁也不会因慢客户端被长时间占用。
"""

from __future__ import annotations

import logging
import tempfile

from flask import Blueprint, Response, request, send_file

from gitcache.core.models import FetchRequest

logger = logging.getLogger(__name__)

fetch_bp = Blueprint("fetch", __name__)

_MIMETYPES = {
    "tar": "application/x-tar",
    "tgz": "application/gzip",
}


def _svc():  # type: ignore[no-untyped-def]
    from gitcache.services.container import get_container
    return get_container()


def _field(name: str) -> str:
    return (request.values.get(name) or "").strip()


@fetch_bp.route("/fetch", methods=["GET", "POST"])
def fetch() -> Response:
    req = FetchRequest(
        repo=_field("repo"),
        branch=_field("branch"),
        commit=_field("commit"),
        tree=_field("tree"),
        format=_field("format"),
    )
    container = _svc()
    spool = tempfile.SpooledTemporaryFile(max_size=container.config.spool_max_size)  # noqa: SIM115
    try:
        result = container.fetcher.fetch(req, sink=spool)
        size = spool.tell()
        spool.seek(0)
    except BaseException:
        spool.close()
        raise

    logger.info("发送归档: %s (%d 字节)", result.filename, size)
    resp = send_file(
        spool,
        mimetype=_MIMETYPES[result.format],
        as_attachment=True,
        download_name=result.filename,
        conditional=False,
    )
    resp.content_length = size
    resp.headers["X-Gitcache-Commit"] = result.commit
    return resp
