"""HTTP 服务（基于 Flask）

开发启动:   gitcache serve --port 9091
生产启动:   gunicorn --config deploy/gunicorn.conf.py "gitcache.web.app:create_app()"

create_app() 未传配置时读取环境变量 GITCACHE_CONFIG 指向的 YAML 文件。
"""

from __future__ import annotations

import logging
import os
import socket

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from gitcache.core.config import Config, get_config, init_config
from gitcache.core.exceptions import GitCacheError, ValidationError
from gitcache.services.container import ServiceContainer, set_container
from gitcache.web.responses import error_response
from gitcache.web.routes import core_bp, fetch_bp

logger = logging.getLogger(__name__)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(GitCacheError)
    def handle_gitcache_error(exc: GitCacheError):  # type: ignore[no-untyped-def]
        """业务异常按类型映射状态码"""
        if isinstance(exc, ValidationError):
            logger.info("请求参数无效: %s", exc)
        else:
            logger.error("Error: [%s] %s", exc.code, exc)
        return error_response(exc)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):  # type: ignore[no-untyped-def]
        """将所有 HTTP 异常统一返回 JSON"""
        return jsonify(error=exc.description, code="HTTP_ERROR"), exc.code

    @app.errorhandler(Exception)
    def handle_generic_exception(exc: Exception):  # type: ignore[no-untyped-def]  # noqa: ARG001
        """捕获未处理异常，返回 500 JSON"""
        logger.exception("未处理的异常")
        return jsonify(error="服务器内部错误", code="INTERNAL_ERROR"), 500


def create_app(config: Config | None = None, container: ServiceContainer | None = None) -> Flask:
    """应用工厂

    参数:
        config: 配置；为空时按 GITCACHE_CONFIG 加载，再退回全局配置
        container: 服务容器；为空时按 config 新建，并设为全局容器
    """
    if config is None:
        path = os.getenv("GITCACHE_CONFIG", "")
        config = init_config(path) if path else get_config()
    if container is None:
        container = ServiceContainer(config=config)
    set_container(container)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    _register_error_handlers(app)
    app.register_blueprint(fetch_bp)
    app.register_blueprint(core_bp)
    return app


def _advertise(host: str, port: int) -> None:
    """打印本机地址，方便客户端设置 GITCACHE 环境变量"""
    try:
        addr = socket.gethostbyname(socket.gethostname())
    except OSError:
        return
    if not addr.startswith("127."):
        logger.info("(optional) export GITCACHE=http://%s:%d", addr, port)


def run_server(
    config: Config | None = None,
    *,
    host: str = "",
    port: int = 0,
    debug: bool = False,
) -> None:
    """以 Flask 开发服务器启动"""
    app = create_app(config)
    cfg = config or get_config()
    host = host or cfg.host
    port = port or cfg.port
    _advertise(host, port)
    logger.info("Serving on %s:%d (cache=%s)", host, port, cfg.cache_root)
    app.run(host=host, port=port, debug=debug, threaded=True)
