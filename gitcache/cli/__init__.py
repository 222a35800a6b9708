"""gitcache 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from typing import Any

import click

from gitcache import __version__
from gitcache.core.config import DEFAULT_CONFIG_FILE, init_config
from gitcache.core.exceptions import ConfigError
from gitcache.services.container import get_container, reset_container
from gitcache.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path",
    default=lambda: os.getenv("GITCACHE_CONFIG", DEFAULT_CONFIG_FILE),
    show_default="$GITCACHE_CONFIG 或 configs/default.yml",
    help="配置文件路径（不存在则使用默认配置）",
)
@click.option("--cache-dir", default="", help="缓存目录，覆盖配置文件（可能变得很大）")
def main(config_path: str, cache_dir: str) -> None:
    """gitcache - git 归档缓存代理"""
    setup_logging(
        level=os.getenv("GITCACHE_LOG_LEVEL", "INFO"),
        json_output=os.getenv("GITCACHE_LOG_JSON", "") == "1",
    )
    try:
        cfg = init_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if cache_dir:
        cfg.cache_dir = cache_dir
    reset_container()


# 注册各领域子命令
from gitcache.cli.cmd_fetch import register as _reg_fetch  # noqa: E402
from gitcache.cli.cmd_serve import register as _reg_serve  # noqa: E402
from gitcache.cli.cmd_cache import register as _reg_cache  # noqa: E402

_reg_fetch(main)
_reg_serve(main)
_reg_cache(main)
