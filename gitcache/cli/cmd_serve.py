"""服务命令：serve"""

import click


def register(main: click.Group) -> None:
    main.add_command(serve)


@click.command()
@click.option("--host", default="", help="监听地址（默认取配置 host）")
@click.option("--port", default=0, type=int, help="监听端口（默认取配置 port）")
@click.option("--debug", is_flag=True, help="Flask 调试模式")
def serve(host: str, port: int, debug: bool) -> None:
    """启动 HTTP 归档服务（开发服务器；生产请用 gunicorn）"""
    from gitcache.cli import _svc
    from gitcache.web.app import run_server

    run_server(_svc().config, host=host, port=port, debug=debug)
