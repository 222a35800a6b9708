"""缓存查看命令：workspaces, key, config"""

import click

from gitcache.core.cache_key import key_for
from gitcache.utils.yaml_io import dump_yaml


def register(main: click.Group) -> None:
    main.add_command(workspaces)
    main.add_command(key)
    main.add_command(show_config)


@click.command()
def workspaces() -> None:
    """列出缓存目录中的镜像"""
    from gitcache.cli import _svc

    container = _svc()
    wss = container.workspaces.list_workspaces()
    if not wss:
        click.echo(f"缓存目录中没有镜像: {container.config.cache_root}")
        return
    for w in wss:
        mark = "" if w["valid"] else "  [无效]"
        branches = ",".join(w["branches"]) or "-"
        click.echo(f"  {w['key']}  branches=[{branches}]{mark}")


@click.command()
@click.argument("repo")
def key(repo: str) -> None:
    """打印仓库对应的缓存键（镜像目录名）"""
    click.echo(key_for(repo))


@click.command(name="config")
def show_config() -> None:
    """打印当前生效的配置"""
    from gitcache.cli import _svc

    click.echo(dump_yaml(_svc().config.to_dict()), nl=False)
