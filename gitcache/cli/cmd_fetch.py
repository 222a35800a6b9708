"""归档命令：fetch"""

import sys

import click

from gitcache.core.exceptions import GitCacheError
from gitcache.core.models import SUPPORTED_FORMATS, FetchRequest


def register(main: click.Group) -> None:
    main.add_command(fetch)


@click.command()
@click.option("--repo", default="", help="上游仓库地址（必填）")
@click.option("--branch", default="", help="包含该 commit 的分支（必填）")
@click.option("--commit", default="", help="可选，不指定时总会访问上游取分支头")
@click.option("--tree", default="", help="只导出该子目录，默认整棵树")
@click.option(
    "--format", "fmt", default=None,
    type=click.Choice(list(SUPPORTED_FORMATS)), help="tar 或 tgz（默认取配置）",
)
@click.option("--outdir", default=None, help="输出目录，写入 <commit>.<format> 并打印路径")
@click.option("--stdout", "to_stdout", is_flag=True, help="将归档字节直接写到标准输出")
def fetch(
    repo: str, branch: str, commit: str, tree: str,
    fmt: str | None, outdir: str | None, to_stdout: bool,
) -> None:
    """导出仓库归档（本地镜像优先，缺失时拉取上游）"""
    from gitcache.cli import _svc

    container = _svc()
    cfg = container.config
    req = FetchRequest(
        repo=repo, branch=branch, commit=commit, tree=tree,
        format=fmt or cfg.default_format,
    )

    try:
        if to_stdout:
            out = sys.stdout.buffer
            container.fetcher.fetch(req, sink=out)
            out.flush()
        else:
            container.fetcher.fetch(
                req, output_dir=outdir or cfg.output_dir, on_output_path=click.echo,
            )
    except GitCacheError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
