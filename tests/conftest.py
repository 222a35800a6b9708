"""测试公共夹具：假 git 后端与 tar 构造"""

from __future__ import annotations

import io
import tarfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

import pytest

from gitcache.core.config import Config
from gitcache.core.exceptions import ArchiveError, UpstreamFetchError, WorkspaceError
from gitcache.services.container import ServiceContainer


def build_tar(
    files: dict[str, bytes],
    *,
    mtime: int = 1_700_000_000,
    comment: str = "",
) -> bytes:
    """构造与 git archive 相似的 tar：PAX 格式，可选全局 comment 头"""
    buf = io.BytesIO()
    pax = {"comment": comment} if comment else {}
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.PAX_FORMAT, pax_headers=pax) as tf:
        dirs = sorted({str(Path(n).parent) for n in files if "/" in n})
        for d in dirs:
            info = tarfile.TarInfo(d + "/")
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            info.mtime = mtime
            tf.addfile(info)
        for name, data in sorted(files.items()):
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            info.mtime = mtime
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class FakeBackend:
    """内存中的假 git：上游分支历史 + 镜像中已有的 commit

    每次导出的 mtime 都不同，模拟 git archive 的不确定输出。
    """

    def __init__(self) -> None:
        self.history: dict[str, list[str]] = {}  # 上游 branch -> commits
        self.trees: dict[str, dict[str, bytes]] = {}
        self.mirrored: set[str] = set()
        self.local_refs: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.fail_init = False
        self.fail_fetch = False
        self.clock = 1_700_000_000

    def add_commit(self, branch: str, commit: str, files: dict[str, bytes]) -> None:
        self.history.setdefault(branch, []).append(commit)
        self.trees[commit] = files

    def count(self, kind: str) -> int:
        return sum(1 for c in self.calls if c[0] == kind)

    def init_bare(self, git_dir: Path) -> None:
        self.calls.append(("init", git_dir))
        if self.fail_init:
            raise WorkspaceError("git init --bare 失败 (rc=1)")
        (git_dir / "objects").mkdir()
        (git_dir / "refs" / "heads").mkdir(parents=True)
        (git_dir / "HEAD").write_text("ref: refs/heads/main\n")

    def fetch_branch(self, git_dir: Path, repo: str, branch: str) -> None:
        self.calls.append(("fetch", repo, branch))
        if self.fail_fetch or branch not in self.history:
            raise UpstreamFetchError(f"git fetch {branch} 失败 (rc=128)")
        self.mirrored.update(self.history[branch])
        self.local_refs[branch] = self.history[branch][-1]
        (git_dir / "refs" / "heads" / branch).write_text(self.local_refs[branch] + "\n")

    def resolve_ref(self, git_dir: Path, ref: str) -> str:
        self.calls.append(("rev-parse", ref))
        if ref not in self.local_refs:
            raise UpstreamFetchError(f"git rev-parse {ref} 失败 (rc=128)")
        return self.local_refs[ref]

    def _select(self, commit: str, tree: str) -> dict[str, bytes] | None:
        if commit not in self.mirrored:
            return None
        files = self.trees[commit]
        if not tree:
            return files
        prefix = tree.rstrip("/") + "/"
        selected = {n[len(prefix):]: d for n, d in files.items() if n.startswith(prefix)}
        return selected or None

    @contextmanager
    def export_archive(self, git_dir: Path, commit: str, tree: str) -> Iterator[BinaryIO]:
        self.calls.append(("archive", commit, tree))
        files = self._select(commit, tree)
        if files is None:
            yield io.BytesIO(b"")
            raise ArchiveError(f"git archive {commit}:{tree} 失败 (rc=128)", returncode=128)
        self.clock += 1
        yield io.BytesIO(build_tar(files, mtime=self.clock, comment=commit))


@pytest.fixture()
def backend() -> FakeBackend:
    fake = FakeBackend()
    fake.add_commit("main", "a" * 40, {"README.md": b"hello\n", "src/app.py": b"print('v1')\n"})
    return fake


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    return Config(cache_dir=str(tmp_path / "cache"), output_dir=str(tmp_path / "out"))


@pytest.fixture()
def container(config: Config, backend: FakeBackend) -> ServiceContainer:
    return ServiceContainer(config=config, backend=backend)
