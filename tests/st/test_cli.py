"""命令行测试"""

from __future__ import annotations

import gzip
import io
import logging
import tarfile
from pathlib import Path

import pytest
from click.testing import CliRunner

import gitcache.cli as climod
import gitcache.core.config as cfgmod
from gitcache.cli import main
from gitcache.core.cache_key import key_for
from gitcache.services.container import ServiceContainer, reset_container

REPO = "https://example.test/repo.git"
A = "a" * 40


@pytest.fixture()
def runner(tmp_path: Path, container: ServiceContainer, monkeypatch: pytest.MonkeyPatch):
    """CLI 使用注入了假后端的容器"""
    monkeypatch.setattr(cfgmod, "_current", None)
    monkeypatch.setattr(climod, "_svc", lambda: container)
    # setup_logging 会替换根 logger 的 handler，测试结束后还原
    monkeypatch.setattr(logging.getLogger(), "handlers", [])
    yield CliRunner(env={"GITCACHE_LOG_LEVEL": "WARNING"})
    reset_container()


def _invoke(runner: CliRunner, tmp_path: Path, *args: str):
    return runner.invoke(main, ["--config", str(tmp_path / "missing.yml"), *args])


class TestFetch:
    def test_writes_file_and_prints_path(self, runner: CliRunner, tmp_path: Path) -> None:
        outdir = tmp_path / "dl"
        outdir.mkdir()
        r = _invoke(runner, tmp_path, "fetch", "--repo", REPO, "--branch", "main", "--outdir", str(outdir))
        assert r.exit_code == 0, r.output
        target = outdir / f"{A}.tgz"
        assert r.output.strip() == str(target)
        with tarfile.open(fileobj=io.BytesIO(gzip.decompress(target.read_bytes()))) as tf:
            assert "README.md" in tf.getnames()

    def test_stdout_mode(self, runner: CliRunner, tmp_path: Path, recwarn: pytest.WarningsRecorder) -> None:
        r = _invoke(
            runner, tmp_path, "fetch", "--repo", REPO, "--branch", "main",
            "--format", "tar", "--stdout",
        )
        assert r.exit_code == 0
        with tarfile.open(fileobj=io.BytesIO(r.stdout_bytes)) as tf:
            assert sorted(tf.getnames()) == ["README.md", "src", "src/app.py"]
        assert not [w for w in recwarn if "binary_stream" in str(w.message)]

    def test_missing_repo(self, runner: CliRunner, tmp_path: Path) -> None:
        r = _invoke(runner, tmp_path, "fetch", "--branch", "main", "--stdout")
        assert r.exit_code != 0
        assert "VALIDATION_ERROR" in r.output

    def test_invalid_format(self, runner: CliRunner, tmp_path: Path) -> None:
        r = _invoke(runner, tmp_path, "fetch", "--repo", REPO, "--branch", "main", "--format", "zip")
        assert r.exit_code == 2


class TestCacheCommands:
    def test_key(self, runner: CliRunner, tmp_path: Path) -> None:
        r = _invoke(runner, tmp_path, "key", REPO)
        assert r.output.strip() == key_for(REPO)

    def test_workspaces(self, runner: CliRunner, tmp_path: Path) -> None:
        r = _invoke(runner, tmp_path, "workspaces")
        assert "没有镜像" in r.output
        _invoke(runner, tmp_path, "fetch", "--repo", REPO, "--branch", "main", "--stdout")
        r = _invoke(runner, tmp_path, "workspaces")
        assert key_for(REPO) in r.output
        assert "branches=[main]" in r.output

    def test_config(self, runner: CliRunner, tmp_path: Path) -> None:
        r = _invoke(runner, tmp_path, "config")
        assert r.exit_code == 0
        assert "cache_dir:" in r.output


def test_bad_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging.getLogger(), "handlers", [])
    bad = tmp_path / "bad.yml"
    bad.write_text("default_format: zip\n")
    r = CliRunner().invoke(main, ["--config", str(bad), "key", REPO])
    assert r.exit_code == 1
    assert "zip" in r.output
    reset_container()


def test_version(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging.getLogger(), "handlers", [])
    r = CliRunner().invoke(main, ["--version"])
    assert r.exit_code == 0
