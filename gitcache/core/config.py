"""集中配置管理

支持从 YAML 文件加载 + 编程式覆盖，CLI / Web 入口显式初始化。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from gitcache.core.exceptions import ConfigError
from gitcache.core.models import SUPPORTED_FORMATS
from gitcache.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configs/default.yml"


@dataclass
class Config:
    """全局配置"""

    # 目录
    cache_dir: str = "~/.gitcache"  # 可能变得很大
    output_dir: str = "."

    # 归档
    default_format: str = "tgz"
    git_bin: str = "git"
    lock_timeout: float = -1  # 秒，-1 表示一直等待

    # Web
    host: str = "0.0.0.0"
    port: int = 9091
    max_content_length: int = 64 * 1024
    spool_max_size: int = 8 * 1024 * 1024  # 超过后落盘

    @property
    def cache_root(self) -> Path:
        """展开 ~ 后的缓存根目录"""
        return Path(self.cache_dir).expanduser()

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError, OSError) as e:
            raise ConfigError(f"配置文件无效: {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            raise ConfigError(f"未知配置项: {path}: {', '.join(map(str, unknown))}")
        try:
            cfg = cls(**data)
        except TypeError as e:
            raise ConfigError(f"配置项无效: {path}: {e}") from e
        cfg.check()
        return cfg

    def check(self) -> None:
        """校验取值范围"""
        if self.default_format not in SUPPORTED_FORMATS:
            raise ConfigError(f"default_format 仅支持 tar/tgz: {self.default_format}")
        if not self.cache_dir:
            raise ConfigError("cache_dir 不能为空")

    def to_dict(self) -> dict:
        from dataclasses import asdict
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI / Web 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
