"""子进程执行工具 - 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
两种调用方式:
  - execute: 一次性执行，收集 stdout/stderr（init / fetch / rev-parse）
  - spawn:   启动后由调用方增量读取 stdout（archive 流式输出）
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 - 抽象子进程调用

    测试时可注入 mock 实现，无需 patch subprocess。
    """

    def execute(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...

    def spawn(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        """启动命令，stdout 以二进制管道返回，stderr 收集到管道"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地命令执行器（默认实现）

    每条命令执行前以 INFO 级别记录完整命令行。
    """

    def execute(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        logger.info("%s", shlex.join(args))
        try:
            r = subprocess.run(
                args, capture_output=True, text=True,
                env=env, check=False, timeout=timeout,
            )
        except FileNotFoundError as e:
            # 可执行文件不存在，按命令失败处理（127 与 shell 约定一致）
            return CommandResult(returncode=127, stdout="", stderr=str(e))
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )

    def spawn(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        logger.info("%s", shlex.join(args))
        return subprocess.Popen(  # noqa: S603
            args, stdout=subprocess.PIPE, stderr=subprocess.PIPE, env=env,
        )


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor
