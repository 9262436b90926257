"""外部命令执行工具 — 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
所有命令一律以参数列表传入，不经过 shell 拼接，避免引号转义问题。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from cartrepo.core.exceptions import CommandTimeoutError, ExecutionError

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
    """命令执行器协议 — 抽象子进程调用

    超时必须终止子进程并抛出 subprocess.TimeoutExpired。
    测试时可注入 mock 实现，无需 patch subprocess。
    """

    def execute(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地子进程执行器（默认实现）

    subprocess.run 在超时后会 kill 子进程再抛出 TimeoutExpired，
    不会遗留下载进程。
    """

    def execute(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        r = subprocess.run(
            args, capture_output=True, text=True,
            cwd=cwd, env=env, check=False, timeout=timeout,
        )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
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


# =========================================================================
# 便捷函数
# =========================================================================

def run_cmd(
    args: list[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
    expected_returncode: int = 0,
    label: str = "cmd",
    executor: CommandExecutor | None = None,
) -> CommandResult:
    """执行外部命令，退出码不符合预期时抛 ExecutionError

    Args:
        args: 命令参数列表
        cwd: 工作目录
        env: 环境变量（不传则继承当前进程）
        timeout: 超时秒数，超时后子进程被终止并抛 CommandTimeoutError
        expected_returncode: 期望的退出码
        label: 日志标签
        executor: 命令执行器，默认使用全局执行器
    """
    executor = executor or get_executor()
    logger.debug("  %s: %s (cwd=%s)", label, " ".join(args), cwd)
    try:
        r = executor.execute(args, cwd=cwd, env=env, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise CommandTimeoutError(
            f"{label}超时 ({timeout}s): {' '.join(args)}", timeout=timeout,
        ) from e
    except OSError as e:
        raise ExecutionError(f"{label}无法启动: {args[0]}: {e}") from e

    if r.returncode != expected_returncode:
        raise ExecutionError(
            f"{label}失败 (rc={r.returncode}): {r.stderr[:500]}",
            returncode=r.returncode,
            stderr=r.stderr,
        )
    return r
