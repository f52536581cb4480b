"""Shell 命令执行工具: 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换和跨平台适配。
docker / tofu / ansible / git 的所有调用都经过这里。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

from qapipe.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)

# 超时被 KILL 时的退出码 (128 + SIGKILL)
TIMEOUT_KILLED_RC = 137


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
    """命令执行器协议: 抽象子进程调用

    实现此协议即可替换底层执行方式（本地 shell、SSH 远程等）。
    测试时可注入 mock 实现，无需 patch subprocess。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地 Shell 执行器
# =========================================================================

class LocalExecutor:
    """本地命令执行器（默认实现）

    字符串命令交给 /bin/sh 解释（支持管道、重定向），列表命令直接 exec。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        shell = isinstance(cmd, str)
        try:
            r = subprocess.run(
                cmd, shell=shell, capture_output=True, text=True,  # noqa: S602
                cwd=cwd, env=env, check=False, timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                returncode=TIMEOUT_KILLED_RC,
                stdout=_to_text(e.stdout),
                stderr=f"命令超时 ({timeout}s)",
            )
        except FileNotFoundError as e:
            return CommandResult(returncode=127, stdout="", stderr=str(e))
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


def _to_text(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试或远程执行场景）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


# =========================================================================
# 便捷函数
# =========================================================================

def format_cmd(cmd: str | list[str]) -> str:
    """命令转为可读字符串（日志用）"""
    return cmd if isinstance(cmd, str) else shlex.join(cmd)


def run_cmd(
    cmd: str | list[str], *, cwd: str = ".",
    env: dict[str, str] | None = None,
    timeout: int | None = None,
    label: str = "cmd",
    executor: CommandExecutor | None = None,
) -> CommandResult:
    """执行命令，失败抛 ExecutionError（携带退出码）

    Args:
        cmd: 命令字符串（经 shell 解释）或参数列表
        cwd: 工作目录
        env: 环境变量（不传则继承当前进程）
        timeout: 超时秒数
        label: 日志标签
        executor: 指定执行器，默认使用全局执行器
    """
    logger.info("  %s: %s (cwd=%s)", label, format_cmd(cmd), cwd)
    r = (executor or get_executor()).execute(
        cmd, cwd=cwd, env=env, timeout=timeout,
    )
    if r.returncode != 0:
        raise ExecutionError(
            f"{label}失败 (rc={r.returncode}): {r.stderr[:500]}",
            returncode=r.returncode,
        )
    return r
