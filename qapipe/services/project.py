"""Git 源码检出

checkout() 把指定分支克隆到工作目录的子目录，返回 ./<target>。
clean=True 时先清空整个工作目录，保证干净的构建环境。
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass

from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.runtime import BuildRuntime
from qapipe.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@\-]+$")


@dataclass
class CheckoutInfo:
    """检出目录的分支与最近提交"""

    path: str
    branch: str = ""
    commit: str = ""


class ProjectService:
    """Git 仓库检出"""

    def __init__(self, runtime: BuildRuntime, executor: CommandExecutor | None = None) -> None:
        self.runtime = runtime
        self.executor = executor

    def checkout(
        self,
        repository: str,
        branch: str = "main",
        target: str = ".",
        *,
        clean: bool = True,
        depth: int | None = None,
    ) -> str:
        """克隆 repository 的 branch 到 target，返回 ./<target>"""
        if not repository:
            raise ValidationError("checkout 需要提供 repository", details=["repository"])
        branch = branch or "main"
        target = target or "."
        if not _SAFE_REF_RE.match(branch):
            raise ValidationError(f"分支名包含非法字符: {branch}", details=["branch"])

        if clean:
            self.runtime.delete_dir()

        dest = self.runtime.workspace / target
        if dest.exists() and dest != self.runtime.workspace and not clean:
            # 非 clean 模式下重新克隆子目录
            shutil.rmtree(dest)
        dest.mkdir(parents=True, exist_ok=True)

        cmd = ["git", "clone", "--branch", branch, "--single-branch"]
        if depth:
            cmd.extend(["--depth", str(depth)])
        cmd.extend([repository, "."])

        logger.info("检出 %s@%s -> ./%s", repository, branch, target)
        try:
            run_cmd(cmd, cwd=str(dest), env=self.runtime.env, label="git clone", executor=self.executor)
        except ExecutionError as e:
            raise ExecutionError(
                f"Error checking out [{repository}/{branch}]: {e}", returncode=e.returncode,
            ) from e
        return f"./{target}"

    def describe(self, path: str = ".") -> CheckoutInfo:
        """读取检出目录的分支和最近提交，失败时字段留空"""
        info = CheckoutInfo(path=path)
        cwd = str(self.runtime.workspace / path)
        try:
            info.branch = run_cmd(
                ["git", "rev-parse", "--abbrev-ref", "HEAD"],
                cwd=cwd, env=self.runtime.env, label="git rev-parse", executor=self.executor,
            ).stdout.strip()
            info.commit = run_cmd(
                ["git", "log", "-1", "--oneline"],
                cwd=cwd, env=self.runtime.env, label="git log", executor=self.executor,
            ).stdout.strip()
        except ExecutionError as e:
            logger.warning("无法读取 %s 的分支/提交信息: %s", path, e)
            return info
        logger.info("%s 分支: %s", path, info.branch)
        logger.info("%s 提交: %s", path, info.commit)
        return info
