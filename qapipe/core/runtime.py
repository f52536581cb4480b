"""构建运行时: 宿主 CI 能力的抽象

流水线步骤只通过 BuildRuntime 协议访问宿主提供的能力:
工作目录、环境变量、凭据、产物归档、JUnit 结果发布、清空工作目录。
LocalRuntime 在本地目录上实现这些能力，测试时可直接使用 tmp_path。
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from qapipe.core.exceptions import ConfigError, ExecutionError
from qapipe.core.junit import parse_junit
from qapipe.core.models import SuiteResult

logger = logging.getLogger(__name__)


class BuildRuntime(Protocol):
    """宿主 CI 运行时协议"""

    workspace: Path
    env: dict[str, str]

    def archive_artifacts(self, patterns: list[str], *, allow_empty: bool = True) -> list[str]:
        """归档匹配 glob 的文件，返回归档的相对路径"""
        ...

    def publish_junit(self, pattern: str) -> list[SuiteResult]:
        """发布匹配 glob 的 JUnit 报告"""
        ...

    def credentials(self, ids: Iterable[str]) -> dict[str, str]:
        """按凭据 ID 解析凭据值"""
        ...

    def delete_dir(self) -> None:
        """清空工作目录"""
        ...


class LocalRuntime:
    """本地目录运行时（默认实现）

    - 环境变量: 构造时复制 os.environ，后续修改只影响本运行时
    - 凭据: 从环境变量按 ID 同名查找
    - 归档: 复制到 <workspace>/<archive_dir>/ 并保持相对路径
    - JUnit: 解析后记录在 published 中
    """

    def __init__(
        self,
        workspace: str | Path = ".",
        env: dict[str, str] | None = None,
        archive_dir: str = "archive",
    ) -> None:
        self.workspace = Path(workspace).resolve()
        self.workspace.mkdir(parents=True, exist_ok=True)
        self.env = dict(os.environ) if env is None else dict(env)
        self.archive_dir = self.workspace / archive_dir
        self.published: list[SuiteResult] = []

    @property
    def job_name(self) -> str:
        return self.env.get("JOB_NAME", "")

    @property
    def build_number(self) -> str:
        return self.env.get("BUILD_NUMBER", "")

    def _glob(self, pattern: str) -> list[Path]:
        # ant 风格的 dir/** 表示目录下全部文件
        if pattern.endswith("**"):
            pattern += "/*"
        matches = []
        for p in sorted(self.workspace.glob(pattern)):
            if not p.is_file():
                continue
            if self.archive_dir in p.parents:
                continue
            matches.append(p)
        return matches

    def archive_artifacts(self, patterns: list[str], *, allow_empty: bool = True) -> list[str]:
        archived: list[str] = []
        for pattern in patterns:
            for src in self._glob(pattern.strip()):
                rel = src.relative_to(self.workspace)
                dest = self.archive_dir / rel
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dest)
                if str(rel) not in archived:
                    archived.append(str(rel))
        if not archived and not allow_empty:
            raise ExecutionError(f"没有匹配的归档文件: {', '.join(patterns)}")
        logger.info("已归档 %d 个文件 -> %s", len(archived), self.archive_dir)
        return archived

    def publish_junit(self, pattern: str) -> list[SuiteResult]:
        reports = self._glob(pattern)
        if not reports:
            raise ExecutionError(f"未找到 JUnit 报告: {pattern}")
        results = [parse_junit(p) for p in reports]
        self.published.extend(results)
        return results

    def credentials(self, ids: Iterable[str]) -> dict[str, str]:
        ids = list(ids)
        missing = [i for i in ids if not self.env.get(i)]
        if missing:
            raise ConfigError(f"凭据不存在: {', '.join(missing)}", details=missing)
        return {i: self.env[i] for i in ids}

    def delete_dir(self) -> None:
        for child in self.workspace.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        logger.info("工作目录已清空: %s", self.workspace)
