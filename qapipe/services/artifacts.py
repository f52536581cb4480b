"""产物提取与归档

共享卷中的 artifacts/ 目录和几个已知文件通过一次性 alpine 容器
复制到工作目录；缺失的源文件由容器内脚本打印提示，不视为失败。
"""

from __future__ import annotations

import logging

from qapipe.core.exceptions import ValidationError
from qapipe.core.runtime import BuildRuntime
from qapipe.services.airgap import defaults
from qapipe.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)


def extraction_script(files: list[str]) -> str:
    """alpine 容器内执行的复制脚本，/source 为共享卷，/dest 为目标目录"""
    return "\n".join([
        "set -e",
        "mkdir -p /dest",
        'if [ -d "/source/artifacts" ]; then',
        '    cp -r /source/artifacts/* /dest/ 2>/dev/null || echo "No files in artifacts directory"',
        "else",
        '    echo "No artifacts directory found in /source"',
        "fi",
        f"for file in {' '.join(files)}; do",
        '    if [ -f "/source/$file" ]; then',
        '        cp "/source/$file" /dest/',
        "    fi",
        "done",
        "ls -lah /dest/ || true",
    ])


class ArtifactManager:
    """共享卷产物提取与构建产物归档"""

    def __init__(self, runtime: BuildRuntime, executor: CommandExecutor | None = None) -> None:
        self.runtime = runtime
        self.executor = executor

    def extract_from_volume(self, volume: str, destination: str = "artifacts") -> str:
        """把共享卷中的产物复制到 <workspace>/<destination>，返回目标目录"""
        if not volume:
            raise ValidationError("提取产物需要提供 VALIDATION_VOLUME", details=["VALIDATION_VOLUME"])
        destination = destination or "artifacts"
        dest = self.runtime.workspace / destination
        dest.mkdir(parents=True, exist_ok=True)
        logger.info("从共享卷 %s 提取产物", volume)
        run_cmd(
            [
                "docker", "run", "--rm",
                "-v", f"{volume}:/source",
                "-v", f"{dest}:/dest",
                defaults.HELPER_IMAGE,
                "sh", "-c", extraction_script(defaults.VOLUME_ARTIFACT_FILES),
            ],
            cwd=str(self.runtime.workspace), env=self.runtime.env,
            label="extract artifacts", executor=self.executor,
        )
        return destination

    def archive_artifacts(self, patterns: list[str] | None) -> list[str]:
        """归档 glob 列表，空列表不做任何事"""
        if not patterns:
            return []
        joined = ",".join(patterns)
        archived = self.runtime.archive_artifacts(list(patterns), allow_empty=True)
        logger.info("已归档产物: %s", joined)
        return archived
