"""基础设施通用辅助

配置文件写入（带变量替换）、SSH 密钥对生成、目录创建与清理、
workspace 名归档与回读。路径均相对 runtime.workspace。
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path

from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.models import StepOutcome
from qapipe.core.naming import generate_workspace_name
from qapipe.core.runtime import BuildRuntime
from qapipe.services.docker.lifecycle import decode_base64
from qapipe.utils.shell import CommandExecutor, run_cmd
from qapipe.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

WORKSPACE_NAME_FILE = "workspace_name.txt"


def parse_and_substitute_vars(content: str, env_vars: Mapping[str, object] | None = None) -> str:
    """替换 ${VAR} 与 $VAR（后者要求变量名后不再跟标识符字符）"""
    if not content:
        raise ValidationError("parse_and_substitute_vars 需要提供 content", details=["content"])
    for key, value in (env_vars or {}).items():
        text = str(value)
        name = re.escape(str(key))
        content = re.sub(rf"\$\{{{name}\}}", lambda _m: text, content)
        content = re.sub(rf"\${name}(?![a-zA-Z0-9_])", lambda _m: text, content)
    return content


class InfrastructureHelper:
    """工作目录上的基础设施文件操作"""

    def __init__(self, runtime: BuildRuntime, executor: CommandExecutor | None = None) -> None:
        self.runtime = runtime
        self.executor = executor

    def _path(self, rel: str) -> Path:
        return self.runtime.workspace / rel

    def write_config(
        self, path: str, content: str, substitutions: Mapping[str, object] | None = None,
    ) -> Path:
        """写入配置文件，先把 ${KEY} 替换为 substitutions 中的值"""
        missing = [k for k, v in (("path", path), ("content", content)) if not v]
        if missing:
            raise ValidationError(f"write_config 缺少: {', '.join(missing)}", details=missing)
        for key, value in (substitutions or {}).items():
            content = content.replace("${" + str(key) + "}", str(value))
        target = self._path(path)
        logger.info("写入配置: %s", path)
        try:
            atomic_write(target, content)
        except OSError as e:
            raise ExecutionError(f"写入配置失败: {e}") from e
        return target

    def write_ssh_key(self, key_content: str, key_name: str, directory: str = ".ssh") -> Path:
        """解码 base64 私钥写入 <dir>/<name>（600），并用 ssh-keygen 导出公钥（644）

        公钥文件名为私钥去掉扩展名后加 .pub，如 key.pem -> key.pub。
        """
        missing = [k for k, v in (("key_content", key_content), ("key_name", key_name)) if not v]
        if missing:
            raise ValidationError(f"write_ssh_key 缺少: {', '.join(missing)}", details=missing)
        ssh_dir = self._path(directory or ".ssh")
        key_path = ssh_dir / key_name
        pub_path = ssh_dir / (re.sub(r"\.[^.]+$", "", key_name) + ".pub")

        logger.info("写入 SSH 私钥: %s", key_path)
        atomic_write(key_path, decode_base64(key_content, label="key_content"), mode=0o600)

        result = run_cmd(
            ["ssh-keygen", "-y", "-f", str(key_path)],
            cwd=str(self.runtime.workspace), label="ssh-keygen", executor=self.executor,
        )
        atomic_write(pub_path, result.stdout, mode=0o644)
        logger.info("SSH 密钥对已写入: %s, %s", key_path, pub_path)
        return key_path

    def generate_workspace_name(
        self, prefix: str = "jenkins_workspace", suffix: str = "",
        include_timestamp: bool = True, now: datetime | None = None,
    ) -> str:
        """以运行时 BUILD_NUMBER 生成 workspace 名"""
        return generate_workspace_name(
            self.runtime.env.get("BUILD_NUMBER"), prefix=prefix, suffix=suffix,
            include_timestamp=include_timestamp, now=now,
        )

    def create_directories(self, paths: Iterable[str]) -> list[Path]:
        paths = list(paths)
        if not paths:
            raise ValidationError("create_directories 需要提供 paths", details=["paths"])
        created = []
        for p in paths:
            logger.info("创建目录: %s", p)
            target = self._path(p)
            target.mkdir(parents=True, exist_ok=True)
            created.append(target)
        return created

    def cleanup_artifacts(self, paths: Iterable[str]) -> list[StepOutcome]:
        """逐个删除文件或目录，单项失败只告警"""
        paths = list(paths)
        if not paths:
            raise ValidationError("cleanup_artifacts 需要提供 paths", details=["paths"])
        logger.info("清理产物")
        outcomes = []
        for p in paths:
            target = self._path(p)
            try:
                if target.is_dir() and not target.is_symlink():
                    shutil.rmtree(target)
                elif target.exists() or target.is_symlink():
                    target.unlink()
                logger.info("已删除: %s", p)
                outcomes.append(StepOutcome.ok(f"cleanup:{p}"))
            except OSError as e:
                logger.warning("无法删除 %s: %s", p, e)
                outcomes.append(StepOutcome.warn(f"cleanup:{p}", str(e)))
        return outcomes

    def archive_workspace_name(self, workspace_name: str, file_name: str = WORKSPACE_NAME_FILE) -> str:
        """把 workspace 名写入文件并归档，供 destroy 任务回读"""
        if not workspace_name:
            raise ValidationError("archive_workspace_name 需要提供 workspace_name", details=["workspace_name"])
        file_name = file_name or WORKSPACE_NAME_FILE
        logger.info("归档 workspace 名: %s", workspace_name)
        try:
            atomic_write(self._path(file_name), workspace_name)
        except OSError as e:
            raise ExecutionError(f"归档 workspace 名失败: {e}") from e
        self.runtime.archive_artifacts([file_name], allow_empty=False)
        return file_name

    def get_archived_workspace_name(self, file_name: str = WORKSPACE_NAME_FILE) -> str:
        path = self._path(file_name or WORKSPACE_NAME_FILE)
        try:
            name = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ExecutionError(f"读取归档的 workspace 名失败: {e}") from e
        logger.info("读取到 workspace 名: %s", name)
        return name
