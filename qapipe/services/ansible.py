"""Ansible playbook 执行

playbook 在 infra-tools 镜像内运行，工作目录挂载到 /workspace，
工作目录下的 .ssh 只读挂载到 /root/.ssh 供 Ansible 连接远程主机。
参数以 argv 列表传给 docker，不经过 shell 拼接。
"""

from __future__ import annotations

import json
import logging
import posixpath
from pathlib import Path

from qapipe.core.config import Config, get_config
from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.models import ContainerPlaybookConfig, PlaybookConfig
from qapipe.core.runtime import BuildRuntime
from qapipe.services.docker.commands import tool_run_args
from qapipe.utils.shell import CommandExecutor, run_cmd
from qapipe.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


def playbook_args(
    inventory: str, playbook: str, *,
    extra_vars: dict[str, str] | None = None,
    tags: str = "", limit: str = "", verbose: bool = False,
) -> list[str]:
    """ansible-playbook 参数列表，extra vars 以 JSON 传递"""
    args = ["ansible-playbook", "-i", inventory, playbook]
    if extra_vars:
        args.extend(["--extra-vars", json.dumps(extra_vars, sort_keys=True)])
    if tags:
        args.extend(["--tags", tags])
    if limit:
        args.extend(["--limit", limit])
    if verbose:
        args.append("-vvv")
    return args


class AnsibleService:
    """Ansible 命令封装"""

    def __init__(
        self,
        runtime: BuildRuntime,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.runtime = runtime
        self.config = config or get_config()
        self.executor = executor

    def run_playbook(self, pb: PlaybookConfig) -> None:
        """在 infra-tools 镜像内执行 playbook"""
        logger.info("执行 Ansible playbook: %s", pb.playbook)
        workspace = str(self.runtime.workspace)
        ssh_dir = posixpath.join(workspace, self.config.paths.ssh_dir)
        cmd = tool_run_args(
            image=self.config.docker.infra_tools_image,
            platform=self.config.docker.platform,
            workspace=workspace,
            workdir=posixpath.normpath(posixpath.join("/workspace", pb.dir)),
            extra_mounts=[f"{ssh_dir}:/root/.ssh:ro"],
            command=playbook_args(
                pb.inventory, pb.playbook, extra_vars=pb.extra_vars,
                tags=pb.tags, limit=pb.limit, verbose=pb.verbose,
            ),
        )
        run_cmd(
            cmd, cwd=workspace, env=self.runtime.env,
            label="ansible-playbook", executor=self.executor,
        )
        logger.info("Ansible playbook 执行完成")

    def write_inventory_vars(self, path: str, content: str) -> Path:
        """写入 group_vars 等变量文件（相对工作目录），返回写入路径"""
        if not path or not content:
            missing = [k for k, v in (("path", path), ("content", content)) if not v]
            raise ValidationError(f"写入 Ansible 变量缺少: {', '.join(missing)}", details=missing)
        target = self.runtime.workspace / path
        logger.info("写入 Ansible 变量: %s", path)
        try:
            atomic_write(target, content)
        except OSError as e:
            raise ExecutionError(f"写入 Ansible 变量失败: {e}") from e
        return target

    def validate_inventory(self, directory: str, inventory: str) -> bool:
        """ansible-inventory --list 校验，失败只告警并返回 False"""
        if not directory or not inventory:
            missing = [k for k, v in (("dir", directory), ("inventory", inventory)) if not v]
            raise ValidationError(f"校验 inventory 缺少: {', '.join(missing)}", details=missing)
        logger.info("校验 Ansible inventory: %s", inventory)
        try:
            run_cmd(
                ["ansible-inventory", "-i", inventory, "--list"],
                cwd=str(self.runtime.workspace / directory), env=self.runtime.env,
                label="ansible-inventory", executor=self.executor,
            )
        except ExecutionError as e:
            logger.warning("Ansible inventory 校验失败: %s", e)
            return False
        logger.info("Ansible inventory 校验通过")
        return True

    def run_playbook_in_container(self, pb: ContainerPlaybookConfig) -> None:
        """使用调用方指定的镜像执行 playbook，pb.dir 挂载到 /workspace"""
        logger.info("在镜像 %s 中执行 playbook: %s", pb.image, pb.playbook)
        cmd = tool_run_args(
            image=pb.image,
            platform=self.config.docker.platform,
            workspace=pb.dir,
            env=pb.env_vars,
            command=playbook_args(
                pb.inventory, pb.playbook, extra_vars=pb.extra_vars, tags=pb.tags,
            ),
        )
        run_cmd(
            cmd, cwd=str(self.runtime.workspace), env=self.runtime.env,
            label="ansible-playbook (container)", executor=self.executor,
        )
        logger.info("容器内 playbook 执行完成")
