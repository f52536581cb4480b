"""airgap 流水线的 Docker 资源: 镜像、共享卷、容器内脚本

共享卷挂载到容器的 /root，用于在宿主机与一次性容器之间传递
SSH 密钥、tfvars、kubeconfig 等文件。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from qapipe.core.config import Config, get_config
from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.models import StepOutcome
from qapipe.core.runtime import BuildRuntime
from qapipe.services.airgap import defaults
from qapipe.services.docker.commands import env_flags
from qapipe.services.docker.lifecycle import decode_base64
from qapipe.utils.shell import CommandExecutor, CommandResult, run_cmd
from qapipe.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


def timeout_seconds(timeout_minutes: int | str) -> int:
    """分钟数转为秒；非正整数抛 ValidationError"""
    try:
        minutes = int(str(timeout_minutes).strip())
    except ValueError:
        minutes = 0
    if minutes <= 0:
        raise ValidationError(
            f"超时必须是正整数分钟: {timeout_minutes!r}", details=["timeout_minutes"],
        )
    return minutes * 60


class DockerManager:
    """airgap 流水线的 Docker 资源管理器"""

    def __init__(
        self,
        runtime: BuildRuntime,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.runtime = runtime
        self.config = config or get_config()
        self.executor = executor

    def _run(
        self, cmd: list[str], label: str, *,
        timeout: int | None = None, env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return run_cmd(
            cmd, cwd=str(self.runtime.workspace),
            env=dict(env) if env is not None else self.runtime.env,
            timeout=timeout, label=label, executor=self.executor,
        )

    def build_image(
        self, image: str, *,
        dockerfile: str = defaults.DOCKERFILE,
        context: str = defaults.BUILD_CONTEXT,
    ) -> None:
        """构建流水线镜像"""
        if not image:
            raise ValidationError("build_image 需要提供镜像名", details=["image"])
        logger.info("构建镜像 %s (dockerfile=%s)", image, dockerfile)
        self._run([
            "docker", "build",
            "--platform", self.config.docker.platform,
            "-t", image, "-f", dockerfile, context,
        ], label="docker build")

    def create_shared_volume(self, volume: str) -> None:
        """创建共享卷"""
        if not volume:
            raise ValidationError("create_shared_volume 需要提供卷名", details=["volume"])
        self._run(["docker", "volume", "create", volume], label="docker volume create")
        logger.info("共享卷已创建: %s", volume)

    def stage_ssh_keys(self, volume: str, credentials: Mapping[str, str]) -> str:
        """把 AWS_SSH_PEM_KEY 写入 .ssh/<AWS_SSH_KEY_NAME> 并复制到共享卷 /root/.ssh"""
        key_name = credentials.get("AWS_SSH_KEY_NAME", "")
        key_content = credentials.get("AWS_SSH_PEM_KEY", "")
        missing = [k for k, v in (("AWS_SSH_KEY_NAME", key_name), ("AWS_SSH_PEM_KEY", key_content)) if not v]
        if missing:
            raise ValidationError(f"缺少 SSH 密钥凭据: {', '.join(missing)}", details=missing)

        ssh_dir = self.runtime.workspace / self.config.paths.ssh_dir
        key_path = ssh_dir / key_name
        atomic_write(key_path, decode_base64(key_content, label="AWS_SSH_PEM_KEY"), mode=0o600)
        logger.info("SSH 私钥已写入 %s", key_path)

        self._run([
            "docker", "run", "--rm",
            "-v", f"{volume}:/root",
            "-v", f"{ssh_dir}:/tmp/ssh:ro",
            defaults.HELPER_IMAGE,
            "sh", "-c",
            "mkdir -p /root/.ssh && cp /tmp/ssh/* /root/.ssh/ && chmod 600 /root/.ssh/*",
        ], label="stage ssh keys")
        return str(key_path)

    def execute_script_in_container(
        self,
        script: str,
        *,
        container: str,
        image: str,
        volume: str,
        timeout_minutes: int | str = defaults.TERRAFORM_TIMEOUT_MINUTES,
        extra_env: Mapping[str, str] | None = None,
        env_file: str = "",
    ) -> CommandResult:
        """在流水线镜像中执行 bash 脚本，共享卷挂载到 /root

        AWS 凭据以 -e NAME 形式从运行时环境继承，不出现在命令行中。
        超时由执行器强制，超时退出码为 137。
        """
        if not script:
            raise ValidationError("execute_script_in_container 需要提供脚本", details=["script"])
        args = [
            "docker", "run", "--rm", "--name", container,
            "--platform", self.config.docker.platform,
            "-v", f"{volume}:/root",
        ]
        args.extend(env_flags(["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"], extra_env))
        env_file = env_file or self.config.docker.default_env_file
        if env_file and (self.runtime.workspace / env_file).is_file():
            args.extend(["--env-file", env_file])
        args.extend([image, "bash", "-c", script])

        timeout = timeout_seconds(timeout_minutes)
        logger.info("容器内执行脚本 (container=%s, timeout=%sm)", container, timeout_minutes)
        return self._run(args, label="container script", timeout=timeout)

    def cleanup_resources(self, image: str, volume: str, container: str) -> list[StepOutcome]:
        """尽力删除容器、镜像、共享卷，单项失败不影响后续"""
        outcomes: list[StepOutcome] = []
        steps = [
            ("container", container, ["docker", "rm", "-f", container]),
            ("image", image, ["docker", "rmi", "-f", image]),
            ("volume", volume, ["docker", "volume", "rm", "-f", volume]),
        ]
        for kind, name, cmd in steps:
            if not name:
                continue
            try:
                self._run(cmd, label=f"remove {kind}")
                outcomes.append(StepOutcome.ok(f"remove-{kind}:{name}"))
            except ExecutionError as e:
                logger.warning("删除 %s [%s] 失败: %s", kind, name, e)
                outcomes.append(StepOutcome.warn(f"remove-{kind}:{name}", str(e)))
        return outcomes
