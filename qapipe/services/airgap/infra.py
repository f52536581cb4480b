"""airgap 部署阶段执行

每个阶段在流水线镜像内执行一个 bash 脚本（共享卷挂载到 /root），
公共环境变量由状态表生成，阶段专属变量由调用方传入。
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from typing import Any

from qapipe.services.airgap import defaults
from qapipe.services.docker.manager import DockerManager
from qapipe.utils.shell import CommandResult

logger = logging.getLogger(__name__)

# 所有阶段脚本都需要的状态键
COMMON_ENV_KEYS = [
    "QA_INFRA_WORK_PATH",
    "TF_WORKSPACE",
    "TERRAFORM_VARS_FILENAME",
    "TERRAFORM_BACKEND_CONFIG_FILENAME",
    "ANSIBLE_VARS_FILENAME",
]


def stage_script(script_path: str) -> str:
    return f"#!/bin/bash\nset -e\nbash {shlex.quote(script_path)}\n"


def cleanup_script(reason: str, workspace: str, destroy: bool = True) -> str:
    """加载清理脚本并调用 perform_cleanup <reason> <workspace> <destroy>"""
    return (
        "#!/bin/bash\nset -e\n"
        f"source {shlex.quote(defaults.CLEANUP_SCRIPT)}\n"
        f"perform_cleanup {shlex.quote(reason)} {shlex.quote(workspace)} "
        f"{'true' if destroy else 'false'}\n"
    )


class InfrastructureManager:
    """通过 DockerManager 执行部署阶段脚本"""

    def __init__(self, docker: DockerManager) -> None:
        self.docker = docker

    def _execute(
        self, stage: str, script: str, state: Mapping[str, Any],
        timeout: int | str, extra_env: Mapping[str, str] | None,
    ) -> CommandResult:
        env = {k: str(state[k]) for k in COMMON_ENV_KEYS if state.get(k) not in (None, "")}
        env.update({k: v for k, v in (extra_env or {}).items() if v is not None})
        logger.info("执行阶段 [%s]", stage)
        result = self.docker.execute_script_in_container(
            script,
            container=str(state["BUILD_CONTAINER_NAME"]),
            image=str(state["IMAGE_NAME"]),
            volume=str(state["VALIDATION_VOLUME"]),
            timeout_minutes=timeout,
            extra_env=env,
            env_file=str(state.get("ENV_FILE") or ""),
        )
        logger.info("阶段 [%s] 完成", stage)
        return result

    def deploy_infrastructure(
        self, state: Mapping[str, Any], *,
        timeout: int | str = defaults.TERRAFORM_TIMEOUT_MINUTES,
        extra_env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return self._execute(
            "deploy-infrastructure", stage_script(defaults.DEPLOY_INFRA_SCRIPT),
            state, timeout, extra_env,
        )

    def prepare_ansible(
        self, state: Mapping[str, Any], *,
        timeout: int | str = defaults.ANSIBLE_TIMEOUT_MINUTES,
        extra_env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return self._execute(
            "prepare-ansible", stage_script(defaults.PREPARE_ANSIBLE_SCRIPT),
            state, timeout, extra_env,
        )

    def deploy_rke2(
        self, state: Mapping[str, Any], *,
        timeout: int | str = defaults.ANSIBLE_TIMEOUT_MINUTES,
        extra_env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return self._execute(
            "deploy-rke2", stage_script(defaults.DEPLOY_RKE2_SCRIPT),
            state, timeout, extra_env,
        )

    def deploy_rancher(
        self, state: Mapping[str, Any], *,
        timeout: int | str = defaults.ANSIBLE_TIMEOUT_MINUTES,
        extra_env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return self._execute(
            "deploy-rancher", stage_script(defaults.DEPLOY_RANCHER_SCRIPT),
            state, timeout, extra_env,
        )

    def run_cleanup(
        self, state: Mapping[str, Any], reason: str, *,
        timeout: int | str = defaults.TERRAFORM_TIMEOUT_MINUTES,
    ) -> CommandResult:
        """执行 tofu 销毁脚本，reason 记录触发原因"""
        logger.info("执行清理脚本 (reason=%s)", reason)
        return self._execute(
            f"cleanup:{reason}", cleanup_script(reason, str(state["TF_WORKSPACE"])),
            state, timeout, None,
        )
