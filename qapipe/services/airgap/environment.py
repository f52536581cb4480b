"""airgap 流水线环境准备

ANSIBLE_VARIABLES 是调用方传入的 YAML 文本（Ansible vars.yaml 内容），
其中的 rke2_version / rancher_version / hostname 优先于默认值写回状态，
保证部署脚本、摘要与 playbook 使用同一组版本。
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import MutableMapping
from typing import Any

import yaml

from qapipe.core.config import Config, get_config
from qapipe.core.exceptions import ValidationError
from qapipe.core.models import StepOutcome
from qapipe.core.runtime import BuildRuntime
from qapipe.utils.yaml_io import loads_yaml

logger = logging.getLogger(__name__)

# ANSIBLE_VARIABLES 键 -> 状态键
ANSIBLE_STATE_KEYS = {
    "rke2_version": "RKE2_VERSION",
    "rancher_version": "RANCHER_VERSION",
    "hostname": "RANCHER_HOSTNAME",
}


class EnvironmentManager:
    """ANSIBLE_VARIABLES 解析与 SSH 密钥清理"""

    def __init__(self, runtime: BuildRuntime, config: Config | None = None) -> None:
        self.runtime = runtime
        self.config = config or get_config()

    def configure_setup_environment(self, state: MutableMapping[str, Any]) -> dict[str, Any]:
        logger.info("配置部署环境")
        variables = self.read_and_validate_ansible_variables(state)
        for var_key, state_key in ANSIBLE_STATE_KEYS.items():
            value = variables.get(var_key)
            if value not in (None, ""):
                state[state_key] = str(value)
                logger.info("%s 取自 ANSIBLE_VARIABLES: %s", state_key, value)
        return variables

    def read_and_validate_ansible_variables(self, state: MutableMapping[str, Any]) -> dict[str, Any]:
        """解析 ANSIBLE_VARIABLES

        为空时返回空 dict。YAML 非法或顶层不是映射时抛 ValidationError，
        SKIP_YAML_VALIDATION=true 时改为告警并忽略。
        """
        text = str(state.get("ANSIBLE_VARIABLES") or "")
        if not text.strip():
            logger.warning("ANSIBLE_VARIABLES 为空")
            return {}
        try:
            return loads_yaml(text, source="ANSIBLE_VARIABLES")
        except (yaml.YAMLError, ValueError) as e:
            if str(state.get("SKIP_YAML_VALIDATION", "")).lower() == "true":
                logger.warning("ANSIBLE_VARIABLES 解析失败，已跳过校验: %s", e)
                return {}
            raise ValidationError(f"ANSIBLE_VARIABLES 不是合法的 YAML 映射: {e}") from e

    def cleanup_ssh_keys(self) -> StepOutcome:
        """删除工作目录下的 SSH 密钥目录"""
        ssh_dir = self.runtime.workspace / self.config.paths.ssh_dir
        if not ssh_dir.exists():
            return StepOutcome.ok("cleanup-ssh-keys", "无 SSH 密钥目录")
        try:
            shutil.rmtree(ssh_dir)
        except OSError as e:
            logger.warning("清理 SSH 密钥失败: %s", e)
            return StepOutcome.warn("cleanup-ssh-keys", str(e))
        logger.info("SSH 密钥已清理")
        return StepOutcome.ok("cleanup-ssh-keys")
