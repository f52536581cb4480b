"""airgap 部署流水线

阶段（调用方按顺序显式调用）:

    initialize -> checkout_repositories -> configure_environment
    -> prepare_infrastructure -> deploy_infrastructure
    -> prepare_ansible_environment -> deploy_rke2 -> deploy_rancher
    -> cleanup_resources

任一阶段失败后由调用方决定是否调用 handle_failure_cleanup(failure_type)：
尽力提取产物、归档该失败类型对应的产物、DESTROY_ON_FAILURE 为 true 时
执行销毁脚本，最后无条件清理资源。每个子步骤独立捕获异常。

示例:
    pipeline = AirgapSetupPipeline(ServiceContainer(LocalRuntime(ws)))
    pipeline.initialize({"TERRAFORM_CONFIG": tfvars, "ANSIBLE_VARIABLES": vars_yaml})
    try:
        pipeline.checkout_repositories()
        ...
    except Exception:
        pipeline.handle_failure_cleanup("deployment")
        raise
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.models import StepOutcome
from qapipe.services.airgap import defaults
from qapipe.services.airgap.base import AirgapPipelineBase
from qapipe.services.airgap.state import PipelineState
from qapipe.utils.shell import TIMEOUT_KILLED_RC
from qapipe.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

SUMMARY_PATH = "artifacts/deployment-summary.json"

# tfvars 中允许替换的占位符
TFVARS_PLACEHOLDERS = ["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "HOSTNAME_PREFIX"]


def failure_artifact_patterns(failure_type: str) -> list[str]:
    """失败类型对应的归档 glob，未知类型用默认集合"""
    return list(defaults.FAILURE_ARTIFACT_PATTERNS.get(
        failure_type, defaults.DEFAULT_ARTIFACT_PATTERNS,
    ))


def reason_for_failure(failure_type: str) -> str:
    return defaults.FAILURE_REASONS.get(failure_type, failure_type or "deployment_failure")


class AirgapSetupPipeline(AirgapPipelineBase):
    """airgap RKE2 + Rancher 部署流水线"""

    name = "airgap setup"

    def initialize(self, ctx: dict[str, Any] | None = None) -> PipelineState:
        """清空工作目录，合并默认值，解析 ANSIBLE_VARIABLES，同步环境变量"""
        logger.info("初始化 airgap 部署流水线")
        self.runtime.delete_dir()
        self._state = PipelineState(self.ctx_with_defaults(ctx))
        self.c.environment.configure_setup_environment(self._state)
        self.c.validation.validate_sensitive_data_handling(self._state, strict=False)
        self.sync_env_from_context()
        self._state.container_prepared = False
        self.log_resources()
        return self._state

    def configure_environment(self) -> None:
        self.ensure_state()
        self.c.validation.validate_pipeline_parameters(self.state)
        self.c.validation.validate_sensitive_data_handling(self.state, strict=False)

    def prepare_infrastructure(self) -> None:
        self.ensure_state()
        self.prepare_container_resources()
        self.c.validation.validate_pipeline_parameters(self.state)
        self.c.validation.validate_sensitive_data_handling(self.state, strict=False)

    # ---- 部署 ----

    def deploy_infrastructure(self) -> None:
        """写入 tfvars 与 backend，执行 tofu 部署脚本，提取产物并生成摘要"""
        self.ensure_state()
        self.prepare_container_resources()
        self.c.validation.ensure_required_variables(self.state, [
            "QA_INFRA_WORK_PATH",
            "TF_WORKSPACE",
            "TERRAFORM_VARS_FILENAME",
            "TERRAFORM_BACKEND_CONFIG_FILENAME",
        ])
        self.generate_tofu_configuration()
        self.c.infra.deploy_infrastructure(
            self.state,
            timeout=self._timeout("TERRAFORM_TIMEOUT", defaults.TERRAFORM_TIMEOUT_MINUTES),
            extra_env=self.make_infrastructure_env(),
        )
        self.extract_artifacts_from_volume()
        self.generate_deployment_summary()

    def prepare_ansible_environment(self) -> None:
        self.ensure_state()
        self.prepare_container_resources()
        self.c.validation.ensure_required_variables(self.state, ["QA_INFRA_WORK_PATH", "ANSIBLE_VARS_FILENAME"])
        self.c.infra.prepare_ansible(
            self.state,
            timeout=self._timeout("ANSIBLE_TIMEOUT", defaults.ANSIBLE_TIMEOUT_MINUTES),
            extra_env=self.make_ansible_env(),
        )

    def deploy_rke2(self) -> None:
        self.ensure_state()
        self.prepare_container_resources()
        self.c.validation.ensure_required_variables(self.state, ["QA_INFRA_WORK_PATH", "ANSIBLE_VARS_FILENAME"])
        self.c.infra.deploy_rke2(
            self.state,
            timeout=self._timeout("ANSIBLE_TIMEOUT", defaults.ANSIBLE_TIMEOUT_MINUTES),
            extra_env=self.make_rke2_env(),
        )

    def deploy_rancher(self) -> None:
        self.ensure_state()
        self.prepare_container_resources()
        self.c.validation.ensure_required_variables(self.state, ["QA_INFRA_WORK_PATH", "ANSIBLE_VARS_FILENAME"])
        self.c.infra.deploy_rancher(
            self.state,
            timeout=self._timeout("ANSIBLE_TIMEOUT", defaults.ANSIBLE_TIMEOUT_MINUTES),
            extra_env=self.make_rancher_env(),
        )

    # ---- 完整流程 ----

    def run(self, ctx: dict[str, Any] | None = None) -> PipelineState:
        """按固定顺序执行全部阶段

        阶段失败时按阶段对应的失败类型执行 handle_failure_cleanup 后重新抛出；
        超时退出（137）按 timeout 处理。成功后归档 workspace 名并清理资源。
        """
        self.initialize(ctx)
        stages = [
            ("deployment", self.checkout_repositories),
            ("deployment", self.configure_environment),
            ("deployment", self.prepare_infrastructure),
            ("deployment", self.deploy_infrastructure),
            ("ansible_prep", self.prepare_ansible_environment),
            ("rke2", self.deploy_rke2),
            ("rancher", self.deploy_rancher),
        ]
        for failure_type, stage in stages:
            try:
                stage()
            except Exception as e:
                if isinstance(e, ExecutionError) and e.returncode == TIMEOUT_KILLED_RC:
                    failure_type = "timeout"
                self.handle_failure_cleanup(failure_type)
                raise

        self.c.infrastructure.archive_workspace_name(self.state["TF_WORKSPACE"])
        self.cleanup_resources()
        logger.info("airgap 部署完成: %s", self.state["RANCHER_HOSTNAME"])
        return self.state

    # ---- 失败处理 ----

    def destroy_on_failure_enabled(self) -> bool:
        return self.state.text("DESTROY_ON_FAILURE", "false").strip().lower() == "true"

    def archive_failure_artifacts(self, failure_type: str) -> list[str]:
        self.ensure_state()
        return self.c.artifacts.archive_artifacts(failure_artifact_patterns(failure_type))

    def safe_extract_artifacts(self) -> StepOutcome:
        try:
            self.extract_artifacts_from_volume()
            self.generate_deployment_summary()
        except Exception as e:
            logger.warning("失败清理期间提取产物失败: %s", e)
            return StepOutcome.warn("extract-artifacts", str(e))
        return StepOutcome.ok("extract-artifacts")

    def handle_failure_cleanup(self, failure_type: str) -> list[StepOutcome]:
        """失败后的恢复路径，返回各子步骤结果；本身不抛出阶段异常"""
        self.ensure_state()
        logger.error("检测到 %s 失败，开始清理", failure_type)

        outcomes: list[StepOutcome] = []
        try:
            outcomes.append(self.safe_extract_artifacts())
            outcomes.append(self._best_effort(
                "archive-failure-artifacts",
                lambda: self.archive_failure_artifacts(failure_type),
            ))
            if self.destroy_on_failure_enabled():
                logger.info("DESTROY_ON_FAILURE 为 true，执行销毁脚本")
                reason = reason_for_failure(failure_type)
                outcomes.append(self._best_effort(
                    f"teardown:{reason}", lambda: self.run_cleanup_script(reason),
                ))
            else:
                logger.warning("DESTROY_ON_FAILURE 为 false，可能需要手动清理基础设施")
        finally:
            outcomes.extend(self.cleanup_resources())
        return outcomes

    # ---- 阶段环境变量 ----

    def _stage_env(self, values: dict[str, Any]) -> dict[str, str]:
        return {k: str(v) for k, v in values.items() if v is not None}

    def make_infrastructure_env(self) -> dict[str, str]:
        state = self.state
        return self._stage_env({
            "RKE2_VERSION": state.get("RKE2_VERSION"),
            "RANCHER_VERSION": state.get("RANCHER_VERSION"),
            "HOSTNAME_PREFIX": state.get("HOSTNAME_PREFIX"),
            "RANCHER_HOSTNAME": state.get("RANCHER_HOSTNAME"),
            "PRIVATE_REGISTRY_URL": state.get("PRIVATE_REGISTRY_URL"),
            "PRIVATE_REGISTRY_USERNAME": state.get("PRIVATE_REGISTRY_USERNAME"),
            "PRIVATE_REGISTRY_PASSWORD": state.get("PRIVATE_REGISTRY_PASSWORD"),
            "UPLOAD_CONFIG_TO_S3": "true",
            "S3_BUCKET_NAME": state.get("S3_BUCKET_NAME"),
            "S3_BUCKET_REGION": state.get("S3_BUCKET_REGION"),
            "S3_KEY_PREFIX": state.get("S3_KEY_PREFIX"),
            "AWS_REGION": state.get("AWS_REGION"),
            "AWS_SSH_KEY_NAME": self.runtime.env.get("AWS_SSH_KEY_NAME"),
            "ANSIBLE_VARIABLES": state.get("ANSIBLE_VARIABLES"),
        })

    def make_ansible_env(self) -> dict[str, str]:
        state = self.state
        return self._stage_env({
            "ANSIBLE_VARIABLES": state.get("ANSIBLE_VARIABLES"),
            "RKE2_VERSION": state.get("RKE2_VERSION"),
            "RANCHER_VERSION": state.get("RANCHER_VERSION"),
            "HOSTNAME_PREFIX": state.get("HOSTNAME_PREFIX"),
            "RANCHER_HOSTNAME": state.get("RANCHER_HOSTNAME"),
            "PRIVATE_REGISTRY_URL": state.get("PRIVATE_REGISTRY_URL"),
            "PRIVATE_REGISTRY_USERNAME": state.get("PRIVATE_REGISTRY_USERNAME"),
            "PRIVATE_REGISTRY_PASSWORD": state.get("PRIVATE_REGISTRY_PASSWORD"),
            "SKIP_YAML_VALIDATION": state.get("SKIP_YAML_VALIDATION") or "false",
            "AWS_SSH_KEY_NAME": self.runtime.env.get("AWS_SSH_KEY_NAME"),
        })

    def make_rke2_env(self) -> dict[str, str]:
        return self._stage_env({
            "RKE2_VERSION": self.state.get("RKE2_VERSION"),
            "SKIP_VALIDATION": "false",
            "AWS_SSH_KEY_NAME": self.runtime.env.get("AWS_SSH_KEY_NAME"),
        })

    def make_rancher_env(self) -> dict[str, str]:
        state = self.state
        return self._stage_env({
            "RANCHER_VERSION": state.get("RANCHER_VERSION"),
            "HOSTNAME_PREFIX": state.get("HOSTNAME_PREFIX"),
            "RANCHER_HOSTNAME": state.get("RANCHER_HOSTNAME"),
            "SKIP_VERIFICATION": "false",
        })

    # ---- 配置文件 ----

    def generate_tofu_configuration(self) -> str:
        """把 TERRAFORM_CONFIG 替换占位符后写为 tfvars，并写 backend 配置"""
        state = self.state
        logger.info("生成 Terraform 配置")
        config_text = state.text("TERRAFORM_CONFIG")
        if not config_text.strip():
            raise ValidationError("部署需要 TERRAFORM_CONFIG 参数", details=["TERRAFORM_CONFIG"])
        backend = self.write_backend_config()

        env = self.runtime.env
        substitutions = {
            "AWS_ACCESS_KEY_ID": env.get("AWS_ACCESS_KEY_ID", ""),
            "AWS_SECRET_ACCESS_KEY": env.get("AWS_SECRET_ACCESS_KEY", ""),
            "HOSTNAME_PREFIX": state.text("HOSTNAME_PREFIX"),
        }
        rendered = config_text
        for key in TFVARS_PLACEHOLDERS:
            rendered = rendered.replace("${" + key + "}", substitutions[key])

        rel = f"{defaults.TOFU_MODULE_DIR}/{state['TERRAFORM_VARS_FILENAME']}"
        atomic_write(self.runtime.workspace / rel, rendered, mode=0o600)
        logger.info("Terraform 变量已写入 %s", rel)
        return backend

    def deployment_summary(self, now: datetime | None = None) -> dict[str, dict[str, Any]]:
        state = self.state
        env = self.runtime.env
        return {
            "deployment_info": {
                "timestamp": (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
                "build_number": env.get("BUILD_NUMBER"),
                "job_name": env.get("JOB_NAME"),
                "workspace": state.get("TF_WORKSPACE"),
                "rke2_version": state.get("RKE2_VERSION"),
                "rancher_version": state.get("RANCHER_VERSION"),
                "rancher_hostname": state.get("RANCHER_HOSTNAME"),
            },
            "infrastructure": {
                "terraform_vars_file": state.get("TERRAFORM_VARS_FILENAME"),
                "s3_bucket": state.get("S3_BUCKET_NAME"),
                "s3_bucket_region": state.get("S3_BUCKET_REGION"),
                "hostname_prefix": state.get("HOSTNAME_PREFIX"),
            },
        }

    def generate_deployment_summary(self) -> StepOutcome:
        """写 artifacts/deployment-summary.json，失败只告警"""
        try:
            atomic_write(
                self.runtime.workspace / SUMMARY_PATH,
                json.dumps(self.deployment_summary(), indent=4, ensure_ascii=False),
            )
        except OSError as e:
            logger.warning("生成部署摘要失败: %s", e)
            return StepOutcome.warn("deployment-summary", str(e))
        return StepOutcome.ok("deployment-summary")

