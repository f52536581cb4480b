"""airgap 流水线公共部分

setup 与 destroy 共享的状态初始化、容器资源准备、清理逻辑。
阶段方法由调用方按固定顺序显式调用；除 initialize() 外的阶段
都先调用 ensure_state()，未初始化时抛 StateError。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from qapipe.core.exceptions import ExecutionError, StateError, ValidationError
from qapipe.core.models import StepOutcome
from qapipe.services.airgap import defaults
from qapipe.services.airgap.state import PipelineState
from qapipe.services.container import ServiceContainer
from qapipe.services.properties import use_with_properties
from qapipe.utils.shell import run_cmd
from qapipe.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

BACKEND_TEMPLATE = """\
terraform {{
  backend "s3" {{
    bucket = "{bucket}"
    key    = "{key}"
    region = "{region}"
  }}
}}
"""


def normalize_boolean(value: Any) -> str:
    """任意值归一为 'true' / 'false'，仅 'true'（忽略大小写）为真"""
    if value is None:
        return "false"
    text = str(value).strip()
    return "true" if text.lower() == "true" else "false"


class AirgapPipelineBase:
    """airgap 流水线基类"""

    name = "airgap"
    container_name_prefix = defaults.CONTAINER_NAME_PREFIX
    image_name_prefix = defaults.IMAGE_NAME_PREFIX

    def __init__(self, services: ServiceContainer) -> None:
        self.c = services
        self._state: PipelineState | None = None

    @property
    def runtime(self):
        return self.c.runtime

    @property
    def state(self) -> PipelineState:
        self.ensure_state()
        return self._state  # type: ignore[return-value]

    def ensure_state(self) -> None:
        if self._state is None:
            raise StateError(f"{self.name} 流水线状态尚未初始化，请先调用 initialize()")

    # ---- 初始化 ----

    def job_suffix(self) -> str:
        """<job 最后一段><build>，用于容器/镜像/卷命名"""
        env = self.runtime.env
        job = env.get("JOB_NAME") or "job"
        if "/" in job:
            job = [s for s in job.split("/") if s][-1] if job.strip("/") else "job"
        return f"{job}{env.get('BUILD_NUMBER') or '0'}"

    def ctx_with_defaults(self, ctx: dict[str, Any] | None) -> dict[str, Any]:
        """调用方参数优先，空值（None / ''）以默认值补齐"""
        ctx = dict(ctx or {})
        suffix = self.job_suffix()
        build = self.runtime.env.get("BUILD_NUMBER") or "0"

        def default(key: str, value: Any) -> None:
            if ctx.get(key) in (None, ""):
                ctx[key] = value

        default("BUILD_CONTAINER_NAME", f"{self.container_name_prefix}-{suffix}")
        default("IMAGE_NAME", f"{self.image_name_prefix}-{suffix}")
        default("VALIDATION_VOLUME", f"{defaults.SHARED_VOLUME_PREFIX}-{suffix}")
        default("ENV_FILE", self.c.config.docker.default_env_file or ".env")
        default("ANSIBLE_VARS_FILENAME", "vars.yaml")
        default("TERRAFORM_VARS_FILENAME", "cluster.tfvars")
        default("TERRAFORM_BACKEND_CONFIG_FILENAME", "backend.tf")
        default("QA_INFRA_WORK_PATH", defaults.QA_INFRA_WORK_PATH)
        default("TF_WORKSPACE", f"jenkins_airgap_ansible_workspace_{build}")

        default("RANCHER_TEST_REPO_URL", defaults.DEFAULT_RANCHER_TEST_REPO)
        default("RANCHER_TEST_REPO_BRANCH", "main")
        default("QA_INFRA_REPO_URL", defaults.DEFAULT_QA_INFRA_REPO)
        default("QA_INFRA_REPO_BRANCH", "main")

        default("S3_BUCKET_NAME", defaults.DEFAULT_S3_BUCKET)
        default("S3_BUCKET_REGION", defaults.DEFAULT_S3_BUCKET_REGION)
        default("S3_KEY_PREFIX", defaults.DEFAULT_S3_KEY_PREFIX)
        default("AWS_REGION", ctx["S3_BUCKET_REGION"])

        default("RKE2_VERSION", defaults.DEFAULT_RKE2_VERSION)
        default("RANCHER_VERSION", defaults.DEFAULT_RANCHER_VERSION)
        default("HOSTNAME_PREFIX", defaults.DEFAULT_HOSTNAME_PREFIX)
        default("RANCHER_HOSTNAME", f"{ctx['HOSTNAME_PREFIX']}.{defaults.RANCHER_HOSTNAME_DOMAIN}")

        default("PRIVATE_REGISTRY_URL", "")
        default("PRIVATE_REGISTRY_USERNAME", "default-user")
        default("PRIVATE_REGISTRY_PASSWORD", "")

        default("TERRAFORM_TIMEOUT", defaults.TERRAFORM_TIMEOUT_MINUTES)
        default("ANSIBLE_TIMEOUT", defaults.ANSIBLE_TIMEOUT_MINUTES)
        default("VALIDATION_TIMEOUT", defaults.VALIDATION_TIMEOUT_MINUTES)

        default("TERRAFORM_CONFIG", "")
        default("ANSIBLE_VARIABLES", "")
        ctx["DESTROY_ON_FAILURE"] = normalize_boolean(ctx.get("DESTROY_ON_FAILURE"))
        if not ctx.get("artifact_patterns"):
            ctx["artifact_patterns"] = list(defaults.DEFAULT_ARTIFACT_PATTERNS)
        return ctx

    def sync_env_from_context(self, keys: list[str] | None = None) -> None:
        """把状态中的指定键以字符串写入运行时环境"""
        for key in keys or defaults.ENV_SYNC_KEYS:
            value = self.state.get(key)
            if value is not None:
                self.runtime.env[key] = str(value)

    def log_resources(self) -> None:
        state = self.state
        logger.info("构建容器: %s", state["BUILD_CONTAINER_NAME"])
        logger.info("Docker 镜像: %s", state["IMAGE_NAME"])
        logger.info("共享卷: %s", state["VALIDATION_VOLUME"])

    def _timeout(self, key: str, fallback: int) -> int | str:
        return self.state.get(key) or fallback

    # ---- 仓库 ----

    def checkout_repositories(self) -> None:
        """浅克隆 tests 与 qa-infra-automation 到工作目录"""
        self.ensure_state()
        state = self.state
        logger.info("检出代码仓")
        project = self.c.project
        project.checkout(
            state["RANCHER_TEST_REPO_URL"], state["RANCHER_TEST_REPO_BRANCH"],
            "tests", clean=False, depth=1,
        )
        project.checkout(
            state["QA_INFRA_REPO_URL"], state["QA_INFRA_REPO_BRANCH"],
            "qa-infra-automation", clean=False, depth=1,
        )
        project.describe("qa-infra-automation")

    # ---- 容器资源 ----

    def prepare_container_resources(self) -> None:
        """构建镜像、创建共享卷、放置 SSH 密钥；每次构建只执行一次"""
        self.ensure_state()
        state = self.state
        if state.container_prepared:
            return
        logger.info("准备容器资源")
        docker = self.c.docker
        docker.build_image(state["IMAGE_NAME"])
        docker.create_shared_volume(state["VALIDATION_VOLUME"])
        with use_with_properties(self.runtime, defaults.CREDENTIAL_IDS) as env:
            docker.stage_ssh_keys(state["VALIDATION_VOLUME"], env)
        state.container_prepared = True
        logger.info("容器资源已就绪")

    def write_backend_config(self) -> str:
        """在 tofu 模块目录写入 S3 backend 配置，返回相对路径"""
        state = self.state
        for key in ("S3_BUCKET_NAME", "S3_BUCKET_REGION", "S3_KEY_PREFIX"):
            if not state.get(key):
                raise ValidationError(f"生成 Terraform 配置需要 {key}", details=[key])
        rel = f"{defaults.TOFU_MODULE_DIR}/{state['TERRAFORM_BACKEND_CONFIG_FILENAME']}"
        atomic_write(
            self.runtime.workspace / rel,
            BACKEND_TEMPLATE.format(
                bucket=state["S3_BUCKET_NAME"],
                key=state["S3_KEY_PREFIX"],
                region=state["S3_BUCKET_REGION"],
            ),
        )
        logger.info("Terraform backend 配置已写入 %s", rel)
        return rel

    def run_cleanup_script(self, reason: str) -> None:
        self.c.infra.run_cleanup(
            self.state, reason,
            timeout=self._timeout("TERRAFORM_TIMEOUT", defaults.TERRAFORM_TIMEOUT_MINUTES),
        )

    # ---- 产物 ----

    def extract_artifacts_from_volume(self) -> None:
        self.c.artifacts.extract_from_volume(self.state["VALIDATION_VOLUME"])

    def archive_artifacts(self, patterns: list[str] | None = None) -> list[str]:
        self.ensure_state()
        patterns = patterns or self.state.get("artifact_patterns") or defaults.DEFAULT_ARTIFACT_PATTERNS
        return self.c.artifacts.archive_artifacts(list(patterns))

    # ---- 清理 ----

    @staticmethod
    def _best_effort(step: str, fn: Callable[[], object]) -> StepOutcome:
        """执行非致命步骤，异常记为 warning"""
        try:
            fn()
        except Exception as e:
            logger.warning("步骤 [%s] 失败: %s", step, e)
            return StepOutcome.warn(step, str(e))
        return StepOutcome.ok(step)

    def shred_env_file(self) -> StepOutcome:
        """安全删除 env 文件；shred 不可用时退回普通删除"""
        env_file = self.state.text("ENV_FILE")
        path = self.runtime.workspace / env_file if env_file else None
        if path is None or not path.is_file():
            return StepOutcome.ok("shred-env-file", "env 文件不存在")
        try:
            run_cmd(
                ["shred", "-vfzu", "-n", "3", str(path)],
                cwd=str(self.runtime.workspace), label="shred", executor=self.c.executor,
            )
        except ExecutionError as e:
            logger.warning("shred 失败，改为直接删除: %s", e)
            try:
                path.unlink(missing_ok=True)
            except OSError as err:
                logger.warning("删除 env 文件失败: %s", err)
                return StepOutcome.warn("shred-env-file", str(err))
        logger.info("env 文件已安全删除")
        return StepOutcome.ok("shred-env-file")

    def cleanup_resources(self) -> list[StepOutcome]:
        """提取并归档产物、删除容器/镜像/卷、清理 SSH 密钥、删除 env 文件

        cleanup_completed 置位后再次调用直接返回空列表。
        """
        self.ensure_state()
        state = self.state
        if state.cleanup_completed:
            logger.info("资源已清理，跳过")
            return []

        outcomes = [
            self._best_effort("extract-artifacts", self.extract_artifacts_from_volume),
            self._best_effort("archive-artifacts", self.archive_artifacts),
        ]
        try:
            outcomes.extend(self.c.docker.cleanup_resources(
                state.text("IMAGE_NAME"), state.text("VALIDATION_VOLUME"),
                state.text("BUILD_CONTAINER_NAME"),
            ))
        except Exception as e:
            logger.warning("删除 Docker 资源失败: %s", e)
            outcomes.append(StepOutcome.warn("remove-docker-resources", str(e)))
        outcomes.append(self.c.environment.cleanup_ssh_keys())
        outcomes.append(self.shred_env_file())

        state.cleanup_completed = True
        warnings = [o for o in outcomes if not o.success]
        logger.info("资源清理完成 (%d 项告警)", len(warnings))
        return outcomes
