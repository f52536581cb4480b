"""airgap 销毁流水线

    initialize -> checkout_repositories -> destroy_infrastructure -> cleanup_resources

TF_WORKSPACE 必须由调用方提供（通常取自部署任务归档的 workspace_name.txt）。
"""

from __future__ import annotations

import logging
from typing import Any

from qapipe.core.exceptions import ValidationError
from qapipe.services.airgap import defaults
from qapipe.services.airgap.base import AirgapPipelineBase
from qapipe.services.airgap.state import PipelineState

logger = logging.getLogger(__name__)

DESTROY_REASON = "destroy"


class AirgapDestroyPipeline(AirgapPipelineBase):
    """airgap 基础设施销毁流水线"""

    name = "airgap destroy"
    container_name_prefix = defaults.DESTROY_CONTAINER_NAME_PREFIX
    image_name_prefix = defaults.DESTROY_IMAGE_NAME_PREFIX

    def initialize(self, ctx: dict[str, Any] | None = None) -> PipelineState:
        ctx = dict(ctx or {})
        if not ctx.get("TF_WORKSPACE"):
            raise ValidationError("销毁流水线需要提供 TF_WORKSPACE", details=["TF_WORKSPACE"])
        logger.info("初始化 airgap 销毁流水线 (workspace=%s)", ctx["TF_WORKSPACE"])
        self.runtime.delete_dir()
        self._state = PipelineState(self.ctx_with_defaults(ctx))
        self.c.validation.validate_sensitive_data_handling(self._state, strict=False)
        self.sync_env_from_context()
        self.log_resources()
        return self._state

    def destroy_infrastructure(self) -> None:
        """写入 backend 配置并在流水线镜像中执行销毁脚本"""
        self.ensure_state()
        self.prepare_container_resources()
        self.c.validation.ensure_required_variables(self.state, [
            "QA_INFRA_WORK_PATH",
            "TF_WORKSPACE",
            "TERRAFORM_BACKEND_CONFIG_FILENAME",
        ])
        self.write_backend_config()
        logger.info("销毁 workspace %s 的基础设施", self.state["TF_WORKSPACE"])
        self.run_cleanup_script(DESTROY_REASON)
        logger.info("基础设施销毁完成")

    def run(self, ctx: dict[str, Any] | None = None) -> PipelineState:
        """initialize -> checkout -> destroy，资源清理在 finally 中执行"""
        self.initialize(ctx)
        try:
            self.checkout_repositories()
            self.destroy_infrastructure()
        finally:
            self.cleanup_resources()
        return self.state
