"""airgap 流水线参数校验"""

from __future__ import annotations

import logging
from collections.abc import Iterable, MutableMapping
from typing import Any

from qapipe.core.exceptions import ValidationError
from qapipe.core.naming import validate_name
from qapipe.services.airgap import defaults

logger = logging.getLogger(__name__)

REQUIRED_PARAMETERS = [
    "BUILD_CONTAINER_NAME",
    "IMAGE_NAME",
    "VALIDATION_VOLUME",
    "TF_WORKSPACE",
    "RKE2_VERSION",
    "RANCHER_VERSION",
    "HOSTNAME_PREFIX",
    "S3_BUCKET_NAME",
    "S3_BUCKET_REGION",
]

TIMEOUT_PARAMETERS = ["TERRAFORM_TIMEOUT", "ANSIBLE_TIMEOUT", "VALIDATION_TIMEOUT"]

# docker 资源名需满足命名字符集
RESOURCE_NAME_PARAMETERS = ["BUILD_CONTAINER_NAME", "VALIDATION_VOLUME"]


class ValidationManager:
    """状态表校验"""

    def ensure_required_variables(self, state: MutableMapping[str, Any], keys: Iterable[str]) -> None:
        """必填键缺失或为空时抛 ValidationError，列出全部缺失键"""
        missing = [k for k in keys if state.get(k) in (None, "")]
        if missing:
            raise ValidationError(f"缺少必需的流水线变量: {', '.join(missing)}", details=missing)

    def validate_pipeline_parameters(self, state: MutableMapping[str, Any]) -> None:
        """必填参数、资源名字符集、超时为正整数"""
        self.ensure_required_variables(state, REQUIRED_PARAMETERS)

        errors: list[str] = []
        for key in RESOURCE_NAME_PARAMETERS:
            try:
                validate_name(str(state[key]))
            except ValidationError as e:
                errors.extend(f"{key}: {d}" for d in e.details)
        for key in TIMEOUT_PARAMETERS:
            value = state.get(key)
            if value in (None, ""):
                continue
            try:
                minutes = int(value)
            except (TypeError, ValueError):
                errors.append(f"{key}: 不是整数 ({value})")
                continue
            if minutes <= 0:
                errors.append(f"{key}: 必须大于 0 ({value})")
        if errors:
            raise ValidationError(f"流水线参数校验失败: {'; '.join(errors)}", details=errors)
        logger.info("流水线参数校验通过")

    def validate_sensitive_data_handling(
        self, state: MutableMapping[str, Any], strict: bool = False,
    ) -> list[str]:
        """敏感凭据不允许以明文参数出现在状态中

        strict=True 时直接拒绝；否则告警并从状态中移除，凭据只能经
        运行时凭据接口注入。返回发现的键。
        """
        found = [k for k in defaults.SENSITIVE_KEYS if state.get(k)]
        if not found:
            return []
        if strict:
            raise ValidationError(
                f"敏感数据不能作为流水线参数传入: {', '.join(found)}", details=found,
            )
        for key in found:
            logger.warning("流水线参数中包含敏感数据 %s，已移除", key)
            del state[key]
        return found
