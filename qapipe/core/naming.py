"""资源命名约定

容器、镜像、工作空间、SSH 密钥、报告文件、env 文件的名称都由
JOB_NAME 与 BUILD_NUMBER 推导，保证每次构建唯一且可追溯到来源任务。
全部为纯字符串变换，无副作用。
"""

from __future__ import annotations

import re
from datetime import datetime

from qapipe.core.config import Config, get_config
from qapipe.core.exceptions import ValidationError
from qapipe.core.models import ResourceNames

_INVALID_CHARS_RE = re.compile(r"[^a-zA-Z0-9._-]")
_TIMESTAMP_FMT = "%Y%m%d%H%M%S"


def _short_job_name(job_name: str | None, default: str = "unknown") -> str:
    """folder/job 形式只取最后一段"""
    name = job_name or default
    if "/" in name:
        name = [s for s in name.split("/") if s][-1] if name.strip("/") else default
    return name


def generate_names(
    job_name: str | None,
    build_number: str | int | None,
    *,
    suffix: str = "",
    prefix: str = "",
    config: Config | None = None,
) -> ResourceNames:
    """生成本次构建的容器名和镜像名

    容器名: <job><build>_<suffix>
    镜像名: <prefix><job><build>

    示例:
        >>> generate_names("folder/my-job", 42, suffix="airgap").container
        'my-job42_airgap'
    """
    naming = (config or get_config()).naming
    suffix = suffix or naming.container_suffix
    prefix = prefix or naming.image_prefix
    job = _short_job_name(job_name)
    build = str(build_number) if build_number not in (None, "") else "0"
    return ResourceNames(
        container=f"{job}{build}_{suffix}",
        image=f"{prefix}{job}{build}",
    )


def generate_workspace_name(
    build_number: str | int | None,
    *,
    prefix: str = "jenkins_workspace",
    suffix: str = "",
    include_timestamp: bool = True,
    now: datetime | None = None,
) -> str:
    """生成 Terraform/OpenTofu workspace 名

    形式: <prefix>_<build>[_<suffix>][_<yyyyMMddHHmmss>]，suffix 以 '-' 清洗。
    """
    build = str(build_number) if build_number not in (None, "") else "unknown"
    name = f"{prefix or 'jenkins_workspace'}_{build}"
    if suffix:
        cleaned = _sanitize(str(suffix), "-")
        if cleaned:
            name += f"_{cleaned}"
    if include_timestamp:
        name += "_" + (now or datetime.now()).strftime(_TIMESTAMP_FMT)
    return name


def generate_multiple_names(
    job_name: str | None,
    build_number: str | int | None,
    *,
    count: int = 1,
    max_count: int = 10,
    suffix: str = "test",
    prefix: str = "rancher-validation-",
) -> list[ResourceNames]:
    """批量生成带序号的容器/镜像名，数量上限为 max_count"""
    count = min(count, max_count)
    job = _short_job_name(job_name)
    build = str(build_number) if build_number not in (None, "") else "0"
    return [
        ResourceNames(
            container=f"{job}-{build}-{suffix}-{i}",
            image=f"{prefix}{job}-{build}-{i}",
        )
        for i in range(1, count + 1)
    ]


def generate_ssh_key_names(key_type: str = "pem", key_name: str = "id_rsa") -> dict[str, str]:
    """SSH 私钥/公钥文件名"""
    key_type = key_type or "pem"
    key_name = key_name or "id_rsa"
    return {"private_key": f"{key_name}.{key_type}", "public_key": f"{key_name}.pub"}


def generate_report_names(report_type: str = "results", suffix: str = "") -> dict[str, str]:
    """测试报告文件名（xml + json）"""
    base = f"{report_type or 'results'}{suffix}"
    return {"xml": f"{base}.xml", "json": f"{base}.json"}


def generate_env_file_name(
    env_name: str = "env", suffix: str = "", config: Config | None = None,
) -> str:
    """env-file 文件名；无 suffix 时返回 docker.default_env_file"""
    if suffix:
        return f"{env_name or 'env'}{suffix}.env"
    return (config or get_config()).docker.default_env_file or ".env"


def _sanitize(name: str, replacement: str) -> str:
    sanitized = _INVALID_CHARS_RE.sub(replacement, name)
    if replacement:
        rep = re.escape(replacement)
        sanitized = re.sub(f"(?:{rep})+", replacement, sanitized)
        sanitized = re.sub(f"^(?:{rep})+|(?:{rep})+$", "", sanitized)
    return sanitized


def sanitize_name(name: str, replacement: str = "_") -> str:
    """清洗任意字符串为标识符安全名称

    非 [a-zA-Z0-9._-] 字符替换为 replacement，合并连续替换符，
    去掉首尾替换符；结果为空时返回 'resource'。

    示例:
        >>> sanitize_name("my job/name#1", replacement="-")
        'my-job-name-1'
    """
    if not name:
        raise ValidationError("sanitize_name 需要提供 name", details=["name"])
    # 替换符本身必须合法，否则结果会违反字符集约束
    replacement = _INVALID_CHARS_RE.sub("", replacement or "_") or "_"
    return _sanitize(name, replacement) or "resource"


def validate_name(name: str, *, max_length: int = 255, min_length: int = 1) -> bool:
    """校验名称长度与字符集，违规时列出全部问题"""
    if not name:
        raise ValidationError("validate_name 需要提供 name", details=["name"])
    errors: list[str] = []
    if len(name) < min_length:
        errors.append(f"名称长度至少 {min_length} 个字符")
    if len(name) > max_length:
        errors.append(f"名称长度不能超过 {max_length} 个字符")
    if _INVALID_CHARS_RE.search(name):
        errors.append("名称包含非法字符，只允许字母、数字、点、连字符和下划线")
    if errors:
        raise ValidationError(f"名称校验失败: {', '.join(errors)}", details=errors)
    return True
