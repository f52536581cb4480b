"""集中配置管理

替代各模块散落的默认常量，提供统一的配置入口。
每个配置项都可以通过环境变量覆盖（便于在 CI 目录/任务/构建级别调整），
也支持从 YAML 文件加载 + 编程式覆盖。

配置分区:
  docker   - 工具镜像、平台、默认 env-file
  testing  - gotestsum 默认参数（tags、timeout、结果文件）
  naming   - 容器/镜像命名约定
  paths    - 常用目录
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from qapipe.core.exceptions import ConfigError
from qapipe.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class DockerConfig:
    """Docker 相关配置"""

    infra_tools_image: str = "rancher-infra-tools:latest"
    platform: str = "linux/amd64"
    default_env_file: str = ".env"


@dataclass
class TestingConfig:
    """gotestsum 默认参数"""

    __test__ = False  # 避免 pytest 误收集

    default_tags: str = "validation"
    default_timeout: str = "60m"
    default_results_xml: str = "results.xml"
    default_results_json: str = "results.json"


@dataclass
class NamingConfig:
    """命名约定"""

    container_suffix: str = "test"
    image_prefix: str = "rancher-validation-"


@dataclass
class PathsConfig:
    """常用目录"""

    default_dir: str = "."
    ssh_dir: str = ".ssh"
    validation_dir: str = "validation"


# (分区, 字段) -> 环境变量名
ENV_OVERRIDES: dict[tuple[str, str], str] = {
    ("docker", "infra_tools_image"): "RANCHER_INFRA_TOOLS_IMAGE",
    ("docker", "platform"): "DOCKER_PLATFORM",
    ("docker", "default_env_file"): "DOCKER_DEFAULT_ENV_FILE",
    ("testing", "default_tags"): "TEST_DEFAULT_TAGS",
    ("testing", "default_timeout"): "TEST_DEFAULT_TIMEOUT",
    ("testing", "default_results_xml"): "TEST_DEFAULT_RESULTS_XML",
    ("testing", "default_results_json"): "TEST_DEFAULT_RESULTS_JSON",
    ("naming", "container_suffix"): "CONTAINER_SUFFIX",
    ("naming", "image_prefix"): "IMAGE_PREFIX",
    ("paths", "default_dir"): "DEFAULT_DIR",
    ("paths", "ssh_dir"): "SSH_DIR",
    ("paths", "validation_dir"): "VALIDATION_DIR",
}

_SECTIONS = {
    "docker": DockerConfig,
    "testing": TestingConfig,
    "naming": NamingConfig,
    "paths": PathsConfig,
}


def deep_merge(target: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """递归合并 source 到 target（原地修改并返回 target）

    两边同键都是映射时递归合并，其余类型由 source 覆盖。
    """
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            target[key] = deep_merge(target[key], value)
        else:
            target[key] = value
    return target


@dataclass
class Config:
    """框架全局配置"""

    docker: DockerConfig = field(default_factory=DockerConfig)
    testing: TestingConfig = field(default_factory=TestingConfig)
    naming: NamingConfig = field(default_factory=NamingConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)

    # 自定义扩展 (放不到分区里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        """从嵌套字典构建，未知分区/字段进入 extra"""
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            section_cls = _SECTIONS.get(key)
            if section_cls is None or not isinstance(value, Mapping):
                extra[key] = value
                continue
            known = {f.name for f in fields(section_cls)}
            kwargs[key] = section_cls(**{
                k: v for k, v in value.items() if k in known
            })
            unknown = {k: v for k, v in value.items() if k not in known}
            if unknown:
                extra[key] = unknown
        cfg = cls(**kwargs)
        cfg.extra = extra
        return cfg

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """每个字段优先取环境变量，否则取默认值"""
        environ = os.environ if environ is None else environ
        data: dict[str, dict[str, Any]] = {}
        for (section, key), var in ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                data.setdefault(section, {})[key] = value
        return cls.from_dict(data)

    @classmethod
    def from_file(
        cls, path: str = "qapipe.yml",
        environ: Mapping[str, str] | None = None,
    ) -> Config:
        """从 YAML 文件加载配置，合并在环境变量默认值之上；文件不存在则只用环境变量"""
        base = cls.from_env(environ)
        data = load_yaml(path)
        if not data:
            return base
        return base.merged(data)

    def merged(self, overrides: Mapping[str, Any]) -> Config:
        """返回深度合并 overrides 后的新配置"""
        return Config.from_dict(deep_merge(self.to_dict(), overrides))

    def validate(self) -> bool:
        """校验必需配置项，缺失时一次性列出全部问题"""
        errors: list[str] = []
        if not self.docker.infra_tools_image:
            errors.append("docker.infra_tools_image 不能为空")
        if not self.docker.platform:
            errors.append("docker.platform 不能为空")
        if not self.testing.default_tags:
            errors.append("testing.default_tags 不能为空")
        if not self.testing.default_timeout:
            errors.append("testing.default_timeout 不能为空")
        if errors:
            raise ConfigError(f"配置校验失败: {', '.join(errors)}", details=errors)
        return True

    def to_dict(self) -> dict:
        data = asdict(self)
        extra = data.pop("extra")
        return deep_merge(data, extra)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则按环境变量构建）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config.from_env()
    return _current


def set_config(cfg: Config | None) -> None:
    """替换全局配置（传 None 表示下次按环境变量重建）"""
    global _current  # noqa: PLW0603
    _current = cfg


def init_config(path: str = "qapipe.yml") -> Config:
    """从文件初始化全局配置并校验"""
    global _current  # noqa: PLW0603
    cfg = Config.from_file(path)
    cfg.validate()
    _current = cfg
    logger.info("配置已加载: %s", path)
    return _current
