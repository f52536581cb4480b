"""核心数据模型

所有工具调用的配置对象集中定义。每个配置类在构造时校验必填字段，
缺失时抛 ValidationError 并列出全部缺失项，保证在任何子进程调用之前失败。
可选字段的默认值由服务层从全局 Config 填充。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from qapipe.core.exceptions import ValidationError, require_fields

# =========================================================================
# 命名 / 容器描述
# =========================================================================


@dataclass(frozen=True)
class ResourceNames:
    """单次构建的容器名 + 镜像名"""

    container: str
    image: str


@dataclass(frozen=True)
class ContainerRef:
    """容器描述符: 运行和清理都使用同一对 name/image"""

    name: str
    image: str = ""


@dataclass
class ContainerSpec:
    """docker run 的容器配置"""

    name: str
    image: str
    workspace: str = ""
    dir: str = "."
    env_file: str = ""          # 空则取 docker.default_env_file
    tty: bool = True

    def __post_init__(self) -> None:
        require_fields("容器配置", {"name": self.name, "image": self.image})
        if not self.dir:
            self.dir = "."

    @property
    def ref(self) -> ContainerRef:
        return ContainerRef(name=self.name, image=self.image)


@dataclass
class GoTestParams:
    """gotestsum 参数，空字段由 testing 配置补齐"""

    packages: str
    cases: str
    results_xml: str = ""
    results_json: str = ""
    tags: str = ""
    timeout: str = ""

    def __post_init__(self) -> None:
        require_fields("测试参数", {"packages": self.packages, "cases": self.cases})


@dataclass
class TestSpec:
    """容器内执行内容: command 与 params 二选一"""

    __test__ = False

    command: list[str] | None = None
    params: GoTestParams | None = None

    def __post_init__(self) -> None:
        if bool(self.command) == bool(self.params):
            raise ValidationError(
                "测试配置必须且只能指定 command 或 params 其中之一",
                details=["command", "params"],
            )


@dataclass
class RunResult:
    """container.run 返回的已解析配置"""

    container: ContainerSpec
    test: GoTestParams | None
    command: list[str] = field(default_factory=list)


# =========================================================================
# OpenTofu
# =========================================================================


@dataclass
class BackendConfig:
    """S3 backend 初始化参数"""

    dir: str
    bucket: str
    key: str
    region: str
    dynamodb_table: str = ""

    def __post_init__(self) -> None:
        require_fields("backend 配置", {
            "dir": self.dir, "bucket": self.bucket,
            "key": self.key, "region": self.region,
        })


@dataclass
class WorkspaceConfig:
    """tofu workspace 参数"""

    dir: str
    name: str

    def __post_init__(self) -> None:
        require_fields("workspace 配置", {"dir": self.dir, "name": self.name})


@dataclass
class PlanConfig:
    """apply / destroy 参数"""

    dir: str
    var_file: str = ""
    auto_approve: bool = True

    def __post_init__(self) -> None:
        require_fields("apply/destroy 配置", {"dir": self.dir})


@dataclass
class OutputQuery:
    """tofu output 查询，output 为空时返回全部（JSON）"""

    dir: str
    output: str = ""

    def __post_init__(self) -> None:
        require_fields("output 查询", {"dir": self.dir})


# =========================================================================
# Ansible
# =========================================================================


@dataclass
class PlaybookConfig:
    """ansible-playbook 参数（infra-tools 镜像内执行）"""

    dir: str
    inventory: str
    playbook: str
    extra_vars: dict[str, str] = field(default_factory=dict)
    tags: str = ""
    limit: str = ""
    verbose: bool = False

    def __post_init__(self) -> None:
        require_fields("playbook 配置", {
            "dir": self.dir, "inventory": self.inventory, "playbook": self.playbook,
        })


@dataclass
class ContainerPlaybookConfig:
    """指定镜像执行 playbook 的参数"""

    image: str
    dir: str
    inventory: str
    playbook: str
    extra_vars: dict[str, str] = field(default_factory=dict)
    tags: str = ""
    env_vars: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        require_fields("容器 playbook 配置", {
            "image": self.image, "dir": self.dir,
            "inventory": self.inventory, "playbook": self.playbook,
        })


# =========================================================================
# 步骤结果
# =========================================================================


class OutcomeStatus(str, Enum):
    """非致命步骤结果"""
    SUCCESS = "success"
    WARNING = "warning"


@dataclass
class StepOutcome:
    """尽力而为步骤的结果: 失败记为 warning，不中断后续步骤"""

    step: str
    status: str = OutcomeStatus.SUCCESS
    message: str = ""

    @classmethod
    def ok(cls, step: str, message: str = "") -> StepOutcome:
        return cls(step=step, status=OutcomeStatus.SUCCESS, message=message)

    @classmethod
    def warn(cls, step: str, message: str) -> StepOutcome:
        return cls(step=step, status=OutcomeStatus.WARNING, message=message)

    @property
    def success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


# =========================================================================
# 测试结果
# =========================================================================


@dataclass
class TaskResult:
    """单个测试用例的执行结果"""

    name: str
    status: str  # "passed", "failed", "error", "skipped"
    duration: float = 0.0  # 秒
    message: str = ""
    classname: str = ""


@dataclass
class SuiteResult:
    """测试套件执行结果汇总"""

    suite_name: str
    total: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0
    skipped: int = 0
    results: list[TaskResult] = field(default_factory=list)

    @classmethod
    def from_tasks(cls, task_results: list[TaskResult], *, suite_name: str) -> SuiteResult:
        """从 TaskResult 列表构建 SuiteResult，自动统计状态"""
        return cls(
            suite_name=suite_name,
            total=len(task_results),
            passed=sum(1 for r in task_results if r.status == "passed"),
            failed=sum(1 for r in task_results if r.status == "failed"),
            errors=sum(1 for r in task_results if r.status == "error"),
            skipped=sum(1 for r in task_results if r.status == "skipped"),
            results=task_results,
        )

    @property
    def success(self) -> bool:
        return self.failed == 0 and self.errors == 0
