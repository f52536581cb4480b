"""服务容器: 按构建运行时统一装配服务

同一容器内的服务共享 BuildRuntime / Config / CommandExecutor，
CLI 与 airgap 流水线都通过容器获取服务，而非直接构造。

依赖关系（→ 表示依赖）:
  result → lifecycle
  infra  → docker

用法:
    container = ServiceContainer(LocalRuntime("/tmp/ws"))
    container.tofu.init_backend(...)     # 懒加载

    # 测试时注入记录型执行器
    container = ServiceContainer(runtime, executor=FakeExecutor())
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qapipe.core.config import Config
    from qapipe.core.runtime import BuildRuntime
    from qapipe.services.airgap.environment import EnvironmentManager
    from qapipe.services.airgap.infra import InfrastructureManager
    from qapipe.services.airgap.validation import ValidationManager
    from qapipe.services.ansible import AnsibleService
    from qapipe.services.artifacts import ArtifactManager
    from qapipe.services.docker.lifecycle import ContainerLifecycle
    from qapipe.services.docker.manager import DockerManager
    from qapipe.services.infrastructure import InfrastructureHelper
    from qapipe.services.project import ProjectService
    from qapipe.services.result import ResultReporter
    from qapipe.services.tofu import TofuService
    from qapipe.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(
        self,
        runtime: BuildRuntime,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from qapipe.core.config import get_config
            config = get_config()
        self._config = config
        self.runtime = runtime
        self.executor = executor

    @property
    def config(self) -> Config:
        return self._config

    # ---- 工具调用 ----

    @property
    def lifecycle(self) -> ContainerLifecycle:
        if "lifecycle" not in self._instances:
            from qapipe.services.docker.lifecycle import ContainerLifecycle
            self._instances["lifecycle"] = ContainerLifecycle(
                self.runtime, self._config, self.executor,
            )
        return self._instances["lifecycle"]  # type: ignore[return-value]

    @property
    def docker(self) -> DockerManager:
        if "docker" not in self._instances:
            from qapipe.services.docker.manager import DockerManager
            self._instances["docker"] = DockerManager(
                self.runtime, self._config, self.executor,
            )
        return self._instances["docker"]  # type: ignore[return-value]

    @property
    def tofu(self) -> TofuService:
        if "tofu" not in self._instances:
            from qapipe.services.tofu import TofuService
            self._instances["tofu"] = TofuService(self.runtime, self._config, self.executor)
        return self._instances["tofu"]  # type: ignore[return-value]

    @property
    def ansible(self) -> AnsibleService:
        if "ansible" not in self._instances:
            from qapipe.services.ansible import AnsibleService
            self._instances["ansible"] = AnsibleService(self.runtime, self._config, self.executor)
        return self._instances["ansible"]  # type: ignore[return-value]

    @property
    def project(self) -> ProjectService:
        if "project" not in self._instances:
            from qapipe.services.project import ProjectService
            self._instances["project"] = ProjectService(self.runtime, self.executor)
        return self._instances["project"]  # type: ignore[return-value]

    @property
    def infrastructure(self) -> InfrastructureHelper:
        if "infrastructure" not in self._instances:
            from qapipe.services.infrastructure import InfrastructureHelper
            self._instances["infrastructure"] = InfrastructureHelper(self.runtime, self.executor)
        return self._instances["infrastructure"]  # type: ignore[return-value]

    # ---- 产物 / 结果 ----

    @property
    def artifacts(self) -> ArtifactManager:
        if "artifacts" not in self._instances:
            from qapipe.services.artifacts import ArtifactManager
            self._instances["artifacts"] = ArtifactManager(self.runtime, self.executor)
        return self._instances["artifacts"]  # type: ignore[return-value]

    @property
    def result(self) -> ResultReporter:
        if "result" not in self._instances:
            from qapipe.services.result import ResultReporter
            self._instances["result"] = ResultReporter(
                self.runtime, self._config, self.executor, lifecycle=self.lifecycle,
            )
        return self._instances["result"]  # type: ignore[return-value]

    # ---- airgap 管理器 ----

    @property
    def environment(self) -> EnvironmentManager:
        if "environment" not in self._instances:
            from qapipe.services.airgap.environment import EnvironmentManager
            self._instances["environment"] = EnvironmentManager(self.runtime, self._config)
        return self._instances["environment"]  # type: ignore[return-value]

    @property
    def validation(self) -> ValidationManager:
        if "validation" not in self._instances:
            from qapipe.services.airgap.validation import ValidationManager
            self._instances["validation"] = ValidationManager()
        return self._instances["validation"]  # type: ignore[return-value]

    @property
    def infra(self) -> InfrastructureManager:
        if "infra" not in self._instances:
            from qapipe.services.airgap.infra import InfrastructureManager
            self._instances["infra"] = InfrastructureManager(self.docker)
        return self._instances["infra"]  # type: ignore[return-value]
