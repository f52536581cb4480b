"""ServiceContainer 单元测试"""

from __future__ import annotations

from qapipe.core.runtime import LocalRuntime
from qapipe.services.container import ServiceContainer


class TestServiceContainer:
    def test_lazy_loading(self, services) -> None:
        assert len(services._instances) == 0
        _ = services.tofu
        assert "tofu" in services._instances

    def test_shared_instances(self, services) -> None:
        assert services.docker is services.docker

    def test_dependencies_wired(self, services) -> None:
        assert services.result.lifecycle is services.lifecycle
        assert services.infra.docker is services.docker
        assert services.tofu.executor is services.executor
        assert services.project.runtime is services.runtime

    def test_all_services_accessible(self, services) -> None:
        for name in (
            "lifecycle", "docker", "tofu", "ansible", "project", "infrastructure",
            "artifacts", "result", "environment", "validation", "infra",
        ):
            assert getattr(services, name) is not None

    def test_default_config(self, tmp_path) -> None:
        c = ServiceContainer(LocalRuntime(tmp_path))
        assert c.config.docker.platform == "linux/amd64"
