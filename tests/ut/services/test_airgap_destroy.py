"""AirgapDestroyPipeline 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.services.airgap import defaults
from qapipe.services.airgap.destroy import AirgapDestroyPipeline


@pytest.fixture()
def pipeline(services) -> AirgapDestroyPipeline:
    return AirgapDestroyPipeline(services)


class TestDestroyPipeline:
    def test_requires_tf_workspace(self, pipeline, runtime, executor) -> None:
        marker = runtime.workspace / "keep.txt"
        marker.write_text("x", encoding="utf-8")
        with pytest.raises(ValidationError) as exc:
            pipeline.initialize({})
        assert exc.value.details == ["TF_WORKSPACE"]
        assert marker.exists()
        assert executor.calls == []

    def test_destroy_prefixes(self, pipeline) -> None:
        state = pipeline.initialize({"TF_WORKSPACE": "jenkins_airgap_ansible_workspace_7"})
        assert state["BUILD_CONTAINER_NAME"] == "rancher-ansible-airgap-destroy-airgap-job42"
        assert state["IMAGE_NAME"].startswith(defaults.DESTROY_IMAGE_NAME_PREFIX)

    def test_run(self, pipeline, executor, runtime) -> None:
        state = pipeline.run({"TF_WORKSPACE": "jenkins_airgap_ansible_workspace_7"})
        teardown = executor.find("perform_cleanup")
        assert len(teardown) == 1
        assert "perform_cleanup destroy jenkins_airgap_ansible_workspace_7 true" in teardown[0].cmd[-1]
        backend = runtime.workspace / defaults.TOFU_MODULE_DIR / "backend.tf"
        assert 'key    = "jenkins-airgap-rke2"' in backend.read_text(encoding="utf-8")
        assert state.cleanup_completed
        assert f"docker volume rm -f {state['VALIDATION_VOLUME']}" in executor.commands

    def test_cleanup_runs_after_failure(self, pipeline, executor) -> None:
        executor.fail_on("perform_cleanup", returncode=1)
        with pytest.raises(ExecutionError):
            pipeline.run({"TF_WORKSPACE": "ws_7"})
        assert pipeline.state.cleanup_completed
        assert executor.find("docker rm -f")
