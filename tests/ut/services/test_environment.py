"""EnvironmentManager 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ValidationError
from qapipe.services.airgap.state import PipelineState

_VARS = """\
rke2_version: v1.30.2+rke2r1
rancher_version: v2.11.0
hostname: airgap.qa.example
registry: reg.example
"""


class TestEnvironmentManager:
    def test_ansible_variables_override_state(self, services) -> None:
        state = PipelineState({
            "ANSIBLE_VARIABLES": _VARS,
            "RKE2_VERSION": "v1.28.8+rke2r1",
            "RANCHER_VERSION": "v2.10-head",
        })
        variables = services.environment.configure_setup_environment(state)
        assert variables["registry"] == "reg.example"
        assert state["RKE2_VERSION"] == "v1.30.2+rke2r1"
        assert state["RANCHER_VERSION"] == "v2.11.0"
        assert state["RANCHER_HOSTNAME"] == "airgap.qa.example"

    def test_empty_variables(self, services) -> None:
        state = PipelineState({"RKE2_VERSION": "v1"})
        assert services.environment.configure_setup_environment(state) == {}
        assert state["RKE2_VERSION"] == "v1"

    @pytest.mark.parametrize("text", ["a: [1, 2", "- just\n- a list\n"])
    def test_invalid_yaml(self, services, text: str) -> None:
        with pytest.raises(ValidationError, match="ANSIBLE_VARIABLES"):
            services.environment.read_and_validate_ansible_variables(
                PipelineState({"ANSIBLE_VARIABLES": text}),
            )

    def test_skip_validation(self, services) -> None:
        state = PipelineState({"ANSIBLE_VARIABLES": "a: [1", "SKIP_YAML_VALIDATION": "TRUE"})
        assert services.environment.read_and_validate_ansible_variables(state) == {}

    def test_cleanup_ssh_keys(self, services, runtime) -> None:
        (runtime.workspace / ".ssh").mkdir()
        (runtime.workspace / ".ssh" / "k.pem").write_text("k", encoding="utf-8")
        assert services.environment.cleanup_ssh_keys().success
        assert not (runtime.workspace / ".ssh").exists()
        assert services.environment.cleanup_ssh_keys().success
