"""ValidationManager 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ValidationError
from qapipe.services.airgap.state import PipelineState
from qapipe.services.airgap.validation import REQUIRED_PARAMETERS, ValidationManager


@pytest.fixture()
def vm() -> ValidationManager:
    return ValidationManager()


def _valid_state(**overrides) -> PipelineState:
    values = {k: "value" for k in REQUIRED_PARAMETERS}
    values.update(BUILD_CONTAINER_NAME="airgap-job42", VALIDATION_VOLUME="validation-volume-job42")
    values.update(overrides)
    return PipelineState(values)


class TestRequired:
    def test_lists_every_missing_key(self, vm) -> None:
        state = PipelineState({"A": "1", "B": "", "C": None})
        with pytest.raises(ValidationError) as exc:
            vm.ensure_required_variables(state, ["A", "B", "C", "D"])
        assert exc.value.details == ["B", "C", "D"]

    def test_all_present(self, vm) -> None:
        vm.ensure_required_variables(PipelineState({"A": "1"}), ["A"])


class TestPipelineParameters:
    def test_valid(self, vm) -> None:
        vm.validate_pipeline_parameters(_valid_state(TERRAFORM_TIMEOUT="30"))

    def test_bad_names_and_timeouts(self, vm) -> None:
        state = _valid_state(
            BUILD_CONTAINER_NAME="bad name", TERRAFORM_TIMEOUT="0", ANSIBLE_TIMEOUT="abc",
        )
        with pytest.raises(ValidationError) as exc:
            vm.validate_pipeline_parameters(state)
        details = exc.value.details
        assert len(details) == 3
        assert details[0].startswith("BUILD_CONTAINER_NAME")

    def test_missing_required_first(self, vm) -> None:
        with pytest.raises(ValidationError) as exc:
            vm.validate_pipeline_parameters(PipelineState())
        assert exc.value.details == REQUIRED_PARAMETERS


class TestSensitiveData:
    def test_strict_rejects(self, vm) -> None:
        state = PipelineState({"AWS_SECRET_ACCESS_KEY": "s"})
        with pytest.raises(ValidationError, match="AWS_SECRET_ACCESS_KEY"):
            vm.validate_sensitive_data_handling(state, strict=True)
        assert "AWS_SECRET_ACCESS_KEY" in state

    def test_lenient_removes(self, vm) -> None:
        state = PipelineState({"AWS_ACCESS_KEY_ID": "a", "AWS_SSH_PEM_KEY": "k", "OTHER": "x"})
        assert vm.validate_sensitive_data_handling(state) == ["AWS_ACCESS_KEY_ID", "AWS_SSH_PEM_KEY"]
        assert list(state) == ["OTHER"]

    def test_clean_state(self, vm) -> None:
        assert vm.validate_sensitive_data_handling(PipelineState({"X": "1"})) == []


def test_state_flags_in_dict() -> None:
    state = PipelineState({"A": 1})
    state.container_prepared = True
    assert state.to_dict() == {"A": 1, "CONTAINER_PREPARED": True, "CLEANUP_COMPLETED": False}
    assert state.text("A") == "1"
    assert state.text("MISSING", "d") == "d"
