"""TofuService 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.models import BackendConfig, OutputQuery, PlanConfig, WorkspaceConfig


def _tofu_args(call) -> list[str]:
    cmd = call.cmd
    return cmd[cmd.index("tofu"):]


class TestTofuService:
    def test_runs_in_tools_image(self, services, executor, runtime) -> None:
        services.tofu.select_workspace(WorkspaceConfig(dir="infra", name="ws1"))
        cmd = executor.calls[0].cmd
        assert cmd[:5] == ["docker", "run", "--rm", "--platform", "linux/amd64"]
        assert f"{runtime.workspace}:/workspace" in cmd
        assert "rancher-infra-tools:latest" in cmd
        assert ["-e", "AWS_ACCESS_KEY_ID"] == cmd[5:7]

    def test_init_backend_args(self, services, executor) -> None:
        services.tofu.init_backend(BackendConfig(dir="infra", bucket="b", key="k", region="r"))
        assert _tofu_args(executor.calls[0]) == [
            "tofu", "-chdir=infra", "init",
            "-backend-config=bucket=b", "-backend-config=key=k", "-backend-config=region=r",
        ]

    def test_init_backend_dynamodb(self, services, executor) -> None:
        services.tofu.init_backend(BackendConfig(
            dir="infra", bucket="b", key="k", region="r", dynamodb_table="locks",
        ))
        assert _tofu_args(executor.calls[0])[-1] == "-backend-config=dynamodb_table=locks"

    def test_missing_backend_fields_fail_fast(self, executor) -> None:
        with pytest.raises(ValidationError) as exc:
            BackendConfig(dir="", bucket="b", key="", region="r")
        assert exc.value.details == ["dir", "key"]
        assert executor.calls == []

    def test_create_workspace_returns_name(self, services, executor) -> None:
        assert services.tofu.create_workspace(WorkspaceConfig(dir="infra", name="ws1")) == "ws1"
        assert _tofu_args(executor.calls[0])[2:] == ["workspace", "new", "ws1"]

    def test_apply_and_destroy(self, services, executor) -> None:
        services.tofu.apply(PlanConfig(dir="infra", var_file="cluster.tfvars"))
        services.tofu.destroy(PlanConfig(dir="infra", auto_approve=False))
        assert _tofu_args(executor.calls[0])[2:] == ["apply", "-var-file=cluster.tfvars", "-auto-approve"]
        assert _tofu_args(executor.calls[1])[2:] == ["destroy"]

    def test_apply_failure_raises(self, services, executor) -> None:
        executor.fail_on("apply", returncode=1)
        with pytest.raises(ExecutionError):
            services.tofu.apply(PlanConfig(dir="infra"))

    def test_delete_workspace_only_warns(self, services, executor) -> None:
        executor.fail_on("workspace delete")
        outcome = services.tofu.delete_workspace(WorkspaceConfig(dir="infra", name="ws1"))
        assert not outcome.success
        assert [_tofu_args(c)[2:] for c in executor.calls] == [
            ["workspace", "select", "default"],
            ["workspace", "delete", "ws1"],
        ]

    def test_delete_workspace_select_failure_continues(self, services, executor) -> None:
        executor.fail_on("select default")
        outcome = services.tofu.delete_workspace(WorkspaceConfig(dir="infra", name="ws1"))
        assert outcome.success
        assert len(executor.calls) == 2


class TestOutputs:
    def test_json_outputs(self, services, executor) -> None:
        executor.respond("output -json", '{"lb": {"value": "1.2.3.4"}}')
        assert services.tofu.get_outputs(OutputQuery(dir="infra")) == {"lb": {"value": "1.2.3.4"}}

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]"])
    def test_unparsable_returns_raw(self, services, executor, raw: str) -> None:
        executor.respond("output -json", raw)
        assert services.tofu.get_outputs(OutputQuery(dir="infra")) == raw

    def test_named_output(self, services, executor) -> None:
        executor.respond("output -raw", "10.0.0.1\n")
        assert services.tofu.get_outputs(OutputQuery(dir="infra", output="bastion_ip")) == "10.0.0.1"
