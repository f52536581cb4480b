"""InfrastructureManager 阶段脚本单元测试"""

from __future__ import annotations

from qapipe.services.airgap import defaults
from qapipe.services.airgap.infra import cleanup_script, stage_script

_STATE = {
    "BUILD_CONTAINER_NAME": "c",
    "IMAGE_NAME": "i",
    "VALIDATION_VOLUME": "v",
    "TF_WORKSPACE": "ws_42",
    "QA_INFRA_WORK_PATH": defaults.QA_INFRA_WORK_PATH,
    "TERRAFORM_VARS_FILENAME": "cluster.tfvars",
    "ENV_FILE": ".env",
}


def test_stage_script() -> None:
    assert stage_script("/x/deploy.sh") == "#!/bin/bash\nset -e\nbash /x/deploy.sh\n"


def test_cleanup_script_quotes_args() -> None:
    script = cleanup_script("rke2_failure", "ws 1", destroy=False)
    assert f"source {defaults.CLEANUP_SCRIPT}" in script
    assert "perform_cleanup rke2_failure 'ws 1' false" in script


class TestInfrastructureManager:
    def test_stage_env_and_timeout(self, services, executor) -> None:
        services.infra.deploy_rke2(_STATE, timeout=10, extra_env={"RKE2_VERSION": "v1.30"})
        call = executor.calls[0]
        assert call.timeout == 600
        assert "--name" in call.cmd and "c" in call.cmd
        assert "TF_WORKSPACE=ws_42" in call.cmd
        assert "TERRAFORM_VARS_FILENAME=cluster.tfvars" in call.cmd
        assert "RKE2_VERSION=v1.30" in call.cmd
        assert defaults.DEPLOY_RKE2_SCRIPT in call.cmd[-1]

    def test_each_stage_uses_its_script(self, services, executor) -> None:
        services.infra.deploy_infrastructure(_STATE)
        services.infra.prepare_ansible(_STATE)
        services.infra.deploy_rancher(_STATE)
        scripts = [c.cmd[-1] for c in executor.calls]
        assert defaults.DEPLOY_INFRA_SCRIPT in scripts[0]
        assert defaults.PREPARE_ANSIBLE_SCRIPT in scripts[1]
        assert defaults.DEPLOY_RANCHER_SCRIPT in scripts[2]
        assert [c.timeout for c in executor.calls] == [30 * 60, 45 * 60, 45 * 60]

    def test_run_cleanup(self, services, executor) -> None:
        services.infra.run_cleanup(_STATE, "destroy")
        assert "perform_cleanup destroy ws_42 true" in executor.calls[0].cmd[-1]
