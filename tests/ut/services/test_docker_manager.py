"""DockerManager 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ValidationError


class TestDockerManager:
    def test_build_image(self, services, executor) -> None:
        services.docker.build_image("airgap-img")
        assert executor.calls[0].cmd == [
            "docker", "build", "--platform", "linux/amd64", "-t", "airgap-img",
            "-f", "tests/validation/Dockerfile.tofu.e2e", ".",
        ]

    def test_create_volume_requires_name(self, services, executor) -> None:
        with pytest.raises(ValidationError):
            services.docker.create_shared_volume("")
        assert executor.calls == []

    def test_stage_ssh_keys(self, services, executor, runtime) -> None:
        path = services.docker.stage_ssh_keys("vol", runtime.env)
        assert path.endswith("jenkins.pem")
        assert "BEGIN KEY" in (runtime.workspace / ".ssh" / "jenkins.pem").read_text(encoding="utf-8")
        cmd = executor.calls[0].cmd
        assert "vol:/root" in cmd
        assert "alpine:latest" in cmd

    def test_stage_ssh_keys_missing_credentials(self, services, executor) -> None:
        with pytest.raises(ValidationError) as exc:
            services.docker.stage_ssh_keys("vol", {})
        assert exc.value.details == ["AWS_SSH_KEY_NAME", "AWS_SSH_PEM_KEY"]
        assert executor.calls == []

    def test_execute_script(self, services, executor, runtime) -> None:
        (runtime.workspace / ".env").write_text("A=1\n", encoding="utf-8")
        services.docker.execute_script_in_container(
            "echo hi", container="c", image="i", volume="v",
            timeout_minutes="45", extra_env={"TF_WORKSPACE": "ws1"},
        )
        call = executor.calls[0]
        assert call.timeout == 45 * 60
        assert call.cmd[-4:] == ["i", "bash", "-c", "echo hi"]
        assert "TF_WORKSPACE=ws1" in call.cmd
        assert "--env-file" in call.cmd
        # 凭据只按名称继承
        assert "AWS_ACCESS_KEY_ID" in call.cmd
        assert not any("AKIAEXAMPLE" in part for part in call.cmd)

    def test_execute_script_without_env_file(self, services, executor) -> None:
        services.docker.execute_script_in_container("true", container="c", image="i", volume="v")
        assert "--env-file" not in executor.calls[0].cmd
        assert executor.calls[0].timeout == 30 * 60

    def test_cleanup_resources_best_effort(self, services, executor) -> None:
        executor.fail_on("docker rmi")
        outcomes = services.docker.cleanup_resources("img", "vol", "")
        assert [o.step for o in outcomes] == ["remove-image:img", "remove-volume:vol"]
        assert [o.success for o in outcomes] == [False, True]

    @pytest.mark.parametrize("value", ["60m", "0", "-5"])
    def test_execute_script_rejects_bad_timeout(self, services, executor, value: str) -> None:
        with pytest.raises(ValidationError) as exc:
            services.docker.execute_script_in_container(
                "true", container="c", image="i", volume="v", timeout_minutes=value,
            )
        assert exc.value.details == ["timeout_minutes"]
        assert executor.calls == []
