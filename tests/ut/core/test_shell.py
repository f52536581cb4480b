"""shell.py run_cmd / LocalExecutor 单元测试"""

from __future__ import annotations

import os

import pytest

from qapipe.core.exceptions import ExecutionError
from qapipe.utils.shell import (
    TIMEOUT_KILLED_RC,
    LocalExecutor,
    format_cmd,
    get_executor,
    run_cmd,
    set_executor,
)


class TestRunCmd:
    def test_success(self, tmp_path) -> None:
        r = run_cmd("echo hello", cwd=str(tmp_path), label="test")
        assert r.returncode == 0
        assert "hello" in r.stdout

    def test_list_command(self, tmp_path) -> None:
        r = run_cmd(["echo", "a b"], cwd=str(tmp_path))
        assert r.stdout.strip() == "a b"

    def test_failure_carries_returncode(self, tmp_path) -> None:
        with pytest.raises(ExecutionError, match="cmd失败") as exc:
            run_cmd("exit 3", cwd=str(tmp_path))
        assert exc.value.returncode == 3

    def test_custom_label_in_error(self, tmp_path) -> None:
        with pytest.raises(ExecutionError, match="mybuild失败"):
            run_cmd("false", cwd=str(tmp_path), label="mybuild")

    def test_env_passed(self, tmp_path) -> None:
        env = {**os.environ, "MY_TEST_VAR": "42"}
        r = run_cmd("env", cwd=str(tmp_path), env=env, label="env_test")
        assert "MY_TEST_VAR=42" in r.stdout

    def test_injected_executor(self, executor) -> None:
        executor.fail_on("docker", returncode=125)
        with pytest.raises(ExecutionError) as exc:
            run_cmd(["docker", "ps"], executor=executor)
        assert exc.value.returncode == 125
        assert executor.commands == ["docker ps"]


class TestLocalExecutor:
    def test_timeout_maps_to_killed(self, tmp_path) -> None:
        r = LocalExecutor().execute("sleep 5", cwd=str(tmp_path), timeout=1)
        assert r.returncode == TIMEOUT_KILLED_RC

    def test_missing_binary(self, tmp_path) -> None:
        r = LocalExecutor().execute(["qapipe-no-such-binary"], cwd=str(tmp_path))
        assert r.returncode == 127


def test_set_executor(executor) -> None:
    original = get_executor()
    set_executor(executor)
    try:
        run_cmd("anything")
        assert executor.commands == ["anything"]
    finally:
        set_executor(original)


def test_format_cmd() -> None:
    assert format_cmd(["sh", "-c", "a && b"]) == "sh -c 'a && b'"
    assert format_cmd("ls -l") == "ls -l"
