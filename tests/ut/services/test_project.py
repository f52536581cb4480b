"""ProjectService 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ExecutionError, ValidationError


class TestCheckout:
    def test_clean_checkout(self, services, executor, runtime) -> None:
        (runtime.workspace / "stale.txt").write_text("x", encoding="utf-8")
        path = services.project.checkout("https://github.com/rancher/tests", "release/v2.9", "tests")
        assert path == "./tests"
        assert not (runtime.workspace / "stale.txt").exists()
        call = executor.calls[0]
        assert call.cmd == [
            "git", "clone", "--branch", "release/v2.9", "--single-branch",
            "https://github.com/rancher/tests", ".",
        ]
        assert call.cwd == str(runtime.workspace / "tests")

    def test_shallow_without_clean(self, services, executor, runtime) -> None:
        (runtime.workspace / "keep.txt").write_text("x", encoding="utf-8")
        (runtime.workspace / "repo").mkdir()
        (runtime.workspace / "repo" / "old").write_text("x", encoding="utf-8")
        services.project.checkout("repo-url", target="repo", clean=False, depth=1)
        assert (runtime.workspace / "keep.txt").exists()
        assert not (runtime.workspace / "repo" / "old").exists()
        assert executor.calls[0].cmd[5:7] == ["--depth", "1"]

    def test_unsafe_branch_rejected(self, services, executor) -> None:
        with pytest.raises(ValidationError):
            services.project.checkout("repo-url", "main; rm -rf /")
        assert executor.calls == []

    def test_failure_message(self, services, executor) -> None:
        executor.fail_on("git clone", returncode=128)
        with pytest.raises(ExecutionError, match=r"Error checking out \[repo-url/main\]") as exc:
            services.project.checkout("repo-url")
        assert exc.value.returncode == 128


class TestDescribe:
    def test_describe(self, services, executor) -> None:
        executor.respond("rev-parse", "main\n")
        executor.respond("git log", "abc1234 fix airgap\n")
        info = services.project.describe("tests")
        assert (info.branch, info.commit) == ("main", "abc1234 fix airgap")

    def test_describe_failure_is_best_effort(self, services, executor) -> None:
        executor.fail_on("rev-parse", returncode=128)
        info = services.project.describe("tests")
        assert info.branch == "" and info.commit == ""

    def test_describe_uses_runtime_env(self, services, executor, runtime) -> None:
        services.project.describe("tests")
        assert len(executor.calls) == 2
        assert all(c.env == runtime.env for c in executor.calls)
