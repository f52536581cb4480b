"""ResultReporter 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ExecutionError, ValidationError

_XML = '<testsuite name="validation"><testcase name="a"/><testcase name="b"><failure/></testcase></testsuite>'


class TestResultReporter:
    def test_copy_and_publish(self, services, executor, runtime) -> None:
        # docker cp 由假执行器模拟，报告预先放到工作目录
        (runtime.workspace / "results.xml").write_text(_XML, encoding="utf-8")
        suites = services.result.report_from_container(
            "job42_test", "img", workspace="ws", directory="validation",
        )
        assert executor.calls[0].cmd == [
            "docker", "cp", "job42_test:/root/ws/validation/results.xml", ".",
        ]
        assert [(s.total, s.failed) for s in suites] == [(2, 1)]
        assert runtime.published == suites

    def test_requires_name_and_image(self, services) -> None:
        with pytest.raises(ValidationError) as exc:
            services.result.report_from_container("", "")
        assert exc.value.details == ["name", "image"]

    def test_copy_failure_removes_container(self, services, executor) -> None:
        executor.fail_on("docker cp")
        with pytest.raises(ExecutionError, match="Error copying results from container"):
            services.result.report_from_container("job42_test", "img")
        assert executor.commands[1:] == [
            "docker stop job42_test", "docker rm -v job42_test", "docker rmi -f img",
        ]

    def test_missing_report_removes_container(self, services, executor) -> None:
        with pytest.raises(ExecutionError):
            services.result.report_from_container("c", "i", results_xml="custom.xml")
        assert "docker rmi -f i" in executor.commands

    def test_malformed_report_removes_container(self, services, executor, runtime) -> None:
        (runtime.workspace / "results.xml").write_text("<testsuite><broken", encoding="utf-8")
        with pytest.raises(ExecutionError, match="Error copying results from container"):
            services.result.report_from_container("job42_test", "img")
        assert "docker stop job42_test" in executor.commands
        assert "docker rmi -f img" in executor.commands
