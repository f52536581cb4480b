"""测试结果上报

从测试容器复制 JUnit XML 到工作目录并交给运行时发布。
复制或发布失败时删除容器和镜像，再以 ExecutionError 抛出。
"""

from __future__ import annotations

import logging
import posixpath

from qapipe.core.config import Config, get_config
from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.models import ContainerRef, SuiteResult
from qapipe.core.runtime import BuildRuntime
from qapipe.services.docker.lifecycle import ContainerLifecycle
from qapipe.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)


class ResultReporter:
    """容器内测试结果的复制与发布"""

    def __init__(
        self,
        runtime: BuildRuntime,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
        lifecycle: ContainerLifecycle | None = None,
    ) -> None:
        self.runtime = runtime
        self.config = config or get_config()
        self.executor = executor
        self.lifecycle = lifecycle or ContainerLifecycle(runtime, self.config, executor)

    def report_from_container(
        self,
        name: str,
        image: str,
        workspace: str = "",
        directory: str = ".",
        results_xml: str = "",
    ) -> list[SuiteResult]:
        """docker cp <name>:/root/<ws>/<dir>/<xml> . 后发布 **/<xml>"""
        missing = [k for k, v in (("name", name), ("image", image)) if not v]
        if missing:
            raise ValidationError(f"上报结果缺少: {', '.join(missing)}", details=missing)
        results_xml = results_xml or self.config.testing.default_results_xml
        report_path = posixpath.normpath(f"/root/{workspace}/{directory or '.'}/{results_xml}")

        logger.info("复制测试结果 %s:%s", name, report_path)
        try:
            run_cmd(
                ["docker", "cp", f"{name}:{report_path}", "."],
                cwd=str(self.runtime.workspace), env=self.runtime.env,
                label="docker cp", executor=self.executor,
            )
            results = self.runtime.publish_junit(f"**/{results_xml}")
        except Exception as e:
            self.lifecycle.remove([ContainerRef(name=name, image=image)])
            raise ExecutionError(
                f"Error copying results from container: {e}",
                returncode=getattr(e, "returncode", None),
            ) from e

        for suite in results:
            logger.info(
                "测试结果 %s: total=%d passed=%d failed=%d errors=%d skipped=%d",
                suite.suite_name, suite.total, suite.passed,
                suite.failed, suite.errors, suite.skipped,
            )
        return results
