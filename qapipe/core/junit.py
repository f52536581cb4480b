"""JUnit XML 解析

把 gotestsum --junitfile 生成的报告解析为 SuiteResult，
支持 <testsuites> 包裹和单个 <testsuite> 两种根节点。
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET  # noqa: S405
from pathlib import Path

from qapipe.core.exceptions import ValidationError
from qapipe.core.models import SuiteResult, TaskResult

logger = logging.getLogger(__name__)


def _case_status(case: ET.Element) -> tuple[str, str]:
    for tag, status in (("failure", "failed"), ("error", "error"), ("skipped", "skipped")):
        node = case.find(tag)
        if node is not None:
            return status, (node.get("message") or node.text or "").strip()
    return "passed", ""


def parse_junit(path: str | Path) -> SuiteResult:
    """解析 JUnit XML 文件"""
    p = Path(path)
    try:
        root = ET.parse(p).getroot()  # noqa: S314
    except ET.ParseError as e:
        raise ValidationError(f"JUnit 报告格式错误: {p} ({e})") from e

    suites = [root] if root.tag == "testsuite" else root.findall("testsuite")
    tasks: list[TaskResult] = []
    for suite in suites:
        for case in suite.iter("testcase"):
            status, message = _case_status(case)
            try:
                duration = float(case.get("time") or 0)
            except ValueError:
                duration = 0.0
            tasks.append(TaskResult(
                name=case.get("name", ""),
                status=status,
                duration=duration,
                message=message,
                classname=case.get("classname", ""),
            ))

    name = root.get("name") or p.stem
    result = SuiteResult.from_tasks(tasks, suite_name=name)
    logger.info(
        "JUnit 报告 %s: total=%d passed=%d failed=%d errors=%d skipped=%d",
        p, result.total, result.passed, result.failed, result.errors, result.skipped,
    )
    return result
