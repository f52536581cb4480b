"""logger.py 单元测试"""

from __future__ import annotations

import json
import logging

from qapipe.utils.logger import JSONFormatter, PipelineFormatter, reset_logging, setup_logging


def _record(level: int, msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("qapipe.test", level, __file__, 1, msg, args, None)


def test_json_formatter_includes_context() -> None:
    out = JSONFormatter({"JOB_NAME": "airgap", "BUILD_NUMBER": "7"}).format(
        _record(logging.INFO, "部署 %s", "rke2"),
    )
    data = json.loads(out)
    assert data["message"] == "部署 rke2"
    assert data["level"] == "INFO"
    assert data["JOB_NAME"] == "airgap"


def test_pipeline_formatter_prefix() -> None:
    line = PipelineFormatter().format(_record(logging.WARNING, "careful"))
    assert line.startswith("[WARN] ")
    assert line.endswith("qapipe.test: careful")


def test_setup_logging_replaces_handlers() -> None:
    try:
        setup_logging("DEBUG")
        setup_logging("WARNING", json_output=True)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.WARNING
    finally:
        reset_logging()
