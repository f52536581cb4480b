"""CLI 测试 fixture: 全局执行器替换为记录型执行器"""

from __future__ import annotations

import pytest

from qapipe.utils.logger import reset_logging
from qapipe.utils.shell import get_executor, set_executor


@pytest.fixture()
def cli_executor(executor, monkeypatch: pytest.MonkeyPatch):
    original = get_executor()
    set_executor(executor)
    monkeypatch.setenv("QAPIPE_LOG_LEVEL", "ERROR")
    yield executor
    set_executor(original)
    reset_logging()
