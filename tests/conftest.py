"""公共 fixture: 记录型命令执行器、本地运行时、服务容器"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path

import pytest

import qapipe.core.config as cfgmod
from qapipe.core.runtime import LocalRuntime
from qapipe.services.container import ServiceContainer
from qapipe.utils.shell import CommandResult, format_cmd


@dataclass
class Call:
    """一次被记录的命令调用"""

    cmd: str | list[str]
    cwd: str
    env: dict[str, str] | None
    timeout: int | None

    @property
    def text(self) -> str:
        return format_cmd(self.cmd)


class FakeExecutor:
    """记录所有命令，不启动子进程

    命令文本包含某个片段时返回预设结果，否则返回成功且输出为空。
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self._rules: list[tuple[str, CommandResult]] = []

    def respond(self, fragment: str, stdout: str) -> None:
        self._rules.append((fragment, CommandResult(0, stdout, "")))

    def fail_on(self, fragment: str, returncode: int = 1, stderr: str = "boom") -> None:
        self._rules.append((fragment, CommandResult(returncode, "", stderr)))

    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        call = Call(cmd=cmd, cwd=cwd, env=dict(env) if env is not None else None, timeout=timeout)
        self.calls.append(call)
        for fragment, result in self._rules:
            if fragment in call.text:
                return result
        return CommandResult(0, "", "")

    @property
    def commands(self) -> list[str]:
        return [c.text for c in self.calls]

    def find(self, fragment: str) -> list[Call]:
        return [c for c in self.calls if fragment in c.text]


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture(autouse=True)
def _isolate_config():
    """每个测试使用默认配置，不受宿主环境变量影响"""
    cfgmod.set_config(cfgmod.Config())
    yield
    cfgmod.set_config(None)


@pytest.fixture()
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def config() -> cfgmod.Config:
    return cfgmod.Config()


@pytest.fixture()
def build_env() -> dict[str, str]:
    return {
        "JOB_NAME": "folder/airgap-job",
        "BUILD_NUMBER": "42",
        "AWS_ACCESS_KEY_ID": "AKIAEXAMPLE",
        "AWS_SECRET_ACCESS_KEY": "secret-key",
        "AWS_SSH_PEM_KEY": b64("-----BEGIN KEY-----\nabc\n-----END KEY-----\n"),
        "AWS_SSH_KEY_NAME": "jenkins.pem",
    }


@pytest.fixture()
def runtime(tmp_path: Path, build_env: dict[str, str]) -> LocalRuntime:
    return LocalRuntime(tmp_path / "ws", env=build_env)


@pytest.fixture()
def services(runtime: LocalRuntime, config: cfgmod.Config, executor: FakeExecutor) -> ServiceContainer:
    return ServiceContainer(runtime, config, executor)
