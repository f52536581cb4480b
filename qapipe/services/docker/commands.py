"""docker 命令参数组装

纯函数，只负责把配置对象转换为参数列表，不执行任何子进程。
空的可选字段在这里按全局 Config 补齐，补齐后的值回写到配置对象，
调用方可从 RunResult 中拿到实际使用的参数。
"""

from __future__ import annotations

import posixpath
import shlex
from collections.abc import Mapping

from qapipe.core.config import Config
from qapipe.core.models import ContainerSpec, GoTestParams, TestSpec

QASE_RUN_ID_VAR = "QASE_TEST_RUN_ID"


def container_args(container: ContainerSpec, config: Config) -> list[str]:
    """docker run 前半部分: --name / --env-file / -t / image"""
    if not container.env_file:
        container.env_file = config.docker.default_env_file
    args = ["docker", "run", "--name", container.name, "--env-file", container.env_file]
    if container.tty:
        args.append("-t")
    args.append(container.image)
    return args


def go_test_args(params: GoTestParams, config: Config) -> list[str]:
    """gotestsum 参数，缺省值取 testing 配置"""
    testing = config.testing
    params.results_xml = params.results_xml or testing.default_results_xml
    params.results_json = params.results_json or testing.default_results_json
    params.tags = params.tags or testing.default_tags
    params.timeout = params.timeout or testing.default_timeout
    return [
        "gotestsum", "--format", "standard-verbose",
        f"--packages={params.packages}",
        "--junitfile", params.results_xml,
        "--jsonfile", params.results_json,
        "--",
        f"-tags={params.tags}",
        *shlex.split(params.cases),
        f"-timeout={params.timeout}",
        "-v",
    ]


def qase_publish_commands(
    workspace: str, directory: str, env: Mapping[str, str],
) -> list[str]:
    """设置了 QASE_TEST_RUN_ID 时，测试结束后构建并执行 Qase reporter"""
    if not env.get(QASE_RUN_ID_VAR):
        return []
    base = posixpath.normpath(f"/root/{workspace}/{directory or '.'}")
    return [
        f"{base}/pipeline/scripts/build_qase_reporter.sh",
        f"{base}/reporter",
    ]


def shell_command(
    test: TestSpec, container: ContainerSpec, config: Config, env: Mapping[str, str],
) -> str:
    """容器内 sh -c 执行的完整命令串"""
    if test.params is not None:
        parts = [shlex.join(go_test_args(test.params, config))]
    else:
        # command 中的元素按 shell 片段拼接（允许 && / 管道）
        parts = [" ".join(test.command or [])]
    parts.extend(qase_publish_commands(container.workspace, container.dir, env))
    return "; ".join(parts)


def build_run_args(
    container: ContainerSpec, test: TestSpec, config: Config, env: Mapping[str, str],
) -> list[str]:
    """完整的 docker run 参数列表"""
    return [
        *container_args(container, config),
        "sh", "-c", shell_command(test, container, config, env),
    ]


def env_flags(names: list[str] | None = None, values: Mapping[str, str] | None = None) -> list[str]:
    """-e NAME（继承宿主值）与 -e KEY=VALUE 参数"""
    flags: list[str] = []
    for name in names or []:
        flags.extend(["-e", name])
    for key, value in (values or {}).items():
        if value is None:
            continue
        flags.extend(["-e", f"{key}={value}"])
    return flags


def tool_run_args(
    *,
    image: str,
    platform: str,
    workspace: str,
    command: list[str],
    workdir: str = "/workspace",
    inherit_env: list[str] | None = None,
    env: Mapping[str, str] | None = None,
    extra_mounts: list[str] | None = None,
) -> list[str]:
    """在工具镜像中一次性执行命令（--rm），工作目录挂载到 /workspace"""
    args = ["docker", "run", "--rm", "--platform", platform]
    args.extend(env_flags(inherit_env, env))
    args.extend(["-v", f"{workspace}:/workspace"])
    for mount in extra_mounts or []:
        args.extend(["-v", mount])
    args.extend(["-w", workdir, image])
    args.extend(command)
    return args
