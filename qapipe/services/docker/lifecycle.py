"""测试容器生命周期

    1. prepare() - 把 SSH 密钥和测试配置写入工作目录，并设置 CATTLE_TEST_CONFIG
    2. build()   - 依次执行可选的 configure 脚本和 build 脚本，生成测试镜像
    3. run()     - 启动容器执行测试命令（或自定义命令），可选发布 Qase 结果
    4. remove()  - 停止并删除容器及其镜像

run() 在组装或执行命令失败时，先用同一对 name/image 调用 remove()
再抛出原异常，避免残留容器和镜像。
"""

from __future__ import annotations

import base64
import binascii
import logging
import posixpath
from collections.abc import Iterable

from qapipe.core.config import Config, get_config
from qapipe.core.exceptions import ExecutionError, ValidationError
from qapipe.core.models import (
    ContainerRef,
    ContainerSpec,
    RunResult,
    StepOutcome,
    TestSpec,
)
from qapipe.core.runtime import BuildRuntime
from qapipe.services.docker.commands import build_run_args
from qapipe.utils.shell import TIMEOUT_KILLED_RC, CommandExecutor, run_cmd
from qapipe.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

# (文件名变量, base64 内容变量)
_SSH_KEY_VARS = (
    ("AWS_SSH_PEM_KEY_NAME", "AWS_SSH_PEM_KEY"),
    ("AWS_SSH_RSA_KEY_NAME", "AWS_SSH_RSA_KEY"),
)


def decode_base64(content: str, *, label: str) -> str:
    """base64 解码，格式错误时抛 ValidationError"""
    try:
        return base64.b64decode(content, validate=False).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValidationError(f"{label} 不是合法的 base64 内容: {e}") from e


class ContainerLifecycle:
    """测试容器生命周期管理"""

    def __init__(
        self,
        runtime: BuildRuntime,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.runtime = runtime
        self.config = config or get_config()
        self.executor = executor

    def _run(self, cmd: str | list[str], label: str) -> None:
        run_cmd(
            cmd, cwd=str(self.runtime.workspace), env=self.runtime.env,
            label=label, executor=self.executor,
        )

    # ---- prepare ----

    def _new_file(self, directory: str, name: str, content: str, *, secret: bool = False) -> str:
        rel = posixpath.join(directory, name)
        logger.info("创建文件 %s", rel)
        try:
            atomic_write(
                self.runtime.workspace / rel, content,
                mode=0o600 if secret else None,
            )
        except OSError as e:
            raise ExecutionError(f"写入文件失败 [{rel}]: {e}") from e
        return rel

    def prepare(self, workspace: str, directory: str = ".") -> str:
        """写入 SSH 密钥和测试配置，返回资源目录（如 ./validation）

        读取的环境变量:
          AWS_SSH_PEM_KEY_NAME / AWS_SSH_PEM_KEY - PEM 私钥文件名和 base64 内容
          AWS_SSH_RSA_KEY_NAME / AWS_SSH_RSA_KEY - RSA 私钥文件名和 base64 内容
          CONFIG_NAME / CONFIG                   - 测试配置文件名和内容
        """
        if not workspace:
            raise ValidationError("prepare 需要提供 workspace", details=["workspace"])
        env = self.runtime.env
        assets_dir = f"./{directory or '.'}"
        ssh_dir = posixpath.join(assets_dir, ".ssh")

        for name_var, content_var in _SSH_KEY_VARS:
            name, content = env.get(name_var), env.get(content_var)
            if not (name and content):
                logger.warning("未设置 %s/%s，跳过该密钥", name_var, content_var)
                continue
            self._new_file(ssh_dir, name, decode_base64(content, label=content_var), secret=True)

        config_name, config_content = env.get("CONFIG_NAME"), env.get("CONFIG")
        if config_name and config_content is not None:
            config_path = self._new_file(assets_dir, config_name, config_content)
            env["CATTLE_TEST_CONFIG"] = posixpath.normpath(f"/root/{workspace}/{config_path}")
            logger.info("CATTLE_TEST_CONFIG=%s", env["CATTLE_TEST_CONFIG"])
        else:
            logger.warning("未设置 CONFIG_NAME/CONFIG，跳过测试配置文件")
        return assets_dir

    # ---- build ----

    def build(self, build_script: str, configure_script: str = "", directory: str = ".") -> None:
        """执行 configure（可选）与 build 脚本，脚本路径为 ./<dir>/<script>"""
        if not build_script:
            raise ValidationError("build 需要提供 build_script", details=["build_script"])
        directory = directory or "."
        logger.info("配置并构建测试容器镜像")
        if configure_script:
            self._run(f"./{directory}/{configure_script}", label="configure")
        self._run(f"./{directory}/{build_script}", label="build")

    # ---- run ----

    def run(self, container: ContainerSpec, test: TestSpec) -> RunResult:
        """启动容器执行测试，失败时清理容器和镜像后抛出"""
        try:
            args = build_run_args(container, test, self.config, self.runtime.env)
        except ValueError as e:
            self.remove([container.ref])
            raise ExecutionError(f"组装运行命令失败: {e}") from e

        try:
            self._run(args, label="docker run")
        except ExecutionError as e:
            if e.returncode == TIMEOUT_KILLED_RC:
                logger.error("容器 %s 被强制终止（超时）", container.name)
            self.remove([container.ref])
            raise ExecutionError(
                f"执行运行命令失败: {e}", returncode=e.returncode,
            ) from e

        return RunResult(container=container, test=test.params, command=args)

    # ---- remove ----

    def remove(self, containers: Iterable[ContainerRef]) -> list[StepOutcome]:
        """停止并删除容器，指定了 image 时强制删除镜像

        每一项独立处理，单项失败只记录警告。
        """
        outcomes: list[StepOutcome] = []
        for ref in containers:
            logger.info("删除容器 [%s]", ref.name)
            try:
                self._run(["docker", "stop", ref.name], label="docker stop")
                self._run(["docker", "rm", "-v", ref.name], label="docker rm")
                outcomes.append(StepOutcome.ok(f"remove-container:{ref.name}"))
            except ExecutionError as e:
                logger.warning("容器 [%s] 删除失败: %s", ref.name, e)
                outcomes.append(StepOutcome.warn(f"remove-container:{ref.name}", str(e)))

            if not ref.image:
                continue
            logger.info("删除镜像 [%s]", ref.image)
            try:
                self._run(["docker", "rmi", "-f", ref.image], label="docker rmi")
                outcomes.append(StepOutcome.ok(f"remove-image:{ref.image}"))
            except ExecutionError as e:
                logger.warning("镜像 [%s] 删除失败: %s", ref.image, e)
                outcomes.append(StepOutcome.warn(f"remove-image:{ref.image}", str(e)))
        return outcomes
