"""OpenTofu 操作

所有 tofu 命令在 infra-tools 镜像内一次性执行（docker run --rm），
工作目录挂载到 /workspace，AWS 凭据以 -e NAME 从宿主环境继承。
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

from qapipe.core.config import Config, get_config
from qapipe.core.exceptions import ExecutionError
from qapipe.core.models import (
    BackendConfig,
    OutputQuery,
    PlanConfig,
    StepOutcome,
    WorkspaceConfig,
)
from qapipe.core.runtime import BuildRuntime
from qapipe.services.docker.commands import tool_run_args
from qapipe.utils.shell import CommandExecutor, CommandResult, run_cmd

logger = logging.getLogger(__name__)

AWS_CREDENTIAL_VARS = ["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"]


class TofuService:
    """OpenTofu 命令封装"""

    def __init__(
        self,
        runtime: BuildRuntime,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.runtime = runtime
        self.config = config or get_config()
        self.executor = executor

    def _tofu(
        self, directory: str, args: list[str], *,
        label: str, env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        cmd = tool_run_args(
            image=self.config.docker.infra_tools_image,
            platform=self.config.docker.platform,
            workspace=str(self.runtime.workspace),
            command=["tofu", f"-chdir={directory}", *args],
            inherit_env=AWS_CREDENTIAL_VARS,
            env=env,
        )
        return run_cmd(
            cmd, cwd=str(self.runtime.workspace), env=self.runtime.env,
            label=label, executor=self.executor,
        )

    def init_backend(self, backend: BackendConfig) -> None:
        """以 S3 backend 初始化，每个 -backend-config 为独立参数"""
        logger.info("初始化 tofu backend: %s", backend.dir)
        args = [
            "init",
            f"-backend-config=bucket={backend.bucket}",
            f"-backend-config=key={backend.key}",
            f"-backend-config=region={backend.region}",
        ]
        if backend.dynamodb_table:
            args.append(f"-backend-config=dynamodb_table={backend.dynamodb_table}")
        self._tofu(backend.dir, args, label="tofu init")
        logger.info("tofu backend 初始化完成")

    def create_workspace(self, ws: WorkspaceConfig) -> str:
        """创建并切换到新 workspace，返回 workspace 名"""
        logger.info("创建 workspace: %s", ws.name)
        self._tofu(ws.dir, ["workspace", "new", ws.name], label="tofu workspace new")
        return ws.name

    def select_workspace(self, ws: WorkspaceConfig) -> None:
        logger.info("切换 workspace: %s", ws.name)
        self._tofu(ws.dir, ["workspace", "select", ws.name], label="tofu workspace select")

    def _plan_args(self, action: str, plan: PlanConfig) -> list[str]:
        args = [action]
        if plan.var_file:
            args.append(f"-var-file={plan.var_file}")
        if plan.auto_approve:
            args.append("-auto-approve")
        return args

    def apply(self, plan: PlanConfig) -> None:
        logger.info("tofu apply: %s", plan.dir)
        self._tofu(plan.dir, self._plan_args("apply", plan), label="tofu apply")
        logger.info("tofu apply 完成")

    def destroy(self, plan: PlanConfig) -> None:
        logger.info("tofu destroy: %s", plan.dir)
        self._tofu(plan.dir, self._plan_args("destroy", plan), label="tofu destroy")
        logger.info("tofu destroy 完成")

    def delete_workspace(self, ws: WorkspaceConfig) -> StepOutcome:
        """先切回 default 再删除目标 workspace，失败只告警"""
        logger.info("删除 workspace: %s", ws.name)
        step = f"delete-workspace:{ws.name}"
        try:
            self._tofu(ws.dir, ["workspace", "select", "default"], label="tofu workspace select")
        except ExecutionError as e:
            logger.warning("切换到 default workspace 失败: %s", e)
        try:
            self._tofu(ws.dir, ["workspace", "delete", ws.name], label="tofu workspace delete")
        except ExecutionError as e:
            logger.warning("删除 workspace %s 失败: %s", ws.name, e)
            return StepOutcome.warn(step, str(e))
        logger.info("workspace %s 已删除", ws.name)
        return StepOutcome.ok(step)

    def get_outputs(self, query: OutputQuery) -> dict | str:
        """读取 tofu output

        指定 output 时返回 -raw 原始字符串；否则解析 -json 为 dict，
        解析失败时告警并返回原始字符串。
        """
        logger.info("读取 tofu outputs: %s", query.dir)
        if query.output:
            result = self._tofu(query.dir, ["output", "-raw", query.output], label="tofu output")
            return result.stdout.strip()

        result = self._tofu(query.dir, ["output", "-json"], label="tofu output")
        raw = result.stdout.strip()
        try:
            outputs = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("tofu outputs 不是合法 JSON，返回原始内容")
            return raw
        if not isinstance(outputs, dict):
            logger.warning("tofu outputs 顶层不是对象，返回原始内容")
            return raw
        return outputs
