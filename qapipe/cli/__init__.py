"""qapipe 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
业务异常（QAPipeError）统一转为 ClickException，退出码为 1。
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import click

from qapipe import __version__
from qapipe.core.config import get_config, init_config
from qapipe.core.exceptions import QAPipeError
from qapipe.core.runtime import LocalRuntime
from qapipe.services.container import ServiceContainer
from qapipe.utils.logger import setup_logging


class QAPipeGroup(click.Group):
    """把 QAPipeError 转为带错误码的 ClickException"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except QAPipeError as e:
            details = getattr(e, "details", None)
            message = f"[{e.code}] {e}"
            if details:
                message += "\n" + "\n".join(f"  - {d}" for d in details)
            raise click.ClickException(message) from e


def _svc(workspace: str | None = None) -> ServiceContainer:
    """按 --workspace 构建服务容器（同一次调用内复用）"""
    obj = click.get_current_context().find_root().ensure_object(dict)
    ws = workspace or obj.get("workspace") or "."
    key = f"container:{Path(ws).resolve()}"
    if key not in obj:
        obj[key] = ServiceContainer(LocalRuntime(ws), get_config())
    return obj[key]


def _parse_kv_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """解析 key=value 参数对"""
    result: dict[str, str] = {}
    for p in pairs:
        if "=" in p:
            k, v = p.split("=", 1)
            result[k.strip()] = v.strip()
    return result


@click.group(cls=QAPipeGroup)
@click.version_option(version=__version__)
@click.option(
    "--workspace", "-w", envvar="QAPIPE_WORKSPACE", default=".",
    help="构建工作目录（默认当前目录）",
)
@click.option(
    "--config", "config_path", envvar="QAPIPE_CONFIG", default="",
    help="YAML 配置文件，未指定时只读取环境变量",
)
@click.pass_context
def main(ctx: click.Context, workspace: str, config_path: str) -> None:
    """qapipe - Rancher QA 基础设施流水线工具集"""
    setup_logging(
        level=os.getenv("QAPIPE_LOG_LEVEL", "INFO"),
        json_output=os.getenv("QAPIPE_LOG_JSON", "") == "1",
        context={k: os.environ[k] for k in ("JOB_NAME", "BUILD_NUMBER") if os.environ.get(k)},
    )
    if config_path:
        init_config(config_path)
    ctx.ensure_object(dict)["workspace"] = workspace


# 注册各领域子命令
from qapipe.cli.cmd_names import register as _reg_names  # noqa: E402
from qapipe.cli.cmd_container import register as _reg_container  # noqa: E402
from qapipe.cli.cmd_tofu import register as _reg_tofu  # noqa: E402
from qapipe.cli.cmd_ansible import register as _reg_ansible  # noqa: E402
from qapipe.cli.cmd_result import register as _reg_result  # noqa: E402
from qapipe.cli.cmd_airgap import register as _reg_airgap  # noqa: E402
from qapipe.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_names(main)
_reg_container(main)
_reg_tofu(main)
_reg_ansible(main)
_reg_result(main)
_reg_airgap(main)
_reg_misc(main)
