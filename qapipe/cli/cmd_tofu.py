"""CLI: OpenTofu 命令"""

from __future__ import annotations

import json

import click

from qapipe.cli import _svc
from qapipe.core.models import BackendConfig, OutputQuery, PlanConfig, WorkspaceConfig


def register(group: click.Group) -> None:
    group.add_command(tofu_group)


@click.group(name="tofu")
def tofu_group() -> None:
    """OpenTofu 操作（在 infra-tools 镜像内执行）"""


@tofu_group.command(name="init")
@click.option("--dir", "directory", default="")
@click.option("--bucket", default="")
@click.option("--key", default="")
@click.option("--region", default="")
@click.option("--dynamodb-table", default="")
def tofu_init(directory: str, bucket: str, key: str, region: str, dynamodb_table: str) -> None:
    """以 S3 backend 初始化"""
    _svc().tofu.init_backend(BackendConfig(
        dir=directory, bucket=bucket, key=key, region=region, dynamodb_table=dynamodb_table,
    ))
    click.echo("backend 初始化完成")


@tofu_group.command(name="workspace-new")
@click.option("--dir", "directory", required=True)
@click.argument("name")
def tofu_workspace_new(directory: str, name: str) -> None:
    """创建并切换 workspace"""
    click.echo(_svc().tofu.create_workspace(WorkspaceConfig(dir=directory, name=name)))


@tofu_group.command(name="workspace-select")
@click.option("--dir", "directory", required=True)
@click.argument("name")
def tofu_workspace_select(directory: str, name: str) -> None:
    """切换 workspace"""
    _svc().tofu.select_workspace(WorkspaceConfig(dir=directory, name=name))
    click.echo(f"已切换 workspace: {name}")


@tofu_group.command(name="workspace-delete")
@click.option("--dir", "directory", required=True)
@click.argument("name")
def tofu_workspace_delete(directory: str, name: str) -> None:
    """删除 workspace（失败只告警）"""
    outcome = _svc().tofu.delete_workspace(WorkspaceConfig(dir=directory, name=name))
    click.echo(f"workspace {name} 已删除" if outcome.success else f"workspace {name} 删除失败: {outcome.message}")


def _plan_options(fn):
    fn = click.option("--dir", "directory", required=True)(fn)
    fn = click.option("--var-file", default="", help="-var-file 参数")(fn)
    fn = click.option("--auto-approve/--no-auto-approve", default=True)(fn)
    return fn


@tofu_group.command(name="apply")
@_plan_options
def tofu_apply(directory: str, var_file: str, auto_approve: bool) -> None:
    """tofu apply"""
    _svc().tofu.apply(PlanConfig(dir=directory, var_file=var_file, auto_approve=auto_approve))


@tofu_group.command(name="destroy")
@_plan_options
def tofu_destroy(directory: str, var_file: str, auto_approve: bool) -> None:
    """tofu destroy"""
    _svc().tofu.destroy(PlanConfig(dir=directory, var_file=var_file, auto_approve=auto_approve))


@tofu_group.command(name="output")
@click.option("--dir", "directory", required=True)
@click.option("--name", "output", default="", help="只读取指定 output（原始值）")
def tofu_output(directory: str, output: str) -> None:
    """读取 tofu output"""
    result = _svc().tofu.get_outputs(OutputQuery(dir=directory, output=output))
    if isinstance(result, dict):
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        click.echo(result)
