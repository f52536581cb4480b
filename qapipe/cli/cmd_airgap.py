"""CLI: airgap 部署 / 销毁

两个命令都会清空 --workspace 指定的目录，因此该参数必填。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from qapipe.cli import _parse_kv_pairs, _svc
from qapipe.services.airgap.destroy import AirgapDestroyPipeline
from qapipe.services.airgap.setup import AirgapSetupPipeline
from qapipe.utils.yaml_io import load_yaml


def register(group: click.Group) -> None:
    group.add_command(airgap_group)


@click.group(name="airgap")
def airgap_group() -> None:
    """airgap RKE2 + Rancher 部署与销毁"""


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8") if path else ""


def _build_ctx(params_file: str, params: tuple[str, ...]) -> dict[str, Any]:
    """参数文件（YAML 映射）在前，--param 覆盖在后"""
    ctx: dict[str, Any] = dict(load_yaml(params_file)) if params_file else {}
    ctx.update(_parse_kv_pairs(params))
    return ctx


def _print_state(state: Any) -> None:
    data = {k: v for k, v in state.to_dict().items() if k not in ("TERRAFORM_CONFIG", "ANSIBLE_VARIABLES")}
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


@airgap_group.command(name="setup")
@click.option("--workspace", "workspace", required=True, help="专用构建目录（会被清空）")
@click.option("--params-file", default="", help="YAML 参数文件")
@click.option("--param", "-p", multiple=True, help="KEY=VALUE（可多次）")
@click.option("--terraform-config", "terraform_config", default="", help="tfvars 模板文件")
@click.option("--ansible-variables", "ansible_variables", default="", help="Ansible vars YAML 文件")
@click.option("--destroy-on-failure", is_flag=True, help="失败时执行销毁脚本")
def airgap_setup(
    workspace: str, params_file: str, param: tuple[str, ...],
    terraform_config: str, ansible_variables: str, destroy_on_failure: bool,
) -> None:
    """执行完整的 airgap 部署流水线"""
    ctx = _build_ctx(params_file, param)
    if terraform_config:
        ctx["TERRAFORM_CONFIG"] = _read_text(terraform_config)
    if ansible_variables:
        ctx["ANSIBLE_VARIABLES"] = _read_text(ansible_variables)
    if destroy_on_failure:
        ctx["DESTROY_ON_FAILURE"] = "true"
    state = AirgapSetupPipeline(_svc(workspace)).run(ctx)
    _print_state(state)


@airgap_group.command(name="destroy")
@click.option("--workspace", "workspace", required=True, help="专用构建目录（会被清空）")
@click.option("--tf-workspace", default="", help="要销毁的 OpenTofu workspace")
@click.option("--workspace-file", default="", help="部署任务归档的 workspace_name.txt")
@click.option("--params-file", default="", help="YAML 参数文件")
@click.option("--param", "-p", multiple=True, help="KEY=VALUE（可多次）")
def airgap_destroy(
    workspace: str, tf_workspace: str, workspace_file: str,
    params_file: str, param: tuple[str, ...],
) -> None:
    """销毁 airgap 基础设施"""
    ctx = _build_ctx(params_file, param)
    if workspace_file:
        tf_workspace = tf_workspace or _read_text(workspace_file).strip()
    if tf_workspace:
        ctx["TF_WORKSPACE"] = tf_workspace
    state = AirgapDestroyPipeline(_svc(workspace)).run(ctx)
    _print_state(state)
