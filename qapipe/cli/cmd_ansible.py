"""CLI: Ansible 命令"""

from __future__ import annotations

import click

from qapipe.cli import _parse_kv_pairs, _svc
from qapipe.core.models import PlaybookConfig


def register(group: click.Group) -> None:
    group.add_command(ansible_group)


@click.group(name="ansible")
def ansible_group() -> None:
    """Ansible playbook 执行"""


@ansible_group.command(name="run")
@click.option("--dir", "directory", default="", help="Ansible 项目目录（相对工作目录）")
@click.option("--inventory", "-i", default="")
@click.option("--playbook", default="")
@click.option("--extra-var", "-e", multiple=True, help="key=value（可多次）")
@click.option("--tags", default="")
@click.option("--limit", default="")
@click.option("--verbose", "-v", is_flag=True, help="-vvv 输出")
def ansible_run(
    directory: str, inventory: str, playbook: str, extra_var: tuple[str, ...],
    tags: str, limit: str, verbose: bool,
) -> None:
    """在 infra-tools 镜像内执行 playbook"""
    _svc().ansible.run_playbook(PlaybookConfig(
        dir=directory, inventory=inventory, playbook=playbook,
        extra_vars=_parse_kv_pairs(extra_var), tags=tags, limit=limit, verbose=verbose,
    ))
    click.echo("playbook 执行完成")


@ansible_group.command(name="validate-inventory")
@click.option("--dir", "directory", required=True)
@click.option("--inventory", "-i", required=True)
def ansible_validate_inventory(directory: str, inventory: str) -> None:
    """校验 inventory；不合法时退出码为 1"""
    if not _svc().ansible.validate_inventory(directory, inventory):
        raise click.ClickException(f"inventory 校验失败: {inventory}")
    click.echo("inventory 校验通过")
