"""CLI: 杂项命令（配置查看、校验）"""

from __future__ import annotations

import click

from qapipe.core.config import get_config
from qapipe.utils.yaml_io import dump_yaml


def register(group: click.Group) -> None:
    group.add_command(config_group)


@click.group(name="config")
def config_group() -> None:
    """查看当前生效的配置"""


@config_group.command(name="show")
def config_show() -> None:
    """以 YAML 输出配置（文件 + 环境变量合并后的结果）"""
    click.echo(dump_yaml(get_config().to_dict()), nl=False)


@config_group.command(name="validate")
def config_validate() -> None:
    """校验必需配置项"""
    get_config().validate()
    click.echo("配置校验通过")
