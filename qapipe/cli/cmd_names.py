"""CLI: 资源命名命令"""

from __future__ import annotations

import json
import os

import click

from qapipe.core.naming import (
    generate_multiple_names,
    generate_names,
    generate_workspace_name,
    sanitize_name,
    validate_name,
)


def register(group: click.Group) -> None:
    group.add_command(names)
    group.add_command(sanitize)
    group.add_command(validate_name_cmd)
    group.add_command(workspace_name)


@click.command()
@click.option("--job", default=None, help="任务名（默认 $JOB_NAME）")
@click.option("--build", "build_number", default=None, help="构建号（默认 $BUILD_NUMBER）")
@click.option("--suffix", default="", help="容器名后缀（默认 naming.container_suffix）")
@click.option("--prefix", default="", help="镜像名前缀（默认 naming.image_prefix）")
@click.option("--count", default=0, type=int, help="批量生成带序号的名称（上限 10）")
def names(job: str | None, build_number: str | None, suffix: str, prefix: str, count: int) -> None:
    """生成本次构建的容器名和镜像名（JSON 输出）"""
    job = job if job is not None else os.getenv("JOB_NAME")
    build_number = build_number if build_number is not None else os.getenv("BUILD_NUMBER")
    if count:
        result = [
            {"container": n.container, "image": n.image}
            for n in generate_multiple_names(
                job, build_number, count=count,
                suffix=suffix or "test", prefix=prefix or "rancher-validation-",
            )
        ]
        click.echo(json.dumps(result, indent=2))
        return
    n = generate_names(job, build_number, suffix=suffix, prefix=prefix)
    click.echo(json.dumps({"container": n.container, "image": n.image}, indent=2))


@click.command()
@click.argument("name")
@click.option("--replacement", default="_", help="非法字符替换符")
def sanitize(name: str, replacement: str) -> None:
    """清洗为标识符安全的名称"""
    click.echo(sanitize_name(name, replacement=replacement))


@click.command(name="validate-name")
@click.argument("name")
@click.option("--max-length", default=255, type=int)
@click.option("--min-length", default=1, type=int)
def validate_name_cmd(name: str, max_length: int, min_length: int) -> None:
    """校验名称长度与字符集"""
    validate_name(name, max_length=max_length, min_length=min_length)
    click.echo(f"名称合法: {name}")


@click.command(name="workspace-name")
@click.option("--build", "build_number", default=None, help="构建号（默认 $BUILD_NUMBER）")
@click.option("--prefix", default="jenkins_workspace")
@click.option("--suffix", default="")
@click.option("--timestamp/--no-timestamp", default=True, help="是否附加时间戳")
def workspace_name(build_number: str | None, prefix: str, suffix: str, timestamp: bool) -> None:
    """生成 OpenTofu workspace 名"""
    build_number = build_number if build_number is not None else os.getenv("BUILD_NUMBER")
    click.echo(generate_workspace_name(
        build_number, prefix=prefix, suffix=suffix, include_timestamp=timestamp,
    ))
