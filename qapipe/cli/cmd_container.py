"""CLI: 测试容器命令"""

from __future__ import annotations

import click

from qapipe.cli import _svc
from qapipe.core.models import ContainerRef, ContainerSpec, GoTestParams, TestSpec


def register(group: click.Group) -> None:
    group.add_command(container_group)


@click.group(name="container")
def container_group() -> None:
    """测试容器生命周期（prepare / build / run / remove）"""


@container_group.command(name="prepare")
@click.option("--workspace-name", required=True, help="容器内 /root 下的工作目录名")
@click.option("--dir", "directory", default=".", help="资源子目录")
def container_prepare(workspace_name: str, directory: str) -> None:
    """写入 SSH 密钥与测试配置"""
    assets = _svc().lifecycle.prepare(workspace_name, directory)
    click.echo(f"资源目录: {assets}")


@container_group.command(name="build")
@click.option("--build-script", required=True, help="构建脚本（相对 --dir）")
@click.option("--configure-script", default="", help="可选的配置脚本")
@click.option("--dir", "directory", default=".")
def container_build(build_script: str, configure_script: str, directory: str) -> None:
    """执行 configure 与 build 脚本"""
    _svc().lifecycle.build(build_script, configure_script, directory)
    click.echo("镜像构建完成")


@container_group.command(name="run")
@click.option("--name", required=True, help="容器名")
@click.option("--image", required=True, help="镜像名")
@click.option("--workspace-name", default="", help="容器内工作目录名")
@click.option("--dir", "directory", default=".")
@click.option("--env-file", default="", help="默认 docker.default_env_file")
@click.option("--no-tty", is_flag=True, help="不分配 TTY")
@click.option("--command", "command", multiple=True, help="自定义命令片段（可多次）")
@click.option("--packages", default="", help="go test 包路径")
@click.option("--cases", default="", help="go test 用例参数，如 '-run TestFoo'")
@click.option("--results-xml", default="")
@click.option("--results-json", default="")
@click.option("--tags", default="")
@click.option("--timeout", default="")
def container_run(**kwargs) -> None:
    """启动容器执行测试；--command 与 --packages/--cases 二选一"""
    params = None
    if kwargs["packages"] or kwargs["cases"]:
        params = GoTestParams(
            packages=kwargs["packages"], cases=kwargs["cases"],
            results_xml=kwargs["results_xml"], results_json=kwargs["results_json"],
            tags=kwargs["tags"], timeout=kwargs["timeout"],
        )
    test = TestSpec(command=list(kwargs["command"]) or None, params=params)
    spec = ContainerSpec(
        name=kwargs["name"], image=kwargs["image"],
        workspace=kwargs["workspace_name"], dir=kwargs["directory"],
        env_file=kwargs["env_file"], tty=not kwargs["no_tty"],
    )
    result = _svc().lifecycle.run(spec, test)
    click.echo(f"容器运行完成: {result.container.name}")


@container_group.command(name="remove")
@click.argument("containers", nargs=-1, required=True)
def container_remove(containers: tuple[str, ...]) -> None:
    """删除容器（NAME 或 NAME=IMAGE，可多个）"""
    refs = []
    for item in containers:
        name, _, image = item.partition("=")
        refs.append(ContainerRef(name=name, image=image))
    for outcome in _svc().lifecycle.remove(refs):
        mark = "OK " if outcome.success else "WARN"
        click.echo(f"  [{mark}] {outcome.step} {outcome.message}".rstrip())
