"""CLI: 测试结果命令"""

from __future__ import annotations

import click

from qapipe.cli import _svc


def register(group: click.Group) -> None:
    group.add_command(result_group)


@click.group(name="result")
def result_group() -> None:
    """测试结果上报"""


@result_group.command(name="report")
@click.option("--name", required=True, help="测试容器名")
@click.option("--image", required=True, help="镜像名（失败时一并删除）")
@click.option("--workspace-name", default="", help="容器内工作目录名")
@click.option("--dir", "directory", default=".")
@click.option("--results-xml", default="", help="默认 testing.default_results_xml")
def result_report(name: str, image: str, workspace_name: str, directory: str, results_xml: str) -> None:
    """从容器复制 JUnit 报告并发布"""
    suites = _svc().result.report_from_container(
        name, image, workspace=workspace_name, directory=directory, results_xml=results_xml,
    )
    failed = False
    for s in suites:
        click.echo(
            f"  {s.suite_name}: 总计={s.total} 通过={s.passed} 失败={s.failed} "
            f"错误={s.errors} 跳过={s.skipped}"
        )
        failed = failed or not s.success
    if failed:
        raise SystemExit(1)
