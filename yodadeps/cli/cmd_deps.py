"""CLI — 依赖解析与源码构建命令"""

from __future__ import annotations

import click

from yodadeps.cli import current_config, handle_errors
from yodadeps.core.manifest import Manifest
from yodadeps.core.models import ResolutionResult


def register(group: click.Group) -> None:
    group.add_command(resolve)
    group.add_command(list_packages)
    group.add_command(plan)
    group.add_command(build)


def _service():
    from yodadeps.services.dependency_service import DependencyService
    return DependencyService(current_config())


def _echo_results(results: list[ResolutionResult]) -> None:
    for r in results:
        deps = f"  (after: {', '.join(r.dependencies)})" if r.dependencies else ""
        click.echo(f"  {r.name:20s} {r.version:12s} [{r.provenance.value:6s}]{deps}")


@click.command()
@click.argument("names", nargs=-1)
@click.option("--info/--no-info", default=True, help="是否写出解析汇总文件")
@handle_errors
def resolve(names: tuple[str, ...], info: bool) -> None:
    """解析依赖: 决定使用系统版本还是源码构建"""
    svc = _service()
    results = svc.resolve_all(list(names) or None)
    _echo_results(results)
    if info:
        path = svc.write_package_info(results)
        click.echo(f"解析汇总: {path}")


@click.command(name="packages")
@handle_errors
def list_packages() -> None:
    """列出清单中声明的依赖包"""
    requests = Manifest(current_config().manifest).load_requests()
    if not requests:
        click.echo("清单中没有依赖声明。")
        return
    for r in requests:
        required = ", ".join(r.required_vars) or "-"
        click.echo(f"  {r.name:20s} {r.build_version:12s} required: {required}")


@click.command()
@handle_errors
def plan() -> None:
    """解析依赖并显示源码构建顺序（不执行构建）"""
    svc = _service()
    svc.resolve_all()
    order = svc.graph.order()
    if not order:
        click.echo("所有依赖均使用系统版本，无需源码构建。")
        return
    for i, project in enumerate(order, 1):
        deps = svc.graph.dependencies_of(project.target)
        after = f"  (after: {', '.join(deps)})" if deps else ""
        click.echo(f"  {i}. {project.target} {project.version} -> {project.install_dir}{after}")


@click.command()
@click.option("--force", is_flag=True, help="忽略构建缓存，全部重新构建")
@handle_errors
def build(force: bool) -> None:
    """解析依赖并执行源码构建"""
    from yodadeps.services.build_runner import BuildRunner

    cfg = current_config()
    svc = _service()
    svc.write_package_info(svc.resolve_all())
    runner = BuildRunner(cmake=cfg.cmake, generator=cfg.generator)
    results = runner.run(svc.graph, force=force)
    for r in results:
        click.echo(f"  [{r.status:7s}] {r.name} ({r.duration:.1f}s) {r.message}")
    if any(not r.ok for r in results):
        raise click.ClickException("源码构建失败")
