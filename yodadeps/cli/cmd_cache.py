"""CLI — 配置缓存查看 / 清除"""

from __future__ import annotations

import click

from yodadeps.cli import current_config, handle_errors
from yodadeps.core.cache import ConfigCache


def register(group: click.Group) -> None:
    group.add_command(cache)


@click.group()
def cache() -> None:
    """配置缓存（USE_SYSTEM_<PACKAGE> 等策略开关）"""


@cache.command(name="show")
@handle_errors
def show() -> None:
    """显示缓存条目"""
    entries = ConfigCache(current_config().cache_file).entries()
    if not entries:
        click.echo("缓存为空。")
        return
    for e in entries:
        click.echo(f"  {e['name']}:{e.get('type', 'STRING')}={e.get('value', '')}")


@cache.command(name="clear")
@click.argument("names", nargs=-1)
@click.option("--all", "clear_all", is_flag=True, help="清除全部条目")
@handle_errors
def clear(names: tuple[str, ...], clear_all: bool) -> None:
    """清除缓存条目，下次解析时按默认策略重新初始化"""
    store = ConfigCache(current_config().cache_file)
    if clear_all:
        click.echo(f"已清除 {store.clear_all()} 个条目")
        return
    if not names:
        click.echo("请指定条目名或 --all")
        return
    for name in names:
        if store.clear(name):
            click.echo(f"已清除: {name}")
        else:
            click.echo(f"不存在: {name}")
