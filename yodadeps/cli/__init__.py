"""yodadeps 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from collections.abc import Callable
from functools import wraps
from typing import Any

import click

from yodadeps import __version__
from yodadeps.core.config import Config, init_config
from yodadeps.core.exceptions import YodaError
from yodadeps.utils.logger import setup_logging


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把 YodaError 转成 click 错误输出（非零退出码）"""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except YodaError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default="configs/yoda.yml", help="配置文件路径")
@click.option("--no-system-libs", is_flag=True, default=False, help="强制所有依赖源码构建")
@click.pass_context
def main(ctx: click.Context, config_path: str, no_system_libs: bool) -> None:
    """yodadeps - yoda 第三方依赖解析与外部工程构建"""
    setup_logging(
        level=os.getenv("YODA_LOG_LEVEL", "INFO"),
        json_output=os.getenv("YODA_LOG_JSON", "") == "1",
    )
    cfg = init_config(config_path)
    if no_system_libs:
        cfg.no_system_libs = True
    ctx.obj = cfg


def current_config() -> Config:
    return click.get_current_context().find_object(Config)


# 注册各领域子命令
from yodadeps.cli.cmd_cache import register as _reg_cache  # noqa: E402
from yodadeps.cli.cmd_deps import register as _reg_deps  # noqa: E402

_reg_deps(main)
_reg_cache(main)
