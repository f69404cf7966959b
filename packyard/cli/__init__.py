"""packyard 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
业务异常 PackyardError 统一在 group 层捕获，以其 status_code 退出。
"""

from __future__ import annotations

from typing import Any

import click

from packyard import __version__
from packyard.core.config import init_config
from packyard.core.exceptions import PackyardError
from packyard.utils.logger import setup_logging_from_env


class PackyardGroup(click.Group):
    """把 PackyardError 转换为带退出码的错误输出"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except PackyardError as e:
            click.echo(f"错误 [{e.code}]: {e}", err=True)
            ctx.exit(e.status_code)


@click.group(cls=PackyardGroup)
@click.version_option(version=__version__)
@click.option("--config", "config_path", default="packyard.yml", help="配置文件路径")
def main(config_path: str) -> None:
    """packyard - 依赖包获取与安装"""
    setup_logging_from_env()
    init_config(config_path)


# 注册各领域子命令
from packyard.cli.cmd_source import register_commands as _reg_source  # noqa: E402
from packyard.cli.cmd_install import register_commands as _reg_install  # noqa: E402

_reg_source(main)
_reg_install(main)
