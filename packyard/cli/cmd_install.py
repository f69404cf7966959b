"""查询 / 安装 / 缓存 / 锁文件命令"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from packyard.core.exceptions import PackageNotFound
from packyard.core.lockfile import render_lock
from packyard.sources import SourcesFile
from packyard.sources.base import Source
from packyard.utils.yaml_io import atomic_write


def register_commands(main: click.Group) -> None:
    """注册查询与安装相关命令"""
    main.add_command(specs_cmd)
    main.add_command(install_cmd)
    main.add_command(cache_cmd)
    main.add_command(lock_cmd)


def _sources(remote: bool, cached: bool) -> list[Source]:
    sources = SourcesFile().build_all()
    for s in sources:
        if remote:
            s.allow_remote()
        if cached:
            s.allow_cached()
    return sources


def _find(sources: list[Source], name: str, version: str) -> tuple[Source, Any]:
    """按登记顺序返回第一个提供 name==version 的来源"""
    for source in sources:
        matches = source.specs().query(name, f"=={version}")
        if matches:
            return source, matches[0]
    raise PackageNotFound(f"Could not find {name} ({version}) in any of the sources")


@click.command(name="specs")
@click.option("--remote", is_flag=True, help="包含远程可用版本")
@click.option("--cached", is_flag=True, help="包含本地缓存归档")
def specs_cmd(remote: bool, cached: bool) -> None:
    """列出各来源可提供的包"""
    sources = _sources(remote, cached)
    if not sources:
        click.echo("没有已登记的来源。")
        return
    for source in sources:
        click.echo(f"{source}:")
        for spec in source.specs():
            click.echo(f"  {spec.name} ({spec.version})")


@click.command(name="install")
@click.argument("name")
@click.argument("version")
@click.option("--remote", is_flag=True, help="允许从远程获取")
@click.option("--cached", is_flag=True, help="允许使用本地缓存归档")
def install_cmd(name: str, version: str, remote: bool, cached: bool) -> None:
    """安装指定版本的包"""
    source, spec = _find(_sources(remote, cached), name, version)
    source.install(spec)
    click.echo(f"已就绪: {name} ({version}) from {source}")


@click.command(name="cache")
@click.argument("name")
@click.argument("version")
def cache_cmd(name: str, version: str) -> None:
    """把包归档复制到项目缓存目录"""
    source, spec = _find(_sources(remote=False, cached=True), name, version)
    source.cache(spec)


@click.command(name="lock")
@click.option("--output", default="", help="写入文件（默认输出到终端）")
def lock_cmd(output: str) -> None:
    """输出锁文件内容"""
    sources = _sources(remote=False, cached=False)
    specs = [spec for source in sources for spec in source.specs()]
    content = render_lock(sources, specs)
    if output:
        atomic_write(Path(output), content)
        click.echo(f"锁文件已写入: {output}")
    else:
        click.echo(content, nl=False)
