"""来源管理命令"""

from __future__ import annotations

from typing import Any

import click

from packyard.sources import GitSource, PathSource, RegistrySource, SourcesFile
from packyard.sources.base import Source


def register_commands(main: click.Group) -> None:
    """注册来源管理相关命令"""
    main.add_command(source_group)


@click.group(name="source")
def source_group() -> None:
    """来源管理"""


@source_group.command(name="list")
def source_list() -> None:
    """列出已登记的来源"""
    entries = SourcesFile().list_all()
    if not entries:
        click.echo("没有已登记的来源。")
        return
    for e in entries:
        loc = e.get("uri") or e.get("path") or ",".join(e.get("remotes", [])) or "-"
        click.echo(f"  {e['name']:20s} [{e.get('type', 'registry'):8s}] {loc}")


@source_group.command(name="add")
@click.argument("name")
@click.option(
    "--type", "source_type", default="registry",
    type=click.Choice(["registry", "path", "git"]), help="来源类型",
)
@click.option("--remote", multiple=True, help="仓库地址（registry，可多次）")
@click.option("--path", default="", help="本地目录（path）")
@click.option("--uri", default="", help="仓库地址（git）")
@click.option("--ref", default="", help="ref（git）")
@click.option("--branch", default="", help="分支（git）")
@click.option("--tag", default="", help="tag（git）")
@click.option("--submodules", is_flag=True, help="同时检出子模块（git）")
@click.option("--glob", default="", help="规格文件匹配模式（path/git）")
@click.option("--package-name", default="", help="无规格文件时合成规格的包名")
@click.option("--package-version", default="", help="无规格文件时合成规格的版本")
def source_add(name: str, source_type: str, **kwargs: Any) -> None:
    """登记来源"""
    source = _build(source_type, kwargs)
    SourcesFile().add(name, source)
    click.echo(f"来源已登记: {name} ({source})")


@source_group.command(name="remove")
@click.argument("name")
def source_remove(name: str) -> None:
    """移除来源"""
    if SourcesFile().remove(name):
        click.echo(f"来源已移除: {name}")
    else:
        click.echo(f"来源不存在: {name}")


def _build(source_type: str, kw: dict[str, Any]) -> Source:
    common: dict[str, Any] = {}
    if kw.get("glob"):
        common["glob"] = kw["glob"]
    if kw.get("package_name"):
        common["name"] = kw["package_name"]
    if kw.get("package_version"):
        common["version"] = kw["package_version"]

    if source_type == "path":
        return PathSource({"path": kw.get("path") or ".", **common})
    if source_type == "git":
        opts: dict[str, Any] = {"uri": kw.get("uri", ""), **common}
        for key in ("ref", "branch", "tag"):
            if kw.get(key):
                opts[key] = kw[key]
        if kw.get("submodules"):
            opts["submodules"] = True
        return GitSource(opts)
    return RegistrySource({"remotes": list(kw.get("remote", ()))})
