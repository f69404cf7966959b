"""规格文件加载

*.pkgspec 支持两种写法:
  1. YAML 映射（首选）
  2. Python 脚本：在文件所在目录执行，脚本需绑定变量 spec
     （映射或 Specification 实例）

YAML 非法或顶层不是映射时回退到脚本执行；两种方式都失败时抛
SpecificationError 并指明出错的文件。
"""

from __future__ import annotations

import logging
import os
import runpy
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import yaml

from packyard.core.exceptions import SpecificationError
from packyard.core.models import Specification
from packyard.utils.yaml_io import atomic_write, dump_yaml

logger = logging.getLogger(__name__)


@contextmanager
def _pushd(path: Path) -> Iterator[None]:
    prev = os.getcwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(prev)


def load_spec_file(path: Path) -> Specification:
    """加载单个规格文件"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecificationError(f"无法读取规格文件 {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        data = None

    if isinstance(data, dict):
        try:
            return Specification.from_dict(data)
        except SpecificationError as e:
            raise SpecificationError(f"规格文件 {path} 内容无效: {e}") from e

    logger.debug("按脚本方式解析规格文件: %s", path)
    return _eval_spec_file(path)


def _eval_spec_file(path: Path) -> Specification:
    abs_path = path.resolve()
    try:
        with _pushd(abs_path.parent):
            namespace = runpy.run_path(str(abs_path), run_name="__pkgspec__")
    except ImportError as e:
        raise SpecificationError(
            f"执行 {path.name} 时发生 ImportError: {e}。"
            "规格脚本是否引用了相对路径模块？"
        ) from e
    except Exception as e:  # noqa: BLE001 用户脚本可能抛出任意异常
        raise SpecificationError(
            f"规格文件 {path} 既不是合法 YAML，也无法作为脚本执行: "
            f"{type(e).__name__}: {e}"
        ) from e

    spec: Any = namespace.get("spec")
    if isinstance(spec, Specification):
        return spec
    if isinstance(spec, dict):
        try:
            return Specification.from_dict(spec)
        except SpecificationError as e:
            raise SpecificationError(f"规格文件 {path} 内容无效: {e}") from e
    raise SpecificationError(f"规格脚本 {path} 未定义 spec 变量")


def write_spec_file(spec: Specification, path: Path) -> None:
    """以 YAML 形式写出规格文件"""
    atomic_write(path, dump_yaml(spec.to_dict()))
