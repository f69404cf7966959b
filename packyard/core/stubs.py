"""可执行包装脚本生成

为规格声明的每个可执行文件在 bin 目录生成 /bin/sh 包装脚本，
exec 到包目录内的真实文件。路径经 shlex.quote 转义。
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from packyard.core.models import Specification

logger = logging.getLogger(__name__)

_STUB_TEMPLATE = """#!/bin/sh
# Generated by packyard for {full_name}
exec {target} "$@"
"""


def generate_stubs(spec: Specification, package_dir: Path, bin_dir: Path) -> list[Path]:
    """生成包装脚本，返回已写出的文件路径"""
    if not spec.executables:
        return []
    bin_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for exe in spec.executables:
        target = package_dir / spec.bindir / exe
        stub = bin_dir / exe
        stub.write_text(
            _STUB_TEMPLATE.format(full_name=spec.full_name, target=shlex.quote(str(target))),
            encoding="utf-8",
        )
        stub.chmod(0o755)
        written.append(stub)
        logger.debug("  生成包装脚本: %s -> %s", stub, target)
    return written
