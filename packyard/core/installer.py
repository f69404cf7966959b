"""归档安装器

把一个 .pkg 归档安装到指定安装根目录:
  1. 解压到 <install_dir>/packages/<full_name>/
  2. 写出 <install_dir>/specifications/<full_name>.pkgspec
  3. 在 bin_dir 生成可执行包装脚本

不处理依赖，依赖由解析器决定的安装顺序保证。
"""

from __future__ import annotations

import logging
from pathlib import Path

from packyard.core.archive import PackageArchive
from packyard.core.layout import SPEC_EXT
from packyard.core.models import Specification
from packyard.core.spec_loader import write_spec_file
from packyard.core.stubs import generate_stubs

logger = logging.getLogger(__name__)


class PackageInstaller:
    """单个归档的安装器"""

    def __init__(self, archive_path: Path, install_dir: Path, bin_dir: Path | None = None) -> None:
        self.archive = PackageArchive(archive_path)
        self.install_dir = install_dir
        self.bin_dir = bin_dir or install_dir / "bin"

    def install(self) -> Specification:
        spec = self.archive.spec()
        package_dir = self.install_dir / "packages" / spec.full_name
        spec_file = self.install_dir / "specifications" / f"{spec.full_name}{SPEC_EXT}"

        self.archive.extract_to(package_dir)
        write_spec_file(spec, spec_file)
        spec.full_path = str(package_dir)
        generate_stubs(spec, package_dir, self.bin_dir)
        logger.debug("  已安装 %s -> %s", spec.full_name, package_dir)
        return spec
