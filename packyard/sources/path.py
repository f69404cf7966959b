"""本地路径来源

扫描目录下匹配 glob 的规格文件（默认顶层及一级子目录的 *.pkgspec）。
没有任何规格文件但构造时给了 name + version 时，合成一个最小规格，
bin/ 下的文件作为其可执行文件。

安装只生成可执行包装脚本，指向原地源码树，不构建归档，也不编译扩展。
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from packyard.core.config import Config
from packyard.core.exceptions import PathError
from packyard.core.index import Index
from packyard.core.layout import SPEC_EXT, CacheLayout
from packyard.core.models import Specification, parse_version
from packyard.core.spec_loader import load_spec_file
from packyard.core.stubs import generate_stubs
from packyard.sources.base import Source
from packyard.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

DEFAULT_GLOB = "{,*/}*" + SPEC_EXT

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """展开 {a,b} 形式的备选项: "{,*/}*.pkgspec" -> ["*.pkgspec", "*/*.pkgspec"]"""
    m = _BRACE_RE.search(pattern)
    if m is None:
        return [pattern]
    head, tail = pattern[:m.start()], pattern[m.end():]
    out: list[str] = []
    for alt in m.group(1).split(","):
        out.extend(expand_braces(head + alt + tail))
    return out


class SpecScanner:
    """在目录中按 glob 查找并加载规格文件（路径来源与 git 来源共用）"""

    def __init__(self, glob: str = DEFAULT_GLOB) -> None:
        self.glob = glob

    def spec_files(self, root: Path) -> list[Path]:
        seen: list[Path] = []
        for pattern in expand_braces(self.glob):
            for f in sorted(root.glob(pattern)):
                if f.is_file() and f not in seen:
                    seen.append(f)
        return seen

    def load(
        self, root: Path, source: Any, *,
        name: str | None = None, version: str | None = None,
    ) -> Index:
        if not root.is_dir():
            raise PathError(f"The path `{root}` does not exist.")

        idx = Index()
        for spec_file in self.spec_files(root):
            spec = load_spec_file(spec_file)
            spec.loaded_from = spec_file
            spec.full_path = str(spec_file.parent)
            spec.source = source
            idx.add(spec)

        if idx.empty and name and version:
            idx.add(self._synthesize(root, source, name, version))
        return idx

    @staticmethod
    def _synthesize(root: Path, source: Any, name: str, version: str) -> Specification:
        bin_dir = root / "bin"
        executables = sorted(c.name for c in bin_dir.iterdir() if c.is_file()) if bin_dir.is_dir() else []
        spec = Specification(
            name=name,
            version=parse_version(version),
            summary=f"Fake specification for {name}",
            executables=executables,
            full_path=str(root),
            source=source,
        )
        spec.loaded_from = root / f"{name}{SPEC_EXT}"
        return spec


def generate_bin(spec: Any, default_dir: Path, layout: CacheLayout) -> list[Path]:
    """为原地源码树生成包装脚本"""
    package_dir = Path(spec.full_path) if spec.full_path else default_dir
    return generate_stubs(spec, package_dir, layout.bin_dir)


def warn_uncached(spec: Any, path: Path, layout: CacheLayout) -> None:
    if not layout.is_within_project(path):
        logger.warning("  * %s at `%s` will not be cached.", spec.name, path)


class PathSource(Source):
    """本地路径来源"""

    lock_header = "PATH"

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        *,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        super().__init__(options, config=config, executor=executor)
        self.glob: str = self.options.get("glob") or DEFAULT_GLOB
        raw_path = self.options.get("path")
        if not raw_path:
            raise PathError("路径来源必须指定 path")
        self.path = (self.layout.project_root / Path(str(raw_path)).expanduser()).resolve()
        self.package_name: str | None = self.options.get("name")
        version = self.options.get("version")
        self.version: str | None = str(version) if version is not None else None
        self._scanner = SpecScanner(self.glob)
        self._local_specs: Index | None = None

    @property
    def name(self) -> str:
        return self.path.name

    def identity(self) -> tuple[str, str | None, str | None]:
        return (str(self.path), self.package_name, self.version)

    def __str__(self) -> str:
        return f"source at {self.path}"

    # ------------------------------------------------------------------
    # 锁文件
    # ------------------------------------------------------------------

    @classmethod
    def from_lock(cls, options: dict[str, Any], **kwargs: Any) -> PathSource:
        opts = dict(options)
        opts["path"] = opts.pop("remote", opts.get("path"))
        return cls(opts, **kwargs)

    def to_lock(self) -> str:
        out = f"{self.lock_header}\n"
        out += f"  remote: {self.relative_path()}\n"
        if self.glob != DEFAULT_GLOB:
            out += f"  glob: {self.glob}\n"
        out += "  specs:\n"
        return out

    def relative_path(self) -> str:
        """位于项目根目录内时输出相对路径，否则输出绝对路径"""
        if self.layout.is_within_project(self.path):
            return self.path.relative_to(self.layout.project_root).as_posix()
        return str(self.path)

    def to_options(self) -> dict[str, Any]:
        opts: dict[str, Any] = {"path": self.relative_path()}
        if self.glob != DEFAULT_GLOB:
            opts["glob"] = self.glob
        if self.package_name:
            opts["name"] = self.package_name
        if self.version:
            opts["version"] = self.version
        return opts

    # ------------------------------------------------------------------
    # 索引 / 安装
    # ------------------------------------------------------------------

    def load_spec_files(self) -> Index:
        return self._scanner.load(
            self.path, self, name=self.package_name, version=self.version,
        )

    def specs(self) -> Index:
        if self._local_specs is None:
            self._local_specs = self.load_spec_files()
        return self._local_specs

    def unlock(self) -> None:
        self._local_specs = None

    def install(self, spec: Any) -> None:
        logger.info("Using %s (%s) from %s", spec.name, spec.version, self)
        generate_bin(spec, self.path, self.layout)

    def cache(self, spec: Any) -> None:
        warn_uncached(spec, self.path, self.layout)
