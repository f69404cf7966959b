"""缓存与安装目录布局

目录约定（相对 install_root）:
  packages/<full_name>/            已安装包内容
  specifications/<full_name>.pkgspec  已安装规格文件
  cache/<full_name>.pkg            归档缓存
  bin/                             可执行包装脚本
  packyard/packages/<base>-<rev>   git 检出工作目录
  packyard/cache/git/<base>-<hash> git 裸镜像

项目内归档缓存: <project_root>/vendor/cache
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from packyard.core.config import Config

ARCHIVE_EXT = ".pkg"
SPEC_EXT = ".pkgspec"


@dataclass(frozen=True)
class CacheLayout:
    """目录布局，由 Config 派生，只读"""

    install_root: Path
    project_root: Path
    tmp_dir: Path
    search_paths: tuple[Path, ...] = ()
    bin_override: Path | None = None

    @classmethod
    def from_config(cls, cfg: Config) -> CacheLayout:
        project_root = Path(cfg.project_root).expanduser().resolve()
        install_root = project_root / Path(cfg.install_root).expanduser()
        search = tuple(Path(p).expanduser() for p in cfg.search_paths) if cfg.shared else ()
        return cls(
            install_root=install_root.resolve(),
            project_root=project_root,
            tmp_dir=Path(cfg.tmp_dir).expanduser(),
            search_paths=search,
            bin_override=Path(cfg.bin_dir).expanduser() if cfg.bin_dir else None,
        )

    @property
    def packages_dir(self) -> Path:
        return self.install_root / "packages"

    @property
    def specifications_dir(self) -> Path:
        return self.install_root / "specifications"

    @property
    def cache_dir(self) -> Path:
        return self.install_root / "cache"

    @property
    def bin_dir(self) -> Path:
        return self.bin_override or self.install_root / "bin"

    @property
    def home(self) -> Path:
        return self.install_root / "packyard"

    @property
    def checkouts_dir(self) -> Path:
        return self.home / "packages"

    @property
    def git_cache_dir(self) -> Path:
        return self.home / "cache" / "git"

    @property
    def app_cache(self) -> Path:
        return self.project_root / "vendor" / "cache"

    def archive_caches(self) -> list[Path]:
        """按优先级列出归档查找目录: 项目缓存 → 安装根缓存 → 共享路径缓存"""
        return [self.app_cache, self.cache_dir, *(p / "cache" for p in self.search_paths)]

    def specification_dirs(self) -> list[tuple[Path, Path]]:
        """已安装规格目录及其对应的包内容目录"""
        roots = [self.install_root, *self.search_paths]
        return [(r / "specifications", r / "packages") for r in roots]

    def is_within_project(self, path: Path) -> bool:
        try:
            path.resolve().relative_to(self.project_root)
        except ValueError:
            return False
        return True
