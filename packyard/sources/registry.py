"""远程制品仓库来源

specs() 按严格顺序合并三层:
  1. 已安装（始终包含；若未安装 packyard 自身则注入一个合成规格）
  2. 本地缓存归档（allow_cached() 之后）
  3. 远程枚举的占位规格（allow_remote() 之后）

远程占位规格在枚举时登记一个按 full_name 索引的拉取动作（同名只登记
优先级最高的远程），fetch(spec) 执行该动作：下载归档、读取完整规格，
原地物化调用方传入的占位符及索引中所有同名占位符。
单个远程不可达只记警告，不影响其余远程的枚举。
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from packyard import __version__
from packyard.core.archive import PackageArchive
from packyard.core.config import Config
from packyard.core.exceptions import FetchError, InvalidOption, PackageNotFound, SpecificationError
from packyard.core.index import Index
from packyard.core.installer import PackageInstaller
from packyard.core.layout import ARCHIVE_EXT, SPEC_EXT
from packyard.core.lazy_spec import LazySpecification
from packyard.core.models import Specification, parse_version
from packyard.core.spec_loader import load_spec_file
from packyard.sources.base import Source
from packyard.sources.remote import RemoteFetcher, SpecTuple
from packyard.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

SELF_NAME = "packyard"
BUILTIN_LOADED_FROM = "<builtin>"


def normalize_uri(uri: Any) -> str:
    """补全结尾斜杠，协议与主机名转小写；非绝对 URI 抛 InvalidOption"""
    text = str(uri)
    if not text.endswith("/"):
        text += "/"
    parts = urlsplit(text)
    if not parts.scheme or not (parts.netloc or parts.path.startswith("/")):
        raise InvalidOption(f"远程地址必须是绝对 URI: {uri}")
    netloc = parts.netloc
    if "@" in netloc:
        userinfo, host = netloc.rsplit("@", 1)
        netloc = f"{userinfo}@{host.lower()}"
    else:
        netloc = netloc.lower()
    return urlunsplit((parts.scheme.lower(), netloc, parts.path, parts.query, parts.fragment))


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class RegistrySource(Source):
    """远程制品仓库来源（已安装 + 缓存 + 远程三层）"""

    lock_header = "GEM"

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        *,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
        fetcher: RemoteFetcher | None = None,
    ) -> None:
        super().__init__(options, config=config, executor=executor)
        self.remotes: list[str] = []
        for r in _as_list(self.options.get("remotes")):
            self.add_remote(r)
        self.fetcher = fetcher or RemoteFetcher()
        self._fetch_actions: dict[str, Callable[[Any], None]] = {}
        self._specs: Index | None = None
        self._installed: Index | None = None
        self._cached: Index | None = None
        self._remote: Index | None = None

    @property
    def name(self) -> str:
        return "registry"

    def add_remote(self, uri: Any) -> None:
        normalized = normalize_uri(uri)
        if normalized not in self.remotes:
            self.remotes.append(normalized)

    def identity(self) -> tuple[str, ...]:
        return tuple(self.remotes)

    def __hash__(self) -> int:
        # remotes 可通过 add_remote 增加，哈希只取类型
        return hash(type(self).__name__)

    def __str__(self) -> str:
        return f"registry at {', '.join(self.remotes)}"

    # ------------------------------------------------------------------
    # 锁文件
    # ------------------------------------------------------------------

    @classmethod
    def from_lock(cls, options: dict[str, Any], **kwargs: Any) -> RegistrySource:
        source = cls(options, **kwargs)
        for r in _as_list(options.get("remote")):
            source.add_remote(r)
        return source

    def to_lock(self) -> str:
        out = f"{self.lock_header}\n"
        out += "".join(f"  remote: {r}\n" for r in self.remotes)
        out += "  specs:\n"
        return out

    def to_options(self) -> dict[str, Any]:
        return {"remotes": list(self.remotes)}

    # ------------------------------------------------------------------
    # 索引
    # ------------------------------------------------------------------

    def specs(self) -> Index:
        if self._specs is None:
            providers: list[Callable[[], Index]] = [self._installed_specs]
            if self._allow_cached:
                providers.append(self._cached_specs)
            if self._allow_remote:
                providers.append(self._remote_specs)
            self._specs = Index.build(*providers)
        return self._specs

    def unlock(self) -> None:
        self._specs = None
        self._installed = None
        self._cached = None
        self._remote = None
        self._fetch_actions.clear()

    def fetch(self, spec: Any) -> None:
        """物化远程占位规格；非远程规格或已物化时无操作"""
        if isinstance(spec, LazySpecification) and spec.resolved:
            return
        action = self._fetch_actions.get(spec.full_name)
        if action is not None:
            action(spec)

    def _installed_specs(self) -> Index:
        if self._installed is not None:
            return self._installed

        idx = Index()
        have_self = False
        self_version = parse_version(__version__)
        for spec_dir, packages_dir in self.layout.specification_dirs():
            if not spec_dir.is_dir():
                continue
            for spec, spec_file in self._load_installed(spec_dir):
                if spec.name == SELF_NAME:
                    if spec.version != self_version:
                        continue
                    have_self = True
                spec.loaded_from = spec_file
                spec.full_path = str(packages_dir / spec.full_name)
                spec.source = self
                idx.add(spec)

        # 始终能解析到 packyard 自身
        if not have_self:
            idx.add(self._self_spec())
        self._installed = idx
        return idx

    @staticmethod
    def _load_installed(spec_dir: Path) -> list[tuple[Specification, Path]]:
        loaded: list[tuple[Specification, Path]] = []
        for spec_file in spec_dir.glob(f"*{SPEC_EXT}"):
            try:
                loaded.append((load_spec_file(spec_file), spec_file))
            except SpecificationError as e:
                logger.warning("跳过无效的已安装规格 %s: %s", spec_file, e)
        # 同名包新版本在前
        loaded.sort(key=lambda item: (item[0].name, item[0].version), reverse=True)
        return loaded

    def _self_spec(self) -> Specification:
        spec = Specification(
            name=SELF_NAME, version=parse_version(__version__),
            summary="packyard itself", source=self,
        )
        spec.loaded_from = BUILTIN_LOADED_FROM
        return spec

    def _cached_specs(self) -> Index:
        if self._cached is not None:
            return self._cached

        idx = Index()
        for cache_dir in self.layout.archive_caches():
            if not cache_dir.is_dir():
                continue
            for archive_file in sorted(cache_dir.glob(f"*{ARCHIVE_EXT}")):
                try:
                    spec = PackageArchive(archive_file).spec()
                except SpecificationError as e:
                    logger.warning("跳过无效的缓存归档 %s: %s", archive_file, e)
                    continue
                if spec.name == SELF_NAME:
                    continue
                spec.source = self
                idx.add(spec)
        self._cached = idx
        return idx

    def _remote_specs(self) -> Index:
        if self._remote is not None:
            return self._remote

        idx = Index()
        for uri in self.remotes:
            logger.info("Fetching source index for %s", uri)
            for name, version, platform in self._fetch_all_remote_specs(uri):
                if name == SELF_NAME:
                    continue
                try:
                    spec = LazySpecification(name, version, platform, uri)
                except SpecificationError as e:
                    logger.warning("忽略 %s 中的无效条目 %s: %s", uri, name, e)
                    continue
                spec.source = self
                # 前面的远程优先
                self._fetch_actions.setdefault(spec.full_name, self._make_fetch_action(spec, uri))
                idx.add(spec)
        self._remote = idx
        return idx

    def _fetch_all_remote_specs(self, uri: str) -> list[SpecTuple]:
        """拉取正式版 + 预发布列表；失败按来源隔离，只记警告"""
        try:
            entries = list(self.fetcher.list_specs(uri))
        except FetchError as e:
            logger.warning("Could not reach %s: %s", uri, e)
            return []
        try:
            entries.extend(self.fetcher.list_specs(uri, prerelease=True))
        except FetchError as e:
            logger.warning("Could not fetch prerelease specs from %s: %s", uri, e)
        return entries

    def _make_fetch_action(self, spec: LazySpecification, uri: str) -> Callable[[Any], None]:
        def action(target: Any) -> None:
            full = PackageArchive(self._download(spec, uri)).spec()
            pending = [s for s in self._remote or () if s.full_name == spec.full_name]
            pending.append(target)
            for placeholder in pending:
                if isinstance(placeholder, LazySpecification) and not placeholder.resolved:
                    placeholder.resolve(full)
        return action

    def _download(self, spec: LazySpecification, uri: str) -> Path:
        elevate = self.requires_elevation()
        download_root = self.layout.tmp_dir if elevate else self.layout.install_root
        archive_path = self.layout.cache_dir / f"{spec.full_name}{ARCHIVE_EXT}"
        try:
            downloaded = self.fetcher.download(spec, uri, download_root / "cache")
        except FetchError as e:
            raise PackageNotFound(f"无法下载 {spec.full_name}: {e}") from e

        if elevate:
            self.elevation.mkdir_p(self.layout.cache_dir)
            self.elevation.move(downloaded, archive_path)
            return archive_path
        return downloaded

    # ------------------------------------------------------------------
    # 安装 / 缓存
    # ------------------------------------------------------------------

    def install(self, spec: Any) -> None:
        if self._installed_specs().lookup(spec):
            logger.info("Using %s (%s)", spec.name, spec.version)
            return

        if isinstance(spec, LazySpecification) and not spec.resolved:
            self.fetch(spec)

        path = self._cached_archive(spec)
        if path is None:
            raise PackageNotFound(f"Missing package archive '{spec.full_name}{ARCHIVE_EXT}'.")

        logger.info("Installing %s (%s)", spec.name, spec.version)
        elevate = self.requires_elevation()
        if elevate:
            install_dir = self.layout.tmp_dir
            installer = PackageInstaller(path, install_dir, install_dir / "bin")
        else:
            install_dir = self.layout.install_root
            installer = PackageInstaller(path, install_dir, self.layout.bin_dir)
        installed = installer.install()

        if elevate:
            self.elevation.mkdir_p(self.layout.packages_dir, self.layout.specifications_dir)
            self.elevation.copy_tree(
                install_dir / "packages" / spec.full_name, self.layout.packages_dir,
            )
            self.elevation.copy_tree(
                install_dir / "specifications" / f"{spec.full_name}{SPEC_EXT}",
                self.layout.specifications_dir,
            )

        spec_file = self.layout.specifications_dir / f"{spec.full_name}{SPEC_EXT}"
        installed.loaded_from = spec_file
        installed.full_path = str(self.layout.packages_dir / spec.full_name)
        installed.source = self
        target = spec.spec if isinstance(spec, LazySpecification) else spec
        if target is not None:
            target.loaded_from = spec_file
        self._installed_specs().add(installed)

    def cache(self, spec: Any) -> None:
        path = self._cached_archive(spec)
        if path is None:
            raise PackageNotFound(f"Missing package archive '{spec.full_name}{ARCHIVE_EXT}'.")
        app_cache = self.layout.app_cache
        if path.parent.resolve() == app_cache.resolve():
            return
        logger.info("  * %s", path.name)
        app_cache.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, app_cache / path.name)

    def _cached_archive(self, spec: Any) -> Path | None:
        filename = f"{spec.full_name}{ARCHIVE_EXT}"
        for cache_dir in self.layout.archive_caches():
            candidate = cache_dir / filename
            if candidate.exists():
                return candidate
        return None
