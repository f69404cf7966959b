"""Git 仓库来源

在路径扫描之下增加一层版本控制获取，每个实例的状态:

  UNRESOLVED → CACHED（裸镜像存在）→ CHECKED_OUT（工作副本固定在已解析修订）→ INSTALLED

- 裸镜像: packyard/cache/git/<base>-<sha1(规范化 uri)>，不存在则 clone --bare，存在则 fetch
- 修订: 构造时给了 revision 则直接使用；否则在裸镜像上 rev-parse ref 并缓存，
  同一实例内同一 ref 始终指向同一提交，直到 unlock()
- 工作副本: packyard/packages/<base>-<修订前 7 位>，从裸镜像 clone --no-checkout 后 reset --hard

规格扫描复用 SpecScanner，不继承 PathSource。
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from packyard.core.config import Config
from packyard.core.exceptions import ExecutionError, InvalidOption, PathError, VersionControlError
from packyard.core.index import Index
from packyard.sources.base import Source
from packyard.sources.path import DEFAULT_GLOB, SpecScanner, generate_bin, warn_uncached
from packyard.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)

DEFAULT_REF = "HEAD"
SHORTREF_LEN = 7

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@\-^~]+$")
_SCHEME_RE = re.compile(r"^\w+://(\w+@)?")
_LOCK_OPTIONS = ("ref", "branch", "tag", "submodules")
_SAVED_OPTIONS = ("uri", "ref", "branch", "tag", "revision", "submodules", "glob", "name", "version")


def shortref(ref: str) -> str:
    return ref[:SHORTREF_LEN]


def _lock_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class GitSource(Source):
    """Git 仓库来源"""

    lock_header = "GIT"

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        *,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        super().__init__(options, config=config, executor=executor)
        uri = self.options.get("uri")
        if not uri:
            raise InvalidOption("git 来源必须指定 uri")
        self.uri = str(uri)
        if self.uri.startswith("-"):
            raise InvalidOption(f"非法的 git 地址: {self.uri}")

        opts = self.options
        self.ref = str(opts.get("ref") or opts.get("branch") or opts.get("tag") or DEFAULT_REF)
        if not _SAFE_REF_RE.match(self.ref) or self.ref.startswith("-"):
            raise InvalidOption(f"ref 包含非法字符: {self.ref}")
        revision = opts.get("revision")
        self._revision: str | None = str(revision) if revision else None

        self.submodules = bool(opts.get("submodules"))
        self.glob: str = opts.get("glob") or DEFAULT_GLOB
        self.package_name: str | None = opts.get("name")
        version = opts.get("version")
        self.version: str | None = str(version) if version is not None else None

        self._scanner = SpecScanner(self.glob)
        self._local_specs: Index | None = None
        self._updated = False
        self._installed = False

    # ------------------------------------------------------------------
    # 身份
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return PurePosixPath(self.uri).name.removesuffix(".git")

    def identity(self) -> tuple[str, str, str | None, str | None]:
        return (self.uri, self.ref, self.package_name, self.version)

    def __str__(self) -> str:
        explicit = self.options.get("ref")
        ref = shortref(str(explicit)) if explicit else self.ref
        return f"{self.uri} (at {ref})"

    @property
    def base_name(self) -> str:
        stripped = re.sub(r"^(\w+://)?([^/:]+:)", "", self.uri)
        return PurePosixPath(stripped).name.removesuffix(".git")

    @property
    def uri_hash(self) -> str:
        if _SCHEME_RE.match(self.uri):
            # 主机名转小写，去掉结尾斜杠
            parts = urlsplit(self.uri)
            netloc = parts.netloc
            if "@" in netloc:
                userinfo, host = netloc.rsplit("@", 1)
                netloc = f"{userinfo}@{host.lower()}"
            else:
                netloc = netloc.lower()
            text = urlunsplit((parts.scheme.lower(), netloc, parts.path, parts.query, parts.fragment))
            text = text.removesuffix("/")
        else:
            # 无协议前缀时视为 ssh/scp 风格地址，原样使用
            text = self.uri
        return hashlib.sha1(text.encode("utf-8")).hexdigest()  # noqa: S324

    @property
    def cache_path(self) -> Path:
        return self.layout.git_cache_dir / f"{self.base_name}-{self.uri_hash}"

    @property
    def path(self) -> Path:
        return self.layout.checkouts_dir / f"{self.base_name}-{shortref(self.revision)}"

    @property
    def revision(self) -> str:
        if self._revision is None:
            self._revision = self._in_cache(
                ["rev-parse", "--verify", self.ref], step="rev-parse",
            ).strip()
        return self._revision

    def cached(self) -> bool:
        return self.cache_path.exists()

    # ------------------------------------------------------------------
    # 锁文件
    # ------------------------------------------------------------------

    @classmethod
    def from_lock(cls, options: dict[str, Any], **kwargs: Any) -> GitSource:
        opts = dict(options)
        opts["uri"] = opts.pop("remote", opts.get("uri"))
        return cls(opts, **kwargs)

    def to_lock(self) -> str:
        out = f"{self.lock_header}\n"
        out += f"  remote: {self.uri}\n"
        out += f"  revision: {shortref(self.revision)}\n"
        for opt in _LOCK_OPTIONS:
            if self.options.get(opt):
                out += f"  {opt}: {_lock_value(self.options[opt])}\n"
        if self.glob != DEFAULT_GLOB:
            out += f"  glob: {self.glob}\n"
        out += "  specs:\n"
        return out

    def to_options(self) -> dict[str, Any]:
        return {k: self.options[k] for k in _SAVED_OPTIONS if self.options.get(k)}

    # ------------------------------------------------------------------
    # 索引 / 安装
    # ------------------------------------------------------------------

    def unlock(self) -> None:
        self._revision = None
        self._updated = False
        self._installed = False
        self._local_specs = None

    def specs(self) -> Index:
        if (self._allow_remote or self._allow_cached) and not self._updated:
            # 先确保裸镜像最新，再检出
            self._update_mirror()
            self._checkout()
            self._updated = True
        if self._local_specs is None:
            self._local_specs = self.load_spec_files()
        return self._local_specs

    def load_spec_files(self) -> Index:
        if not self.cached() or not self.path.is_dir():
            raise PathError(f"{self} is not checked out. Please run `packyard install`")
        return self._scanner.load(
            self.path, self, name=self.package_name, version=self.version,
        )

    def install(self, spec: Any) -> None:
        logger.info("Using %s (%s) from %s", spec.name, spec.version, self)
        if not self._installed:
            logger.debug("  * Checking out revision: %s", self.ref)
            self._checkout()
            self._installed = True
        generate_bin(spec, self.path, self.layout)

    def cache(self, spec: Any) -> None:
        warn_uncached(spec, self.path, self.layout)

    # ------------------------------------------------------------------
    # git 操作
    # ------------------------------------------------------------------

    def _git(self, args: list[str], *, step: str, cwd: Path | None = None) -> str:
        cmd = ["git", *args]
        if self.requires_elevation():
            cmd = ["sudo", "-E", *cmd]
        try:
            result = run_cmd(
                cmd, cwd=str(cwd) if cwd else ".", env=self.child_env(),
                label=f"git {step}", executor=self.executor,
            )
        except ExecutionError as e:
            raise VersionControlError(
                f"git {step} 失败，来源 {self.uri}，无法完成安装: {e}"
            ) from e
        return result.stdout

    def _update_mirror(self) -> None:
        if self.cached():
            logger.info("Updating %s", self.uri)
            self._git(
                ["fetch", "--force", "--quiet", "--tags", self.uri, "refs/heads/*:refs/heads/*"],
                step="fetch", cwd=self.cache_path,
            )
        else:
            logger.info("Fetching %s", self.uri)
            self.elevation.ensure_dir(self.cache_path.parent, elevate=self.requires_elevation())
            self._git(
                ["clone", "--bare", "--no-hardlinks", self.uri, str(self.cache_path)],
                step="clone",
            )

    def _checkout(self) -> None:
        path = self.path
        if not (path / ".git").exists():
            self.elevation.ensure_dir(path.parent, elevate=self.requires_elevation())
            self._git(
                ["clone", "--no-checkout", str(self.cache_path), str(path)],
                step="clone",
            )
        self._git(["fetch", "--force", "--quiet"], step="fetch", cwd=path)
        self._git(["reset", "--hard", self.revision], step="reset", cwd=path)
        if self.submodules:
            self._git(["submodule", "init"], step="submodule init", cwd=path)
            self._git(["submodule", "update"], step="submodule update", cwd=path)

    def _in_cache(self, args: list[str], *, step: str) -> str:
        if not self.cached():
            self._update_mirror()
        return self._git(args, step=step, cwd=self.cache_path)
