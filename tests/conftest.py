"""公共测试夹具"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from packyard.core.archive import PackageArchive
from packyard.core.config import Config
from packyard.core.exceptions import FetchError
from packyard.core.models import Specification
from packyard.utils.logger import reset_logging
from packyard.utils.shell import CommandResult


class FakeExecutor:
    """记录所有调用的假执行器

    handler(args, cwd) 返回 CommandResult 或 None（None 视为成功且无输出）。
    """

    def __init__(self, handler: Callable[[list[str], str], CommandResult | None] | None = None) -> None:
        self.calls: list[tuple[list[str], str]] = []
        self.envs: list[dict[str, str] | None] = []
        self.handler = handler

    def execute(
        self,
        args: Sequence[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        argv = list(args)
        self.calls.append((argv, cwd))
        self.envs.append(env)
        if self.handler is not None:
            result = self.handler(argv, cwd)
            if result is not None:
                return result
        return CommandResult(0, "", "")

    def commands(self, *prefix: str) -> list[list[str]]:
        """返回以 prefix 开头的调用参数列表"""
        return [argv for argv, _ in self.calls if argv[:len(prefix)] == list(prefix)]


class FakeFetcher:
    """内存中的远程仓库

    remotes: uri -> [(name, version, platform), ...]
    unreachable: 访问即抛 FetchError 的 uri 集合
    """

    def __init__(
        self,
        remotes: dict[str, list[tuple[str, str, str]]] | None = None,
        *,
        unreachable: set[str] | None = None,
        metadata: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.remotes = remotes or {}
        self.unreachable = unreachable or set()
        self.metadata = metadata or {}
        self.downloads: list[str] = []

    def list_specs(self, uri: str, *, prerelease: bool = False) -> list[tuple[str, str, str]]:
        if uri in self.unreachable:
            raise FetchError(f"无法访问 {uri}")
        if prerelease:
            return []
        return list(self.remotes.get(uri, []))

    def download(self, spec: Any, uri: str, dest_dir: Path) -> Path:
        if uri in self.unreachable:
            raise FetchError(f"下载失败: {uri}")
        self.downloads.append(spec.full_name)
        data = {"name": spec.name, "version": str(spec.version), "platform": spec.platform}
        data.update(self.metadata.get(spec.full_name, {}))
        return PackageArchive.create(Specification.from_dict(data), None, dest_dir).path


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    """以 tmp_path 为根的隔离配置"""
    project = tmp_path / "project"
    project.mkdir()
    return Config(
        install_root=str(tmp_path / "home"),
        project_root=str(project),
        tmp_dir=str(tmp_path / "tmp"),
        shared=False,
    )


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def clean_logging() -> Any:
    """CLI 测试会配置根日志器，结束后清理"""
    yield
    reset_logging()


@pytest.fixture()
def make_archive(tmp_path: Path) -> Callable[..., Path]:
    """在指定目录生成归档: make_archive(dest_dir, name, version, files={...}, **meta)"""

    def _make(dest_dir: Path, name: str, version: str, files: dict[str, str] | None = None, **meta: Any) -> Path:
        src = tmp_path / "src" / f"{name}-{version}"
        src.mkdir(parents=True, exist_ok=True)
        for rel, content in (files or {}).items():
            f = src / rel
            f.parent.mkdir(parents=True, exist_ok=True)
            f.write_text(content, encoding="utf-8")
        spec = Specification.from_dict({"name": name, "version": version, **meta})
        return PackageArchive.create(spec, src, dest_dir).path

    return _make


@pytest.fixture()
def fake_fetcher_cls() -> type[FakeFetcher]:
    return FakeFetcher


@pytest.fixture()
def fake_executor_cls() -> type[FakeExecutor]:
    return FakeExecutor
