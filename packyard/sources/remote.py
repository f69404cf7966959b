"""远程制品仓库拉取器

仓库布局（相对仓库基址，基址以 / 结尾）:
  specs.yml              正式版本列表，YAML 列表 [[name, version, platform], ...]
  prerelease_specs.yml   预发布版本列表，格式同上
  packages/<full_name>.pkg  归档文件

所有网络/解析失败统一抛 FetchError，由调用方决定是否致命。
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

import yaml

from packyard.core.exceptions import FetchError, InvalidOption
from packyard.core.layout import ARCHIVE_EXT
from packyard.utils.net import validate_url_scheme

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https", "file")

SpecTuple = tuple[str, str, str]


class RemoteFetcher:
    """基于 urllib 的远程仓库访问"""

    def __init__(self, timeout: int = 60) -> None:
        self.timeout = timeout

    def list_specs(self, uri: str, *, prerelease: bool = False) -> list[SpecTuple]:
        """拉取远程规格列表"""
        name = "prerelease_specs.yml" if prerelease else "specs.yml"
        url = f"{uri}{name}"
        body = self._read(url)
        try:
            data = yaml.safe_load(body)
        except yaml.YAMLError as e:
            raise FetchError(f"无法解析规格列表 {url}: {e}") from e
        if data is None:
            return []
        if not isinstance(data, list):
            raise FetchError(f"规格列表格式错误 {url}: 期望列表")
        return [self._to_tuple(entry, url) for entry in data]

    def download(self, spec: Any, uri: str, dest_dir: Path) -> Path:
        """下载归档到 dest_dir/<full_name>.pkg，已存在则直接返回"""
        filename = f"{spec.full_name}{ARCHIVE_EXT}"
        url = f"{uri}packages/{filename}"
        dest = dest_dir / filename
        dest.parent.mkdir(parents=True, exist_ok=True)

        if dest.exists():
            logger.info("  缓存命中: %s", dest)
            return dest

        self._validate(url, spec.full_name)
        logger.info("  下载: %s", url)
        try:
            urllib.request.urlretrieve(url, str(dest))  # nosec B310
        except (urllib.error.HTTPError, urllib.error.URLError, OSError) as e:
            dest.unlink(missing_ok=True)
            raise FetchError(f"下载失败: {url} - {e}") from e
        return dest

    def _read(self, url: str) -> str:
        self._validate(url, "spec list")
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as resp:  # nosec B310
                return resp.read().decode("utf-8")
        except (urllib.error.HTTPError, urllib.error.URLError, OSError) as e:
            raise FetchError(f"无法访问 {url}: {e}") from e

    @staticmethod
    def _validate(url: str, context: str) -> None:
        try:
            validate_url_scheme(url, context=context, schemes=REMOTE_SCHEMES)
        except InvalidOption as e:
            raise FetchError(str(e)) from e

    @staticmethod
    def _to_tuple(entry: Any, url: str) -> SpecTuple:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            raise FetchError(f"规格列表条目格式错误 {url}: {entry!r}")
        platform = str(entry[2]) if len(entry) > 2 and entry[2] else "any"
        return str(entry[0]), str(entry[1]), platform
