"""来源定义文件

项目内 packyard.sources.yml 以名称登记来源:

    sources:
      main:
        type: registry
        remotes: [https://pkgs.example.com/]
      tools:
        type: path
        path: ./vendor/tools
      lib:
        type: git
        uri: https://git.example.com/lib.git
        branch: stable
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from packyard.core.config import Config, get_config
from packyard.core.exceptions import InvalidOption, ManifestError

from packyard.sources.base import Source
from packyard.sources.git import GitSource
from packyard.sources.path import PathSource
from packyard.sources.registry import RegistrySource
from packyard.utils.shell import CommandExecutor
from packyard.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)

SOURCE_TYPES: dict[str, type[Source]] = {
    "registry": RegistrySource,
    "path": PathSource,
    "git": GitSource,
}


class SourcesFile:
    """来源定义的增删查，以及按名称构造来源

    条目保存在 sources 段下，写入前校验 type；文件里手工写入的
    无效类型在 build() 时报 ManifestError。
    """

    section_key = "sources"

    def __init__(self, sources_file: str | Path = "", *, config: Config | None = None) -> None:
        self.config = config or get_config()
        if not sources_file:
            sources_file = Path(self.config.project_root).expanduser() / self.config.sources_file
        self.sources_file = Path(sources_file)
        self._data: dict[str, Any] = load_yaml(self.sources_file)

    def _section(self) -> dict[str, dict[str, Any]]:
        result: dict[str, dict[str, Any]] = self._data.setdefault(self.section_key, {})
        return result

    def _put(self, name: str, entry: dict[str, Any]) -> dict[str, Any]:
        """校验并写入条目"""
        type_name = entry.get("type")
        if type_name not in SOURCE_TYPES:
            raise ManifestError(f"来源 {name} 的类型无效: {type_name}")
        self._section()[name] = entry
        save_yaml(self.sources_file, self._data)
        return entry

    def add(self, name: str, source: Source) -> dict[str, Any]:
        """登记来源；同名条目直接覆盖"""
        type_name = next(k for k, cls in SOURCE_TYPES.items() if isinstance(source, cls))
        entry = self._put(name, {"type": type_name, **source.to_options()})
        logger.info("来源已登记: %s (%s)", name, type_name)
        return entry

    def get(self, name: str) -> dict[str, Any] | None:
        return self._section().get(name)

    def list_all(self) -> list[dict[str, Any]]:
        """列出所有条目（带 name 字段）"""
        return [{"name": k, **v} for k, v in self._section().items()]

    def remove(self, name: str) -> bool:
        section = self._section()
        if name not in section:
            return False
        del section[name]
        save_yaml(self.sources_file, self._data)
        logger.info("来源已移除: %s", name)
        return True

    def build(self, name: str, *, executor: CommandExecutor | None = None) -> Source:
        """由登记条目构造来源实例"""
        entry = self.get(name)
        if entry is None:
            raise InvalidOption(f"来源未登记: {name}")
        options = dict(entry)
        type_name = options.pop("type", "registry")
        cls = SOURCE_TYPES.get(type_name)
        if cls is None:
            raise ManifestError(f"来源 {name} 的类型无效: {type_name}")
        return cls(options, config=self.config, executor=executor)

    def build_all(self, *, executor: CommandExecutor | None = None) -> list[Source]:
        return [self.build(name, executor=executor) for name in self._section()]
