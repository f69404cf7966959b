"""包来源

三种来源共享同一能力契约（见 base.Source）:
  - RegistrySource: 远程制品仓库（锁文件头 GEM）
  - PathSource:     本地目录（锁文件头 PATH）
  - GitSource:      git 仓库（锁文件头 GIT）
"""

from __future__ import annotations

from typing import Any

from packyard.core.exceptions import InvalidOption
from packyard.sources.base import Source
from packyard.sources.git import GitSource
from packyard.sources.path import PathSource
from packyard.sources.registry import RegistrySource
from packyard.sources.sources_file import SOURCE_TYPES, SourcesFile

__all__ = [
    "GitSource",
    "LOCK_HEADERS",
    "PathSource",
    "RegistrySource",
    "SOURCE_TYPES",
    "Source",
    "SourcesFile",
    "source_from_lock",
]

# 锁文件头 -> 来源类型（锁文件格式由外部解析器消费，头名不可更改）
LOCK_HEADERS: dict[str, type[Source]] = {
    RegistrySource.lock_header: RegistrySource,
    PathSource.lock_header: PathSource,
    GitSource.lock_header: GitSource,
}


def source_from_lock(header: str, options: dict[str, Any], **kwargs: Any) -> Source:
    """按锁文件头重建来源，kwargs 透传给构造函数（config / executor 等）"""
    cls = LOCK_HEADERS.get(header)
    if cls is None:
        raise InvalidOption(f"未知的锁文件来源类型: {header}")
    return cls.from_lock(options, **kwargs)
