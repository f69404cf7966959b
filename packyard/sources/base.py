"""来源基类：三种来源共享的能力契约

  allow_remote() / allow_cached()  打开可选的发现层（幂等）
  specs()                          本来源的 Index（首次访问后缓存）
  install(spec)                    幂等安装
  cache(spec)                      复制到项目缓存目录
  to_lock() / from_lock(options)   锁文件序列化与重建
  unlock()                         清除缓存结果
  __eq__ / __hash__                只比较身份字段，与内存状态无关
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import Any

from packyard.core.config import Config, get_config
from packyard.core.elevation import ElevationHelper, requires_elevation
from packyard.core.index import Index
from packyard.core.layout import CacheLayout
from packyard.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class Source(ABC):
    """来源抽象基类"""

    lock_header: str = ""

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        *,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.options: dict[str, Any] = dict(options or {})
        self.config = config or get_config()
        self.layout = CacheLayout.from_config(self.config)
        self.executor = executor
        self.elevation = ElevationHelper(
            self.config.sudo_prompt, executor=executor, env=self.child_env(),
        )
        self._allow_remote = False
        self._allow_cached = False

    # ------------------------------------------------------------------
    # 发现层开关
    # ------------------------------------------------------------------

    def allow_remote(self) -> None:
        self._allow_remote = True

    def allow_cached(self) -> None:
        self._allow_cached = True

    def unlock(self) -> None:
        """清除缓存结果，子类按需扩展"""

    def requires_elevation(self) -> bool:
        return requires_elevation(self.layout.install_root)

    def child_env(self) -> dict[str, str]:
        """子进程环境：继承当前进程，并带上 PACKYARD_HOME / PACKYARD_PATH"""
        return {**os.environ, **self.config.environment()}

    # ------------------------------------------------------------------
    # 契约
    # ------------------------------------------------------------------

    @abstractmethod
    def specs(self) -> Index:
        ...

    @abstractmethod
    def install(self, spec: Any) -> None:
        ...

    @abstractmethod
    def cache(self, spec: Any) -> None:
        ...

    @abstractmethod
    def to_lock(self) -> str:
        ...

    @classmethod
    @abstractmethod
    def from_lock(cls, options: dict[str, Any], **kwargs: Any) -> Source:
        ...

    @abstractmethod
    def identity(self) -> Hashable:
        """参与相等比较的身份字段"""

    # ------------------------------------------------------------------
    # 身份
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Source):
            return NotImplemented
        return type(self) is type(other) and self.identity() == other.identity()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.identity()))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"
