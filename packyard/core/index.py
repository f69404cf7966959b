"""规格索引

Index 是有序的规格列表。插入顺序即优先级，同一 full_name 可以出现多次
（分别来自已安装 / 缓存 / 远程），Index 本身不去重，由消费方按顺序取第一个。

用法:
    idx = Index.build(
        installed_provider,     # 最高优先级
        cached_provider,
        remote_provider,
    )
    idx.find("rack-1.0.0")      # 返回顺序上的第一个
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Union

from packyard.core.models import Dependency, parse_version

Provider = Union["Index", Callable[[], "Index"]]


class Index:
    """有序、可合并的规格集合"""

    def __init__(self, specs: Iterable[Any] = ()) -> None:
        self._specs: list[Any] = list(specs)

    @classmethod
    def build(cls, *providers: Provider) -> Index:
        """按调用顺序依次求值 provider 并拼接结果"""
        idx = cls()
        for provider in providers:
            idx.use(provider() if callable(provider) else provider)
        return idx

    def add(self, spec: Any) -> None:
        self._specs.append(spec)

    def use(self, other: Iterable[Any]) -> None:
        self._specs.extend(other)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __getitem__(self, i: int) -> Any:
        return self._specs[i]

    @property
    def empty(self) -> bool:
        return not self._specs

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def query(self, name: str, requirement: str = "") -> list[Any]:
        """按包名（及可选版本约束）查询，保持索引顺序"""
        return self.search(Dependency(name=name, requirement=requirement))

    def search(self, dependency: Dependency) -> list[Any]:
        return [
            s for s in self._specs
            if s.name == dependency.name and dependency.matches(parse_version(s.version))
        ]

    def find(self, full_name: str) -> Any | None:
        """返回第一个 full_name 匹配的条目"""
        for s in self._specs:
            if s.full_name == full_name:
                return s
        return None

    def lookup(self, spec: Any) -> list[Any]:
        """返回所有与 spec 同 full_name 的条目"""
        return [s for s in self._specs if s.full_name == spec.full_name]

    def sources(self) -> list[Any]:
        """按首次出现顺序列出条目所属来源"""
        seen: list[Any] = []
        for s in self._specs:
            src = getattr(s, "source", None)
            if src is not None and not any(src is x for x in seen):
                seen.append(src)
        return seen

    def __repr__(self) -> str:
        return f"<Index {len(self._specs)} specs>"
