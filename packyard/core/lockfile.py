"""锁文件输出

每个来源输出 to_lock() 头部，再列出属于该来源的规格及其依赖:

    GEM
      remote: https://pkgs.example.com/
      specs:
        rack (1.0.0)
          json (>=1.0)

锁文件解析不在本模块范围内。
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def render_specs(specs: Iterable[Any]) -> str:
    lines: list[str] = []
    for spec in sorted(specs, key=lambda s: (s.name, s.version)):
        lines.append(f"    {spec.name} ({spec.version})\n")
        for dep in sorted(spec.dependencies, key=lambda d: d.name):
            req = f" ({dep.requirement})" if dep.requirement else ""
            lines.append(f"      {dep.name}{req}\n")
    return "".join(lines)


def render_lock(sources: Iterable[Any], specs: Iterable[Any]) -> str:
    """按来源分块输出锁文件内容，块之间以空行分隔"""
    spec_list = list(specs)
    blocks: list[str] = []
    for source in sources:
        owned = [s for s in spec_list if s.source == source]
        blocks.append(source.to_lock() + render_specs(owned))
    return "\n".join(blocks)
