"""核心数据模型

Specification: 单个包 + 版本 + 平台的描述，持有所属来源的反向引用。
Dependency: 依赖名 + 版本约束。

full_name 是安装存在性检查和锁文件输出使用的稳定身份键。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from packyard.core.exceptions import SpecificationError

PLATFORM_ANY = "any"


def parse_version(value: Any) -> Version:
    """将字符串/数字解析为 Version，非法时抛 SpecificationError"""
    if isinstance(value, Version):
        return value
    try:
        return Version(str(value))
    except InvalidVersion as e:
        raise SpecificationError(f"非法版本号: {value!r}") from e


def full_name_of(name: str, version: Version | str, platform: str = PLATFORM_ANY) -> str:
    if platform and platform != PLATFORM_ANY:
        return f"{name}-{version}-{platform}"
    return f"{name}-{version}"


@dataclass
class Dependency:
    """依赖声明，requirement 为空表示任意版本"""

    name: str
    requirement: str = ""

    @property
    def specifier(self) -> SpecifierSet:
        try:
            return SpecifierSet(self.requirement)
        except InvalidSpecifier as e:
            raise SpecificationError(
                f"依赖 {self.name} 的版本约束非法: {self.requirement!r}"
            ) from e

    def matches(self, version: Version | str) -> bool:
        return self.specifier.contains(parse_version(version), prereleases=True)

    @classmethod
    def from_value(cls, value: Any) -> Dependency:
        """支持 {"name":..., "requirement":...}、["name", "req"] 和 "name" 三种写法"""
        if isinstance(value, dict):
            return cls(name=str(value["name"]), requirement=str(value.get("requirement") or ""))
        if isinstance(value, (list, tuple)) and value:
            req = ",".join(str(v) for v in value[1:])
            return cls(name=str(value[0]), requirement=req)
        if isinstance(value, str) and value:
            return cls(name=value)
        raise SpecificationError(f"无法识别的依赖声明: {value!r}")

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "requirement": self.requirement}

    def __str__(self) -> str:
        return f"{self.name} ({self.requirement})" if self.requirement else self.name


@dataclass(eq=False)
class Specification:
    """包规格

    source 为反向引用，不参与比较和 repr；loaded_from 一旦设置不可清空。
    """

    name: str
    version: Version
    platform: str = PLATFORM_ANY
    dependencies: list[Dependency] = field(default_factory=list)
    executables: list[str] = field(default_factory=list)
    bindir: str = "bin"
    summary: str = ""
    files: list[str] = field(default_factory=list)
    full_path: str = ""        # 包内容所在目录
    source: Any = field(default=None, repr=False)
    _loaded_from: str = field(default="", init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise SpecificationError("规格缺少 name")
        self.version = parse_version(self.version)
        self.platform = self.platform or PLATFORM_ANY

    @property
    def full_name(self) -> str:
        return full_name_of(self.name, self.version, self.platform)

    @property
    def loaded_from(self) -> str:
        return self._loaded_from

    @loaded_from.setter
    def loaded_from(self, value: Any) -> None:
        text = str(value) if value else ""
        if self._loaded_from and not text:
            raise ValueError(f"{self.full_name} 的 loaded_from 已设置，不可清空")
        self._loaded_from = text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Specification):
            return NotImplemented
        return (
            self.full_name == other.full_name
            and [d.to_dict() for d in self.dependencies]
            == [d.to_dict() for d in other.dependencies]
        )

    def __hash__(self) -> int:
        return hash(self.full_name)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Specification:
        """从 YAML 映射构造规格"""
        if "name" not in data or "version" not in data:
            raise SpecificationError("规格必须包含 name 和 version")
        return cls(
            name=str(data["name"]),
            version=parse_version(data["version"]),
            platform=str(data.get("platform") or PLATFORM_ANY),
            dependencies=[Dependency.from_value(d) for d in data.get("dependencies") or []],
            executables=[str(e) for e in data.get("executables") or []],
            bindir=str(data.get("bindir") or "bin"),
            summary=str(data.get("summary") or ""),
            files=[str(f) for f in data.get("files") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "version": str(self.version),
            "platform": self.platform,
        }
        if self.summary:
            data["summary"] = self.summary
        if self.dependencies:
            data["dependencies"] = [d.to_dict() for d in self.dependencies]
        if self.executables:
            data["executables"] = list(self.executables)
            data["bindir"] = self.bindir
        if self.files:
            data["files"] = list(self.files)
        return data
