"""统一异常体系

所有业务异常继承 PackyardError。每个异常类带有:
  - code: 字符串错误码，便于日志和机器消费
  - status_code: 进程退出码，CLI 捕获后以此退出

退出码约定（下游工具依赖，不可随意修改）:
  ManifestNotFound=10  PackageNotFound=7   ManifestError=4
  PathError=13         VersionControlError=11  SpecificationError=14
  DeprecatedMethod=12  DeprecatedOption=12  InvalidOption=15
  VersionConflict=6
"""

from __future__ import annotations

from typing import Any


class PackyardError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"
    status_code: int = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ManifestNotFound(PackyardError):
    """找不到清单文件"""

    code = "MANIFEST_NOT_FOUND"
    status_code = 10


class PackageNotFound(PackyardError):
    """包归档在所有缓存中都不存在，或下载失败"""

    code = "PACKAGE_NOT_FOUND"
    status_code = 7


class ManifestError(PackyardError):
    """清单内容无效"""

    code = "MANIFEST_ERROR"
    status_code = 4


class PathError(PackyardError):
    """路径来源不存在或尚未检出"""

    code = "PATH_ERROR"
    status_code = 13


class VersionControlError(PackyardError):
    """git 子进程执行失败"""

    code = "VCS_ERROR"
    status_code = 11


class SpecificationError(PackyardError):
    """规格文件无法解析"""

    code = "SPECIFICATION_ERROR"
    status_code = 14


class DeprecatedMethod(PackyardError):
    code = "DEPRECATED_METHOD"
    status_code = 12


class DeprecatedOption(PackyardError):
    code = "DEPRECATED_OPTION"
    status_code = 12


class InvalidOption(PackyardError):
    """选项取值非法（如非绝对 URI 的远程地址）"""

    code = "INVALID_OPTION"
    status_code = 15


class VersionConflict(PackyardError):
    """版本约束冲突，conflicts 保留完整冲突集供解析器汇报"""

    code = "VERSION_CONFLICT"
    status_code = 6

    def __init__(self, conflicts: Any, message: str = "") -> None:
        super().__init__(message or "版本约束冲突")
        self.conflicts = conflicts


class ExecutionError(PackyardError):
    """通用子进程执行失败"""

    code = "EXECUTION_ERROR"


class FetchError(PackyardError):
    """远程来源暂时不可达（按来源隔离，不中断整体枚举）"""

    code = "FETCH_ERROR"


class InvalidSpecSet(Exception):
    """解析器内部使用，不面向用户，调用方应捕获"""
