"""集中配置管理

安装根目录、项目根目录、临时目录、共享搜索路径等统一由 Config 描述，
显式传入各来源（Source）构造函数；get_config() 仅作为未注入时的后备。

环境变量 PACKYARD_HOME / PACKYARD_PATH 只在进程边界使用:
  - Config.from_env() 读取
  - Config.environment() 生成给子进程
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

from packyard.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

HOME_ENV = "PACKYARD_HOME"
PATH_ENV = "PACKYARD_PATH"

DEFAULT_SUDO_PROMPT = "Enter your password to install the bundled packages to your system: "


@dataclass
class Config:
    """packyard 全局配置"""

    # 目录
    install_root: str = "~/.packyard"
    project_root: str = "."
    tmp_dir: str = "~/.packyard/tmp"
    bin_dir: str = ""              # 为空则使用 install_root/bin
    search_paths: list[str] = field(default_factory=list)  # 共享安装目录（只读查找）
    sources_file: str = "packyard.sources.yml"

    # 行为
    shared: bool = True            # False 时忽略 search_paths，仅使用 install_root
    sudo_prompt: str = DEFAULT_SUDO_PROMPT

    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "packyard.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def from_env(self, environ: Mapping[str, str] | None = None) -> Config:
        """返回应用了 PACKYARD_HOME / PACKYARD_PATH 的新配置"""
        env = os.environ if environ is None else environ
        changes: dict[str, Any] = {}
        if env.get(HOME_ENV):
            changes["install_root"] = env[HOME_ENV]
        if PATH_ENV in env:
            changes["search_paths"] = [p for p in env[PATH_ENV].split(os.pathsep) if p]
        return replace(self, **changes) if changes else self

    def environment(self) -> dict[str, str]:
        """生成传给子进程的环境变量

        共享模式: PACKYARD_PATH 包含安装根目录及全部搜索路径
        独立模式: PACKYARD_PATH 置空，只暴露项目内安装根目录
        """
        root = Path(self.project_root).expanduser().resolve()
        home = (root / Path(self.install_root).expanduser()).resolve()
        if not self.shared:
            return {HOME_ENV: str(home), PATH_ENV: ""}
        paths: list[str] = []
        for p in [str(home), *self.search_paths]:
            if p and p not in paths:
                paths.append(p)
        return {HOME_ENV: str(home), PATH_ENV: os.pathsep.join(paths)}

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "packyard.yml") -> Config:
    """从文件初始化全局配置，并应用进程环境变量"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path).from_env()
    logger.info("配置已加载: %s", path)
    return _current
