"""权限提升辅助

安装根目录对当前用户不可写时，先安装到临时目录，再通过 sudo
建目录、复制到最终位置。所有调用均为参数列表，不拼接 shell 字符串。
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from packyard.core.config import DEFAULT_SUDO_PROMPT
from packyard.utils.shell import CommandExecutor, CommandResult, run_cmd

logger = logging.getLogger(__name__)


def requires_elevation(path: Path) -> bool:
    """判断写入 path 是否需要 sudo

    取 path 最近的已存在祖先目录；可写、属于当前用户或系统没有 sudo 时均不需要。
    """
    p = path
    while not p.exists() and p != p.parent:
        p = p.parent
    if os.access(p, os.W_OK):
        return False
    if shutil.which("sudo") is None:
        return False
    getuid = getattr(os, "getuid", None)
    if getuid is not None and p.stat().st_uid == getuid():
        return False
    return True


class ElevationHelper:
    """sudo 调用封装"""

    def __init__(
        self, prompt: str = DEFAULT_SUDO_PROMPT,
        executor: CommandExecutor | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.prompt = prompt
        self._executor = executor
        self._env = env

    def run(self, args: list[str], *, label: str = "sudo") -> CommandResult:
        return run_cmd(
            ["sudo", "-p", self.prompt, "-E", *args],
            env=self._env, label=label, executor=self._executor,
        )

    def mkdir_p(self, *paths: Path) -> None:
        self.run(["mkdir", "-p", *(str(p) for p in paths)], label="sudo mkdir")

    def copy_tree(self, src: Path, dest_dir: Path) -> None:
        """复制 src（文件或目录）到 dest_dir 下"""
        self.run(["cp", "-R", str(src), f"{dest_dir}/"], label="sudo cp")

    def move(self, src: Path, dest: Path) -> None:
        self.run(["mv", str(src), str(dest)], label="sudo mv")

    def ensure_dir(self, path: Path, *, elevate: bool) -> None:
        if elevate:
            self.mkdir_p(path)
        else:
            path.mkdir(parents=True, exist_ok=True)
