"""权限提升辅助单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from packyard.core import elevation
from packyard.core.elevation import ElevationHelper, requires_elevation
from packyard.core.exceptions import ExecutionError
from packyard.utils.shell import CommandResult


class TestRequiresElevation:
    def test_writable_dir(self, tmp_path: Path) -> None:
        assert requires_elevation(tmp_path) is False

    def test_missing_path_uses_existing_ancestor(self, tmp_path: Path) -> None:
        assert requires_elevation(tmp_path / "a" / "b" / "c") is False

    def test_no_sudo(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr(elevation.os, "access", lambda p, mode: False)
        monkeypatch.setattr(elevation.shutil, "which", lambda name: None)
        assert requires_elevation(tmp_path) is False

    def test_unwritable_foreign_dir(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr(elevation.os, "access", lambda p, mode: False)
        monkeypatch.setattr(elevation.shutil, "which", lambda name: "/usr/bin/sudo")
        monkeypatch.setattr(elevation.os, "getuid", lambda: -1)
        assert requires_elevation(tmp_path) is True


class TestElevationHelper:
    def test_argument_lists(self, fake_executor) -> None:
        helper = ElevationHelper("pw: ", executor=fake_executor)
        helper.mkdir_p(Path("/opt/a"), Path("/opt/b"))
        helper.copy_tree(Path("/tmp/x y"), Path("/opt/a"))
        helper.move(Path("/tmp/f"), Path("/opt/f"))

        assert [argv for argv, _ in fake_executor.calls] == [
            ["sudo", "-p", "pw: ", "-E", "mkdir", "-p", "/opt/a", "/opt/b"],
            ["sudo", "-p", "pw: ", "-E", "cp", "-R", "/tmp/x y", "/opt/a/"],
            ["sudo", "-p", "pw: ", "-E", "mv", "/tmp/f", "/opt/f"],
        ]

    def test_env_passed_to_sudo(self, fake_executor) -> None:
        helper = ElevationHelper(executor=fake_executor, env={"PACKYARD_HOME": "/opt/pk"})
        helper.mkdir_p(Path("/opt/pk/cache"))
        assert fake_executor.envs == [{"PACKYARD_HOME": "/opt/pk"}]

    def test_ensure_dir_without_elevation(self, tmp_path: Path, fake_executor) -> None:
        helper = ElevationHelper(executor=fake_executor)
        helper.ensure_dir(tmp_path / "new" / "dir", elevate=False)
        assert (tmp_path / "new" / "dir").is_dir()
        assert fake_executor.calls == []

    def test_failure_raises(self, fake_executor_cls) -> None:
        fake = fake_executor_cls(lambda argv, cwd: CommandResult(1, "", "denied"))
        with pytest.raises(ExecutionError, match="sudo mkdir失败"):
            ElevationHelper(executor=fake).mkdir_p(Path("/opt/a"))
