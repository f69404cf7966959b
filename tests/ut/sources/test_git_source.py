"""GitSource 单元测试（git 调用全部经假执行器）"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from packyard.core.config import HOME_ENV, PATH_ENV, Config
from packyard.core.exceptions import InvalidOption, PathError, SpecificationError, VersionControlError
from packyard.sources.git import GitSource
from packyard.utils.shell import CommandResult

URI = "https://git.example.com/org/lib.git"
REV_A = "a" * 40
REV_B = "b" * 40


class FakeGit:
    """模拟 git 子命令: clone 建目录，rev-parse 依次返回修订，reset 写出规格文件"""

    def __init__(self, revisions: list[str] | None = None, fail_on: str = "") -> None:
        self.revisions = list(revisions or [REV_A])
        self.fail_on = fail_on
        self.spec_text = "name: lib\nversion: '2.0'\nexecutables: [lib]\n"

    def __call__(self, argv: list[str], cwd: str) -> CommandResult | None:
        if "git" not in argv:
            return None
        args = argv[argv.index("git") + 1:]
        cmd = args[0]
        if cmd == self.fail_on:
            return CommandResult(128, "", "fatal: repository not found")
        if cmd == "clone":
            dest = Path(args[-1])
            dest.mkdir(parents=True, exist_ok=True)
            if "--no-checkout" in args:
                (dest / ".git").mkdir(exist_ok=True)
        elif cmd == "rev-parse":
            rev = self.revisions.pop(0) if len(self.revisions) > 1 else self.revisions[0]
            return CommandResult(0, rev + "\n", "")
        elif cmd == "reset" and self.spec_text:
            (Path(cwd) / "lib.pkgspec").write_text(self.spec_text, encoding="utf-8")
        return None

    @staticmethod
    def subcommands(executor) -> list[str]:
        out = []
        for argv, _ in executor.calls:
            if "git" in argv:
                out.append(argv[argv.index("git") + 1])
        return out


@pytest.fixture()
def git() -> FakeGit:
    return FakeGit([REV_A, REV_B])


@pytest.fixture()
def executor(fake_executor_cls, git: FakeGit):
    return fake_executor_cls(git)


def _source(config: Config, executor, **options) -> GitSource:
    return GitSource({"uri": URI, **options}, config=config, executor=executor)


class TestIdentity:
    def test_names(self, config: Config) -> None:
        src = GitSource({"uri": URI}, config=config)
        assert src.name == "lib"
        assert src.base_name == "lib"
        assert src.ref == "HEAD"

    def test_scp_style_uri(self, config: Config) -> None:
        src = GitSource({"uri": "git@github.com:org/tool.git"}, config=config)
        assert src.base_name == "tool"
        expected = hashlib.sha1(b"git@github.com:org/tool.git").hexdigest()
        assert src.cache_path.name == f"tool-{expected}"

    def test_cache_path_normalizes_host(self, config: Config) -> None:
        a = GitSource({"uri": URI}, config=config)
        b = GitSource({"uri": "https://GIT.Example.com/org/lib.git/"}, config=config)
        assert a.cache_path == b.cache_path
        assert a.cache_path.parent == Path(config.install_root).resolve() / "packyard" / "cache" / "git"

    def test_equal_regardless_of_option_order(self, config: Config) -> None:
        a = GitSource({"uri": URI, "branch": "main", "name": "lib", "version": "2.0"}, config=config)
        b = GitSource({"version": "2.0", "name": "lib", "branch": "main", "uri": URI}, config=config)
        assert a == b
        assert hash(a) == hash(b)
        assert a.cache_path == b.cache_path

    def test_different_ref_not_equal(self, config: Config) -> None:
        assert GitSource({"uri": URI, "tag": "v1"}, config=config) != GitSource({"uri": URI}, config=config)

    def test_option_like_ref_rejected(self, config: Config) -> None:
        with pytest.raises(InvalidOption):
            GitSource({"uri": URI, "ref": "--upload-pack=evil"}, config=config)

    def test_option_like_uri_rejected(self, config: Config) -> None:
        with pytest.raises(InvalidOption):
            GitSource({"uri": "--upload-pack=evil"}, config=config)

    def test_uri_required(self, config: Config) -> None:
        with pytest.raises(InvalidOption):
            GitSource({}, config=config)

    def test_str_shortens_explicit_ref(self, config: Config) -> None:
        assert str(GitSource({"uri": URI, "ref": "0123456789abcdef"}, config=config)) == f"{URI} (at 0123456)"
        assert str(GitSource({"uri": URI, "branch": "main"}, config=config)) == f"{URI} (at main)"


class TestRevision:
    def test_memoized_until_unlock(self, config: Config, executor, git: FakeGit) -> None:
        src = _source(config, executor)
        assert src.revision == REV_A
        assert src.revision == REV_A
        assert FakeGit.subcommands(executor) == ["clone", "rev-parse"]

        src.unlock()
        assert src.revision == REV_B

    def test_explicit_revision(self, config: Config, executor) -> None:
        src = _source(config, executor, revision="0123456789")
        assert src.revision == "0123456789"
        assert executor.calls == []

    def test_checkout_path_uses_short_revision(self, config: Config, executor) -> None:
        src = _source(config, executor)
        assert src.path.name == f"lib-{REV_A[:7]}"

    def test_git_receives_packyard_env(self, config: Config, executor) -> None:
        src = _source(config, executor)
        _ = src.revision
        env = executor.envs[0]
        assert env[HOME_ENV] == str(Path(config.install_root).resolve())
        assert env[PATH_ENV] == ""
        assert all(e == env for e in executor.envs)

    def test_git_failure(self, config: Config, fake_executor_cls) -> None:
        src = _source(config, fake_executor_cls(FakeGit(fail_on="clone")))
        with pytest.raises(VersionControlError, match="git.example.com") as ei:
            _ = src.revision
        assert ei.value.status_code == 11


class TestSpecs:
    def test_not_checked_out(self, config: Config, executor) -> None:
        src = _source(config, executor)
        with pytest.raises(PathError, match="is not checked out. Please run `packyard install`"):
            src.specs()
        assert executor.calls == []

    def test_remote_updates_and_checks_out(self, config: Config, executor) -> None:
        src = _source(config, executor)
        src.allow_remote()
        spec = src.specs().find("lib-2.0")
        assert spec is not None
        assert spec.source is src
        assert FakeGit.subcommands(executor) == ["clone", "rev-parse", "clone", "fetch", "reset"]

        calls = len(executor.calls)
        src.specs()
        assert len(executor.calls) == calls

    def test_existing_mirror_is_fetched(self, config: Config, executor) -> None:
        src = _source(config, executor)
        src.cache_path.mkdir(parents=True)
        src.allow_cached()
        src.specs()
        assert FakeGit.subcommands(executor)[0] == "fetch"
        fetch_argv = executor.calls[0][0]
        assert "refs/heads/*:refs/heads/*" in fetch_argv
        assert executor.calls[0][1] == str(src.cache_path)

    def test_submodules(self, config: Config, executor) -> None:
        src = _source(config, executor, submodules=True)
        src.allow_remote()
        src.specs()
        assert executor.commands("git", "submodule") == [
            ["git", "submodule", "init"], ["git", "submodule", "update"],
        ]

    def test_malformed_spec_after_checkout(self, config: Config, executor, git: FakeGit) -> None:
        """已检出但规格文件既不是 YAML 也不是合法脚本：报规格错误而非未检出"""
        git.spec_text = "name: [lib\n"
        src = _source(config, executor)
        src.allow_remote()
        with pytest.raises(SpecificationError, match="lib.pkgspec"):
            src.specs()

    def test_synthesized_when_no_spec_file(self, config: Config, executor, git: FakeGit) -> None:
        git.spec_text = ""
        src = _source(config, executor, name="lib", version="2.0")
        src.allow_remote()
        (spec,) = list(src.specs())
        assert spec.full_name == "lib-2.0"
        assert spec.summary == "Fake specification for lib"


class TestInstall:
    def test_install_checks_out_once(self, config: Config, executor) -> None:
        src = _source(config, executor)
        src.allow_remote()
        spec = src.specs().find("lib-2.0")

        src.install(spec)
        resets = len(executor.commands("git", "reset"))
        src.install(spec)
        assert len(executor.commands("git", "reset")) == resets

        stub = Path(config.install_root).resolve() / "bin" / "lib"
        assert str(src.path / "bin" / "lib") in stub.read_text(encoding="utf-8")

    def test_elevated_git_uses_sudo(self, config: Config, executor, monkeypatch) -> None:
        monkeypatch.setattr(GitSource, "requires_elevation", lambda self: True)
        src = _source(config, executor)
        _ = src.revision
        assert executor.commands("sudo", "-E", "git", "clone")
        assert any("mkdir" in argv for argv, _ in executor.calls)


class TestLock:
    def test_to_lock(self, config: Config, executor) -> None:
        src = _source(config, executor, branch="main", revision="0123456789abcdef")
        assert src.to_lock() == (
            "GIT\n"
            f"  remote: {URI}\n"
            "  revision: 0123456\n"
            "  branch: main\n"
            "  specs:\n"
        )

    def test_to_lock_submodules_and_glob(self, config: Config, executor) -> None:
        src = _source(config, executor, revision="0123456789", submodules=True, glob="*.pkgspec")
        lock = src.to_lock()
        assert "  submodules: true\n" in lock
        assert "  glob: *.pkgspec\n" in lock

    def test_from_lock_round_trip(self, config: Config, executor) -> None:
        src = _source(config, executor, branch="main")
        rebuilt = GitSource.from_lock(
            {"remote": URI, "revision": "0123456", "branch": "main"}, config=config,
        )
        assert rebuilt == src
        assert rebuilt.revision == "0123456"
