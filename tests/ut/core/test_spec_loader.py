"""规格文件加载单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from packyard.core.exceptions import SpecificationError
from packyard.core.models import Specification
from packyard.core.spec_loader import load_spec_file, write_spec_file


class TestLoadSpecFile:
    def test_yaml(self, tmp_path: Path) -> None:
        f = tmp_path / "rack.pkgspec"
        f.write_text("name: rack\nversion: 1.0.0\nexecutables: [rackup]\n", encoding="utf-8")
        spec = load_spec_file(f)
        assert spec.full_name == "rack-1.0.0"
        assert spec.executables == ["rackup"]

    def test_script_fallback(self, tmp_path: Path) -> None:
        f = tmp_path / "tool.pkgspec"
        f.write_text(
            "from pathlib import Path\n"
            "spec = dict(name='tool', version=Path('VERSION').read_text().strip())\n",
            encoding="utf-8",
        )
        (tmp_path / "VERSION").write_text("2.1\n", encoding="utf-8")
        spec = load_spec_file(f)
        assert spec.full_name == "tool-2.1"

    def test_script_returns_specification(self, tmp_path: Path) -> None:
        f = tmp_path / "tool.pkgspec"
        f.write_text(
            "from packyard.core.models import Specification\n"
            "spec = Specification(name='tool', version='3.0')\n",
            encoding="utf-8",
        )
        assert isinstance(load_spec_file(f), Specification)

    def test_script_error_names_file(self, tmp_path: Path) -> None:
        f = tmp_path / "broken.pkgspec"
        f.write_text("spec = {\n  raise\n", encoding="utf-8")
        with pytest.raises(SpecificationError, match="broken.pkgspec"):
            load_spec_file(f)

    def test_script_import_error(self, tmp_path: Path) -> None:
        f = tmp_path / "imp.pkgspec"
        f.write_text("import no_such_module_here\n", encoding="utf-8")
        with pytest.raises(SpecificationError, match="ImportError"):
            load_spec_file(f)

    def test_script_without_spec(self, tmp_path: Path) -> None:
        f = tmp_path / "nospec.pkgspec"
        f.write_text("x = 1\n", encoding="utf-8")
        with pytest.raises(SpecificationError, match="未定义 spec"):
            load_spec_file(f)

    def test_yaml_invalid_content(self, tmp_path: Path) -> None:
        f = tmp_path / "bad.pkgspec"
        f.write_text("name: bad\nversion: 'x y z'\n", encoding="utf-8")
        with pytest.raises(SpecificationError, match="bad.pkgspec"):
            load_spec_file(f)

    def test_cwd_restored(self, tmp_path: Path) -> None:
        import os
        before = os.getcwd()
        f = tmp_path / "tool.pkgspec"
        f.write_text("spec = dict(name='tool', version='1')\n", encoding="utf-8")
        load_spec_file(f)
        assert os.getcwd() == before

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecificationError, match="无法读取"):
            load_spec_file(tmp_path / "none.pkgspec")


class TestWriteSpecFile:
    def test_written_file_loads_back(self, tmp_path: Path) -> None:
        spec = Specification(name="rack", version="1.0.0", executables=["rackup"])
        path = tmp_path / "specifications" / "rack-1.0.0.pkgspec"
        write_spec_file(spec, path)
        assert load_spec_file(path) == spec
