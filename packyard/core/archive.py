"""包归档格式

<full_name>.pkg 是 gzip 压缩的 tar 包:
  metadata.yml    规格（YAML 映射）
  data/...        包内容
"""

from __future__ import annotations

import io
import logging
import tarfile
from pathlib import Path

import yaml

from packyard.core.exceptions import SpecificationError
from packyard.core.layout import ARCHIVE_EXT
from packyard.core.models import Specification
from packyard.utils.yaml_io import dump_yaml

logger = logging.getLogger(__name__)

METADATA_MEMBER = "metadata.yml"
DATA_PREFIX = "data/"


class PackageArchive:
    """单个包归档文件"""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def spec(self) -> Specification:
        """读取归档内的规格"""
        try:
            with tarfile.open(self.path, "r:gz") as tf:
                member = tf.extractfile(METADATA_MEMBER)
                if member is None:
                    raise SpecificationError(f"归档 {self.path} 缺少 {METADATA_MEMBER}")
                data = yaml.safe_load(member.read().decode("utf-8"))
        except KeyError as e:
            raise SpecificationError(f"归档 {self.path} 缺少 {METADATA_MEMBER}") from e
        except (OSError, tarfile.TarError, yaml.YAMLError) as e:
            raise SpecificationError(f"无法读取归档 {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise SpecificationError(f"归档 {self.path} 的 {METADATA_MEMBER} 不是映射")
        return Specification.from_dict(data)

    def extract_to(self, dest: Path) -> None:
        """将 data/ 下的内容解压到 dest"""
        dest.mkdir(parents=True, exist_ok=True)
        with tarfile.open(self.path, "r:gz") as tf:
            members = []
            for m in tf.getmembers():
                if not m.name.startswith(DATA_PREFIX) or m.name == DATA_PREFIX.rstrip("/"):
                    continue
                m.name = m.name[len(DATA_PREFIX):]
                members.append(m)
            tf.extractall(path=str(dest), members=members, filter="data")  # noqa: S202
        logger.debug("  已解压 %s -> %s", self.path.name, dest)

    @classmethod
    def create(cls, spec: Specification, src_dir: Path | None, dest_dir: Path) -> PackageArchive:
        """把 src_dir 的内容与规格打包为 dest_dir/<full_name>.pkg"""
        dest_dir.mkdir(parents=True, exist_ok=True)
        path = dest_dir / f"{spec.full_name}{ARCHIVE_EXT}"
        meta = dump_yaml(spec.to_dict()).encode("utf-8")
        with tarfile.open(path, "w:gz") as tf:
            info = tarfile.TarInfo(METADATA_MEMBER)
            info.size = len(meta)
            tf.addfile(info, io.BytesIO(meta))
            if src_dir is not None and src_dir.is_dir():
                for child in sorted(src_dir.rglob("*")):
                    arcname = DATA_PREFIX + child.relative_to(src_dir).as_posix()
                    tf.add(str(child), arcname=arcname, recursive=False)
        return cls(path)
