"""Directory listing of JPEG files with their dimensions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pickemall.jpeg_scanner import ImageSize, probe_dimensions
from pickemall.logger import get_logger
from pickemall.path_utils import abs_path, relative_name

_logger = get_logger("images")

VALID_EXTS = {".jpg", ".jpeg"}


@dataclass
class FileInfo:
    name: str
    size_bytes: int
    modified_at: datetime
    image: ImageSize | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size_bytes": self.size_bytes,
            "modified_at": self.modified_at.isoformat(),
            "image": None if self.image is None else {"width": self.image.width, "height": self.image.height},
        }


@dataclass
class Directory:
    name: str
    files: list[FileInfo]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "files": [f.to_dict() for f in self.files]}


def _iter_images(folder: Path) -> list[Path]:
    return sorted(p for p in folder.rglob("*") if p.is_file() and p.suffix.lower() in VALID_EXTS)


def walk_images(root: str | Path) -> Directory:
    """List JPEG files under `root` (recursively), with dimensions where readable.

    Files whose dimensions cannot be read are still listed, with ``image=None``.
    """
    root_path = abs_path(root)
    if not root_path.is_dir():
        raise NotADirectoryError(f"not a directory: {root_path}")

    files: list[FileInfo] = []
    for path in _iter_images(root_path):
        try:
            st = path.stat()
        except OSError as e:
            _logger.warning("skipping %s: %s", path, e)
            continue
        files.append(
            FileInfo(
                name=relative_name(root_path, path),
                size_bytes=st.st_size,
                modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                image=probe_dimensions(path),
            )
        )

    _logger.debug("listed %d images under %s", len(files), root_path)
    return Directory(name=root_path.name, files=files)
