"""Headless file operation utilities used by the batch executor."""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path

from pickemall.errors import CopyFailure, SourceFileMissing
from pickemall.logger import get_logger

_logger = get_logger("file_operations")


def ensure_dir(path: str | Path) -> Path:
    """Create `path` (and parents) if missing and return it."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def copy_file_bytes(src: str | Path, dest: str | Path) -> str:
    """Copy file content from `src` to `dest`, overwriting `dest`.

    Only bytes are copied; permissions and timestamps are not.

    Raises:
        SourceFileMissing: `src` does not exist.
        CopyFailure: any other I/O error.
    """
    _logger.debug("copying file: %s -> %s", src, dest)
    try:
        shutil.copyfile(src, dest)
    except FileNotFoundError as e:
        if not Path(src).exists():
            raise SourceFileMissing(f"source file not found: {src}") from e
        raise CopyFailure(f"failed to copy {src} to {dest}: {e}") from e
    except (OSError, shutil.Error) as e:
        _logger.error("copy failed: %s -> %s, error: %s", src, dest, e)
        raise CopyFailure(f"failed to copy {src} to {dest}: {e}") from e
    return str(dest)


def write_bytes_atomic(dest: str | Path, data: bytes) -> str:
    """Write `data` to `dest` through a temp file in the same directory.

    Readers never observe a partially written file, and concurrent writers of
    the same name leave one complete copy behind.
    """
    dest = Path(dest)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, dest)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise
    _logger.debug("wrote %d bytes to %s", len(data), dest)
    return str(dest)
