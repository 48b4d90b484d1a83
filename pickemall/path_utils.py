"""Path normalization utilities.

Source and output files are always addressed relative to a directory root;
`resolve_within` is the single place that turns an operator supplied name
into a filesystem path.
"""

from __future__ import annotations

from pathlib import Path

from pickemall.errors import UnsafePathError


def abs_path(path: str | Path) -> Path:
    """Return an absolute path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except OSError:
        return p.absolute()


def resolve_within(root: str | Path, name: str | Path) -> Path:
    """Join `name` onto `root` and ensure the result stays inside `root`.

    Raises:
        UnsafePathError: `name` is absolute or escapes the root via `..`
            or a symlink.
    """
    if Path(name).is_absolute():
        raise UnsafePathError(f"absolute path not allowed: {name}")
    base = abs_path(root)
    candidate = abs_path(base / name)
    if candidate != base and base not in candidate.parents:
        raise UnsafePathError(f"{name} resolves outside of {base}")
    return candidate


def relative_name(root: str | Path, path: str | Path) -> str:
    """Forward-slash name of `path` relative to `root`."""
    return Path(path).relative_to(root).as_posix()
