"""Pytest configuration.

Most tests work on hand-built JPEG headers so they run without libvips.
Tests that need a real codec import pyvips via `pytest.importorskip` and
carry the `imaging` marker.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from pickemall.metrics import metrics
from tests.helpers.jpeg_bytes import jpeg_header


@pytest.fixture
def write_jpeg_header(tmp_path: Path) -> Callable[..., Path]:
    """Write a scanner-readable (not decodable) JPEG header under tmp_path."""

    def _write(name: str, width: int, height: int) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(jpeg_header(width, height))
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
