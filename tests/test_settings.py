from __future__ import annotations

import json
from pathlib import Path

import pytest

from pickemall.settings import Settings


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv("PICKEMALL_MAX_WORKERS", raising=False)
    monkeypatch.delenv("PICKEMALL_JPEG_QUALITY", raising=False)


def _write(path: Path, data) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_defaults_without_file() -> None:
    s = Settings()
    assert s.max_workers is None
    assert s.jpeg_quality == 90
    assert s.output_suffix == "-picked"


def test_missing_file_uses_defaults(tmp_path: Path) -> None:
    s = Settings(str(tmp_path / "absent.json"))
    assert s.jpeg_quality == 90
    assert not (tmp_path / "absent.json").exists()


def test_file_values_are_read(tmp_path: Path) -> None:
    s = Settings(_write(tmp_path / "settings.json", {"max_workers": 3, "output_suffix": "_kept"}))
    assert s.max_workers == 3
    assert s.output_suffix == "_kept"


def test_load_rereads_the_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    s = Settings(_write(path, {"max_workers": 3}))
    _write(path, {"max_workers": 5})
    s.load()
    assert s.max_workers == 5


def test_env_overrides_file(tmp_path: Path, monkeypatch) -> None:
    path = _write(tmp_path / "settings.json", {"jpeg_quality": 70})
    monkeypatch.setenv("PICKEMALL_JPEG_QUALITY", "85")

    assert Settings(path).jpeg_quality == 85


@pytest.mark.parametrize("value", ["abc", 0, 101, -5])
def test_invalid_quality_falls_back(tmp_path: Path, value) -> None:
    assert Settings(_write(tmp_path / "settings.json", {"jpeg_quality": value})).jpeg_quality == 90


def test_invalid_workers_means_host_default(monkeypatch) -> None:
    monkeypatch.setenv("PICKEMALL_MAX_WORKERS", "lots")
    assert Settings().max_workers is None


def test_corrupt_file_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    s = Settings(str(path))
    assert s.jpeg_quality == 90
    assert s.output_suffix == "-picked"


def test_non_object_file_is_ignored(tmp_path: Path) -> None:
    s = Settings(_write(tmp_path / "settings.json", [1, 2]))
    assert s.max_workers is None
    assert s.output_suffix == "-picked"


def test_get_default(tmp_path: Path) -> None:
    s = Settings(_write(tmp_path / "settings.json", {"output_suffix": ""}))
    assert s.get("unknown", "fallback") == "fallback"
    assert s.get("jpeg_quality") == 90
    assert s.output_suffix == "-picked"
