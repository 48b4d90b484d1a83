"""Read-only JSON settings file with environment overrides."""

from __future__ import annotations

import json
import os
from typing import Any

from .logger import get_logger

_logger = get_logger("settings")

ENV_OVERRIDES = {
    "max_workers": "PICKEMALL_MAX_WORKERS",
    "jpeg_quality": "PICKEMALL_JPEG_QUALITY",
}


class Settings:
    def __init__(self, settings_path: str | None = None):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "max_workers": None,
        "jpeg_quality": 90,
        "output_suffix": "-picked",
    }

    def load(self) -> None:
        self._settings = {}
        if not self.settings_path:
            return
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    self._settings = data
                    _logger.debug("settings loaded: %s", self.settings_path)
                else:
                    _logger.warning("settings file is not a JSON object: %s", self.settings_path)
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        env_name = ENV_OVERRIDES.get(key)
        if env_name:
            env_val = (os.getenv(env_name) or "").strip()
            if env_val:
                return env_val
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def _positive_int(self, key: str, upper: int | None = None) -> int | None:
        val = self.get(key)
        if val is None:
            return None
        try:
            num = int(val)
        except (TypeError, ValueError):
            _logger.warning("invalid %s: %r", key, val)
            return None
        if num < 1 or (upper is not None and num > upper):
            _logger.warning("%s out of range: %r", key, val)
            return None
        return num

    @property
    def max_workers(self) -> int | None:
        """Worker count for batch runs; None means one per CPU."""
        return self._positive_int("max_workers")

    @property
    def jpeg_quality(self) -> int:
        q = self._positive_int("jpeg_quality", upper=100)
        return q if q is not None else self.DEFAULTS["jpeg_quality"]

    @property
    def output_suffix(self) -> str:
        val = self.get("output_suffix")
        return val if isinstance(val, str) and val else self.DEFAULTS["output_suffix"]
