"""Batch operations: crop rectangles, crop identifiers and request decoding.

A batch is a list of records such as::

    {"type": "crop", "filename": "a.jpg", "crop": {"x": 0.1, "y": 0.1, "w": 0.5, "h": 0.5}}
    {"type": "pick", "filename": "b.jpg"}

`decode_operation` peeks the ``type`` discriminant and builds exactly one of
`CropOperation` / `PickOperation`; there is no fallback variant.
"""

from __future__ import annotations

import hashlib
import math
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Union

from pickemall.errors import InvalidCropDimensions, OperationDecodeError, UnknownOperationKind
from pickemall.logger import get_logger

_logger = get_logger("operations")

CROP = "crop"
PICK = "pick"
CROP_EXTENSION = ".jpg"
CROP_ID_LENGTH = 16


def _as_fraction(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCropDimensions(f"crop {name} must be a number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle as fractions of the image width (x, w) and height (y, h)."""

    x: float
    y: float
    w: float
    h: float

    def __post_init__(self) -> None:
        for name in ("x", "y", "w", "h"):
            value = _as_fraction(name, getattr(self, name))
            if not math.isfinite(value) or value < 0.0 or value > 1.0:
                raise InvalidCropDimensions(f"crop {name}={value!r} outside [0, 1]")
            object.__setattr__(self, name, value)
        if self.w <= 0.0 or self.h <= 0.0:
            raise InvalidCropDimensions(f"zero-area crop: w={self.w}, h={self.h}")

    def __str__(self) -> str:
        return f"crop(x={self.x:.2f},y={self.y:.2f},w={self.w:.2f},h={self.h:.2f})"

    @property
    def id(self) -> str:
        return crop_id(self)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


def crop_id(rect: CropRect) -> str:
    """Stable 16 hex character identifier of the rectangle at 2-decimal precision.

    Returns "" when no identifier can be derived; callers must treat that as
    "no stable name".
    """
    try:
        digest = hashlib.blake2b(str(rect).encode("utf-8"), digest_size=CROP_ID_LENGTH // 2)
    except (TypeError, ValueError) as e:
        _logger.error("failed to hash crop %r: %s", rect, e)
        return ""
    return digest.hexdigest()


def crop_output_name(filename: str, rect: CropRect) -> str:
    """Output file name for a crop of `filename`.

    Identical crops of the same file map to the same name so re-saving
    overwrites instead of duplicating.
    """
    ident = crop_id(rect)
    if not ident:
        ident = uuid.uuid4().hex[:CROP_ID_LENGTH]
        _logger.warning("no stable id for %s of %s, using %s", rect, filename, ident)
    return f"{PurePath(filename).name}-{ident}{CROP_EXTENSION}"


@dataclass(frozen=True)
class CropOperation:
    filename: str
    crop: CropRect

    kind = CROP


@dataclass(frozen=True)
class PickOperation:
    filename: str

    kind = PICK


Operation = Union[CropOperation, PickOperation]


def _decode_filename(record: Mapping[str, Any], kind: str) -> str:
    filename = record.get("filename")
    if not isinstance(filename, str) or not filename.strip():
        raise OperationDecodeError(f"{kind} operation needs a non-empty filename, got {filename!r}", kind)
    return filename


def _decode_crop_rect(value: Any) -> CropRect:
    if not isinstance(value, Mapping):
        raise OperationDecodeError(f"crop operation needs a crop object, got {value!r}", CROP)
    missing = [k for k in ("x", "y", "w", "h") if k not in value]
    if missing:
        raise OperationDecodeError(f"crop object missing {', '.join(missing)}", CROP)
    for k in ("x", "y", "w", "h"):
        v = value[k]
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise OperationDecodeError(f"crop {k} must be a number, got {v!r}", CROP)
    return CropRect(x=value["x"], y=value["y"], w=value["w"], h=value["h"])


def decode_operation(record: Any) -> Operation:
    """Decode one untyped record into a `CropOperation` or `PickOperation`.

    Raises:
        UnknownOperationKind: the ``type`` discriminant is missing or unknown.
        OperationDecodeError: the variant fields are malformed.
        InvalidCropDimensions: the crop rectangle is out of range or empty.
    """
    if not isinstance(record, Mapping):
        raise OperationDecodeError(f"operation must be an object, got {type(record).__name__}")
    kind = record.get("type")
    if kind == CROP:
        return CropOperation(filename=_decode_filename(record, CROP), crop=_decode_crop_rect(record.get("crop")))
    if kind == PICK:
        return PickOperation(filename=_decode_filename(record, PICK))
    raise UnknownOperationKind(kind)


def decode_operations(payload: Any) -> list[Operation]:
    """Decode a batch: a list of records or a mapping with an ``operations`` list."""
    if isinstance(payload, Mapping):
        payload = payload.get("operations")
    if isinstance(payload, (str, bytes)) or not isinstance(payload, Sequence):
        raise OperationDecodeError("expected a list of operations")
    return [decode_operation(record) for record in payload]


def encode_operation(op: Operation) -> dict[str, Any]:
    if isinstance(op, CropOperation):
        return {"type": CROP, "filename": op.filename, "crop": op.crop.to_dict()}
    if isinstance(op, PickOperation):
        return {"type": PICK, "filename": op.filename}
    raise TypeError(f"not an operation: {op!r}")
