"""Crop and pick JPEG images in bulk.

- `jpeg_scanner`: image dimensions straight from the JPEG marker segments
- `operations`: crop/pick operations and their request decoding
- `executor`: bounded-concurrency batch application of operations
- `cropper`: pyvips-backed crop codec

Usage:
    from pickemall import OperationExecutor, decode_operations

    ops = decode_operations(payload)
    report = OperationExecutor("/photos", "/photos-picked").execute(ops)
"""

from .executor import BatchReport, OperationExecutor
from .jpeg_scanner import ImageSize, probe_dimensions, read_jpeg_dimensions
from .operations import CropOperation, CropRect, PickOperation, crop_id, decode_operation, decode_operations

__all__ = [
    "BatchReport",
    "CropOperation",
    "CropRect",
    "ImageSize",
    "OperationExecutor",
    "PickOperation",
    "crop_id",
    "decode_operation",
    "decode_operations",
    "probe_dimensions",
    "read_jpeg_dimensions",
]
