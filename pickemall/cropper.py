"""Image crop backend using pyvips.

`VipsCropper` is the codec the executor uses by default: decode, crop by a
fractional rectangle, re-encode as JPEG. Anything with the same `crop`
signature can stand in for it (see `Cropper`).
"""

from __future__ import annotations

import contextlib
from typing import Any, BinaryIO, Protocol

from pickemall.errors import CodecDecodeFailure, CodecEncodeFailure, CropOutOfBounds, InvalidCropDimensions
from pickemall.logger import get_logger
from pickemall.operations import CropRect

_logger = get_logger("cropper")

DEFAULT_JPEG_QUALITY = 90

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Configure pyvips caches to avoid memory growth over large batches
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


class Cropper(Protocol):
    def crop(self, source: BinaryIO, destination: BinaryIO, rect: CropRect) -> None: ...


def pixel_box(img_width: int, img_height: int, rect: CropRect) -> tuple[int, int, int, int]:
    """Convert a fractional rectangle to a (left, top, width, height) pixel box.

    The box is clipped to the image bounds.

    Raises:
        InvalidCropDimensions: the box has no pixels before clipping.
        CropOutOfBounds: nothing is left after clipping.
    """
    left = int(rect.x * img_width)
    top = int(rect.y * img_height)
    width = int(rect.w * img_width)
    height = int(rect.h * img_height)
    if width <= 0 or height <= 0:
        raise InvalidCropDimensions(f"invalid crop dimensions: width={width}, height={height}")

    right = min(left + width, img_width)
    bottom = min(top + height, img_height)
    left = max(left, 0)
    top = max(top, 0)
    if right <= left or bottom <= top:
        raise CropOutOfBounds(f"{rect} is outside image bounds {img_width}x{img_height}")
    return left, top, right - left, bottom - top


class VipsCropper:
    def __init__(self, quality: int = DEFAULT_JPEG_QUALITY):
        quality = int(quality)
        if not 1 <= quality <= 100:
            raise ValueError(f"JPEG quality must be between 1 and 100, got {quality}")
        self.quality = quality

    def crop(self, source: BinaryIO, destination: BinaryIO, rect: CropRect) -> None:
        pyvips = _get_pyvips_module()
        data = source.read()

        try:
            image = pyvips.Image.new_from_buffer(data, "")
            # Fractions are relative to the image as displayed, so apply the
            # EXIF orientation before measuring.
            image = image.autorot()
            img_width, img_height = image.width, image.height
        except pyvips.Error as e:
            raise CodecDecodeFailure(f"failed to decode image: {e}") from e

        left, top, width, height = pixel_box(img_width, img_height, rect)
        _logger.debug("cropping %dx%d image to %s", img_width, img_height, (left, top, width, height))

        try:
            cropped = image.crop(left, top, width, height)
            encoded = cropped.write_to_buffer(".jpg", Q=self.quality)
        except pyvips.Error as e:
            raise CodecEncodeFailure(f"failed to encode cropped image: {e}") from e

        destination.write(encoded)
