"""JPEG dimension probe.

Walks the marker segments of a JPEG stream and reads the frame size from the
first Start-Of-Frame segment. Nothing is decoded, so this stays cheap enough
to run for every file of a directory listing.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from pickemall.errors import JPEGScanError, MalformedStream, NoFrameMarker, NotAJPEG
from pickemall.logger import get_logger

_logger = get_logger("jpeg_scanner")

MARKER_PREFIX = 0xFF
SOI = b"\xff\xd8"
EOI = 0xD9
TEM = 0x01
RST_MARKERS = frozenset(range(0xD0, 0xD8))
# SOF0 baseline, SOF1 extended sequential, SOF2 progressive, SOF3 lossless
SOF_MARKERS = frozenset((0xC0, 0xC1, 0xC2, 0xC3))

_LENGTH_FIELD_SIZE = 2
# precision (1) + height (2) + width (2)
_MIN_SOF_PAYLOAD = 5
_SKIP_CHUNK = 64 * 1024


@dataclass(frozen=True)
class ImageSize:
    width: int
    height: int


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read up to `size` bytes, looping over short reads."""
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _read_segment_length(stream: BinaryIO, marker: int) -> int:
    raw = _read_exact(stream, _LENGTH_FIELD_SIZE)
    if len(raw) < _LENGTH_FIELD_SIZE:
        raise MalformedStream(f"truncated length field for marker 0x{marker:02X}")
    length = int.from_bytes(raw, "big")
    if length < _LENGTH_FIELD_SIZE:
        raise MalformedStream(f"invalid segment length {length} for marker 0x{marker:02X}")
    return length - _LENGTH_FIELD_SIZE


def _skip(stream: BinaryIO, size: int) -> None:
    if size <= 0:
        return
    if stream.seekable():
        stream.seek(size, os.SEEK_CUR)
        return
    remaining = size
    while remaining > 0:
        chunk = stream.read(min(remaining, _SKIP_CHUNK))
        if not chunk:
            return
        remaining -= len(chunk)


def _next_marker(stream: BinaryIO) -> int:
    """Return the next marker type byte, skipping 0xFF fill bytes."""
    buf = _read_exact(stream, 2)
    if not buf:
        raise NoFrameMarker("end of stream before Start-Of-Frame marker")
    if buf[0] != MARKER_PREFIX:
        raise MalformedStream(f"expected marker prefix 0xFF, got 0x{buf[0]:02X}")
    if len(buf) < 2:
        raise NoFrameMarker("end of stream before Start-Of-Frame marker")
    marker = buf[1]
    while marker == MARKER_PREFIX:
        nxt = stream.read(1)
        if not nxt:
            raise NoFrameMarker("end of stream inside marker padding")
        marker = nxt[0]
    return marker


def read_jpeg_dimensions(stream: BinaryIO) -> ImageSize:
    """Return the frame size of the JPEG stream positioned at its first byte.

    Raises:
        NotAJPEG: the stream does not start with the SOI marker.
        MalformedStream: a segment is corrupt or truncated.
        NoFrameMarker: the stream ends before any Start-Of-Frame segment.
        OSError: the underlying read or seek failed.
    """
    if _read_exact(stream, 2) != SOI:
        raise NotAJPEG("missing Start-Of-Image marker")

    while True:
        marker = _next_marker(stream)
        if marker == EOI:
            raise NoFrameMarker("End-Of-Image reached before Start-Of-Frame marker")
        if marker == TEM or marker in RST_MARKERS:
            # parameterless markers carry no length field
            continue

        payload_size = _read_segment_length(stream, marker)
        if marker in SOF_MARKERS:
            payload = _read_exact(stream, payload_size)
            if len(payload) < payload_size:
                raise MalformedStream(f"truncated SOF segment: {len(payload)} of {payload_size} bytes")
            if len(payload) < _MIN_SOF_PAYLOAD:
                raise MalformedStream(f"SOF segment too short: {len(payload)} bytes")
            height = int.from_bytes(payload[1:3], "big")
            width = int.from_bytes(payload[3:5], "big")
            return ImageSize(width=width, height=height)

        _skip(stream, payload_size)


def read_jpeg_dimensions_from_file(path: str | Path) -> ImageSize:
    with open(path, "rb") as f:
        return read_jpeg_dimensions(f)


def probe_dimensions(path: str | Path) -> ImageSize | None:
    """Like `read_jpeg_dimensions_from_file`, but logs and returns None on failure."""
    try:
        return read_jpeg_dimensions_from_file(path)
    except (JPEGScanError, OSError) as e:
        _logger.error("cannot read image dimensions for %s: %s", path, e)
        return None
