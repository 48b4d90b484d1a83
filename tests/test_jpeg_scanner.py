import io
from pathlib import Path

import pytest

from pickemall.errors import MalformedStream, NoFrameMarker, NotAJPEG
from pickemall.jpeg_scanner import ImageSize, probe_dimensions, read_jpeg_dimensions, read_jpeg_dimensions_from_file
from tests.helpers.jpeg_bytes import EOI, SOI, app0, dqt, jpeg_header, segment, sof_payload


class _NoSeekStream(io.RawIOBase):
    """Readable stream that refuses to seek and returns short reads."""

    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            return self._buf.read()
        return self._buf.read(min(size, 3))


def _scan(data: bytes) -> ImageSize:
    return read_jpeg_dimensions(io.BytesIO(data))


@pytest.mark.parametrize("sof", [0xC0, 0xC1, 0xC2, 0xC3])
def test_reads_dimensions_from_each_sof_marker(sof):
    assert _scan(jpeg_header(1200, 800, sof_marker=sof)) == ImageSize(width=1200, height=800)


def test_reads_full_16_bit_dimensions():
    assert _scan(jpeg_header(65535, 1)) == ImageSize(width=65535, height=1)
    assert _scan(jpeg_header(0x0102, 0x0304)) == ImageSize(width=0x0102, height=0x0304)


def test_stops_at_first_frame_marker():
    data = SOI + segment(0xC0, sof_payload(10, 20)) + segment(0xC2, sof_payload(30, 40)) + EOI
    assert _scan(data) == ImageSize(width=10, height=20)


def test_skips_fill_bytes_before_marker():
    data = SOI + b"\xff\xff\xff" + segment(0xE0, b"abc")[1:] + segment(0xC0, sof_payload(7, 9))
    assert _scan(data) == ImageSize(width=7, height=9)


def test_skips_parameterless_markers():
    data = SOI + b"\xff\xd0" + b"\xff\x01" + segment(0xC1, sof_payload(5, 6))
    assert _scan(data) == ImageSize(width=5, height=6)


def test_skips_segments_without_seeking():
    data = jpeg_header(640, 480)
    assert read_jpeg_dimensions(_NoSeekStream(data)) == ImageSize(width=640, height=480)


def test_does_not_treat_other_sof_like_markers_as_frames():
    # 0xC4 (DHT) sits right after the recognised range and must be skipped
    data = SOI + segment(0xC4, sof_payload(1, 1)) + segment(0xC0, sof_payload(3, 4))
    assert _scan(data) == ImageSize(width=3, height=4)


@pytest.mark.parametrize("data", [b"", b"\xff", b"\x89PNG\r\n\x1a\n", b"\xff\xd9" + jpeg_header(1, 1)])
def test_missing_soi_is_not_a_jpeg(data):
    with pytest.raises(NotAJPEG):
        _scan(data)


def test_marker_without_prefix_is_malformed():
    with pytest.raises(MalformedStream):
        _scan(SOI + b"\x00\xc0" + sof_payload(1, 1))


def test_end_of_stream_without_frame():
    with pytest.raises(NoFrameMarker):
        _scan(SOI + app0() + dqt())


def test_eoi_before_frame():
    with pytest.raises(NoFrameMarker):
        _scan(SOI + app0() + EOI + segment(0xC0, sof_payload(1, 1)))


def test_truncated_skip_segment_ends_cleanly():
    # declared length runs past the end of the data
    with pytest.raises(NoFrameMarker):
        _scan(SOI + b"\xff\xe0\x10\x00" + b"short")


def test_truncated_length_field():
    with pytest.raises(MalformedStream, match="truncated length"):
        _scan(SOI + b"\xff\xc0\x00")


@pytest.mark.parametrize("length", [b"\x00\x00", b"\x00\x01"])
def test_length_below_two_is_rejected(length):
    with pytest.raises(MalformedStream, match="invalid segment length"):
        _scan(SOI + b"\xff\xe1" + length + b"\x00" * 8)


def test_truncated_frame_payload():
    full = segment(0xC0, sof_payload(100, 100))
    with pytest.raises(MalformedStream, match="truncated SOF"):
        _scan(SOI + full[:8])


def test_frame_payload_too_short_for_dimensions():
    with pytest.raises(MalformedStream, match="too short"):
        _scan(SOI + segment(0xC0, b"\x08\x00\x10\x00"))


def test_read_from_file(tmp_path: Path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(jpeg_header(1200, 800))
    assert read_jpeg_dimensions_from_file(path) == ImageSize(1200, 800)


def test_probe_returns_none_on_failure(tmp_path: Path):
    bad = tmp_path / "bad.jpg"
    bad.write_bytes(b"not a jpeg at all")
    assert probe_dimensions(bad) is None
    assert probe_dimensions(tmp_path / "missing.jpg") is None


def test_probe_returns_size(tmp_path: Path):
    path = tmp_path / "ok.jpg"
    path.write_bytes(jpeg_header(3, 2))
    assert probe_dimensions(path) == ImageSize(width=3, height=2)


def test_read_errors_propagate():
    class _Broken(io.RawIOBase):
        def readable(self) -> bool:
            return True

        def read(self, size: int = -1) -> bytes:
            raise OSError("device gone")

    with pytest.raises(OSError, match="device gone"):
        read_jpeg_dimensions(_Broken())
