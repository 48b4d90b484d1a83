"""Exception hierarchy.

Scanner errors are per file and non-fatal for listings. Decode errors reject
the batch input. Crop/pick errors are recorded per operation by the executor;
only `OutputDirectoryError` aborts a batch before any work starts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pickemall.executor import BatchReport


class PickemallError(Exception):
    """Base class for all project errors."""


# JPEG marker scanning


class JPEGScanError(PickemallError, ValueError):
    pass


class NotAJPEG(JPEGScanError):
    pass


class MalformedStream(JPEGScanError):
    pass


class NoFrameMarker(JPEGScanError):
    pass


# Operation decoding


class OperationDecodeError(PickemallError, ValueError):
    def __init__(self, message: str, kind: object = None):
        super().__init__(message)
        self.kind = kind


class UnknownOperationKind(OperationDecodeError):
    def __init__(self, kind: object):
        super().__init__(f"unknown operation {kind!r}", kind)


# Crop execution


class CropError(PickemallError):
    pass


class InvalidCropDimensions(CropError, ValueError):
    pass


class CropOutOfBounds(CropError):
    pass


class CodecDecodeFailure(CropError):
    pass


class CodecEncodeFailure(CropError):
    pass


# Pick execution


class PickError(PickemallError):
    pass


class SourceFileMissing(PickError, FileNotFoundError):
    pass


class CopyFailure(PickError, OSError):
    pass


class UnsafePathError(PickemallError, ValueError):
    """A filename resolved outside of its directory root."""


# Batch


class OutputDirectoryError(PickemallError, OSError):
    pass


class BatchError(PickemallError):
    """At least one operation of a batch failed; `report` has the details."""

    def __init__(self, report: BatchReport):
        failed = report.failed
        super().__init__(f"{len(failed)} of {len(report.results)} operations failed")
        self.report = report
