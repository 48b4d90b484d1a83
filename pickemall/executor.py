"""Batch executor for crop/pick operations.

Operations run on a bounded thread pool. Each one is isolated: a failure is
logged and recorded, siblings keep running, and the batch reports the
aggregate once everything has finished.
"""

from __future__ import annotations

import enum
import io
import os
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from pickemall.cropper import Cropper, VipsCropper
from pickemall.errors import BatchError, CopyFailure, OutputDirectoryError, SourceFileMissing
from pickemall.file_operations import copy_file_bytes, ensure_dir, write_bytes_atomic
from pickemall.logger import get_logger
from pickemall.metrics import metrics
from pickemall.operations import CropOperation, Operation, PickOperation, crop_output_name
from pickemall.path_utils import abs_path, resolve_within

_logger = get_logger("executor")


def default_concurrency() -> int:
    return max(1, os.cpu_count() or 1)


class OperationStatus(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class OperationResult:
    operation: Operation
    status: OperationStatus = OperationStatus.PENDING
    output_path: Path | None = None
    error: BaseException | None = None


@dataclass
class BatchReport:
    results: list[OperationResult] = field(default_factory=list)

    def _with_status(self, status: OperationStatus) -> list[OperationResult]:
        return [r for r in self.results if r.status is status]

    @property
    def succeeded(self) -> list[OperationResult]:
        return self._with_status(OperationStatus.SUCCEEDED)

    @property
    def failed(self) -> list[OperationResult]:
        return self._with_status(OperationStatus.FAILED)

    @property
    def cancelled(self) -> list[OperationResult]:
        return self._with_status(OperationStatus.CANCELLED)

    @property
    def ok(self) -> bool:
        return not self.failed


class OperationExecutor:
    """Apply operations against files under `base_dir`, writing into `output_dir`.

    Sources are never modified. Crop results are named after the source file
    and the crop identifier, picks keep their relative name, so two
    operations only share an output path when they would write the same bytes.
    """

    def __init__(
        self,
        base_dir: str | Path,
        output_dir: str | Path,
        cropper: Cropper | None = None,
        max_workers: int | None = None,
    ):
        self.base_dir = abs_path(base_dir)
        self.output_dir = abs_path(output_dir)
        self.cropper: Cropper = cropper if cropper is not None else VipsCropper()
        self.max_workers = int(max_workers) if max_workers is not None else default_concurrency()
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    def execute(self, operations: Sequence[Operation], cancel_event: threading.Event | None = None) -> BatchReport:
        """Run every operation and return the per-operation report.

        Setting `cancel_event` stops operations that have not started yet;
        running ones finish normally.

        Raises:
            OutputDirectoryError: the output directory cannot be created.
                Nothing has run.
            BatchError: at least one operation failed. `report` holds the
                result of every operation.
        """
        report = BatchReport(results=[OperationResult(operation=op) for op in operations])
        if not report.results:
            _logger.warning("no operations to execute")
            return report

        try:
            ensure_dir(self.output_dir)
        except OSError as e:
            raise OutputDirectoryError(f"failed to create output directory {self.output_dir}: {e}") from e

        cancel_event = cancel_event or threading.Event()
        lock = threading.Lock()
        _logger.info(
            "executing %d operations with %d workers: %s -> %s",
            len(report.results),
            self.max_workers,
            self.base_dir,
            self.output_dir,
        )

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="pickemall") as pool:
            futures = [pool.submit(self._run_one, result, cancel_event, lock) for result in report.results]
            wait(futures)

        if report.cancelled:
            _logger.warning("cancelled %d operations before they started", len(report.cancelled))
        if report.failed:
            _logger.error("finished with errors: %d of %d operations failed", len(report.failed), len(report.results))
            raise BatchError(report)

        _logger.info("finished: %d operations succeeded", len(report.succeeded))
        return report

    def _run_one(self, result: OperationResult, cancel_event: threading.Event, lock: threading.Lock) -> None:
        with lock:
            if cancel_event.is_set():
                result.status = OperationStatus.CANCELLED
                metrics.inc("executor.cancelled")
                return
            result.status = OperationStatus.RUNNING

        op = result.operation
        try:
            with metrics.timed("executor.operation_duration"):
                output = self.execute_operation(op)
        except Exception as e:
            _logger.error(
                "failed to execute %s operation for %s: %s",
                getattr(op, "kind", type(op).__name__),
                getattr(op, "filename", op),
                e,
            )
            with lock:
                result.status = OperationStatus.FAILED
                result.error = e
            metrics.inc("executor.failed")
            return

        with lock:
            result.status = OperationStatus.SUCCEEDED
            result.output_path = output
        metrics.inc(f"executor.{op.kind}_succeeded")

    def execute_operation(self, op: Operation) -> Path:
        """Apply a single operation synchronously and return the output path."""
        if isinstance(op, CropOperation):
            return self.execute_crop(op)
        if isinstance(op, PickOperation):
            return self.execute_pick(op)
        raise TypeError(f"not a crop or pick operation: {op!r}")

    def execute_crop(self, op: CropOperation) -> Path:
        _logger.info("cropping %s %s", op.filename, op.crop)
        source_path = resolve_within(self.base_dir, op.filename)
        buf = io.BytesIO()
        try:
            f = open(source_path, "rb")
        except FileNotFoundError as e:
            raise SourceFileMissing(f"source file not found: {source_path}") from e
        with f:
            self.cropper.crop(f, buf, op.crop)

        dest = resolve_within(self.output_dir, crop_output_name(op.filename, op.crop))
        write_bytes_atomic(dest, buf.getvalue())
        return dest

    def execute_pick(self, op: PickOperation) -> Path:
        _logger.info("picking %s", op.filename)
        source_path = resolve_within(self.base_dir, op.filename)
        dest = resolve_within(self.output_dir, op.filename)
        if dest.parent != self.output_dir:
            try:
                ensure_dir(dest.parent)
            except OSError as e:
                raise CopyFailure(f"failed to create {dest.parent} for {op.filename}: {e}") from e
        copy_file_bytes(source_path, dest)
        return dest
