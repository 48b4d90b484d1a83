"""Command line entry point.

    pickemall ls ROOT
    pickemall apply ROOT OPERATIONS.json [--output DIR] [--workers N] [--quality Q]

Exit codes: 0 success, 1 some operations failed, 2 bad input or setup failure.
"""

from __future__ import annotations

import argparse
import json
import os
import signal
import sys
import threading
from pathlib import Path

from pickemall.cropper import VipsCropper
from pickemall.errors import BatchError, OutputDirectoryError, PickemallError
from pickemall.executor import BatchReport, OperationExecutor
from pickemall.images import walk_images
from pickemall.logger import get_logger, setup_logger
from pickemall.operations import decode_operations
from pickemall.settings import Settings

EXIT_OK = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_BAD_INPUT = 2

_logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pickemall", description="Crop and pick JPEG images in bulk")
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories")
    parser.add_argument("--settings", help="Path to a JSON settings file")
    sub = parser.add_subparsers(dest="command", required=True)

    ls = sub.add_parser("ls", help="List JPEG files with their dimensions as JSON")
    ls.add_argument("root", help="Directory to list")

    apply = sub.add_parser("apply", help="Apply a batch of crop/pick operations")
    apply.add_argument("root", help="Directory holding the source images")
    apply.add_argument("operations", help="JSON file with the operations ('-' for stdin)")
    apply.add_argument("--output", help="Output directory (default: ROOT + output suffix)")
    apply.add_argument("--workers", type=int, help="Number of parallel workers (default: CPU count)")
    apply.add_argument("--quality", type=int, help="JPEG quality of cropped images")
    return parser


def _apply_logging_options(args: argparse.Namespace) -> None:
    if args.log_level:
        os.environ["PICKEMALL_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["PICKEMALL_LOG_CATS"] = args.log_cats
    setup_logger()


def _load_operations_payload(source: str):
    if source == "-":
        return json.load(sys.stdin)
    with open(source, encoding="utf-8") as f:
        return json.load(f)


def default_output_dir(root: str | Path, settings: Settings) -> Path:
    root_path = Path(root).resolve()
    return root_path.with_name(root_path.name + settings.output_suffix)


def cmd_ls(args: argparse.Namespace, settings: Settings) -> int:
    try:
        directory = walk_images(args.root)
    except OSError as e:
        _logger.error("failed to list %s: %s", args.root, e)
        return EXIT_BAD_INPUT
    json.dump(directory.to_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return EXIT_OK


def _print_summary(report: BatchReport) -> None:
    for result in report.results:
        line = f"{result.status.value:<10} {result.operation.kind:<5} {result.operation.filename}"
        if result.output_path is not None:
            line += f" -> {result.output_path}"
        if result.error is not None:
            line += f" ({result.error})"
        print(line)


def cmd_apply(args: argparse.Namespace, settings: Settings) -> int:
    try:
        operations = decode_operations(_load_operations_payload(args.operations))
    except (OSError, ValueError) as e:
        # json.JSONDecodeError and OperationDecodeError are both ValueErrors
        _logger.error("cannot read operations from %s: %s", args.operations, e)
        return EXIT_BAD_INPUT

    output_dir = Path(args.output) if args.output else default_output_dir(args.root, settings)
    quality = args.quality if args.quality is not None else settings.jpeg_quality
    try:
        executor = OperationExecutor(
            base_dir=args.root,
            output_dir=output_dir,
            cropper=VipsCropper(quality=quality),
            max_workers=args.workers if args.workers is not None else settings.max_workers,
        )
    except ValueError as e:
        _logger.error("invalid options: %s", e)
        return EXIT_BAD_INPUT

    cancel_event = threading.Event()

    def _on_interrupt(signum, frame) -> None:  # noqa: ARG001
        _logger.warning("interrupt received, finishing running operations")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        report = executor.execute(operations, cancel_event=cancel_event)
    except OutputDirectoryError as e:
        _logger.error("%s", e)
        return EXIT_BAD_INPUT
    except BatchError as e:
        _print_summary(e.report)
        return EXIT_PARTIAL_FAILURE
    finally:
        signal.signal(signal.SIGINT, previous)

    _print_summary(report)
    return EXIT_OK


COMMANDS = {"ls": cmd_ls, "apply": cmd_apply}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _apply_logging_options(args)
    settings = Settings(args.settings)
    try:
        return COMMANDS[args.command](args, settings)
    except PickemallError as e:
        _logger.error("%s", e)
        return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
