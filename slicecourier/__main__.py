"""CLI entry point for slice transfers.

Usage:
    python -m slicecourier ./decks/quarterly.pptx
    python -m slicecourier ./decks/quarterly.pptx --chunk-size-mb 1 --ordered
    python -m slicecourier --config ./transfers/quarterly.yaml --show-slice 0
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Tuple

from slicecourier.lib.config_loader import (
    DEFAULT_CHUNK_SIZE_MB,
    TransferConfig,
    load_transfer_config,
    transfer_config_from_dict,
)
from slicecourier.lib.env import load_env_file
from slicecourier.lib.errors import ConfigurationError
from slicecourier.lib.host import FsspecDocumentHost
from slicecourier.lib.observability import setup_logging
from slicecourier.lib.report import RawDataViewer, Report
from slicecourier.lib.transfer import SliceTransfer, TransferResult

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slice-courier",
        description="Transfer a document from a host in fixed-size slices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Transfer a deck in 4 MB slices (the default)
    python -m slicecourier ./decks/quarterly.pptx

    # Smaller slices, report entries in slice order
    python -m slicecourier ./decks/quarterly.pptx --chunk-size-mb 1 --ordered

    # Settings from YAML, then show the raw data of the first slice
    python -m slicecourier --config ./transfers/quarterly.yaml --show-slice 0
        """,
    )
    parser.add_argument(
        "document",
        nargs="?",
        help="Document path or URL (e.g. ./deck.pptx, s3://bucket/deck.pptx)",
    )
    parser.add_argument(
        "--config",
        help="YAML transfer configuration file",
    )
    parser.add_argument(
        "--chunk-size-mb",
        type=float,
        help=f"Slice size in MB (default: {DEFAULT_CHUNK_SIZE_MB})",
    )
    parser.add_argument(
        "--ordered",
        action="store_true",
        default=None,
        help="Report slices in index order instead of arrival order",
    )
    parser.add_argument(
        "--show-slice",
        type=int,
        action="append",
        default=[],
        metavar="INDEX",
        help="Print the base64 raw data of a slice (0-based, repeatable)",
    )
    parser.add_argument(
        "--env-file",
        help="Load environment variables from this .env file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to a file in addition to the console",
    )
    return parser


def build_config(args: argparse.Namespace) -> TransferConfig:
    """Merge the config file (if any) with command-line overrides."""
    if args.config:
        config = load_transfer_config(args.config)
        if args.document:
            config.document = args.document
        if args.chunk_size_mb is not None:
            config.chunk_size_mb = args.chunk_size_mb
        if args.ordered is not None:
            config.ordered_report = args.ordered
        config.validate()
        return config

    values = {"document": args.document or ""}
    if args.chunk_size_mb is not None:
        values["chunk_size_mb"] = args.chunk_size_mb
    if args.ordered is not None:
        values["ordered_report"] = args.ordered
    return transfer_config_from_dict(values)


async def run_transfer(config: TransferConfig) -> Tuple[TransferResult, Report]:
    """Run one transfer described by ``config``."""
    host = FsspecDocumentHost(
        config.document,
        max_slice_bytes=config.max_slice_bytes,
        **config.storage_options,
    )
    report = Report(viewer=RawDataViewer())
    transfer = SliceTransfer(
        host,
        report,
        file_type=config.file_type,
        ordered=config.ordered_report,
        document=config.document,
    )
    result = await transfer.run(config.chunk_size_bytes)
    return result, report


async def run_cli(config: TransferConfig, show_slices: List[int]) -> int:
    """Transfer, print the report, then print any requested raw data."""
    result, report = await run_transfer(config)
    print_report(report)

    missing = 0
    if show_slices:
        report.viewer.load(_print_raw_data)
        for index in show_slices:
            try:
                await report.viewer.show(index)
            except KeyError:
                print(f"Error: No data received for slice {index}", file=sys.stderr)
                missing += 1

    return 0 if result.succeeded and not missing else 1


def _print_raw_data(index: int, encoded: str) -> None:
    print(f"Raw data for slice {index + 1}:")
    print(encoded)


def print_report(report: Report) -> None:
    for line in report.lines:
        print(line)
    for notification in report.notifications:
        print(f"{notification.title}: {notification.message}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.document and not args.config:
        parser.error("a document or --config is required")

    setup_logging(verbose=args.verbose, json_format=args.json_log, log_file=args.log_file)

    if args.env_file:
        if not load_env_file(args.env_file):
            logger.warning("No variables loaded from %s", args.env_file)

    try:
        config = build_config(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    return asyncio.run(run_cli(config, args.show_slice))


if __name__ == "__main__":
    sys.exit(main())
