#!/usr/bin/env python3
"""
Main CLI entry point for blurry-cleaner.
"""
import sys
import json
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from blurry_cleaner import config
from blurry_cleaner.core.demo import create_demo_images
from blurry_cleaner.core.file_operations import FileSystemProvider
from blurry_cleaner.core.quality import classify
from blurry_cleaner.core.records import ImageRecord
from blurry_cleaner.core.scan_engine import ScanScheduler
from blurry_cleaner.core.workers import AnalysisWorkerPool
from blurry_cleaner.utils.log_utils import configure_logging, get_logger
from blurry_cleaner.utils.utils import format_size

logger = get_logger(__name__)


def _threshold(value: str) -> int:
    try:
        return config.validate_threshold(int(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _workers(value: str) -> int:
    try:
        return config.validate_concurrency(int(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _tick(value: str) -> float:
    try:
        return config.validate_tick_interval(float(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Flag blurred, low-contrast and noisy images and optionally move them to a trash folder'
    )
    parser.add_argument('input', nargs='?', help='Directory to scan for images (recurses into subfolders)')
    parser.add_argument('--demo',
                        action='store_true',
                        help='Scan the built-in synthetic demo set instead of a directory')
    parser.add_argument('--threshold',
                        type=_threshold,
                        default=config.DEFAULT_THRESHOLD,
                        help=f'Quality below which images are flagged, {config.THRESHOLD_MIN}-{config.THRESHOLD_MAX} '
                             f'(default: {config.DEFAULT_THRESHOLD})')
    parser.add_argument('--workers',
                        type=_workers,
                        default=config.DEFAULT_CONCURRENCY,
                        help=f'Number of parallel analysis workers (default: {config.DEFAULT_CONCURRENCY})')
    parser.add_argument('--tick',
                        type=_tick,
                        default=config.TICK_INTERVAL,
                        help=f'Seconds between dispatch ticks (default: {config.TICK_INTERVAL})')
    parser.add_argument('--flagged-only',
                        action='store_true',
                        help='Only list flagged images in the summary')
    parser.add_argument('--trash-flagged',
                        action='store_true',
                        help='Move every flagged image to the trash directory after the scan')
    parser.add_argument('--trash-dir',
                        type=Path,
                        default=config.DEFAULT_TRASH_DIR,
                        help=f'Trash directory (default: {config.DEFAULT_TRASH_DIR})')
    parser.add_argument('--ui',
                        action='store_true',
                        help='Show a live Rich progress display during the scan')
    parser.add_argument('--json',
                        action='store_true',
                        help='Print the scanned records as JSON instead of a table')
    parser.add_argument('--debug',
                        action='store_true',
                        help='Enable debug mode')
    args = parser.parse_args(argv)
    if not args.demo and not args.input:
        parser.error('a directory is required unless --demo is given')
    return args


def build_summary_table(records: Iterable[ImageRecord], threshold: int) -> Table:
    table = Table(title=f"Scan results (threshold {threshold})")
    table.add_column("Name", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("Sharp", justify="right")
    table.add_column("Contrast", justify="right")
    table.add_column("Noise", justify="right")
    table.add_column("Label")
    for record in records:
        m = record.analysis
        if m is None:
            label = f"[red]failed: {escape(record.error)}[/red]" if record.error else "pending"
            table.add_row(escape(record.name), format_size(record.size), "-", "-", "-", "-", label)
            continue
        label = classify(m.quality, threshold)
        table.add_row(
            escape(record.name),
            format_size(record.size),
            f"{m.quality:.0f}",
            f"{m.sharpness:.1f}",
            f"{m.contrast:.1f}",
            f"{m.noise:.1f}",
            label,
        )
    return table


def run_scan(scheduler: ScanScheduler, records: List[ImageRecord], threshold: int, use_ui: bool) -> None:
    if use_ui:
        from blurry_cleaner.ui import RichScanUI
        RichScanUI.run(scheduler, records, threshold)
    else:
        asyncio.run(scheduler.scan(records))


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)
    console = Console()

    if args.demo:
        provider = None
        records = create_demo_images()
        logger.info("Loaded %d demo images", len(records))
    else:
        root = Path(args.input)
        if not root.is_dir():
            logger.error(f"Error: Path '{root}' is not a directory.")
            return 1
        provider = FileSystemProvider(trash_dir=args.trash_dir)
        logger.info(f"Scanning files under {root}...")
        records = provider.list_images(root)
        logger.info(f"Found {len(records)} images")

    with AnalysisWorkerPool(max_workers=args.workers) as pool:
        scheduler = ScanScheduler(
            pool,
            provider=provider,
            concurrency=args.workers,
            tick_interval=args.tick,
        )
        run_scan(scheduler, records, args.threshold, args.ui)

    store = scheduler.store
    shown = store.visible(flagged_only=args.flagged_only, threshold=args.threshold)
    if args.json:
        print(json.dumps([r.to_dict() for r in shown], indent=2))
    else:
        console.print(build_summary_table(shown, args.threshold))
        flagged = store.flagged(args.threshold)
        console.print(
            f"{store.progress()}% · {store.analyzed_count()}/{len(store.visible())} analyzed, "
            f"{store.failed_count()} failed, {len(flagged)} flagged"
        )

    if args.trash_flagged:
        flagged_ids = [r.id for r in store.flagged(args.threshold)]
        result = scheduler.trash(flagged_ids)
        if not result.ok:
            logger.error(result.message or 'Failed to move files to trash')
            return 1
        logger.info(result.message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
