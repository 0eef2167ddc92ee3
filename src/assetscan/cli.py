from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections.abc import Iterable
from contextlib import nullcontext
from dataclasses import asdict
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from assetscan import __version__
from assetscan.analyzer import DEFAULT_BATCH_SIZE, STATIC_DIR, format_size, scan
from assetscan.models import ScanResult

logger = logging.getLogger(__name__)


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="scan-unused-assets",
        description=(
            "Report image files that no JavaScript or TypeScript source references, "
            "and how much disk space they take. Nothing is modified."
        ),
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help=f"Folder (relative to --path) to scan for both code and images "
        f"(default: code everywhere, images under {STATIC_DIR}/)",
    )
    parser.add_argument("--path", default=".", help="Project root directory")
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Glob to exclude (repeatable, relative to --path)",
    )
    parser.add_argument(
        "--static-dir",
        default=STATIC_DIR,
        help="Static asset directory stripped from image paths before matching",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=DEFAULT_BATCH_SIZE,
        help="Files handled per batch before yielding",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(list(argv) if argv is not None else None)
    root = Path(args.path).resolve()
    if not root.exists() or not root.is_dir():
        raise SystemExit(f"Path does not exist or is not a directory: {root}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    console = Console(highlight=False)
    err_console = Console(stderr=True, highlight=False)
    spinner = (
        nullcontext()
        if args.json
        else err_console.status("Initializing scan...", spinner="dots")
    )
    try:
        with spinner as status:
            result = asyncio.run(
                scan(
                    root,
                    args.target,
                    exclude=args.exclude,
                    static_dir=args.static_dir,
                    batch_size=args.batch_size,
                    on_status=status.update if status is not None else None,
                )
            )
    except Exception as exc:
        logger.debug("Scan aborted", exc_info=True)
        err_console.print(f"[red]Scan failed: {escape(str(exc))}[/red]")
        return 1

    if args.json:
        payload = asdict(result)
        payload["total_size"] = format_size(result.total_bytes)
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        render_report(console, result)
    return 0


def render_report(console: Console, result: ScanResult) -> None:
    console.print(f"[green]Found {result.image_count} image files[/green]")
    console.print(f"[green]Found {result.code_count} code files[/green]")
    if result.parse_failures:
        console.print(
            f"[yellow]{len(result.parse_failures)} code files could not be parsed[/yellow]"
        )
    console.print("[green]Finished parsing code files.[/green]")

    console.print("\n[green]Unused image files:[/green]")
    if not result.unused:
        console.print("- (none)")
    for rel_path in result.unused:
        console.print(f"[red]{escape(rel_path)}[/red]", soft_wrap=True)
    console.print(
        f"\n[green]Total size of unused images: {format_size(result.total_bytes)}[/green]"
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


if __name__ == "__main__":
    raise SystemExit(main())
