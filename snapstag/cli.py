#!/usr/bin/env python3
"""
Compare two image files the way snapshot tests compare them.

Usage:
    snapstag compare REFERENCE CANDIDATE [--precision P] [--scale S]
                     [--diff-output PATH] [--verbose]

Exit codes: 0 = images match, 1 = images differ, 2 = unreadable input
"""

import argparse
import logging
import sys
from pathlib import Path

from . import config
from .comparison import evaluate
from .image import Image

logger = logging.getLogger(__name__)

EXIT_SAME = 0
EXIT_DIFFERENT = 1
EXIT_UNREADABLE = 2


def _load(path: Path, scale: float) -> Image:
    return Image.from_compressed(path.read_bytes(), scale=scale)


def run_compare(args: argparse.Namespace) -> int:
    """Run the compare command."""
    scale = config.resolve_scale(args.scale)
    try:
        reference = _load(args.reference, scale)
        candidate = _load(args.candidate, scale)
    except OSError as e:
        print(f"Failed to read image: {e}", file=sys.stderr)
        return EXIT_UNREADABLE

    for path, image in ((args.reference, reference), (args.candidate, candidate)):
        if not image.has_pixel_source():
            print(f"Failed to decode image: {path}", file=sys.stderr)
            return EXIT_UNREADABLE

    report = evaluate(reference, candidate, precision=args.precision)
    if report.passed:
        print("Images match.")
        return EXIT_SAME

    print(report.message)
    if args.diff_output is not None and report.diff_image is not None:
        args.diff_output.parent.mkdir(parents=True, exist_ok=True)
        args.diff_output.write_bytes(report.diff_image.to_png())
        print(f"Difference image written to {args.diff_output}")
    return EXIT_DIFFERENT


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapstag",
        description="Pixel comparison of snapshot images",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    compare_parser = commands.add_parser(
        "compare", help="Compare a candidate image against a reference"
    )
    compare_parser.add_argument("reference", type=Path, help="Reference image")
    compare_parser.add_argument("candidate", type=Path, help="Newly taken image")
    compare_parser.add_argument(
        "--precision", type=float, default=1.0,
        help="Fraction of pixel bytes which must match (default: 1.0)",
    )
    compare_parser.add_argument(
        "--scale", type=float, default=None,
        help="Pixels per logical unit of both images (default: SNAPSTAG_DEFAULT_SCALE)",
    )
    compare_parser.add_argument(
        "--diff-output", type=Path, default=None,
        help="Where to write the difference image (PNG)",
    )
    compare_parser.set_defaults(handler=run_compare)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command == "compare" and not 0.0 <= args.precision <= 1.0:
        parser.error("--precision must be within [0, 1]")
    if args.command == "compare" and args.scale is not None and args.scale < 0:
        parser.error("--scale must not be negative")
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
