"""Command-line interface for csvprobe."""

from __future__ import annotations

import argparse
import json
import logging
import sys

import csvprobe
from csvprobe._utils import DEFAULT_MAX_SAMPLE_LINES, DEFAULT_MIN_CONFIDENCE
from csvprobe.errors import CsvProbeError, FileAccessError


def _format_line(filepath: str, result: dict) -> str:
    confidence = result["confidence"]
    parts = [
        f"delimiter={result['delimiter']!r} ({confidence['delimiter']})",
        f"enclosure={result['enclosure']!r} ({confidence['enclosure']})",
        f"escape={result['escapeChar']!r} ({confidence['escapeChar']})",
        f"charset={result['charset']} ({confidence['charset']})",
    ]
    return f"{filepath}: " + ", ".join(parts)


def main(argv: list[str] | None = None) -> None:
    """Run the ``csvprobe`` command-line tool.

    Exits with status 1 if detection failed for any file.

    :param argv: Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = argparse.ArgumentParser(
        description="Detect the delimiter, enclosure, escape character and charset of CSV files."
    )
    parser.add_argument("files", nargs="+", help="CSV files to inspect")
    parser.add_argument(
        "--json", action="store_true", help="Output one JSON object per file"
    )
    parser.add_argument(
        "--min-confidence",
        type=int,
        default=DEFAULT_MIN_CONFIDENCE,
        help="Minimum delimiter confidence, 0-100 (default: %(default)s)",
    )
    parser.add_argument(
        "--max-lines",
        type=int,
        default=DEFAULT_MAX_SAMPLE_LINES,
        help="Number of lines sampled per file (default: %(default)s)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log detection details"
    )
    parser.add_argument(
        "--version", action="version", version=f"csvprobe {csvprobe.__version__}"
    )

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    failed = False
    for filepath in args.files:
        try:
            result = csvprobe.detect(
                filepath,
                max_sample_lines=args.max_lines,
                min_confidence=args.min_confidence,
            )
        except FileAccessError as e:
            print(f"csvprobe: {filepath}: {e}", file=sys.stderr)
            continue
        except (CsvProbeError, ValueError) as e:
            print(f"csvprobe: {filepath}: {e}", file=sys.stderr)
            failed = True
            continue
        if args.json:
            print(json.dumps({"file": filepath, **result}))
        else:
            print(_format_line(filepath, result))

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
