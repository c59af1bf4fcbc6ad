#!/usr/bin/env python3
"""Talk Structure - Main Entry Point.

Extracts the comment and section structure of a discussion page, or
compares two revisions of a page.
"""

import argparse
import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

# Add src directory to Python path
sys.path.insert(0, str(Path(__file__).parent))

from utils.logger import setup_logger
from extraction.markup import MarkupConfig
from extraction.parser import extract
from extraction.snapshot import Snapshot, take_snapshot
from matching.report import compare_snapshots

# Read version from VERSION file
_version_file = Path(__file__).parent.parent / "VERSION"
__version__ = _version_file.read_text().strip() if _version_file.exists() else "0.0.0"

DEFAULT_PARSER = "html.parser"


def snapshot_file(path: str, features: str, config: MarkupConfig) -> Snapshot:
    """Extract the structure of an HTML file.

    Args:
        path: Path to the page HTML.
        features: Parser backend.
        config: Markup classifications.

    Returns:
        Snapshot of the page's comments and sections.
    """
    html = Path(path).read_text(encoding="utf-8")
    adapter, result = extract(html, features, config)
    return take_snapshot(adapter, result)


def handle_extract(path: str, features: str, output: Optional[str] = None) -> int:
    """Handle the extract command."""
    snapshot = snapshot_file(path, features, MarkupConfig.from_env())
    data = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)

    if output:
        Path(output).write_text(data, encoding="utf-8")
        print(f"Wrote {len(snapshot.comments)} comments and {len(snapshot.sections)} sections to {output}")
    else:
        print(data)
    return 0


def handle_compare(current_path: str, other_path: str, features: str) -> int:
    """Handle the compare command."""
    config = MarkupConfig.from_env()
    current = snapshot_file(current_path, features, config)
    other = snapshot_file(other_path, features, config)

    report = compare_snapshots(current, other)
    print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="talk-structure",
        description="Discussion page structure extraction and revision matching",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_choices = ["html.parser", "lxml"]

    extract_parser = subparsers.add_parser("extract", help="Extract comments and sections of a page")
    extract_parser.add_argument("file", help="Path to the page HTML")
    extract_parser.add_argument(
        "--parser",
        choices=parser_choices,
        default=None,
        help="HTML parser backend (default: TALK_PARSER or html.parser)",
    )
    extract_parser.add_argument("--output", "-o", help="Write the JSON snapshot to this file")

    compare_parser = subparsers.add_parser("compare", help="Compare two revisions of a page")
    compare_parser.add_argument("current", help="Path to the current revision HTML")
    compare_parser.add_argument("other", help="Path to the other revision HTML")
    compare_parser.add_argument(
        "--parser",
        choices=parser_choices,
        default=None,
        help="HTML parser backend (default: TALK_PARSER or html.parser)",
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments (defaults to sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    logger = setup_logger(
        log_file=os.getenv("LOG_FILE"),
        level=os.getenv("LOG_LEVEL", "WARNING"),
    )
    logger.info(f"Talk Structure v{__version__} started at {datetime.now()}")

    features = parsed.parser or os.getenv("TALK_PARSER", DEFAULT_PARSER)

    try:
        if parsed.command == "extract":
            return handle_extract(parsed.file, features, parsed.output)
        if parsed.command == "compare":
            return handle_compare(parsed.current, parsed.other, features)
    except Exception as e:
        logger.error(f"Error during {parsed.command}: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
