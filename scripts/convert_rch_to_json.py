#!/usr/bin/env python3
"""
Convert every .rch file in the RCH data directory to <location>.json.

The API serves these pre-converted files before falling back to parsing the
.rch source.

Usage:
    python scripts/convert_rch_to_json.py
    python scripts/convert_rch_to_json.py --rch-dir data/rch --json-dir data/json
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import rch_parser
from config import RCH_DATA_DIR, RCH_JSON_DIR
from exceptions import ParseError
from logger import setup_logging

logger = logging.getLogger("convert_rch_to_json")


def convert_directory(rch_dir: Path, json_dir: Path) -> int:
    """Convert all .rch files; returns the number of files written"""
    json_dir.mkdir(parents=True, exist_ok=True)
    rch_files = sorted(rch_dir.glob("*.rch"))
    logger.info(f"Found {len(rch_files)} RCH files to convert...")

    converted = 0
    for rch_path in rch_files:
        json_path = json_dir / f"{rch_path.stem}.json"
        content = rch_path.read_text(encoding="utf-8", errors="replace")
        try:
            data = rch_parser.parse(content, source_file_name=rch_path.name)
        except ParseError as e:
            logger.error(f"✗ {rch_path.name}: {e}")
            continue

        json_path.write_text(json.dumps(rch_parser.serialize(data), indent=2), encoding="utf-8")
        logger.info(f"✓ Created {json_path} ({data.metadata.record_count} records)")
        converted += 1

    return converted


def main() -> int:
    parser = argparse.ArgumentParser(description="Convert RCH files to JSON")
    parser.add_argument("--rch-dir", default=RCH_DATA_DIR, help="Directory with .rch files")
    parser.add_argument("--json-dir", default=RCH_JSON_DIR, help="Output directory")
    args = parser.parse_args()

    setup_logging()

    rch_dir = Path(args.rch_dir)
    if not rch_dir.is_dir():
        logger.error(f"RCH directory not found: {rch_dir}")
        return 1

    converted = convert_directory(rch_dir, Path(args.json_dir))
    logger.info(f"Conversion complete: {converted} file(s) written")
    return 0


if __name__ == "__main__":
    sys.exit(main())
