#!/usr/bin/env python3
"""
Frame Build Script
==================

Converts ASCII-art animations into gzip-compressed SVG frames.

This script:
    1. Walks every animation directory under the source root
    2. Renders each frame*.txt as an SVG panel
    3. Writes frame*.svg.gz into the matching output directory

Usage:
    python scripts/build_frames.py
    python scripts/build_frames.py --src ascii --out ascii-compressed
"""

import argparse
import logging
import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from ascii_pet.frames.render import build_all


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Render ASCII-art frames to gzip-compressed SVGs"
    )
    parser.add_argument(
        "--src",
        type=str,
        default="ascii",
        help="Source root with one directory per animation (default: ascii)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=os.environ.get("PET_ASSETS_ROOT", "ascii-compressed"),
        help="Output root (default: ascii-compressed)",
    )

    args = parser.parse_args()

    if not os.path.isdir(args.src):
        logger.error(f"Source directory not found: {args.src}")
        sys.exit(1)

    results = build_all(args.src, args.out)

    if not results:
        logger.error(f"No animations found under {args.src}")
        sys.exit(1)

    empty = [name for name, count in results.items() if count == 0]
    for name in empty:
        logger.warning(f"Animation {name} has no frame*.txt files")

    logger.info(f"All frames compressed in {args.out}/ ({len(results)} animations)")
    sys.exit(0)


if __name__ == "__main__":
    main()
