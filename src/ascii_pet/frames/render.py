"""
Frame Rendering
===============

Build step that turns ASCII-art text frames into gzip-compressed SVGs.

Input layout:
    ascii/<animation>/frame1.txt, frame2.txt, ...

Output layout:
    ascii-compressed/<animation>/frame1.svg.gz, frame2.svg.gz, ...

Each frame is a fixed 480x80 dark panel with the text drawn line by line in
a monospace font. Whitespace is preserved so the art keeps its shape.
"""

import gzip
import logging
from pathlib import Path
from typing import Dict, List, Union
from xml.sax.saxutils import escape

from ascii_pet.frames.store import list_frame_files


logger = logging.getLogger(__name__)

SVG_WIDTH = 480
SVG_HEIGHT = 80
BACKGROUND = "#212830"
FONT_FAMILY = "Courier New, monospace"
FONT_SIZE = 14
LINE_HEIGHT = 16
TEXT_X = 10


def render_svg(text: str, name: str) -> str:
    """
    Render one ASCII-art frame as an SVG document.

    Args:
        text: Frame text, one art row per line
        name: Frame name, stored in the SVG <metadata> element

    Returns:
        SVG document as a string
    """
    parts = [
        f"<svg xmlns='http://www.w3.org/2000/svg' width='{SVG_WIDTH}' height='{SVG_HEIGHT}'>",
        f"<rect width='100%' height='100%' fill='{BACKGROUND}'/>",
        f"<metadata>{escape(name)}</metadata>",
        f"<text font-family='{FONT_FAMILY}' font-size='{FONT_SIZE}' "
        f"fill='white' xml:space='preserve'>",
    ]

    for lineno, line in enumerate(text.splitlines()):
        dy = 0 if lineno == 0 else LINE_HEIGHT
        parts.append(f"<tspan x='{TEXT_X}' dy='{dy}'>{escape(line)}</tspan>")

    parts.append("</text></svg>\n")
    return "".join(parts)


def build_animation(src_dir: Union[str, Path], out_dir: Union[str, Path]) -> List[Path]:
    """
    Convert every frame*.txt in ``src_dir`` to a .svg.gz in ``out_dir``.

    Returns:
        Paths of the written files, in frame order
    """
    src_dir = Path(src_dir)
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for _, path in list_frame_files(src_dir):
        if path.suffix != ".txt":
            continue

        base = path.stem
        svg = render_svg(path.read_text(encoding="utf-8"), base)
        target = out_dir / f"{base}.svg.gz"
        target.write_bytes(gzip.compress(svg.encode("utf-8"), compresslevel=9))
        written.append(target)

    return written


def build_all(src_root: Union[str, Path], out_root: Union[str, Path]) -> Dict[str, int]:
    """
    Process every animation directory under ``src_root``.

    Returns:
        Mapping of animation name to number of frames written
    """
    src_root = Path(src_root)
    out_root = Path(out_root)

    results = {}
    for anim_dir in sorted(p for p in src_root.iterdir() if p.is_dir()):
        written = build_animation(anim_dir, out_root / anim_dir.name)
        results[anim_dir.name] = len(written)
        logger.info(f"Processed animation {anim_dir.name}: {len(written)} frames")

    return results
