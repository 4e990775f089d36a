"""PDF extraction — reading-order text reflow plus rendered page snapshots.

Text comes from positioned fragments (PyMuPDF spans).  Fragments are put in
approximate visual reading order: top of the page first, then left to right,
breaking the line whenever the vertical position jumps by more than a small
tolerance.  This is intentionally lossy for multi-column layouts; the page
snapshots let the reasoning service see tables the text flattens.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 10
DEFAULT_RENDER_SCALE = 1.5
DEFAULT_LINE_TOLERANCE = 5.0


@dataclass(frozen=True)
class TextFragment:
    """A run of text at (x, y) in bottom-up page coordinates."""

    x: float
    y: float
    text: str


@dataclass
class PdfExtraction:
    text: str
    pages: list[str] = field(default_factory=list)


def reflow_fragments(
    fragments: list[TextFragment], tolerance: float = DEFAULT_LINE_TOLERANCE
) -> str:
    """Join fragments in reading order: descending y, then ascending x."""
    ordered = sorted(fragments, key=lambda f: (-f.y, f.x))
    lines: list[list[str]] = []
    last_y: float | None = None
    for fragment in ordered:
        if last_y is None or abs(fragment.y - last_y) > tolerance:
            lines.append([])
        lines[-1].append(fragment.text)
        last_y = fragment.y
    return "\n".join(" ".join(parts) for parts in lines)


def page_fragments(page: fitz.Page) -> list[TextFragment]:
    """Collect span-level fragments from a page.

    PyMuPDF reports span origins top-down; they are flipped so that a larger
    y means higher on the page.
    """
    height = page.rect.height
    fragments: list[TextFragment] = []
    for block in page.get_text("dict")["blocks"]:
        for line in block.get("lines", []):
            for span in line["spans"]:
                if not span["text"].strip():
                    continue
                x, y = span["origin"]
                fragments.append(TextFragment(x=x, y=height - y, text=span["text"]))
    return fragments


def render_page(page: fitz.Page, scale: float = DEFAULT_RENDER_SCALE) -> str:
    """Rasterize a page and return it as a PNG data URI."""
    pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale))
    encoded = base64.b64encode(pixmap.tobytes("png")).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def extract_pdf(
    data: bytes,
    max_pages: int = DEFAULT_MAX_PAGES,
    scale: float = DEFAULT_RENDER_SCALE,
    tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> PdfExtraction:
    """Extract text and page snapshots from the first ``max_pages`` pages."""
    text_parts: list[str] = []
    snapshots: list[str] = []

    with fitz.open(stream=data, filetype="pdf") as doc:
        if doc.page_count == 0:
            raise ValueError("PDF contains no pages")
        page_count = min(max_pages, doc.page_count)
        if doc.page_count > max_pages:
            logger.info(
                "PDF has %d pages; processing the first %d", doc.page_count, max_pages
            )
        for index in range(page_count):
            page = doc[index]
            page_text = reflow_fragments(page_fragments(page), tolerance)
            text_parts.append(f"--- Page {index + 1} ---\n{page_text}")
            snapshots.append(render_page(page, scale))

    return PdfExtraction(text="\n\n".join(text_parts), pages=snapshots)
