"""Word extraction — raw text only, formatting discarded."""

from __future__ import annotations

import io

from docx import Document
from docx.table import Table


def extract_docx(data: bytes) -> str:
    """Paragraph and table text in document order, one block per line."""
    document = Document(io.BytesIO(data))
    lines: list[str] = []
    for item in document.iter_inner_content():
        if isinstance(item, Table):
            for row in item.rows:
                lines.append("\t".join(cell.text for cell in row.cells))
        else:
            lines.append(item.text)
    return "\n".join(lines)
