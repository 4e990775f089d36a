"""Shared fixtures: in-memory stores, a fake reasoning backend, document builders."""

import io

import fitz  # PyMuPDF
import pandas as pd
import pytest
from docx import Document

from guardian.backends.base import classify_verdict
from guardian.db.database import MemoryBackend
from guardian.db.store import CredentialStore, SourceStore
from guardian.ingestion.pipeline import IngestionPipeline
from guardian.models.report import AuditReport


class FakeReasoningBackend:
    """Records every call and answers with a canned reply."""

    name = "Fake"

    def __init__(self, reply: str = "### ⚖️ 판정 결과: 적합"):
        self.reply = reply
        self.calls: list[tuple] = []

    async def audit(self, corpus, scenario, use_search=False):
        self.calls.append(("audit", corpus, scenario, use_search))
        return AuditReport(status=classify_verdict(self.reply), raw_markdown=self.reply)

    async def ask(self, corpus, question):
        self.calls.append(("ask", corpus, question))
        return self.reply

    async def edit_image(self, image, prompt):
        self.calls.append(("edit_image", image, prompt))
        return "data:image/png;base64,RURJVEVE"


@pytest.fixture
def kv():
    return MemoryBackend()


@pytest.fixture
def store(kv):
    return SourceStore(kv)


@pytest.fixture
def credentials(kv):
    return CredentialStore(kv, admin_id="kidari", default_password="0000")


@pytest.fixture
def pipeline(store):
    return IngestionPipeline(store, max_pdf_pages=10, render_scale=1.5, line_tolerance=5.0)


@pytest.fixture
def fake_backend():
    return FakeReasoningBackend()


@pytest.fixture
def make_pdf():
    """Build a PDF; each page is a list of (x, y_from_top, text) insertions."""

    def _make(pages):
        doc = fitz.open()
        for insertions in pages:
            page = doc.new_page()
            for x, y, text in insertions:
                page.insert_text((x, y), text)
        data = doc.tobytes()
        doc.close()
        return data

    return _make


@pytest.fixture
def make_workbook():
    """Build an .xlsx with one sheet per entry, rows written without headers."""

    def _make(sheets):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False, header=False)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_docx():
    def _make(paragraphs, table_rows=None):
        document = Document()
        for text in paragraphs:
            document.add_paragraph(text)
        if table_rows:
            table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
            for r, row in enumerate(table_rows):
                for c, value in enumerate(row):
                    table.cell(r, c).text = value
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _make
