"""Ingestion pipeline — turns uploaded files into regulation sources."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass, field

from guardian.config import settings
from guardian.db.store import SourceStore
from guardian.errors import IngestionBusyError, IngestionError, InputValidationError
from guardian.ingestion.pdf import extract_pdf
from guardian.ingestion.spreadsheet import extract_workbook
from guardian.ingestion.word import extract_docx
from guardian.models.source import (
    IMAGE_MIME_TYPES,
    Corpus,
    EvidenceImage,
    RegulationSource,
    SourceKind,
    file_extension,
)

logger = logging.getLogger(__name__)

MANUAL_SOURCE_NAME = "수동 입력 규정"


@dataclass
class UploadedFile:
    """A file-like input already read into memory."""

    filename: str
    data: bytes


@dataclass
class FileFailure:
    filename: str
    reason: str


@dataclass
class IngestionResult:
    """Outcome of one upload batch."""

    sources: list[RegulationSource] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)
    evidence_image: EvidenceImage | None = None
    corpus: Corpus | None = None


def load_evidence_image(upload: UploadedFile) -> EvidenceImage:
    mime_type = IMAGE_MIME_TYPES[file_extension(upload.filename)]
    encoded = base64.b64encode(upload.data).decode("ascii")
    return EvidenceImage(name=upload.filename, data_uri=f"data:{mime_type};base64,{encoded}")


class IngestionPipeline:
    """Processes upload batches sequentially and appends results to the store.

    One batch at a time: a second call while a batch is in flight raises
    IngestionBusyError instead of queueing.
    """

    def __init__(
        self,
        store: SourceStore,
        max_pdf_pages: int | None = None,
        render_scale: float | None = None,
        line_tolerance: float | None = None,
    ) -> None:
        self.store = store
        self.max_pdf_pages = settings.max_pdf_pages if max_pdf_pages is None else max_pdf_pages
        self.render_scale = settings.pdf_render_scale if render_scale is None else render_scale
        self.line_tolerance = (
            settings.line_tolerance if line_tolerance is None else line_tolerance
        )
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def ingest(self, files: list[UploadedFile], strict: bool = True) -> IngestionResult:
        """Ingest a batch of files.

        In strict mode the first parse failure aborts the batch and nothing
        from it is persisted.  With ``strict=False`` each file stands on its
        own: failures are collected and the successful parses are persisted.
        """
        if self._busy:
            raise IngestionBusyError()
        self._busy = True
        try:
            result = IngestionResult()
            logger.info("Ingesting batch of %d file(s)", len(files))

            for upload in files:
                kind = SourceKind.from_filename(upload.filename)
                if kind is SourceKind.IMAGE:
                    result.evidence_image = load_evidence_image(upload)
                    logger.info("Loaded evidence image %s", upload.filename)
                    continue

                try:
                    source = await self.extract(upload, kind)
                except Exception as exc:
                    if strict:
                        raise IngestionError(upload.filename, str(exc)) from exc
                    logger.warning("Skipping %s: %s", upload.filename, exc)
                    result.failures.append(FileFailure(upload.filename, str(exc)))
                    continue
                result.sources.append(source)

            if result.sources:
                result.corpus = await self.store.append_and_save(result.sources)
                logger.info("Persisted %d new source(s)", len(result.sources))
            return result
        finally:
            self._busy = False

    async def extract(self, upload: UploadedFile, kind: SourceKind) -> RegulationSource:
        """Extract a single non-image file into a RegulationSource."""
        visual_pages: list[str] | None = None

        if kind is SourceKind.PDF:
            extraction = await asyncio.to_thread(
                extract_pdf,
                upload.data,
                self.max_pdf_pages,
                self.render_scale,
                self.line_tolerance,
            )
            content = extraction.text
            visual_pages = extraction.pages or None
        elif kind.is_spreadsheet:
            content = await asyncio.to_thread(extract_workbook, upload.data, kind)
        elif kind is SourceKind.DOCX:
            content = await asyncio.to_thread(extract_docx, upload.data)
        else:
            content = upload.data.decode("utf-8", errors="replace")

        logger.debug("Extracted %d chars from %s (%s)", len(content), upload.filename, kind.value)
        return RegulationSource(
            name=upload.filename,
            kind=kind,
            content=content,
            visual_pages=visual_pages,
        )

    async def add_text(self, content: str, name: str | None = None) -> RegulationSource:
        """Register a manually entered text block as a source."""
        if not content.strip():
            raise InputValidationError("Regulation text must not be empty")
        source = RegulationSource(
            name=name or MANUAL_SOURCE_NAME,
            kind=SourceKind.TEXT,
            content=content,
        )
        await self.store.append_and_save([source])
        logger.info("Added manual source %s", source.name)
        return source
