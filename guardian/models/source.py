"""Regulation source and corpus data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator
from uuid import uuid4

IMAGE_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class SourceKind(Enum):
    TEXT = "text"
    PDF = "pdf"
    XLSX = "xlsx"
    XLS = "xls"
    CSV = "csv"
    DOCX = "docx"
    IMAGE = "image"
    UNKNOWN = "unknown"

    @classmethod
    def from_filename(cls, filename: str) -> SourceKind:
        """Classify a file by its extension (case-insensitive).

        Image extensions collapse to IMAGE; anything unrecognized is UNKNOWN
        and gets decoded as plain text downstream.
        """
        extension = file_extension(filename)
        if extension in IMAGE_MIME_TYPES:
            return cls.IMAGE
        return DOCUMENT_EXTENSIONS.get(extension, cls.UNKNOWN)

    @property
    def is_spreadsheet(self) -> bool:
        return self in (SourceKind.XLSX, SourceKind.XLS, SourceKind.CSV)


DOCUMENT_EXTENSIONS = {
    "txt": SourceKind.TEXT,
    "pdf": SourceKind.PDF,
    "xlsx": SourceKind.XLSX,
    "xls": SourceKind.XLS,
    "csv": SourceKind.CSV,
    "docx": SourceKind.DOCX,
}


def file_extension(filename: str) -> str:
    """Lower-cased text after the last dot, or "" when there is none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class RegulationSource:
    """One ingested regulation document or manually entered text block."""

    name: str
    kind: SourceKind
    content: str = ""
    visual_pages: tuple[str, ...] | None = None
    created_at: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        if self.visual_pages is not None:
            if not self.visual_pages:
                raise ValueError("visual_pages must be None or non-empty")
            # Accept any sequence, store as a tuple.
            object.__setattr__(self, "visual_pages", tuple(self.visual_pages))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "content": self.content,
            "visual_pages": list(self.visual_pages) if self.visual_pages else None,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> RegulationSource:
        pages = data.get("visual_pages")
        return cls(
            id=data["id"],
            name=data["name"],
            kind=SourceKind(data.get("kind", "unknown")),
            content=data.get("content", ""),
            visual_pages=tuple(pages) if pages else None,
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass(frozen=True)
class EvidenceImage:
    """A standalone image used by the image-edit feature, never part of the corpus."""

    name: str
    data_uri: str


@dataclass(frozen=True)
class Corpus:
    """The full, ordered set of registered regulation sources."""

    sources: tuple[RegulationSource, ...] = ()

    def __iter__(self) -> Iterator[RegulationSource]:
        return iter(self.sources)

    def __len__(self) -> int:
        return len(self.sources)

    @property
    def is_empty(self) -> bool:
        return not self.sources

    def ids(self) -> list[str]:
        return [s.id for s in self.sources]

    def get(self, source_id: str) -> RegulationSource | None:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None

    def extend(self, new_sources: list[RegulationSource]) -> Corpus:
        return Corpus(self.sources + tuple(new_sources))

    def without(self, source_id: str) -> Corpus:
        return Corpus(tuple(s for s in self.sources if s.id != source_id))

    def regulation_text(self) -> str:
        """All sources concatenated verbatim, each prefixed with its name."""
        return "\n---\n".join(f"[SOURCE: {s.name}]\n{s.content}" for s in self.sources)

    def visual_pages(self) -> list[str]:
        return [page for s in self.sources for page in (s.visual_pages or ())]
