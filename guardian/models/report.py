"""Audit report data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class AuditStatus(Enum):
    COMPLIANT = "COMPLIANT"
    VIOLATION = "VIOLATION"
    UNCERTAIN = "UNCERTAIN"


@dataclass
class GroundingReference:
    """A citation link returned when the model used external search."""

    uri: str
    title: str = "Reference"


@dataclass
class AuditReport:
    """Verdict plus the full formatted response from the reasoning service."""

    status: AuditStatus
    raw_markdown: str
    grounding_urls: list[GroundingReference] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "raw_markdown": self.raw_markdown,
            "grounding_urls": [{"uri": g.uri, "title": g.title} for g in self.grounding_urls],
        }
