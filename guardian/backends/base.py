"""Base protocol for reasoning backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from guardian.models.report import AuditReport, AuditStatus
from guardian.models.source import Corpus

VIOLATION_MARKER = "위반"
COMPLIANT_MARKER = "적합"


def classify_verdict(text: str) -> AuditStatus:
    """Classify free-form model output by scanning for verdict markers.

    Exactly one marker present decides the verdict; both or neither is
    UNCERTAIN.
    """
    violation = VIOLATION_MARKER in text
    compliant = COMPLIANT_MARKER in text
    if violation and not compliant:
        return AuditStatus.VIOLATION
    if compliant and not violation:
        return AuditStatus.COMPLIANT
    return AuditStatus.UNCERTAIN


@runtime_checkable
class ReasoningBackend(Protocol):
    """Interface the audit orchestrator expects from a model provider."""

    name: str

    async def audit(self, corpus: Corpus, scenario: str, use_search: bool = False) -> AuditReport:
        """Evaluate a scenario against the corpus."""
        ...

    async def ask(self, corpus: Corpus, question: str) -> str:
        """Answer a free-form question about the corpus."""
        ...

    async def edit_image(self, image: str, prompt: str) -> str:
        """Apply an edit instruction to a base64 image, returning a data URI."""
        ...
