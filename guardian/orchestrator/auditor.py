"""Auditor — validates requests and hands the corpus to the reasoning backend."""

from __future__ import annotations

import logging

from guardian.backends.base import ReasoningBackend
from guardian.db.store import SourceStore
from guardian.errors import InputValidationError
from guardian.models.report import AuditReport

logger = logging.getLogger(__name__)


class ComplianceAuditor:
    """Runs audits, questions and image edits against the stored corpus.

    Every request is validated before the backend is called, so an empty
    corpus or a blank scenario never reaches the remote service.
    """

    def __init__(self, store: SourceStore, backend: ReasoningBackend) -> None:
        self.store = store
        self.backend = backend

    async def run_audit(self, scenario: str, use_search: bool = False) -> AuditReport:
        corpus = await self.store.load()
        if corpus.is_empty:
            raise InputValidationError("Register at least one regulation source first")
        if not scenario.strip():
            raise InputValidationError("Scenario must not be empty")

        logger.info(
            "Auditing scenario against %d source(s) via %s (search=%s)",
            len(corpus), self.backend.name, use_search,
        )
        return await self.backend.audit(corpus, scenario, use_search)

    async def ask(self, question: str) -> str:
        corpus = await self.store.load()
        if corpus.is_empty:
            raise InputValidationError("Register at least one regulation source first")
        if not question.strip():
            raise InputValidationError("Question must not be empty")

        logger.info("Answering question against %d source(s)", len(corpus))
        return await self.backend.ask(corpus, question)

    async def edit_image(self, image: str | None, prompt: str) -> str:
        if not image:
            raise InputValidationError("Upload an evidence image first")
        if not prompt.strip():
            raise InputValidationError("Edit instruction must not be empty")
        return await self.backend.edit_image(image, prompt)
