"""Persisted stores for the regulation corpus and the admin credential."""

from __future__ import annotations

import asyncio
import json
import logging

from guardian.db.database import KeyValueBackend
from guardian.errors import AuthenticationError, InputValidationError
from guardian.models.source import Corpus, RegulationSource

logger = logging.getLogger(__name__)

SOURCES_KEY = "regulation_sources"
PASSWORD_KEY = "admin_password"


class SourceStore:
    """Loads and saves the corpus as one JSON array under a single key.

    Mutations are serialized so concurrent appends and deletes never lose
    each other's writes.
    """

    def __init__(self, backend: KeyValueBackend) -> None:
        self.backend = backend
        self._lock = asyncio.Lock()

    async def load(self) -> Corpus:
        raw = await self.backend.get(SOURCES_KEY)
        if not raw:
            return Corpus()
        try:
            records = json.loads(raw)
            return Corpus(tuple(RegulationSource.from_dict(r) for r in records))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.error("Stored corpus is unreadable, starting empty: %s", exc)
            return Corpus()

    async def save(self, corpus: Corpus) -> None:
        payload = json.dumps([s.to_dict() for s in corpus], ensure_ascii=False)
        await self.backend.set(SOURCES_KEY, payload)
        logger.debug("Saved corpus with %d source(s)", len(corpus))

    async def append_and_save(self, sources: list[RegulationSource]) -> Corpus:
        async with self._lock:
            corpus = (await self.load()).extend(sources)
            await self.save(corpus)
            return corpus

    async def delete(self, source_id: str) -> Corpus:
        async with self._lock:
            corpus = await self.load()
            if corpus.get(source_id) is None:
                raise KeyError(source_id)
            corpus = corpus.without(source_id)
            await self.save(corpus)
            logger.info("Deleted source %s", source_id)
            return corpus


class CredentialStore:
    """Plaintext admin password with a fixed fallback on first run."""

    def __init__(
        self, backend: KeyValueBackend, admin_id: str, default_password: str
    ) -> None:
        self.backend = backend
        self.admin_id = admin_id
        self.default_password = default_password

    async def ensure_default(self) -> None:
        if await self.backend.get(PASSWORD_KEY) is None:
            await self.backend.set(PASSWORD_KEY, self.default_password)
            logger.info("Initialized admin password to the default")

    async def password(self) -> str:
        return await self.backend.get(PASSWORD_KEY) or self.default_password

    async def verify(self, admin_id: str, password: str) -> bool:
        return admin_id == self.admin_id and password == await self.password()

    async def change_password(self, current: str, new: str, confirm: str) -> None:
        if current != await self.password():
            raise AuthenticationError("Current password is incorrect")
        if new != confirm:
            raise InputValidationError("New passwords do not match")
        if not new:
            raise InputValidationError("New password must not be empty")
        await self.backend.set(PASSWORD_KEY, new)
        logger.info("Admin password changed")
