"""Admin gate — login against the stored credential and track sessions."""

from __future__ import annotations

import logging
import secrets

from guardian.db.store import CredentialStore
from guardian.errors import AuthenticationError

logger = logging.getLogger(__name__)


class AdminGate:
    """Issues opaque session tokens to a successfully logged-in admin.

    Sessions live in memory and never expire; there is no lockout.
    """

    def __init__(self, credentials: CredentialStore) -> None:
        self.credentials = credentials
        self._sessions: set[str] = set()

    async def login(self, admin_id: str, password: str) -> str:
        if not await self.credentials.verify(admin_id, password):
            logger.info("Rejected admin login for %r", admin_id)
            raise AuthenticationError("ID or password does not match")
        token = secrets.token_urlsafe(32)
        self._sessions.add(token)
        return token

    def require(self, token: str | None) -> None:
        if not token or token not in self._sessions:
            raise AuthenticationError("Admin login required")

    def logout(self, token: str) -> None:
        self._sessions.discard(token)
