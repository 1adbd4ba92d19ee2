"""Authorization checks applied at the repository boundary.

User-owned records (lists, reviews, ratings, memberships, tickets) may only
be written by their owner or an admin; moderation operations require an
admin. The admin flag is read from the caller's ``users`` document.
"""

import logging
from typing import Optional

from filmhub.clients.base import AuthProvider, AuthUser, DocumentStore
from filmhub.errors import NotAuthenticated, PermissionDenied

logger = logging.getLogger(__name__)

USERS = "users"


class AccessGuard:
    """Owner-or-admin and admin-only checks for the signed-in user."""

    def __init__(self, auth: AuthProvider, store: DocumentStore, enforce: bool = True):
        self.auth = auth
        self.store = store
        self.enforce = enforce

    def require_user(self) -> AuthUser:
        user = self.auth.current_user
        if user is None:
            raise NotAuthenticated()
        return user

    async def is_admin(self, uid: str) -> bool:
        doc = await self.store.get(USERS, uid)
        if not doc:
            return False
        # Documents that predate the field rename still carry "admin".
        return bool(doc.get("isAdmin", doc.get("admin", False))) and bool(doc.get("isActive", True))

    async def require_owner(self, owner_id: Optional[str]) -> None:
        """Allow when the signed-in user owns the record or is an admin."""
        if not self.enforce:
            return
        user = self.require_user()
        if owner_id and user.uid == owner_id:
            return
        if await self.is_admin(user.uid):
            return
        logger.info(f"User {user.uid} denied write to record owned by {owner_id}")
        raise PermissionDenied()

    async def require_admin(self) -> str:
        """Return the admin's uid, or raise."""
        if not self.enforce:
            user = self.auth.current_user
            return user.uid if user else ""
        user = self.require_user()
        if not await self.is_admin(user.uid):
            logger.info(f"User {user.uid} denied admin operation")
            raise PermissionDenied("Administrator privileges required")
        return user.uid
