"""Identity lifecycle: registration, sign-in, profile and the user document.

Profile changes write to the identity provider first and the ``users``
document second. There is no rollback: when the second write fails the
provider keeps the new value and the document lags until the next update.
"""

import logging
from contextlib import aclosing
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from filmhub.clients.base import AuthProvider, AuthUser, BlobStorage, DocumentStore, Query
from filmhub.errors import NotAuthenticated, NotFound
from filmhub.models.records import User, decode
from filmhub.repositories.migrations import migrate_legacy_user_fields
from filmhub.result import returns_result

logger = logging.getLogger(__name__)

USERS = "users"


class AuthRepository:
    """Wraps the identity provider, the users collection and photo storage."""

    def __init__(self, auth: AuthProvider, store: DocumentStore, blobs: BlobStorage):
        self.auth = auth
        self.store = store
        self.blobs = blobs

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self.auth.current_user

    def is_authenticated(self) -> bool:
        return self.auth.current_user is not None

    @returns_result
    async def register(self, email: str, password: str) -> AuthUser:
        """Create the identity, send verification mail, create the user document."""
        auth_user = await self.auth.create_user(email, password)
        await self.auth.send_email_verification(auth_user)

        user = User(
            uid=auth_user.uid,
            email=email,
            display_name=email.split("@", 1)[0],
            is_admin=False,
            is_active=True,
        )
        await self.store.set(USERS, auth_user.uid, user.to_document())
        logger.info(f"Registered user {auth_user.uid}")
        return auth_user

    @returns_result
    async def sign_in(self, email: str, password: str) -> AuthUser:
        return await self.auth.sign_in(email, password)

    def sign_out(self) -> None:
        self.auth.sign_out()

    @returns_result
    async def send_password_reset(self, email: str) -> None:
        await self.auth.send_password_reset(email)

    @returns_result
    async def update_password(self, new_password: str) -> None:
        """Requires a signed-in session; re-authentication is the caller's job."""
        self._require_user()
        await self.auth.update_password(new_password)

    @returns_result
    async def update_display_name(self, display_name: str) -> None:
        user = self._require_user()
        await self.auth.update_profile(display_name=display_name)
        await self._update_user_document(user.uid, {"displayName": display_name})

    @returns_result
    async def update_photo(self, source: Union[str, Path, bytes]) -> str:
        """Upload a profile photo and return its public URL."""
        user = self._require_user()
        url = await self.blobs.upload(f"profile_photos/{user.uid}.jpg", source)
        await self.auth.update_profile(photo_url=url)
        await self._update_user_document(user.uid, {"photoUrl": url})
        return url

    @returns_result
    async def get_user_data(self, uid: str) -> User:
        try:
            await migrate_legacy_user_fields(self.store, uid)
        except Exception as e:
            logger.warning(f"Legacy field migration skipped for user {uid}: {e}")

        doc = await self.store.get(USERS, uid)
        if doc is None:
            raise NotFound("User not found")
        return decode(User, doc)

    async def observe_user(self, uid: str) -> AsyncIterator[Optional[User]]:
        """Live user document; yields None while the document does not exist.

        Malformed documents are logged and skipped.
        """
        async with aclosing(self.store.snapshots(Query(USERS, where={"uid": uid}, limit=1))) as snapshots:
            async for docs in snapshots:
                if not docs:
                    yield None
                    continue
                try:
                    yield decode(User, docs[0])
                except Exception as e:
                    logger.warning(f"Skipping undecodable user document {uid}: {e}")

    # ── Helpers ──────────────────────────────────────────────────

    def _require_user(self) -> AuthUser:
        user = self.auth.current_user
        if user is None:
            raise NotAuthenticated()
        return user

    async def _update_user_document(self, uid: str, fields: dict) -> None:
        try:
            await self.store.update(USERS, uid, fields)
        except Exception:
            logger.warning(f"Identity profile updated but users/{uid} was not; fields {sorted(fields)} lag")
            raise
