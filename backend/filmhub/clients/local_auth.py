"""Local identity provider.

Keeps accounts in memory with bcrypt password hashes and records outgoing
verification / reset mails in an outbox instead of sending them.
"""

import asyncio
import base64
import hashlib
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import bcrypt

from filmhub.clients.base import AuthProvider, AuthUser
from filmhub.errors import EmailAlreadyInUse, InvalidCredentials, NetworkError, NotAuthenticated

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes; longer passwords are pre-hashed.
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        return base64.b64encode(hashlib.sha256(raw).digest())
    return raw


@dataclass
class _Account:
    uid: str
    email: str
    password_hash: bytes
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email_verified: bool = False

    def to_auth_user(self) -> AuthUser:
        return AuthUser(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            photo_url=self.photo_url,
            email_verified=self.email_verified,
        )


@dataclass
class OutgoingMail:
    kind: str              # "verification" | "password_reset"
    email: str


class LocalAuthProvider(AuthProvider):
    """AuthProvider implementation for development and tests."""

    def __init__(self, bcrypt_rounds: int = 12):
        self.bcrypt_rounds = bcrypt_rounds
        self.outbox: list[OutgoingMail] = []
        self.offline = False
        self._accounts: dict[str, _Account] = {}  # keyed by normalized email
        self._current: Optional[_Account] = None

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current.to_auth_user() if self._current else None

    async def create_user(self, email: str, password: str) -> AuthUser:
        self._check_reachable()
        key = self._normalize(email)
        if key in self._accounts:
            raise EmailAlreadyInUse()
        account = _Account(
            uid=uuid.uuid4().hex[:28],
            email=email.strip(),
            password_hash=await self._hash(password),
        )
        self._accounts[key] = account
        self._current = account
        logger.info(f"Created account {account.uid}")
        return account.to_auth_user()

    async def send_email_verification(self, user: AuthUser) -> None:
        self._check_reachable()
        self.outbox.append(OutgoingMail("verification", user.email))

    async def sign_in(self, email: str, password: str) -> AuthUser:
        self._check_reachable()
        account = self._accounts.get(self._normalize(email))
        if account is None:
            raise InvalidCredentials()
        ok = await asyncio.to_thread(bcrypt.checkpw, _password_bytes(password), account.password_hash)
        if not ok:
            raise InvalidCredentials()
        self._current = account
        return account.to_auth_user()

    def sign_out(self) -> None:
        self._current = None

    async def send_password_reset(self, email: str) -> None:
        self._check_reachable()
        # Unknown addresses are accepted silently so accounts cannot be probed.
        if self._normalize(email) in self._accounts:
            self.outbox.append(OutgoingMail("password_reset", email.strip()))

    async def update_password(self, new_password: str) -> None:
        self._check_reachable()
        account = self._require_current()
        account.password_hash = await self._hash(new_password)

    async def update_profile(
        self,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> None:
        self._check_reachable()
        account = self._require_current()
        if display_name is not None:
            account.display_name = display_name
        if photo_url is not None:
            account.photo_url = photo_url

    def mark_email_verified(self, email: str) -> None:
        account = self._accounts.get(self._normalize(email))
        if account is not None:
            account.email_verified = True

    # ── Helpers ──────────────────────────────────────────────────

    def _require_current(self) -> _Account:
        if self._current is None:
            raise NotAuthenticated()
        return self._current

    def _check_reachable(self) -> None:
        if self.offline:
            raise NetworkError("Identity service unreachable")

    async def _hash(self, password: str) -> bytes:
        salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
        return await asyncio.to_thread(bcrypt.hashpw, _password_bytes(password), salt)

    @staticmethod
    def _normalize(email: str) -> str:
        return email.strip().lower()
