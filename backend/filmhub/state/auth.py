"""Sign-in, registration and password-reset screen state.

Input is validated locally before any network call. Local failures and
backend failures both end up in ``error_message``.
"""

import re
from dataclasses import dataclass

from filmhub.repositories.auth_repository import AuthRepository
from filmhub.state.base import ScreenState, StateHolder

EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9+._%\-]{1,256}@[A-Za-z0-9][A-Za-z0-9\-]{0,64}(\.[A-Za-z0-9][A-Za-z0-9\-]{0,25})+$"
)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


@dataclass(frozen=True)
class AuthState(ScreenState):
    is_success: bool = False


class AuthHolder(StateHolder[AuthState]):

    def __init__(self, repository: AuthRepository, min_password_length: int = 6):
        super().__init__(AuthState())
        self.repository = repository
        self.min_password_length = min_password_length

    async def register(self, email: str, password: str, confirm_password: str):
        problem = (
            self._check_email(email)
            or self._check_password(password)
            or (None if password == confirm_password else "Passwords do not match")
        )
        if problem:
            self._reject(problem)
            return None
        return await self._submit(self.repository.register(email.strip(), password))

    async def sign_in(self, email: str, password: str):
        if not email.strip():
            self._reject("Email cannot be empty")
            return None
        if not password:
            self._reject("Password cannot be empty")
            return None
        return await self._submit(self.repository.sign_in(email.strip(), password))

    async def send_password_reset(self, email: str):
        if not email.strip():
            self._reject("Email cannot be empty")
            return None
        return await self._submit(
            self.repository.send_password_reset(email.strip()),
            success_message="Check your inbox for a reset link",
        )

    def reset_state(self) -> None:
        self._set(**vars(AuthState()))

    # ── Helpers ──────────────────────────────────────────────────

    def _check_email(self, email: str):
        if not email.strip():
            return "Email cannot be empty"
        if not is_valid_email(email):
            return "Enter a valid email address"
        return None

    def _check_password(self, password: str):
        if not password.strip():
            return "Password cannot be empty"
        if len(password) < self.min_password_length:
            return f"Password must be at least {self.min_password_length} characters"
        return None

    def _reject(self, message: str) -> None:
        self._set(is_success=False)
        self._fail(message)

    async def _submit(self, call, success_message=None):
        self._set(is_success=False)
        return await self._run(
            call,
            on_success=lambda _: {"is_success": True},
            success_message=success_message,
        )
