"""Profile screen state: the user document, display name, password and photo."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from filmhub.models.records import User
from filmhub.repositories.auth_repository import AuthRepository
from filmhub.state.base import ScreenState, StateHolder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileState(ScreenState):
    is_success: bool = False
    user: Optional[User] = None


class ProfileHolder(StateHolder[ProfileState]):

    def __init__(self, repository: AuthRepository, min_password_length: int = 6):
        super().__init__(ProfileState())
        self.repository = repository
        self.min_password_length = min_password_length

    async def load_user(self):
        current = self.repository.current_user
        if current is None:
            self._fail("Not signed in")
            return None
        return await self._run(
            self.repository.get_user_data(current.uid),
            on_success=lambda user: {"user": user},
            error_message="Could not load user data",
        )

    def start_user_listener(self) -> None:
        current = self.repository.current_user
        if current is None:
            return

        async def apply(user: Optional[User]) -> None:
            if user is not None:
                self._set(user=user)

        self._collect("user", self.repository.observe_user(current.uid), apply)

    async def update_display_name(self, new_name: str):
        name = new_name.strip()
        if not name:
            self._fail("Name cannot be empty")
            return None
        return await self._run(
            self.repository.update_display_name(name),
            on_success=lambda _: {
                "is_success": True,
                "user": self.state.user.model_copy(update={"display_name": name}) if self.state.user else None,
            },
            success_message="Name updated",
        )

    async def update_password(self, current_password: str, new_password: str, confirm_password: str):
        """Re-authenticate with the current password, then change it.

        Any re-authentication failure is reported as a wrong current password.
        """
        if not current_password or not new_password or not confirm_password:
            self._fail("All fields are required")
            return None
        if len(new_password) < self.min_password_length:
            self._fail(f"New password must be at least {self.min_password_length} characters")
            return None
        if new_password != confirm_password:
            self._fail("Passwords do not match")
            return None

        current = self.repository.current_user
        if current is None:
            self._fail("Not signed in")
            return None

        self._set(is_loading=True, error_message=None, success_message=None)
        reauth = await self.repository.sign_in(current.email, current_password)
        if not reauth.ok:
            logger.info(f"Re-authentication failed for {current.uid}: {reauth.message}")
            self._fail("Current password is incorrect")
            return reauth

        return await self._run(
            self.repository.update_password(new_password),
            on_success=lambda _: {"is_success": True},
            success_message="Password updated",
        )

    async def update_photo(self, source: Union[str, Path, bytes]):
        return await self._run(
            self.repository.update_photo(source),
            on_success=lambda url: {
                "is_success": True,
                "user": self.state.user.model_copy(update={"photo_url": url}) if self.state.user else None,
            },
            success_message="Profile photo updated",
        )

    async def logout(self) -> None:
        await self.stop("user")
        self.repository.sign_out()
        self._set(**vars(ProfileState()))
