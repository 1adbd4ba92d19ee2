"""Admin panel and help-center screen state."""

import logging
from dataclasses import dataclass, field

from filmhub.models.records import FAQ, Report, SupportTicket, User, VideoTrailer
from filmhub.repositories.admin_repository import AdminRepository
from filmhub.repositories.auth_repository import AuthRepository
from filmhub.state.base import ScreenState, StateHolder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminState(ScreenState):
    users: list[User] = field(default_factory=list)
    reports: list[Report] = field(default_factory=list)
    tickets: list[SupportTicket] = field(default_factory=list)
    trailers: list[VideoTrailer] = field(default_factory=list)
    faqs: list[FAQ] = field(default_factory=list)


class AdminHolder(StateHolder[AdminState]):
    """Mutations reload the affected list quietly so their success message survives."""

    def __init__(self, admin: AdminRepository, auth: AuthRepository):
        super().__init__(AdminState())
        self.admin = admin
        self.auth = auth

    # ── Users ────────────────────────────────────────────────────

    async def load_all_users(self):
        return await self._run(self.admin.get_all_users(), on_success=lambda users: {"users": users})

    async def toggle_user_role(self, user_id: str, make_admin: bool):
        result = await self._run(
            self.admin.set_user_role(user_id, make_admin),
            success_message="Role updated",
        )
        if result.ok:
            await self._sync_users()
        return result

    async def deactivate_user(self, user_id: str):
        result = await self._run(self.admin.deactivate_user(user_id), success_message="User deactivated")
        if result.ok:
            await self._sync_users()
        return result

    async def reactivate_user(self, user_id: str):
        result = await self._run(self.admin.reactivate_user(user_id), success_message="User reactivated")
        if result.ok:
            await self._sync_users()
        return result

    # ── Reports ──────────────────────────────────────────────────

    async def load_reports(self):
        return await self._run(
            self.admin.get_reported_reviews(),
            on_success=lambda reports: {"reports": reports},
        )

    async def approve_report(self, report_id: str, resolution: str):
        result = await self._run(
            self.admin.approve_report(report_id, self._admin_id(), resolution),
            success_message="Report resolved",
        )
        if result.ok:
            await self._sync_reports()
        return result

    async def reject_report(self, report_id: str, reason: str):
        result = await self._run(
            self.admin.reject_report(report_id, self._admin_id(), reason),
            success_message="Report rejected",
        )
        if result.ok:
            await self._sync_reports()
        return result

    async def delete_review(self, review_id: str, movie_id: int, reason: str):
        result = await self._run(
            self.admin.delete_review_by_admin(review_id, movie_id, reason),
            success_message="Review deleted",
        )
        if result.ok:
            await self._sync_reports()
        return result

    # ── Help center ──────────────────────────────────────────────

    async def load_movie_trailers(self, movie_id: int):
        return await self._run(
            self.admin.get_movie_trailers(movie_id),
            on_success=lambda trailers: {"trailers": trailers},
        )

    async def load_faqs(self):
        return await self._run(self.admin.get_faqs(), on_success=lambda faqs: {"faqs": faqs})

    async def create_support_ticket(self, subject: str, description: str, category: str = "other"):
        current = self.auth.current_user
        if current is None:
            self._fail("Sign in to contact support")
            return None
        if not subject.strip() or not description.strip():
            self._fail("Subject and description are required")
            return None
        ticket = SupportTicket(
            user_id=current.uid,
            user_email=current.email,
            user_name=current.display_name or "",
            subject=subject.strip(),
            description=description.strip(),
            category=category,
        )
        result = await self._run(
            self.admin.create_support_ticket(ticket),
            success_message="Ticket submitted",
        )
        if result.ok:
            await self._sync_user_tickets(current.uid)
        return result

    async def load_user_tickets(self, user_id: str):
        return await self._run(
            self.admin.get_user_tickets(user_id),
            on_success=lambda tickets: {"tickets": tickets},
        )

    async def load_all_tickets(self):
        return await self._run(self.admin.get_all_tickets(), on_success=lambda tickets: {"tickets": tickets})

    # ── Quiet reloads ────────────────────────────────────────────

    def _admin_id(self) -> str:
        current = self.auth.current_user
        return current.uid if current else ""

    async def _sync_users(self) -> None:
        result = await self.admin.get_all_users()
        if result.ok:
            self._set(users=result.value)

    async def _sync_reports(self) -> None:
        result = await self.admin.get_reported_reviews()
        if result.ok:
            self._set(reports=result.value)

    async def _sync_user_tickets(self, user_id: str) -> None:
        result = await self.admin.get_user_tickets(user_id)
        if result.ok:
            self._set(tickets=result.value)
