"""Moderation and support: users, reports, audit log, FAQs and tickets.

Privileged operations check the caller's admin flag through AccessGuard.
"""

import logging
from typing import Optional

from filmhub.clients.base import DocumentStore, Query
from filmhub.clients.tmdb import TmdbClient
from filmhub.errors import ValidationError
from filmhub.models.records import (
    FAQ, AdminAction, Report, SupportTicket, User, VideoTrailer,
    decode_all, now_millis,
)
from filmhub.repositories.access import AccessGuard
from filmhub.repositories.background import BackgroundTasks
from filmhub.result import returns_result

logger = logging.getLogger(__name__)

USERS = "users"
REVIEWS = "reviews"
REPORTS = "reports"
ADMIN_ACTIONS = "admin_actions"
SUPPORT_TICKETS = "support_tickets"
FAQS = "faqs"


class AdminRepository:
    """Admin panel and help-center data access."""

    def __init__(
        self,
        store: DocumentStore,
        catalog: TmdbClient,
        guard: AccessGuard,
        tasks: BackgroundTasks,
        on_review_deleted=None,
    ):
        self.store = store
        self.catalog = catalog
        self.guard = guard
        self.tasks = tasks
        # Called with the movie id after a moderated review delete (stats refresh).
        self.on_review_deleted = on_review_deleted

    # ── Users ────────────────────────────────────────────────────

    @returns_result
    async def get_all_users(self) -> list[User]:
        await self.guard.require_admin()
        docs = await self.store.query(Query(USERS, order_by="createdAt", descending=True))
        return decode_all(User, docs)

    @returns_result
    async def set_user_role(self, user_id: str, is_admin: bool) -> None:
        await self.guard.require_admin()
        await self.store.update(USERS, user_id, {"isAdmin": is_admin})

    @returns_result
    async def deactivate_user(self, user_id: str) -> None:
        await self.guard.require_admin()
        await self.store.update(USERS, user_id, {"isActive": False, "deactivatedAt": now_millis()})

    @returns_result
    async def reactivate_user(self, user_id: str) -> None:
        await self.guard.require_admin()
        await self.store.update(USERS, user_id, {"isActive": True, "deactivatedAt": None})

    # ── Reports ──────────────────────────────────────────────────

    @returns_result
    async def get_reported_reviews(self) -> list[Report]:
        await self.guard.require_admin()
        docs = await self.store.query(Query(
            REPORTS,
            where={"reportedItemType": "review", "status": "pending"},
            order_by="createdAt",
            descending=True,
        ))
        return decode_all(Report, docs)

    @returns_result
    async def approve_report(self, report_id: str, admin_id: str, resolution: str) -> None:
        await self._resolve_report(report_id, "resolved", admin_id, resolution)

    @returns_result
    async def reject_report(self, report_id: str, admin_id: str, reason: str) -> None:
        await self._resolve_report(report_id, "rejected", admin_id, reason)

    async def _resolve_report(self, report_id: str, status: str, admin_id: str, resolution: str) -> None:
        await self.guard.require_admin()
        await self.store.update(REPORTS, report_id, {
            "status": status,
            "resolvedAt": now_millis(),
            "resolvedBy": admin_id,
            "resolution": resolution,
        })

    @returns_result
    async def create_report(self, report: Report) -> str:
        if not report.reported_item_id:
            raise ValidationError("Report must reference an item")
        await self.guard.require_owner(report.reporter_user_id)
        doc_id = self.store.new_id()
        await self.store.set(REPORTS, doc_id, report.model_copy(update={"id": doc_id}).to_document())
        return doc_id

    # ── Moderation ───────────────────────────────────────────────

    @returns_result
    async def delete_review_by_admin(self, review_id: str, movie_id: int, reason: str) -> None:
        """Delete a review and append an audit entry.

        The audit write runs in the background; its failure is only logged.
        """
        await self.guard.require_admin()
        await self.store.delete(REVIEWS, review_id)

        action = AdminAction(
            action="delete_review",
            review_id=review_id,
            movie_id=movie_id,
            reason=reason,
        )
        self.tasks.spawn(self.store.add(ADMIN_ACTIONS, action.to_document()), name=f"audit-{review_id}")
        if self.on_review_deleted is not None:
            self.on_review_deleted(movie_id)

    @returns_result
    async def get_admin_actions(self, limit: Optional[int] = None) -> list[AdminAction]:
        await self.guard.require_admin()
        docs = await self.store.query(Query(ADMIN_ACTIONS, order_by="timestamp", descending=True, limit=limit))
        return decode_all(AdminAction, docs)

    # ── Catalog ──────────────────────────────────────────────────

    @returns_result
    async def get_movie_trailers(self, movie_id: int) -> list[VideoTrailer]:
        return self.catalog.official_trailers(await self.catalog.get_videos(movie_id))

    # ── Help center ──────────────────────────────────────────────

    @returns_result
    async def get_faqs(self) -> list[FAQ]:
        docs = await self.store.query(Query(FAQS, where={"isActive": True}, order_by="order"))
        return decode_all(FAQ, docs)

    @returns_result
    async def create_support_ticket(self, ticket: SupportTicket) -> str:
        if not ticket.subject.strip() or not ticket.description.strip():
            raise ValidationError("Subject and description are required")
        await self.guard.require_owner(ticket.user_id)
        doc_id = self.store.new_id()
        await self.store.set(SUPPORT_TICKETS, doc_id, ticket.model_copy(update={"id": doc_id}).to_document())
        return doc_id

    @returns_result
    async def get_user_tickets(self, user_id: str) -> list[SupportTicket]:
        await self.guard.require_owner(user_id)
        docs = await self.store.query(
            Query(SUPPORT_TICKETS, where={"userId": user_id}, order_by="createdAt", descending=True)
        )
        return decode_all(SupportTicket, docs)

    @returns_result
    async def get_all_tickets(self) -> list[SupportTicket]:
        await self.guard.require_admin()
        docs = await self.store.query(Query(SUPPORT_TICKETS, order_by="createdAt", descending=True))
        return decode_all(SupportTicket, docs)
