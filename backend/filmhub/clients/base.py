"""Abstract interfaces for the hosted backend services.

These define the contracts the repositories depend on: a document store with
equality queries and change notifications, an identity provider, and a blob
store. Handles are passed into repository constructors explicitly.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Optional, Union

logger = logging.getLogger(__name__)


# ── Data Transfer Objects ────────────────────────────────────────

class _DeleteField:
    """Sentinel: passed as a value to ``DocumentStore.update`` to remove a key."""

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


@dataclass(frozen=True)
class Query:
    """Equality filters, optional ordering and an optional result cap."""
    collection: str
    where: dict[str, Any] = field(default_factory=dict)
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None


@dataclass
class AuthUser:
    """The identity provider's view of a signed-in user."""
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email_verified: bool = False


@dataclass
class ListenerRegistration:
    """Handle for a live subscription. ``remove()`` is safe to call repeatedly."""
    _on_remove: Callable[[], None]
    removed: bool = False

    def remove(self) -> None:
        if self.removed:
            return
        self.removed = True
        self._on_remove()


@dataclass
class _Listener:
    id: int
    query: Query
    callback: Callable[[list[dict]], None]


def matches(document: dict, where: dict[str, Any]) -> bool:
    """True when every filter field is present with an equal value.

    Booleans only match booleans, so ``isPublic == True`` never matches ``1``.
    """
    for key, expected in where.items():
        if key not in document:
            return False
        actual = document[key]
        if isinstance(expected, bool) != isinstance(actual, bool) or actual != expected:
            return False
    return True


def with_id(doc_id: str, data: dict) -> dict:
    """A query result: the document body with its store key under ``id``."""
    return {**data, "id": doc_id}


def order_and_limit(documents: list[dict], query: Query) -> list[dict]:
    """Apply a query's ordering and cap. Documents missing the key sort last."""
    if query.order_by:
        key = query.order_by
        present = [d for d in documents if d.get(key) is not None]
        missing = [d for d in documents if d.get(key) is None]
        present.sort(key=lambda d: d[key], reverse=query.descending)
        documents = present + missing
    if query.limit is not None:
        documents = documents[:query.limit]
    return documents


# ── Abstract Interfaces ──────────────────────────────────────────

class DocumentStore(ABC):
    """Interface for document databases (collections of JSON documents).

    Implementations provide the CRUD primitives; change notification is
    shared here: every write calls ``_notify`` and each listener on the
    written collection receives its full, freshly evaluated result set.
    """

    def __init__(self):
        self._listeners: dict[str, dict[int, _Listener]] = {}
        self._listener_ids = itertools.count(1)

    @abstractmethod
    def new_id(self) -> str:
        """Generate an opaque document id."""
        ...

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        """Read one document, or None if it does not exist."""
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: dict) -> None:
        """Create or fully overwrite a document."""
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Targeted field update. Raises NotFound when the document is missing."""
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is a no-op."""
        ...

    @abstractmethod
    async def query(self, query: Query) -> list[dict]:
        """Run an equality query with optional ordering and limit.

        Each result carries its store key under ``id``, overriding any ``id``
        stored in the body.
        """
        ...

    async def add(self, collection: str, data: dict) -> str:
        """Insert under a generated id and return it."""
        doc_id = self.new_id()
        await self.set(collection, doc_id, data)
        return doc_id

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
        return None

    # ── Live subscriptions ───────────────────────────────────────

    async def listen(self, query: Query, callback: Callable[[list[dict]], None]) -> ListenerRegistration:
        """Deliver the query result now and after every write to its collection."""
        listener = _Listener(next(self._listener_ids), query, callback)
        listeners = self._listeners.setdefault(query.collection, {})
        listeners[listener.id] = listener
        logger.debug(f"Listener {listener.id} registered on '{query.collection}'")

        def _remove() -> None:
            self._listeners.get(query.collection, {}).pop(listener.id, None)
            logger.debug(f"Listener {listener.id} removed from '{query.collection}'")

        registration = ListenerRegistration(_remove)
        try:
            callback(await self.query(query))
        except BaseException:
            registration.remove()
            raise
        return registration

    async def snapshots(self, query: Query) -> AsyncIterator[list[dict]]:
        """Async iterator over result sets; the registration is removed on exit.

        Only the newest result set is buffered: a consumer that falls behind
        skips the stale ones.
        """
        queue: asyncio.Queue[list[dict]] = asyncio.Queue(maxsize=1)

        def offer(documents: list[dict]) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(documents)

        registration = await self.listen(query, offer)
        try:
            while True:
                yield await queue.get()
        finally:
            registration.remove()

    def listener_count(self, collection: Optional[str] = None) -> int:
        if collection is not None:
            return len(self._listeners.get(collection, {}))
        return sum(len(v) for v in self._listeners.values())

    async def _notify(self, collection: str) -> None:
        for listener in list(self._listeners.get(collection, {}).values()):
            try:
                listener.callback(await self.query(listener.query))
            except Exception as e:
                logger.warning(f"Listener {listener.id} on '{collection}' failed: {e}")


class AuthProvider(ABC):
    """Interface for hosted identity services."""

    @property
    @abstractmethod
    def current_user(self) -> Optional[AuthUser]:
        """The signed-in user, if any."""
        ...

    @abstractmethod
    async def create_user(self, email: str, password: str) -> AuthUser:
        """Create an identity and sign it in."""
        ...

    @abstractmethod
    async def send_email_verification(self, user: AuthUser) -> None:
        ...

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthUser:
        """Raises InvalidCredentials for an unknown user or wrong password."""
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...

    @abstractmethod
    async def send_password_reset(self, email: str) -> None:
        ...

    @abstractmethod
    async def update_password(self, new_password: str) -> None:
        """Change the signed-in user's password."""
        ...

    @abstractmethod
    async def update_profile(
        self,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> None:
        """Update the signed-in user's provider profile."""
        ...


class BlobStorage(ABC):
    """Interface for binary asset storage."""

    @abstractmethod
    async def upload(self, path: str, source: Union[str, Path, bytes]) -> str:
        """Store ``source`` at ``path`` and return a durable public URL."""
        ...
