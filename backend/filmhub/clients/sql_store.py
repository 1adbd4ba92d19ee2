"""Document store on top of an async SQLAlchemy database.

Each document is a JSON row keyed by (collection, id). Equality filters run in
SQL over JSON fields; ordering and limits are applied to the decoded rows so
mixed numeric types order the same way on every dialect.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from filmhub.clients.base import DELETE_FIELD, DocumentStore, Query, matches, order_and_limit, with_id
from filmhub.database import create_session_factory
from filmhub.errors import NotFound
from filmhub.models.tables import DocumentRow

logger = logging.getLogger(__name__)


class SqlDocumentStore(DocumentStore):
    """DocumentStore implementation over the ``documents`` table."""

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        super().__init__()
        self.engine = engine
        self._session = session_factory or create_session_factory(engine)

    def new_id(self) -> str:
        return uuid.uuid4().hex[:20]

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        async with self._session() as session:
            row = await session.get(DocumentRow, (collection, doc_id))
            return dict(row.data) if row is not None else None

    async def set(self, collection: str, doc_id: str, data: dict) -> None:
        async with self._session() as session:
            async with session.begin():
                row = await session.get(DocumentRow, (collection, doc_id))
                if row is None:
                    session.add(DocumentRow(collection=collection, id=doc_id, data=dict(data), revision=1))
                else:
                    row.data = dict(data)
                    row.revision = (row.revision or 0) + 1
        await self._notify(collection)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        async with self._session() as session:
            async with session.begin():
                row = await session.get(DocumentRow, (collection, doc_id))
                if row is None:
                    raise NotFound(f"No document {collection}/{doc_id}")
                data = dict(row.data)
                for key, value in fields.items():
                    if value is DELETE_FIELD:
                        data.pop(key, None)
                    else:
                        data[key] = value
                row.data = data
                row.revision = (row.revision or 0) + 1
        await self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        async with self._session() as session:
            async with session.begin():
                result = await session.execute(
                    delete(DocumentRow).where(
                        DocumentRow.collection == collection,
                        DocumentRow.id == doc_id,
                    )
                )
        if result.rowcount:
            await self._notify(collection)

    async def query(self, query: Query) -> list[dict]:
        stmt = select(DocumentRow.id, DocumentRow.data).where(DocumentRow.collection == query.collection)
        for key, value in query.where.items():
            clause = self._json_equals(key, value)
            if clause is not None:
                stmt = stmt.where(clause)

        async with self._session() as session:
            rows = (await session.execute(stmt)).all()

        # Re-check in Python: SQL JSON comparisons do not tell booleans from integers.
        documents = [with_id(doc_id, data) for doc_id, data in rows if matches(data, query.where)]
        return order_and_limit(documents, query)

    async def close(self) -> None:
        await self.engine.dispose()

    @staticmethod
    def _json_equals(key: str, value: Any):
        """SQL clause comparing a JSON field with a scalar, or None if unsupported."""
        field = DocumentRow.data[key]
        if isinstance(value, bool):
            return field.as_boolean() == value
        if isinstance(value, int):
            return field.as_integer() == value
        if isinstance(value, float):
            return field.as_float() == value
        if isinstance(value, str):
            return field.as_string() == value
        return None
