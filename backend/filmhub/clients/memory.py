"""In-process document store.

Holds collections in dictionaries. Used for local development and the test
suite; behaves like the hosted store from the repositories' point of view.
"""

import copy
import logging
import uuid
from typing import Any, Optional

from filmhub.clients.base import DELETE_FIELD, DocumentStore, Query, matches, order_and_limit, with_id
from filmhub.errors import NotFound

logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStore):
    """DocumentStore implementation backed by plain dictionaries."""

    def __init__(self):
        super().__init__()
        self._collections: dict[str, dict[str, dict]] = {}

    def new_id(self) -> str:
        return uuid.uuid4().hex[:20]

    def _collection(self, name: str) -> dict[str, dict]:
        return self._collections.setdefault(name, {})

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, collection: str, doc_id: str, data: dict) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy(data)
        await self._notify(collection)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFound(f"No document {collection}/{doc_id}")
        doc = docs[doc_id]
        for key, value in fields.items():
            if value is DELETE_FIELD:
                doc.pop(key, None)
            else:
                doc[key] = copy.deepcopy(value)
        await self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        if self._collection(collection).pop(doc_id, None) is not None:
            await self._notify(collection)

    async def query(self, query: Query) -> list[dict]:
        docs = [
            with_id(doc_id, copy.deepcopy(d))
            for doc_id, d in self._collection(query.collection).items()
            if matches(d, query.where)
        ]
        return order_and_limit(docs, query)

    def document_ids(self, collection: str) -> list[str]:
        return list(self._collection(collection).keys())
