"""Idempotent data migrations for the document store."""

import logging

from filmhub.clients.base import DELETE_FIELD, DocumentStore, Query

logger = logging.getLogger(__name__)

USERS = "users"

# legacy key -> (current key, default when the legacy value is not a bool)
LEGACY_USER_FIELDS = {
    "admin": ("isAdmin", False),
    "active": ("isActive", True),
}


async def migrate_legacy_user_fields(store: DocumentStore, uid: str) -> bool:
    """Rename legacy boolean fields on one user document.

    Returns True when the document was rewritten. Running it again is a no-op.
    """
    doc = await store.get(USERS, uid)
    if not doc:
        return False

    updates = {}
    for legacy, (current, default) in LEGACY_USER_FIELDS.items():
        if legacy in doc:
            value = doc[legacy]
            updates[current] = value if isinstance(value, bool) else default
            updates[legacy] = DELETE_FIELD

    if not updates:
        return False

    await store.update(USERS, uid, updates)
    logger.info(f"Migrated legacy fields for user {uid}: {sorted(k for k in updates if k in LEGACY_USER_FIELDS)}")
    return True


async def migrate_all_users(store: DocumentStore) -> int:
    """Run the legacy-field migration over every user. Returns rewritten count."""
    migrated = 0
    for doc in await store.query(Query(USERS)):
        uid = doc["id"]
        try:
            if await migrate_legacy_user_fields(store, uid):
                migrated += 1
        except Exception as e:
            logger.warning(f"Legacy field migration failed for user {uid}: {e}")
    return migrated
