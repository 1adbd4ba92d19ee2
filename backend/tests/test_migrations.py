"""Legacy user field migration and permission checks that depend on it."""

from filmhub.repositories.access import AccessGuard
from filmhub.repositories.migrations import migrate_all_users, migrate_legacy_user_fields


async def test_migration_renames_fields_once(store):
    await store.set("users", "u1", {"uid": "u1", "admin": True, "active": False})

    assert await migrate_legacy_user_fields(store, "u1") is True
    assert await store.get("users", "u1") == {"uid": "u1", "isAdmin": True, "isActive": False}
    assert await migrate_legacy_user_fields(store, "u1") is False


async def test_non_boolean_legacy_values_fall_back_to_defaults(store):
    await store.set("users", "u2", {"uid": "u2", "admin": "yes", "active": None})

    await migrate_legacy_user_fields(store, "u2")
    assert await store.get("users", "u2") == {"uid": "u2", "isAdmin": False, "isActive": True}


async def test_missing_user_is_skipped(store):
    assert await migrate_legacy_user_fields(store, "ghost") is False


async def test_migrate_all_users_counts_rewrites(store):
    await store.set("users", "a", {"uid": "a", "admin": False})
    await store.set("users", "b", {"uid": "b", "isAdmin": False, "isActive": True})
    await store.set("users", "c", {"uid": "c", "active": True})

    assert await migrate_all_users(store) == 2
    assert await migrate_all_users(store) == 0


async def test_guard_reads_legacy_admin_flag(store, auth_provider):
    user = await auth_provider.create_user("legacy@example.com", "secret123")
    await store.set("users", user.uid, {"uid": user.uid, "admin": True})

    guard = AccessGuard(auth_provider, store)
    assert await guard.is_admin(user.uid) is True
    assert await guard.require_admin() == user.uid


async def test_guard_can_be_disabled(store, auth_provider):
    guard = AccessGuard(auth_provider, store, enforce=False)
    await guard.require_owner("anyone")
    assert await guard.require_admin() == ""


async def test_migrate_all_users_uses_document_keys(store):
    await store.set("users", "no-uid-field", {"admin": True})

    assert await migrate_all_users(store) == 1
    assert await store.get("users", "no-uid-field") == {"isAdmin": True}
