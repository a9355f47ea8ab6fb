"""
Admin commands. Each one is a sequence of single-collection writes.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from meterwatch.domain import Industry, Snapshot, User
from meterwatch.errors import MalformedInputError
from meterwatch.services.importer import ImportResult
from meterwatch.services.persistence import ASSIGNMENTS, USERS, SqlPersistenceAdapter

logger = logging.getLogger(__name__)


def _username_taken(snapshot: Snapshot, username: str, except_id: Optional[str] = None) -> bool:
    return any(u.username == username and u.id != except_id for u in snapshot.users)


def add_user(adapter: SqlPersistenceAdapter, snapshot: Snapshot, user: User) -> User:
    if _username_taken(snapshot, user.username, except_id=user.id):
        raise MalformedInputError(f"Username '{user.username}' already exists")
    adapter.put(USERS, user)
    logger.info(f"Admin: saved user '{user.username}' ({user.id})")
    return user


def replace_user(adapter: SqlPersistenceAdapter, snapshot: Snapshot, user: User) -> User:
    """
    Overwrite a user record. When the username changes, its industry
    assignment is moved to the new name: first written under the new key,
    then removed from the old one. Readers may briefly see both keys.
    """
    previous = next((u for u in snapshot.users if u.id == user.id), None)
    add_user(adapter, snapshot, user)

    if previous is None or previous.username == user.username:
        return user
    assigned = snapshot.assignments.get(previous.username)
    if assigned is None:
        return user

    adapter.save_assignment(user.username, assigned)
    adapter.delete(ASSIGNMENTS, previous.username)
    logger.info(
        f"Admin: moved assignment from '{previous.username}' to '{user.username}'"
    )
    return user


def delete_user(adapter: SqlPersistenceAdapter, user_id: str) -> bool:
    deleted = adapter.delete(USERS, user_id)
    if deleted:
        logger.info(f"Admin: deleted user {user_id}")
    return deleted


def assign_industries(
    adapter: SqlPersistenceAdapter,
    username: str,
    industries: List[Industry],
) -> List[Industry]:
    """Replace the industries assigned to ``username`` with exactly ``industries``."""
    adapter.save_assignment(username, industries)
    logger.info(f"Admin: assigned {len(industries)} industries to '{username}'")
    return industries


def import_industries(adapter: SqlPersistenceAdapter, result: ImportResult) -> ImportResult:
    """Write parsed industries one by one; a store failure stops the batch."""
    if result.industries:
        adapter.bulk_put(result.industries)
    logger.info(
        f"Admin: imported {len(result.industries)} industries, skipped {len(result.errors)} row(s)"
    )
    return result
