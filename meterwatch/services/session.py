"""
Session identity: who is signed in, re-resolved against every snapshot.
"""
from __future__ import annotations

import threading
from typing import Iterable, Optional

from meterwatch.domain import User
from meterwatch.errors import AuthenticationError


def resolve_identity(users: Iterable[User], user_id: Optional[str]) -> Optional[User]:
    """
    Look up the signed-in user in a freshly fetched user list.

    Returns None when there is no identity or when the id is gone from
    the list, which signs the session out.
    """
    if not user_id:
        return None
    for user in users:
        if user.id == user_id:
            return user
    return None


def authenticate(users: Iterable[User], username: str, password: str) -> User:
    """
    Match credentials against the replicated user list.

    Plaintext equality on both fields; the username match is case-sensitive.
    """
    for user in users:
        if user.username == username and user.password == password:
            return user
    raise AuthenticationError("Invalid username or password")


class SessionContext:
    """
    Holds the stable id of the signed-in user for one client instance.

    Only the id is kept; the User object is resolved again from each new
    snapshot.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._lock = threading.Lock()
        self._user_id = user_id

    @property
    def user_id(self) -> Optional[str]:
        with self._lock:
            return self._user_id

    def sign_in(self, user: User) -> None:
        with self._lock:
            self._user_id = user.id

    def sign_out(self) -> None:
        with self._lock:
            self._user_id = None

    def reconcile(self, users: Iterable[User]) -> Optional[User]:
        """
        Resolve the held id against ``users``, clearing it when it no longer
        resolves.
        """
        with self._lock:
            user = resolve_identity(users, self._user_id)
            if user is None:
                self._user_id = None
            return user
