"""
Role capabilities and the industry visibility filter.
"""
from typing import List, Optional

from meterwatch.domain import Assignments, Industry, Role, User


def _is_admin(role: Role) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.USER:
        return False
    raise ValueError(f"Unhandled role: {role!r}")


def can_manage_users(user: Optional[User]) -> bool:
    return user is not None and _is_admin(user.role)


def can_assign_industries(user: Optional[User]) -> bool:
    return user is not None and _is_admin(user.role)


def can_import_industries(user: Optional[User]) -> bool:
    return user is not None and _is_admin(user.role)


def can_delete_readings(user: Optional[User]) -> bool:
    return user is not None and _is_admin(user.role)


def visible_industries(
    user: Optional[User],
    all_industries: List[Industry],
    assignments: Assignments,
) -> List[Industry]:
    """
    Return the industries ``user`` may see.

    Admins see everything. Other users see only industries assigned to
    their username; no assignment entry means no industries. Result order
    follows ``all_industries``.
    """
    if user is None:
        return []
    if _is_admin(user.role):
        return list(all_industries)

    assigned = assignments.get(user.username)
    if assigned is None:
        return []
    assigned_ids = {industry.id for industry in assigned}
    return [industry for industry in all_industries if industry.id in assigned_ids]


def can_view_all_readings(user: Optional[User]) -> bool:
    return user is not None and _is_admin(user.role)
