"""
Key-addressed persistence over the four shared collections.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Iterable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from meterwatch.database import db_session
from meterwatch.domain import Assignments, Industry, Meter, Reading, Role, Snapshot, User
from meterwatch.errors import MalformedInputError, TransientIOError
from meterwatch.models import AssignmentRow, IndustryRow, ReadingRow, UserRow

logger = logging.getLogger(__name__)

USERS = "users"
INDUSTRIES = "industries"
READINGS = "readings"
ASSIGNMENTS = "assignments"

COLLECTIONS = (USERS, INDUSTRIES, READINGS, ASSIGNMENTS)

BOOTSTRAP_ADMIN_ID = "USR-ADMIN"


class SqlPersistenceAdapter:
    """
    Upsert/delete contract over the shared SQL store.

    Every call runs in its own short transaction; nothing spans collections.
    Users and industries are last-write-wins per id, readings are
    first-write-wins (a duplicate id is ignored).
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # Reads ------------------------------------------------------------

    def fetch_snapshot(self) -> Snapshot:
        """
        Read all four collections, each in an independent query.
        """
        try:
            users = self._fetch_users()
            industries = self._fetch_industries()
            readings = self._fetch_readings()
            assignments = self._fetch_assignments()
        except SQLAlchemyError as exc:
            raise TransientIOError(f"Snapshot fetch failed: {exc}") from exc

        return Snapshot(
            users=users,
            industries=industries,
            readings=readings,
            assignments=assignments,
            fetched_at=time.time(),
        )

    def _fetch_users(self) -> List[User]:
        with self._session_factory() as session:
            rows = session.execute(select(UserRow)).scalars().all()
        users = []
        for row in rows:
            try:
                role = Role.parse(row.role)
            except ValueError:
                logger.warning(f"Skipping user '{row.id}' with unknown role {row.role!r}")
                continue
            users.append(User(
                id=row.id,
                username=row.username,
                password=row.password or "",
                full_name=row.full_name or "",
                role=role,
            ))
        return users

    def _fetch_industries(self) -> List[Industry]:
        with self._session_factory() as session:
            rows = session.execute(select(IndustryRow)).scalars().all()
        return [
            Industry(
                id=row.id,
                name=row.name or "",
                subscription_id=row.subscription_id or "",
                city=row.city or "",
                address=row.address or "",
                allowed_daily_consumption=float(row.allowed_daily_consumption or 0),
                meters=_decode_meters(row.id, row.meters),
            )
            for row in rows
        ]

    def _fetch_readings(self) -> List[Reading]:
        with self._session_factory() as session:
            rows = session.execute(
                select(ReadingRow).order_by(ReadingRow.timestamp.desc())
            ).scalars().all()
        return [
            Reading(
                id=row.id,
                industry_id=row.industry_id,
                meter_id=row.meter_id,
                timestamp=int(row.timestamp),
                value=float(row.value),
                image_url=row.image_url or None,
                recorded_by=row.recorded_by or None,
                is_manual=bool(row.is_manual),
            )
            for row in rows
        ]

    def _fetch_assignments(self) -> Assignments:
        with self._session_factory() as session:
            rows = session.execute(select(AssignmentRow)).scalars().all()
        assignments: Assignments = {}
        for row in rows:
            assignments[row.username] = _decode_industries(row.username, row.industries)
        return assignments

    # Writes -----------------------------------------------------------

    def put(self, collection: str, item: Union[User, Industry, Reading]) -> bool:
        """
        Upsert one item keyed by its id.

        Returns False when a reading with the same id already exists.
        """
        if collection == USERS:
            row = UserRow(
                id=item.id,
                username=item.username,
                password=item.password,
                full_name=item.full_name,
                role=item.role.value,
            )
        elif collection == INDUSTRIES:
            row = _industry_row(item)
        elif collection == READINGS:
            return self._insert_reading(item)
        else:
            raise ValueError(f"put() does not support collection {collection!r}")

        try:
            with db_session(self._session_factory) as session:
                session.merge(row)
        except IntegrityError as exc:
            raise MalformedInputError(f"Conflicting {collection} record: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise TransientIOError(f"Write to {collection} failed: {exc}") from exc
        return True

    def _insert_reading(self, reading: Reading) -> bool:
        try:
            with db_session(self._session_factory) as session:
                if session.get(ReadingRow, reading.id) is not None:
                    return False
                session.add(ReadingRow(
                    id=reading.id,
                    industry_id=reading.industry_id,
                    meter_id=reading.meter_id,
                    timestamp=int(reading.timestamp),
                    value=reading.value,
                    image_url=reading.image_url or "",
                    recorded_by=reading.recorded_by or "",
                    is_manual=reading.is_manual,
                ))
        except IntegrityError:
            # Lost a race with a concurrent insert of the same id.
            return False
        except SQLAlchemyError as exc:
            raise TransientIOError(f"Write to readings failed: {exc}") from exc
        return True

    def delete(self, collection: str, key: str) -> bool:
        """Delete by primary key (username for assignments). Missing keys are a no-op."""
        model = {
            USERS: UserRow,
            INDUSTRIES: IndustryRow,
            READINGS: ReadingRow,
            ASSIGNMENTS: AssignmentRow,
        }.get(collection)
        if model is None:
            raise ValueError(f"delete() does not support collection {collection!r}")

        try:
            with db_session(self._session_factory) as session:
                row = session.get(model, key)
                if row is None:
                    return False
                session.delete(row)
        except SQLAlchemyError as exc:
            raise TransientIOError(f"Delete from {collection} failed: {exc}") from exc
        return True

    def bulk_put(self, industries: Iterable[Industry]) -> int:
        """
        Upsert industries one by one. Not atomic: a failure leaves the
        earlier items applied.
        """
        applied = 0
        for industry in industries:
            try:
                self.put(INDUSTRIES, industry)
            except TransientIOError as exc:
                raise TransientIOError(
                    f"Bulk industry write stopped after {applied} item(s): {exc}"
                ) from exc
            applied += 1
        return applied

    def save_assignment(self, username: str, industries: Iterable[Industry]) -> None:
        """Replace the full industry set assigned to a username."""
        payload = json.dumps([i.to_dict() for i in industries], ensure_ascii=False)
        try:
            with db_session(self._session_factory) as session:
                session.merge(AssignmentRow(username=username, industries=payload))
        except SQLAlchemyError as exc:
            raise TransientIOError(f"Assignment write failed: {exc}") from exc

    def seed_defaults(self, admin_password: str) -> bool:
        """
        Create the bootstrap admin account when no user exists yet.
        """
        try:
            with db_session(self._session_factory) as session:
                if session.execute(select(UserRow.id).limit(1)).first() is not None:
                    return False
                session.add(UserRow(
                    id=BOOTSTRAP_ADMIN_ID,
                    username="admin",
                    password=admin_password,
                    full_name="System Administrator",
                    role=Role.ADMIN.value,
                ))
        except SQLAlchemyError as exc:
            raise TransientIOError(f"Seeding users failed: {exc}") from exc
        logger.info("Created bootstrap admin account")
        return True


def _industry_row(industry: Industry) -> IndustryRow:
    return IndustryRow(
        id=industry.id,
        name=industry.name,
        subscription_id=industry.subscription_id,
        city=industry.city,
        address=industry.address,
        meters=json.dumps([m.to_dict() for m in industry.meters], ensure_ascii=False),
        allowed_daily_consumption=industry.allowed_daily_consumption,
    )


def _decode_meters(industry_id: str, raw: Optional[str]) -> tuple:
    try:
        return tuple(Meter.from_dict(m) for m in json.loads(raw or "[]"))
    except (ValueError, TypeError, KeyError, AttributeError):
        logger.warning(f"Industry '{industry_id}' has unreadable meters column; treating as empty")
        return ()


def _decode_industries(username: str, raw: Optional[str]) -> List[Industry]:
    try:
        return [Industry.from_dict(i) for i in json.loads(raw or "[]")]
    except (ValueError, TypeError, KeyError, AttributeError):
        logger.warning(f"Assignment for '{username}' is unreadable; treating as empty")
        return []
