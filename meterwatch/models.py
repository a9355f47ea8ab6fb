"""
Table definitions for the shared store.

No foreign keys: readings may reference industries or meters that no
longer exist, and assignments reference usernames rather than user ids.
"""
from sqlalchemy import BigInteger, Boolean, Column, Numeric, String, Text

from meterwatch.database import Base


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False, default="")
    full_name = Column(String(255), nullable=False, default="")
    role = Column(String(16), nullable=False, default="user")


class IndustryRow(Base):
    __tablename__ = "industries"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    subscription_id = Column(String(64), nullable=False, default="")
    city = Column(String(255), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    # JSON-encoded list of {id, serialNumber, name}
    meters = Column(Text, nullable=False, default="[]")
    allowed_daily_consumption = Column(Numeric, nullable=False)


class ReadingRow(Base):
    __tablename__ = "readings"

    id = Column(String(64), primary_key=True)
    industry_id = Column(String(64), nullable=False, index=True)
    meter_id = Column(String(64), nullable=False)
    timestamp = Column(BigInteger, nullable=False, index=True)
    value = Column(Numeric, nullable=False)
    image_url = Column(Text, nullable=False, default="")
    recorded_by = Column(String(64), nullable=False, default="")
    is_manual = Column(Boolean, nullable=False, default=False)


class AssignmentRow(Base):
    __tablename__ = "assignments"

    username = Column(String(64), primary_key=True)
    # JSON-encoded list of full industry records
    industries = Column(Text, nullable=False, default="[]")
