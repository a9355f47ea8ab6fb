"""
Value types replicated from the shared store.

All types are immutable; a new Snapshot is built on every poll tick and
handed to consumers as a whole.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"

    @classmethod
    def parse(cls, raw) -> "Role":
        """Map a stored role string to a Role, rejecting anything unknown."""
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {raw!r}") from None


class AlertLevel(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class User:
    id: str
    username: str
    password: str
    full_name: str
    role: Role

    def to_dict(self) -> dict:
        # password is never serialized
        return {
            "id": self.id,
            "username": self.username,
            "fullName": self.full_name,
            "role": self.role.value,
        }


@dataclass(frozen=True)
class Meter:
    id: str
    serial_number: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "serialNumber": self.serial_number, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "Meter":
        return cls(
            id=str(data["id"]),
            serial_number=str(data.get("serialNumber", "")),
            name=str(data.get("name", "")),
        )


@dataclass(frozen=True)
class Industry:
    id: str
    name: str
    subscription_id: str
    city: str
    address: str
    allowed_daily_consumption: float
    meters: Tuple[Meter, ...] = ()

    def meter(self, meter_id: str) -> Optional[Meter]:
        for meter in self.meters:
            if meter.id == meter_id:
                return meter
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subscriptionId": self.subscription_id,
            "city": self.city,
            "address": self.address,
            "allowedDailyConsumption": self.allowed_daily_consumption,
            "meters": [m.to_dict() for m in self.meters],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Industry":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            subscription_id=str(data.get("subscriptionId", "")),
            city=str(data.get("city", "")),
            address=str(data.get("address", "")),
            allowed_daily_consumption=float(data.get("allowedDailyConsumption") or 0),
            meters=tuple(Meter.from_dict(m) for m in data.get("meters") or []),
        )


@dataclass(frozen=True)
class Reading:
    id: str
    industry_id: str
    meter_id: str
    timestamp: int  # epoch milliseconds
    value: float
    image_url: Optional[str] = None
    recorded_by: Optional[str] = None
    is_manual: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "industryId": self.industry_id,
            "meterId": self.meter_id,
            "timestamp": self.timestamp,
            "value": self.value,
            "imageUrl": self.image_url,
            "recordedBy": self.recorded_by,
            "isManual": self.is_manual,
        }


Assignments = Dict[str, List[Industry]]


@dataclass(frozen=True)
class Snapshot:
    """The four-collection result of one successful poll tick."""
    users: List[User] = field(default_factory=list)
    industries: List[Industry] = field(default_factory=list)
    readings: List[Reading] = field(default_factory=list)
    assignments: Assignments = field(default_factory=dict)
    fetched_at: float = 0.0
    active_user: Optional[User] = None

    def with_active_user(self, user: Optional[User]) -> "Snapshot":
        return replace(self, active_user=user)
