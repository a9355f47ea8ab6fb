"""
Validation utilities for incoming request payloads.
"""
import math
import time
import uuid

from meterwatch.config import Config
from meterwatch.domain import Industry, Reading, Role, User
from meterwatch.errors import MalformedInputError


def normalize_username(raw_username):
    """
    Normalize username strings while enforcing basic length + type checks.
    Case is preserved: usernames are case-sensitive.
    """
    if raw_username is None:
        return None
    username = str(raw_username).strip()
    if not username or len(username) > 64:
        return None
    return username


def parse_number(raw, field):
    """
    Parse a finite number from a JSON value or numeric string.
    """
    if raw is None or isinstance(raw, bool):
        raise MalformedInputError(f"'{field}' must be a number")
    try:
        value = float(str(raw).replace(",", "").strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        raise MalformedInputError(f"'{field}' must be a number") from None
    if not math.isfinite(value):
        raise MalformedInputError(f"'{field}' must be a finite number")
    return value


def validate_user_payload(data, user_id=None):
    """
    Build a User from an admin payload. Every field is required (full replace).
    """
    if not isinstance(data, dict):
        raise MalformedInputError("Expected a JSON object")

    username = normalize_username(data.get('username'))
    if not username:
        raise MalformedInputError("'username' is required (max 64 characters)")

    password = data.get('password')
    if not isinstance(password, str) or not password:
        raise MalformedInputError("'password' is required")

    try:
        role = Role.parse(data.get('role', Role.USER.value))
    except ValueError as exc:
        raise MalformedInputError(str(exc)) from None

    return User(
        id=str(user_id or data.get('id') or uuid.uuid4()),
        username=username,
        password=password,
        full_name=str(data.get('fullName') or '').strip(),
        role=role,
    )


def validate_reading_payload(data, industries, recorded_by):
    """
    Build a Reading from a field agent's submission.

    The industry and meter must be among ``industries`` (what the agent
    can see); timestamp is assigned here.
    """
    if not isinstance(data, dict):
        raise MalformedInputError("Expected a JSON object")

    industry_id = str(data.get('industryId') or '').strip()
    meter_id = str(data.get('meterId') or '').strip()
    industry = next((i for i in industries if i.id == industry_id), None)
    if industry is None:
        raise MalformedInputError(f"Unknown industry '{industry_id}'")
    if industry.meter(meter_id) is None:
        raise MalformedInputError(f"Unknown meter '{meter_id}' for industry '{industry_id}'")

    value = parse_number(data.get('value'), 'value')

    image_url = data.get('imageUrl') or None
    if image_url is not None:
        if not isinstance(image_url, str) or len(image_url) > Config.MAX_IMAGE_LENGTH:
            raise MalformedInputError("'imageUrl' is too large or not a string")

    return Reading(
        id=str(data.get('id') or uuid.uuid4()),
        industry_id=industry.id,
        meter_id=meter_id,
        timestamp=int(time.time() * 1000),
        value=value,
        image_url=image_url,
        recorded_by=recorded_by,
        is_manual=image_url is None,
    )


def validate_industry_ids(raw_ids, industries):
    """
    Resolve a list of industry ids against known industries, keeping their order.
    """
    if not isinstance(raw_ids, list):
        raise MalformedInputError("'industryIds' must be a list")
    wanted = {str(i) for i in raw_ids}
    known = {i.id for i in industries}
    unknown = sorted(wanted - known)
    if unknown:
        raise MalformedInputError(f"Unknown industries: {', '.join(unknown)}")
    return [i for i in industries if i.id in wanted]


def validate_industry_payload(data):
    if not isinstance(data, dict) or not data.get('id'):
        raise MalformedInputError("Industry 'id' is required")
    try:
        industry = Industry.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise MalformedInputError(f"Invalid industry: {exc}") from None
    if industry.allowed_daily_consumption <= 0:
        raise MalformedInputError("'allowedDailyConsumption' must be positive")
    return industry
