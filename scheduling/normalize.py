import re
from datetime import date, datetime, time

from scheduling.errors import ValidationError

_TIME_SLOT_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]?\d)(?::([0-5]?\d))?$")


def normalize_time_slot(value) -> time:
    """Accept ``H:MM``, ``HH:MM`` or ``HH:MM:SS`` and return a ``time``."""
    if isinstance(value, time):
        return value.replace(microsecond=0)
    match = _TIME_SLOT_RE.match((value or "").strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(
            "Valid time slot required (HH:MM:SS)",
            fields={"time_slot": "expected HH:MM or HH:MM:SS"},
        )
    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))


def format_time_slot(value: time) -> str:
    return value.strftime("%H:%M:%S")


def parse_booking_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat((value or "").strip())
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(
            "Valid booking date required",
            fields={"booking_date": "expected YYYY-MM-DD"},
        ) from None


def parse_id(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Valid {field} required", fields={field: "must be an integer"})
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Valid {field} required", fields={field: "must be an integer"}) from None
    if parsed <= 0:
        raise ValidationError(f"Valid {field} required", fields={field: "must be positive"})
    return parsed


def parse_optional_id(value, field: str):
    if value is None or value == "":
        return None
    return parse_id(value, field)


def validate_service_ids(service_ids) -> list:
    ids = [parse_id(sid, "service_id") for sid in service_ids or []]
    if not ids:
        raise ValidationError("Please select a service to book.", fields={"services": "required"})
    if len(set(ids)) != len(ids):
        raise ValidationError(
            "Each service can only be selected once per booking",
            fields={"services": "duplicate service_id"},
        )
    return ids


def parse_service_selection(data: dict) -> list:
    """
    Read the requested services from a booking payload.

    ``service_id`` is the standard booking path; ``services`` (a list of
    ``{"service_id": n}`` objects or plain ids) is the bulk path and must name
    at least two services.
    """
    services = data.get("services")
    if services is not None:
        if not isinstance(services, list):
            raise ValidationError("services must be a list", fields={"services": "must be a list"})
        if len(services) == 1:
            raise ValidationError(
                "Select a single service for standard booking or use bulk booking for multiple services.",
                fields={"services": "bulk booking needs at least two services"},
            )
        if services:
            raw = [s.get("service_id") if isinstance(s, dict) else s for s in services]
            return validate_service_ids(raw)

    service_id = data.get("service_id")
    if service_id is None or service_id == "":
        raise ValidationError("Please select a service to book.", fields={"service_id": "required"})
    return validate_service_ids([service_id])
