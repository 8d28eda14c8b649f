"""
Booking status machine.

Only administrators move a booking between statuses; requesters can only ask
for a cancellation. Every transition reads the booking under lock, applies the
slot side effects and writes the new status in the caller's unit of work.
"""

import logging
from datetime import datetime
from typing import Optional

from models.booking import (
    BOOKING_STATUSES,
    CANCEL_REQUESTED,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    PENDING,
    Booking,
)
from scheduling.directory import Directory
from scheduling.errors import InvariantViolation, NotFoundError, ValidationError
from scheduling.slots import mark_slots

logger = logging.getLogger(__name__)

TRANSITIONS = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({COMPLETED, CANCELLED, CANCEL_REQUESTED}),
    CANCEL_REQUESTED: frozenset({CANCELLED, CONFIRMED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

TERMINAL_STATUSES = (COMPLETED, CANCELLED)

# statuses a requester may ask to cancel from
REQUESTER_CANCELLABLE = (PENDING, CONFIRMED)

UNSET = object()


def can_transition(current: str, new: str) -> bool:
    # same status is a no-op, used for stylist-only updates
    return new == current or new in TRANSITIONS.get(current, ())


def _lock_booking(session, booking_id: int, user_id: Optional[int] = None) -> Booking:
    q = session.query(Booking).filter(Booking.id == booking_id)
    if user_id is not None:
        q = q.filter(Booking.user_id == user_id)
    booking = q.with_for_update().populate_existing().first()
    if booking is None:
        raise NotFoundError("Booking not found", booking_id=booking_id)
    return booking


def _reject_if_past(booking: Booking, now: datetime) -> None:
    if booking.starts_at <= now:
        raise ValidationError(
            "cannot cancel past bookings",
            fields={"booking_date": booking.booking_date.isoformat()},
        )


def _apply_slot_effects(session, booking: Booking, old: str, new: str) -> int:
    if old == new:
        return 0
    service_ids = booking.slot_service_ids()
    if new == CANCELLED:
        return mark_slots(session, service_ids, booking.booking_date, booking.time_slot, available=True)
    if old == PENDING and new == CONFIRMED:
        return mark_slots(session, service_ids, booking.booking_date, booking.time_slot, available=False)
    return 0


def set_status(
    uow,
    booking_id: int,
    new_status: str,
    stylist_id=UNSET,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Administrator transition. ``stylist_id`` may accompany any transition;
    pass ``None`` to clear the assignment, leave it UNSET to keep it.
    """
    status = (new_status or "").strip().upper() if isinstance(new_status, str) else ""
    if status not in BOOKING_STATUSES:
        raise ValidationError(
            "Invalid status. Must be one of: " + ", ".join(BOOKING_STATUSES),
            fields={"status": "invalid"},
        )

    session = uow.session
    if stylist_id is not UNSET and stylist_id is not None:
        Directory(session).require_staff(stylist_id)

    booking = _lock_booking(session, booking_id)
    old = booking.status

    if not can_transition(old, status):
        logger.warning("Rejected transition %s -> %s for booking %s (actor %s)", old, status, booking.id, actor_id)
        raise InvariantViolation(
            f"Cannot change booking status from {old} to {status}",
            current_status=old,
            requested_status=status,
        )
    if stylist_id is not UNSET and stylist_id != booking.stylist_id and old in TERMINAL_STATUSES:
        raise InvariantViolation(
            f"Cannot reassign the stylist of a {old} booking",
            current_status=old,
            requested_status=status,
        )
    if status == CANCELLED and old != CANCELLED:
        _reject_if_past(booking, now or datetime.now())

    changed = _apply_slot_effects(session, booking, old, status)

    booking.status = status
    if stylist_id is not UNSET:
        booking.stylist_id = stylist_id
    session.flush()

    logger.info("Booking %s: %s -> %s (%d slots changed)", booking.id, old, status, changed)
    uow.record(
        "BOOKING_STATUS_CHANGE",
        user_id=actor_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"from": old, "to": status, "slots_changed": changed},
    )
    return booking


def request_cancellation(
    uow,
    booking_id: int,
    requester_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """Requester asks to cancel; slots stay held until an admin approves."""
    session = uow.session
    booking = _lock_booking(session, booking_id, user_id=requester_id)

    if booking.status not in REQUESTER_CANCELLABLE:
        raise ValidationError(
            "Only pending or confirmed bookings can be cancelled.",
            fields={"status": booking.status},
        )
    now = now or datetime.now()
    _reject_if_past(booking, now)

    booking.status = CANCEL_REQUESTED
    booking.cancellation_reason = (reason or "").strip()[:255] or None
    booking.cancellation_requested_at = datetime.utcnow()
    session.flush()

    uow.record(
        "BOOKING_CANCEL_REQUEST",
        user_id=requester_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"reason": booking.cancellation_reason},
    )
    return booking
