"""
Allocation engine: claims slots and writes a booking as one unit of work.

Lock order is always the same: first every active booking at the requested
date+time, then each service's slot row in ascending service id. On a fresh
date+time the first step locks nothing, so the ascending slot order is what
keeps bookings for [1, 2] and [2, 1] from waiting on each other. Line items
keep the caller's selection order.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from models.booking import ACTIVE_STATUSES, PENDING, Booking, BookingLineItem
from models.slot import Slot
from scheduling.catalog import Catalog, ServiceQuote
from scheduling.directory import Directory
from scheduling.errors import ConflictError, ValidationError
from scheduling.normalize import format_time_slot, normalize_time_slot, parse_booking_date, validate_service_ids
from scheduling.slots import find_active_booking, get_or_create_slot

logger = logging.getLogger(__name__)


def _lock_date_time(session, requester_id: int, day, at) -> None:
    holders = (
        session.query(Booking)
        .filter(
            Booking.booking_date == day,
            Booking.time_slot == at,
            Booking.status.in_(ACTIVE_STATUSES),
        )
        .with_for_update()
        .all()
    )
    if any(b.user_id == requester_id for b in holders):
        raise ConflictError(
            "You already have a booking at this date and time",
            booking_date=day.isoformat(),
            time_slot=format_time_slot(at),
        )


def _claim(session, quote: ServiceQuote, day, at) -> Slot:
    slot = get_or_create_slot(session, quote.service_id, day, at)
    if slot is None or not slot.available or find_active_booking(session, quote.service_id, day, at):
        logger.info("Slot conflict for service %s at %s %s", quote.service_id, day, at)
        raise ConflictError(
            f"slot unavailable for service {quote.service_id}",
            service_id=quote.service_id,
        )
    return slot


def create_booking(
    uow,
    requester_id: int,
    booking_date,
    time_slot,
    service_ids: List[int],
    stylist_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Claim every requested slot and insert a PENDING booking.

    All-or-nothing: a conflict on any service raises ConflictError and the
    surrounding unit of work rolls back every slot claimed so far.

    Args:
        uow: open unit of work; the booking is committed when it exits
        requester_id: user the booking belongs to
        booking_date: ``date`` or ``YYYY-MM-DD``
        time_slot: ``time`` or ``HH:MM[:SS]``
        service_ids: ordered, non-empty; more than one makes a bulk booking
        stylist_id: optional staff assignment
        now: clock override for the past-slot check

    Raises:
        ValidationError, NotFoundError, ConflictError
    """
    day = parse_booking_date(booking_date)
    at = normalize_time_slot(time_slot)
    ids = validate_service_ids(service_ids)

    now = now or datetime.now()
    if datetime.combine(day, at) <= now:
        raise ValidationError(
            "cannot book past time slots",
            fields={"booking_date": day.isoformat(), "time_slot": format_time_slot(at)},
        )

    session = uow.session

    # lock-free reads, done before the first FOR UPDATE below; prices are
    # frozen into line items so later catalog edits cannot change this booking
    quotes = Catalog(session).quote(ids)
    if stylist_id is not None:
        Directory(session).require_staff(stylist_id)

    total_price = sum((q.price for q in quotes), Decimal("0"))
    total_duration = sum(q.duration for q in quotes)

    _lock_date_time(session, requester_id, day, at)
    claimed = [_claim(session, quote, day, at) for quote in sorted(quotes, key=lambda q: q.service_id)]

    for slot in claimed:
        slot.available = False

    booking = Booking(
        user_id=requester_id,
        service_id=ids[0],
        stylist_id=stylist_id,
        booking_date=day,
        time_slot=at,
        status=PENDING,
        total_price=total_price,
        total_duration=total_duration,
        line_items=[
            BookingLineItem(
                service_id=q.service_id,
                price_at_booking=q.price,
                duration_at_booking=q.duration,
            )
            for q in quotes
        ],
    )
    session.add(booking)
    session.flush()

    logger.info(
        "Booking %s created for user %s: services=%s at %s %s",
        booking.id, requester_id, ids, day, format_time_slot(at),
    )
    uow.record(
        "BOOKING_CREATE",
        user_id=requester_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"services": ids, "date": day.isoformat(), "time_slot": format_time_slot(at)},
    )
    return booking
