"""
Slot Store operations.

A slot row is created the first time a (service, date, time) is referenced.
Creation and lookup happen as one insert-or-fetch under a row lock so two
claimants racing on a fresh slot both end up holding the same row.
"""

import logging
from datetime import date, time
from typing import Iterable, Optional

from sqlalchemy import and_, insert, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from models.booking import ACTIVE_STATUSES, Booking, BookingLineItem
from models.slot import Slot
from scheduling.errors import ConflictError

logger = logging.getLogger(__name__)

_SLOT_KEY = ["service_id", "date", "time_slot"]


def _insert_if_absent(session, values: dict) -> bool:
    """Conditional insert; returns False when the dialect has no such statement."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(Slot).values(**values).on_conflict_do_nothing(index_elements=_SLOT_KEY)
    elif dialect == "sqlite":
        stmt = sqlite_insert(Slot).values(**values).on_conflict_do_nothing(index_elements=_SLOT_KEY)
    elif dialect in ("mysql", "mariadb"):
        stmt = insert(Slot).values(**values).prefix_with("IGNORE")
    else:
        return False
    session.execute(stmt)
    return True


def _locked_slot(session, service_id: int, day: date, at: time) -> Optional[Slot]:
    return (
        session.query(Slot)
        .filter_by(service_id=service_id, date=day, time_slot=at)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_or_create_slot(session, service_id: int, day: date, at: time) -> Slot:
    """Return the slot row for (service, date, time), locked for update."""
    values = {"service_id": service_id, "date": day, "time_slot": at, "available": True}

    if not _insert_if_absent(session, values):
        slot = _locked_slot(session, service_id, day, at)
        if slot is not None:
            return slot
        try:
            with session.begin_nested():
                session.add(Slot(**values))
        except IntegrityError:
            logger.info("Slot %s/%s/%s created concurrently, re-reading", service_id, day, at)

    return _locked_slot(session, service_id, day, at)


def find_active_booking(session, service_id: int, day: date, at: time, exclude_booking_id=None) -> Optional[Booking]:
    """Active booking holding this service at date+time, via line items or primary service."""
    q = (
        session.query(Booking)
        .outerjoin(BookingLineItem, BookingLineItem.booking_id == Booking.id)
        .filter(
            Booking.booking_date == day,
            Booking.time_slot == at,
            Booking.status.in_(ACTIVE_STATUSES),
            or_(
                BookingLineItem.service_id == service_id,
                and_(BookingLineItem.id.is_(None), Booking.service_id == service_id),
            ),
        )
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.first()


def mark_slots(session, service_ids: Iterable[int], day: date, at: time, available: bool) -> int:
    """Set the availability flag for every service at date+time. Idempotent.

    Rows are locked in ascending service id, the same order booking creation uses.
    """
    changed = 0
    for service_id in sorted(service_ids):
        if available:
            slot = _locked_slot(session, service_id, day, at)
            if slot is None:
                # never materialized means available already
                continue
        else:
            slot = get_or_create_slot(session, service_id, day, at)
        if slot.available != available:
            slot.available = available
            changed += 1
    return changed


def set_availability(uow, service_id: int, day: date, at: time, available: bool, actor_id=None):
    """
    Admin override of one slot. Blocking is always allowed; re-opening a slot
    that an active booking holds is a conflict.

    Returns ``(slot, created)``.
    """
    session = uow.session
    created = _locked_slot(session, service_id, day, at) is None
    slot = get_or_create_slot(session, service_id, day, at)

    if available:
        holder = find_active_booking(session, service_id, day, at)
        if holder is not None:
            raise ConflictError(
                f"Slot is held by booking {holder.id}",
                booking_id=holder.id,
                service_id=service_id,
            )

    slot.available = available
    session.flush()
    uow.record(
        "SLOT_AVAILABILITY_SET",
        user_id=actor_id,
        entity="slot",
        entity_id=slot.id,
        metadata={"available": available},
    )
    return slot, created
