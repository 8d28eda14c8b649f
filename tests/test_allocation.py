from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import PENDING, Booking
from models.service import Service
from models.slot import Slot
from scheduling import ConflictError, NotFoundError, ValidationError, create_booking, run_in_unit_of_work
from scheduling.slots import get_or_create_slot, set_availability


def book(user_id, service_ids, day, at, **kwargs):
    return run_in_unit_of_work(lambda uow: create_booking(
        uow,
        requester_id=user_id,
        booking_date=day,
        time_slot=at,
        service_ids=service_ids,
        **kwargs
    ))


def slot_of(service_id, day, at):
    return Slot.query.filter_by(service_id=service_id, date=day, time_slot=at).first()


def test_bulk_booking_claims_every_slot(services, customer, day, at):
    s1, s2 = services

    booking = book(customer, [s1, s2], day, at)

    assert booking.status == PENDING
    assert booking.is_bulk is True
    assert booking.service_id == s1
    assert booking.total_price == Decimal("1500.00")
    assert booking.total_duration == 50
    assert [li.service_id for li in booking.line_items] == [s1, s2]
    assert slot_of(s1, day, at).available is False
    assert slot_of(s2, day, at).available is False


def test_single_service_booking_is_not_bulk(services, customer, day, at):
    booking = book(customer, [services[0]], day, at)

    assert booking.is_bulk is False
    assert booking.total_price == Decimal("1000.00")
    assert booking.total_duration == 30
    assert len(booking.line_items) == 1


def test_totals_equal_line_item_sums(services, customer, day, at):
    booking = book(customer, list(services), day, at)

    assert booking.total_price == sum(li.price_at_booking for li in booking.line_items)
    assert booking.total_duration == sum(li.duration_at_booking for li in booking.line_items)


def test_other_customer_conflicts_on_held_slot(services, customer, other_customer, day, at):
    s1, s2 = services
    book(customer, [s1, s2], day, at)

    with pytest.raises(ConflictError) as exc:
        book(other_customer, [s1], day, at)

    assert exc.value.message == f"slot unavailable for service {s1}"
    assert exc.value.details["service_id"] == s1
    assert Booking.query.count() == 1


def test_other_customer_may_book_a_different_service_at_same_time(services, customer, other_customer, day, at):
    s1, s2 = services
    book(customer, [s1], day, at)

    booking = book(other_customer, [s2], day, at)

    assert booking.status == PENDING
    assert Booking.query.count() == 2


def test_same_requester_cannot_double_book_date_time(services, customer, day, at):
    s1, s2 = services
    book(customer, [s1], day, at)

    with pytest.raises(ConflictError) as exc:
        book(customer, [s2], day, at)

    assert "already have a booking" in exc.value.message
    assert slot_of(s2, day, at) is None


def test_conflict_on_second_service_rolls_back_first_claim(services, customer, admin, day, at):
    s1, s2 = services
    run_in_unit_of_work(lambda uow: set_availability(uow, s2, day, at, False, actor_id=admin))

    with pytest.raises(ConflictError) as exc:
        book(customer, [s1, s2], day, at)

    assert exc.value.details["service_id"] == s2
    assert slot_of(s1, day, at) is None
    assert slot_of(s2, day, at).available is False
    assert Booking.query.count() == 0
    assert AuditLog.query.filter_by(action="BOOKING_CREATE").count() == 0


def test_existing_available_slot_is_reused(services, customer, day, at):
    s1 = services[0]
    db.session.add(Slot(service_id=s1, date=day, time_slot=at, available=True))
    db.session.commit()

    book(customer, [s1], day, at)

    slots = Slot.query.filter_by(service_id=s1, date=day, time_slot=at).all()
    assert len(slots) == 1
    assert slots[0].available is False


def test_time_formats_normalize_to_same_slot(services, customer, other_customer, day):
    s1 = services[0]
    book(customer, [s1], day.isoformat(), "9:00")

    with pytest.raises(ConflictError):
        book(other_customer, [s1], day.isoformat(), "09:00:00")

    assert slot_of(s1, day, time(9, 0)).available is False


def test_duplicate_service_ids_rejected(services, customer, day, at):
    s1 = services[0]
    with pytest.raises(ValidationError):
        book(customer, [s1, s1], day, at)
    assert Slot.query.count() == 0


def test_empty_selection_rejected(services, customer, day, at):
    with pytest.raises(ValidationError) as exc:
        book(customer, [], day, at)
    assert exc.value.message == "Please select a service to book."


def test_past_time_rejected(services, customer):
    yesterday = date.today() - timedelta(days=1)
    with pytest.raises(ValidationError) as exc:
        book(customer, [services[0]], yesterday, "10:00")
    assert exc.value.message == "cannot book past time slots"


def test_past_check_uses_given_clock(services, customer, day, at):
    later = datetime.combine(day, at) + timedelta(minutes=1)
    with pytest.raises(ValidationError):
        book(customer, [services[0]], day, at, now=later)


@pytest.mark.parametrize("bad_time", ["25:00", "10-00", "", None, "noon"])
def test_malformed_time_rejected(services, customer, day, bad_time):
    with pytest.raises(ValidationError):
        book(customer, [services[0]], day, bad_time)


def test_malformed_date_rejected(services, customer, at):
    with pytest.raises(ValidationError):
        book(customer, [services[0]], "2026/13/01", at)


def test_unknown_service_not_found(services, customer, day, at):
    with pytest.raises(NotFoundError) as exc:
        book(customer, [services[0], 999], day, at)
    assert exc.value.message == "Service with ID 999 not found"
    assert Slot.query.count() == 0


def test_unknown_stylist_not_found(services, customer, day, at):
    with pytest.raises(NotFoundError):
        book(customer, [services[0]], day, at, stylist_id=42)
    assert Slot.query.count() == 0


def test_stylist_assigned_at_creation(services, customer, stylist, day, at):
    booking = book(customer, [services[0]], day, at, stylist_id=stylist)
    assert booking.stylist_id == stylist


def test_catalog_price_change_keeps_booked_prices(services, customer, day, at):
    s1, s2 = services
    booking_id = book(customer, [s1, s2], day, at).id

    service = db.session.get(Service, s1)
    service.price = Decimal("2000.00")
    service.duration = 90
    db.session.commit()

    booking = db.session.get(Booking, booking_id)
    assert booking.total_price == Decimal("1500.00")
    assert booking.line_items[0].price_at_booking == Decimal("1000.00")
    assert booking.line_items[0].duration_at_booking == 30


def test_creation_is_audited_after_commit(services, customer, day, at):
    booking = book(customer, list(services), day, at)

    row = AuditLog.query.filter_by(action="BOOKING_CREATE").one()
    assert row.user_id == customer
    assert row.entity == "booking"
    assert row.entity_id == str(booking.id)


def test_slots_locked_in_service_id_order(services, customer, day, at, monkeypatch):
    s1, s2 = services
    locked = []

    def recording(session, service_id, *args):
        locked.append(service_id)
        return get_or_create_slot(session, service_id, *args)

    monkeypatch.setattr("scheduling.allocation.get_or_create_slot", recording)
    booking = book(customer, [s2, s1], day, at)

    assert locked == [s1, s2]
    assert [li.service_id for li in booking.line_items] == [s2, s1]
    assert booking.service_id == s2
