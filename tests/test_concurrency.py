import threading
from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.booking import ACTIVE_STATUSES, Booking
from models.service import Service
from models.slot import Slot
from scheduling import ConflictError, create_booking, run_in_unit_of_work
from tests.conftest import make_user

WORKERS = 6


@pytest.fixture
def file_app(tmp_path):
    class FileDbConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "race.db")
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
        BOOKING_TX_RETRIES = 10

    app = create_app(FileDbConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _race(app, day, at, jobs):
    """Run every (requester, service_ids) job at once; returns "ok" or "conflict" per job."""
    barrier = threading.Barrier(len(jobs))
    results = [None] * len(jobs)

    def worker(i, user_id, service_ids):
        with app.app_context():
            barrier.wait()
            try:
                run_in_unit_of_work(lambda uow: create_booking(uow, user_id, day, at, service_ids))
                results[i] = "ok"
            except ConflictError:
                results[i] = "conflict"
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i, *job)) for i, job in enumerate(jobs)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_only_one_of_many_racing_bookings_wins(file_app):
    service = Service(name="Haircut", price=Decimal("1000.00"), duration=30)
    db.session.add(service)
    db.session.commit()
    service_id = service.id
    requesters = [make_user(f"racer{i}@example.com") for i in range(WORKERS)]
    day = date.today() + timedelta(days=3)
    at = time(10, 0)

    results = _race(file_app, day, at, [(uid, [service_id]) for uid in requesters])

    assert sorted(results) == ["conflict"] * (WORKERS - 1) + ["ok"]
    assert Booking.query.filter(Booking.status.in_(ACTIVE_STATUSES)).count() == 1
    assert Slot.query.filter_by(service_id=service_id, date=day, time_slot=at).one().available is False


def test_racing_bulk_bookings_in_opposite_order(file_app):
    first = Service(name="Haircut", price=Decimal("1000.00"), duration=30)
    second = Service(name="Manicure", price=Decimal("500.00"), duration=20)
    db.session.add_all([first, second])
    db.session.commit()
    ids = [first.id, second.id]
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    day = date.today() + timedelta(days=3)
    at = time(11, 0)

    results = _race(file_app, day, at, [(alice, ids), (bob, list(reversed(ids)))])

    assert sorted(results) == ["conflict", "ok"]
    assert Booking.query.count() == 1
