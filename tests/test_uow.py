import pytest
from sqlalchemy.exc import OperationalError

from models import db
from models.audit_log import AuditLog
from models.staff import Staff
from scheduling import SqlAlchemyUnitOfWork, TransientStorageError, ValidationError, run_in_unit_of_work
from scheduling.uow import is_lock_contention


class _PgDeadlock(Exception):
    pgcode = "40P01"


def _operational(orig):
    return OperationalError("UPDATE availability SET available=?", {}, orig)


class TestLockContention:

    def test_sqlite_busy(self):
        assert is_lock_contention(_operational(Exception("database is locked")))

    def test_postgres_deadlock_code(self):
        assert is_lock_contention(_operational(_PgDeadlock("deadlock detected")))

    def test_mysql_lock_wait_code(self):
        assert is_lock_contention(_operational(Exception(1205, "Lock wait timeout exceeded")))

    def test_other_operational_errors(self):
        assert not is_lock_contention(_operational(Exception("no such table: bookings")))


def test_commit_writes_queued_audit_events(app):
    with SqlAlchemyUnitOfWork() as uow:
        staff = Staff(name="Mira", email="mira@salon.test")
        uow.session.add(staff)
        uow.session.flush()
        uow.record("STAFF_CREATE", entity="staff", entity_id=staff.id)

    assert Staff.query.count() == 1
    assert AuditLog.query.filter_by(action="STAFF_CREATE").count() == 1


def test_exception_rolls_back_and_drops_audit_events(app):
    with pytest.raises(ValidationError):
        with SqlAlchemyUnitOfWork() as uow:
            uow.session.add(Staff(name="Mira", email="mira@salon.test"))
            uow.session.flush()
            uow.record("STAFF_CREATE", entity="staff")
            raise ValidationError("nope")

    assert Staff.query.count() == 0
    assert AuditLog.query.count() == 0


def test_contention_is_retried_then_succeeds(app):
    calls = []

    def work(uow):
        calls.append(1)
        if len(calls) < 3:
            raise _operational(Exception("database is locked"))
        return "done"

    assert run_in_unit_of_work(work, retries=3) == "done"
    assert len(calls) == 3


def test_exhausted_retries_become_transient_error(app):
    calls = []

    def work(uow):
        calls.append(1)
        raise _operational(_PgDeadlock("deadlock detected"))

    with pytest.raises(TransientStorageError) as exc:
        run_in_unit_of_work(work, retries=2)

    assert len(calls) == 2
    assert exc.value.http_status == 503
    assert exc.value.to_dict()["retryable"] is True


def test_retries_default_to_config(app):
    app.config["BOOKING_TX_RETRIES"] = 1
    calls = []

    def work(uow):
        calls.append(1)
        raise _operational(Exception("database is locked"))

    with pytest.raises(TransientStorageError):
        run_in_unit_of_work(work)
    assert len(calls) == 1


def test_other_errors_are_not_retried(app):
    calls = []

    def work(uow):
        calls.append(1)
        raise _operational(Exception("no such column: foo"))

    with pytest.raises(OperationalError):
        run_in_unit_of_work(work, retries=3)
    assert len(calls) == 1
    db.session.rollback()
