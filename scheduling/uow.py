"""
Unit of Work

Wraps one SQLAlchemy transaction for a single booking creation or status
change. Audit events recorded during the work are written only after the
commit succeeds, so rolled-back work leaves no trace.

Usage:
    with SqlAlchemyUnitOfWork() as uow:
        booking = create_booking(uow, ...)
    # committed here, audit rows written

    booking = run_in_unit_of_work(lambda uow: set_status(uow, booking_id, "CONFIRMED"))
"""

import logging
from typing import Callable, List, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError

from models import db
from scheduling.errors import TransientStorageError
from utils.audit import log_event

logger = logging.getLogger(__name__)

T = TypeVar("T")

# deadlock, serialization failure, lock timeout (postgres / mysql)
_CONTENTION_CODES = {"40P01", "40001", "55P03", "1205", "1213"}


class SqlAlchemyUnitOfWork:

    def __init__(self, session=None):
        self.session = session if session is not None else db.session
        self._audit: List[dict] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False

    def commit(self):
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise

        events, self._audit = self._audit, []
        for event in events:
            log_event(**event)

    def rollback(self):
        if self._audit:
            logger.warning("Rolling back unit of work, discarding %d audit events", len(self._audit))
        self._audit = []
        self.session.rollback()

    def record(self, action: str, user_id=None, entity=None, entity_id=None, metadata=None):
        """Queue an audit event for after commit."""
        self._audit.append(dict(
            action=action,
            user_id=user_id,
            entity=entity,
            entity_id=entity_id,
            metadata=metadata,
        ))


def is_lock_contention(exc: OperationalError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is None and orig is not None and getattr(orig, "args", None):
        code = orig.args[0]
    if code is not None and str(code) in _CONTENTION_CODES:
        return True
    message = str(exc).lower()
    return "deadlock" in message or "database is locked" in message or "lock wait timeout" in message


def run_in_unit_of_work(work: Callable[[SqlAlchemyUnitOfWork], T], retries: int = None, session=None) -> T:
    """
    Run ``work`` inside a fresh unit of work, retrying on lock contention.

    Only contention (deadlock, lock timeout) is retried; every other error
    rolls back and propagates. Exhausted retries become TransientStorageError.
    """
    if retries is None:
        retries = current_app.config.get("BOOKING_TX_RETRIES", 3)
    attempts = max(1, retries)

    for attempt in range(1, attempts + 1):
        try:
            with SqlAlchemyUnitOfWork(session) as uow:
                return work(uow)
        except OperationalError as exc:
            if not is_lock_contention(exc):
                raise
            logger.warning("Lock contention on attempt %d/%d: %s", attempt, attempts, exc.orig)

    raise TransientStorageError()
