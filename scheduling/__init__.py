from .errors import (
    SchedulingError,
    ValidationError,
    ConflictError,
    NotFoundError,
    InvariantViolation,
    TransientStorageError,
)
from .uow import SqlAlchemyUnitOfWork, run_in_unit_of_work
from .allocation import create_booking
from .status import set_status, request_cancellation, can_transition, TRANSITIONS, UNSET
