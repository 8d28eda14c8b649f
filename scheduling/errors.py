"""
Error taxonomy for the scheduling core.

Every failure carries a stable ``kind`` for clients and the HTTP status the
boundary should answer with. Raising one of these inside a unit of work rolls
the whole transaction back.
"""


class SchedulingError(Exception):
    kind = "error"
    http_status = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        body.update(self.details)
        return body


class ValidationError(SchedulingError):
    """Malformed input: bad date/time, missing service selection, past booking."""
    kind = "validation_error"

    def __init__(self, message: str, fields=None):
        super().__init__(message, fields=fields or {})


class ConflictError(SchedulingError):
    """Slot already held by an active booking."""
    kind = "conflict"


class NotFoundError(SchedulingError):
    kind = "not_found"
    http_status = 404


class InvariantViolation(SchedulingError):
    """Status transition that the state machine does not allow."""
    kind = "invalid_transition"


class TransientStorageError(SchedulingError):
    kind = "transient_storage"
    http_status = 503

    def __init__(self, message: str = "Booking system is busy, please retry"):
        super().__init__(message, retryable=True)
