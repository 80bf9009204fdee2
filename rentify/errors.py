# Domain error kinds raised by the booking/payment/review core.
# Transport layers map them to responses via `status_code`; the core never handles them itself.
from __future__ import annotations

from typing import Optional


class RentifyError(Exception):
    """Base class for every recoverable failure reported by the core."""

    status_code: int = 400
    kind: str = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(RentifyError):
    status_code = 404
    kind = "not_found"


class Conflict(RentifyError):
    """Overlapping booking, duplicate payment or duplicate review."""

    status_code = 409
    kind = "conflict"


class InvalidRangeError(RentifyError):
    kind = "invalid_range"


class AmountMismatch(RentifyError):
    kind = "amount_mismatch"


class IllegalTransition(RentifyError):
    kind = "illegal_transition"


class IllegalState(RentifyError):
    kind = "illegal_state"


class Forbidden(RentifyError):
    status_code = 403
    kind = "forbidden"


class Unavailable(RentifyError):
    kind = "unavailable"


class InvalidArgument(RentifyError):
    kind = "invalid_argument"


class StorageError(RentifyError):
    """
    Persistence failure not already categorized (connectivity, lock timeouts, driver errors).

    `retry_after` (seconds) is set when the failure is contention and the caller should simply retry.
    """

    status_code = 500
    kind = "storage_error"

    def __init__(self, detail: str, retry_after: Optional[int] = None) -> None:
        super().__init__(detail)
        self.retry_after = retry_after
        if retry_after is not None:
            self.status_code = 503
