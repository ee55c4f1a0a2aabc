"""
Error taxonomy for slot and swap operations.

Every failure a caller can act on is one of these. Routes do not catch them;
the handler registered in create_app() turns them into JSON responses.
"""


class SlotSwapError(Exception):
    code = "SLOTSWAP_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        result = {"error": self.message, "code": self.code}
        if self.details:
            result["details"] = self.details
        return result


class NotFound(SlotSwapError):
    """Entity is absent, or is not owned by the caller (the two are not told apart)."""

    code = "NOT_FOUND"
    status_code = 404


class Forbidden(SlotSwapError):
    """Entity is visible to the caller but the caller may not act on it."""

    code = "FORBIDDEN"
    status_code = 403


class InvalidState(SlotSwapError):
    """Entity exists but its status does not allow the requested transition."""

    code = "INVALID_STATE"
    status_code = 409


class InvalidOperation(SlotSwapError):
    code = "INVALID_OPERATION"
    status_code = 400


class AlreadyResolved(SlotSwapError):
    code = "ALREADY_RESOLVED"
    status_code = 409


class Conflict(SlotSwapError):
    """Concurrent writers kept invalidating our reads; safe to retry."""

    code = "CONFLICT"
    status_code = 409


class MissingField(SlotSwapError):
    code = "MISSING_FIELD"
    status_code = 400

    def __init__(self, *fields: str):
        super().__init__(
            f"{', '.join(fields)} {'is' if len(fields) == 1 else 'are'} required",
            details={"fields": list(fields)},
        )


class StaleWrite(Exception):
    """
    Raised inside a unit of work when a compare-and-set update touched fewer
    rows than expected. Never reaches a caller: the unit is rolled back and
    re-run, and exhausted retries surface as Conflict.
    """
