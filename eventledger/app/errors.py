"""
errors.py — AppError base class and error code registry.

Every error returned by the EventLedger API uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - New error codes require: a constant here + a test that raises it.
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class ShareSplitError(AppError):
    """
    Raised by the share splitter when an expense cannot be apportioned.

    Every case is caller-correctable: the client fixes the amounts, ratios
    or participant selection and submits again. Always HTTP 422.
    """

    def __init__(self, code: str, message: str, field: str | None = "participants") -> None:
        super().__init__(code, message, 422, field=field)


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_SPLIT_MODE         = "INVALID_SPLIT_MODE"
    INVALID_CURRENCY           = "INVALID_CURRENCY"
    INVALID_DATE_RANGE         = "INVALID_DATE_RANGE"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    EVENT_NOT_FOUND            = "EVENT_NOT_FOUND"
    PERSON_NOT_FOUND           = "PERSON_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"
    ROUTE_NOT_FOUND            = "ROUTE_NOT_FOUND"

    # ── Method Errors (405) ────────────────────────────────────────────────
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"

    # ── Share splitting (422) ──────────────────────────────────────────────
    # Raised as ShareSplitError by services/share_splitter.py.
    EMPTY_PARTICIPANTS         = "EMPTY_PARTICIPANTS"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    AMOUNT_TOO_SMALL_FOR_SPLIT = "AMOUNT_TOO_SMALL_FOR_SPLIT"
    CUSTOM_TOTAL_MISMATCH      = "CUSTOM_TOTAL_MISMATCH"
    INVALID_RATIO              = "INVALID_RATIO"
    ZERO_OR_NEGATIVE_AMOUNT    = "ZERO_OR_NEGATIVE_AMOUNT"

    # ── Event scope violations (422) ───────────────────────────────────────
    PAYER_NOT_IN_EVENT         = "PAYER_NOT_IN_EVENT"
    PARTICIPANT_NOT_IN_EVENT   = "PARTICIPANT_NOT_IN_EVENT"
    SENDER_NOT_IN_EVENT        = "SENDER_NOT_IN_EVENT"
    RECEIVER_NOT_IN_EVENT      = "RECEIVER_NOT_IN_EVENT"
    SELF_PAYMENT               = "SELF_PAYMENT"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They never block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # The payment exceeds what the sender currently owes the receiver.
    # Still recorded: paying ahead simply flips the debt direction.
    OVERPAYMENT = "OVERPAYMENT"
