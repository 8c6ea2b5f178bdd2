"""
schemas/expense_schema.py — Marshmallow schemas for expense endpoints.

Validation responsibility:
  - This file:
      - Field types, lengths, enum values, decimal precision of the total
      - Non-empty-after-trim enforcement for title
  - services/share_splitter.py (422, ShareSplitError):
      - EMPTY_PARTICIPANTS, DUPLICATE_PARTICIPANT
      - ZERO_OR_NEGATIVE_AMOUNT, CUSTOM_TOTAL_MISMATCH (custom_amount mode)
      - INVALID_RATIO (custom_ratio mode)
      - AMOUNT_TOO_SMALL_FOR_SPLIT
  - services/expense_service.py:
      - PAYER_NOT_IN_EVENT, PARTICIPANT_NOT_IN_EVENT (require DB lookups)

Per-participant custom_amount and ratio are only type-checked here. Custom
amounts are rounded to cents by the splitter, and their sign is the
splitter's call so the client gets one consistent error vocabulary.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema

from eventledger.app.errors import ErrorCode
from eventledger.app.models.expense import SplitMode

# Largest value a NUMERIC(12, 2) column holds.
_MAX_AMOUNT = Decimal("9999999999.99")


def _validate_monetary_amount(value: Decimal) -> None:
    """
    Validates a monetary Decimal value:
      - Must be strictly greater than zero.
      - Must fit NUMERIC(12, 2): at most 9999999999.99.
      - Must have at most 2 decimal places.

    Input with more than 2 decimal places is REJECTED, never rounded.
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    if value > _MAX_AMOUNT:
        raise ValidationError(f"Amount must be at most {_MAX_AMOUNT}.")

    # Decimal.as_tuple().exponent gives the scale as a negative integer:
    #   Decimal("10.123") → -3 → REJECT
    #   Decimal("10.12")  → -2 → accept
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or whitespace only."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _validate_participant_bound(value: Decimal) -> None:
    """Bounds the magnitude only; the sign is the splitter's call."""
    if abs(value) > _MAX_AMOUNT:
        raise ValidationError(f"Value must be between -{_MAX_AMOUNT} and {_MAX_AMOUNT}.")


# ── Sub-schema: one entry in the `participants` array ─────────────────────

class ParticipantInputSchema(Schema):
    """
    One selected participant.

    custom_amount is read in custom_amount mode, ratio in custom_ratio mode;
    both are ignored in equal mode.
    """

    person_id = fields.Int(
        required=True,
        strict=True,   # reject floats like 1.0
        validate=validate.Range(min=1, error="person_id must be a positive integer."),
    )

    custom_amount = fields.Decimal(
        load_default=None,
        allow_none=True,
        validate=_validate_participant_bound,
    )

    ratio = fields.Decimal(
        load_default=None,
        allow_none=True,
        validate=_validate_participant_bound,
    )


# ── Create expense ─────────────────────────────────────────────────────────

class CreateExpenseSchema(Schema):
    """
    POST /events/:id/expenses

    Shares are never sent by the client. The server derives them from
    amount, paid_by_person_id, participants and split_mode.
    """

    title = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=250,
                error="Title must be between 1 and 250 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    date = fields.Date(load_default=date.today)

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )

    paid_by_person_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="paid_by_person_id must be a positive integer."),
    )

    # INVALID_SPLIT_MODE (400) returned if value is not in the enum.
    split_mode = fields.Enum(
        SplitMode,
        load_default=SplitMode.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_MODE},
    )

    category = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=80, error="Category must be at most 80 characters."),
    )

    # An empty list is accepted here; the splitter answers EMPTY_PARTICIPANTS.
    participants = fields.List(
        fields.Nested(ParticipantInputSchema),
        required=True,
    )


# ── List filters ───────────────────────────────────────────────────────────

class ExpenseListQuerySchema(Schema):
    """
    GET /events/:id/expenses?date_from=&date_to=&payer_id=&search=

    search matches title or category, case-insensitive. A blank search is
    treated as no search.
    """

    class Meta:
        unknown = EXCLUDE

    date_from = fields.Date(load_default=None)
    date_to = fields.Date(load_default=None)

    payer_id = fields.Int(
        load_default=None,
        validate=validate.Range(min=1, error="payer_id must be a positive integer."),
    )

    search = fields.Str(
        load_default=None,
        validate=validate.Length(max=250, error="search must be at most 250 characters."),
    )

    @validates_schema
    def validate_range(self, data: dict, **kwargs) -> None:
        date_from = data.get("date_from")
        date_to = data.get("date_to")
        if date_from is not None and date_to is not None and date_to < date_from:
            raise ValidationError({"date_to": [ErrorCode.INVALID_DATE_RANGE]})
