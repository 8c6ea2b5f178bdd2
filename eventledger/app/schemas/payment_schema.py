"""
schemas/payment_schema.py — Marshmallow schema for payment endpoints.

Validation responsibility:
  - This file: field types, decimal precision, positive amount, note length.
  - services/payment_service.py:
      - SELF_PAYMENT (422)              — sender == receiver
      - SENDER_NOT_IN_EVENT (422)       — requires DB lookup
      - RECEIVER_NOT_IN_EVENT (422)     — requires DB lookup
      - OVERPAYMENT warning (201)       — requires the current ledger

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema

from eventledger.app.errors import ErrorCode

# Largest value a NUMERIC(12, 2) column holds.
_MAX_AMOUNT = Decimal("9999999999.99")


# Same rule as expense_schema.py; kept local so each schema file stands alone.
def _validate_monetary_amount(value: Decimal) -> None:
    """Strictly positive, within NUMERIC(12, 2), at most 2 decimal places (never rounded)."""
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    if value > _MAX_AMOUNT:
        raise ValidationError(f"Amount must be at most {_MAX_AMOUNT}.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


class CreatePaymentSchema(Schema):
    """
    POST /events/:id/payments

    Overpayment is allowed: the service records the payment and returns an
    OVERPAYMENT warning. Self-payment is a service check (SELF_PAYMENT, 422)
    so that it reports alongside the other person-level checks.
    """

    from_person_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="from_person_id must be a positive integer."),
    )

    to_person_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="to_person_id must be a positive integer."),
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )

    date = fields.Date(load_default=date.today)

    note = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=300, error="Note must be at most 300 characters."),
    )


class PaymentListQuerySchema(Schema):
    """
    GET /events/:id/payments?date_from=&date_to=&person_id=

    person_id matches payments on either side: sent or received.
    """

    class Meta:
        unknown = EXCLUDE

    date_from = fields.Date(load_default=None)
    date_to = fields.Date(load_default=None)

    person_id = fields.Int(
        load_default=None,
        validate=validate.Range(min=1, error="person_id must be a positive integer."),
    )

    @validates_schema
    def validate_range(self, data: dict, **kwargs) -> None:
        date_from = data.get("date_from")
        date_to = data.get("date_to")
        if date_from is not None and date_to is not None and date_to < date_from:
            raise ValidationError({"date_to": [ErrorCode.INVALID_DATE_RANGE]})
