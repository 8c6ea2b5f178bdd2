"""
schemas/ledger_schema.py — Query-string schemas for the ledger views.

  GET /events/:id/debts      ?include_payments=true|false
  GET /events/:id/balances   ?include_payments=true|false
  GET /events/:id/daily      ?date_from=YYYY-MM-DD&date_to=YYYY-MM-DD

Unknown query parameters are ignored rather than rejected.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validates_schema

from eventledger.app.errors import ErrorCode


class LedgerQuerySchema(Schema):

    class Meta:
        unknown = EXCLUDE

    # Off: show debts from expenses alone, before any settlement.
    include_payments = fields.Boolean(load_default=True)


class DailyQuerySchema(Schema):

    class Meta:
        unknown = EXCLUDE

    date_from = fields.Date(load_default=None)
    date_to = fields.Date(load_default=None)

    @validates_schema
    def validate_range(self, data: dict, **kwargs) -> None:
        date_from = data.get("date_from")
        date_to = data.get("date_to")
        if date_from is not None and date_to is not None and date_to < date_from:
            raise ValidationError({"date_to": [ErrorCode.INVALID_DATE_RANGE]})
