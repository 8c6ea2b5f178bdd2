"""
schemas/event_schema.py — Marshmallow schemas for event and person endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    currency format, start/end date ordering.
  - services/event_service.py:
      - EVENT_NOT_FOUND (requires DB lookup)
      - DEFAULT_CURRENCY fallback (requires app config, passed in by the route)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from datetime import date

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from eventledger.app.errors import ErrorCode


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateEventSchema(Schema):
    """
    POST /events

    currency is optional; when omitted the service applies DEFAULT_CURRENCY.
    Lower-case codes are accepted and stored upper-case.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=200,
                error="Event name must be between 1 and 200 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    start_date = fields.Date(load_default=date.today)

    end_date = fields.Date(load_default=None, allow_none=True)

    currency = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Regexp(r"^[A-Za-z]{3}$", error=ErrorCode.INVALID_CURRENCY),
    )

    @validates_schema
    def validate_date_range(self, data: dict, **kwargs) -> None:
        """INVALID_DATE_RANGE (400): an event cannot end before it starts."""
        end_date = data.get("end_date")
        if end_date is not None and end_date < data["start_date"]:
            raise ValidationError({"end_date": [ErrorCode.INVALID_DATE_RANGE]})


class CreatePersonSchema(Schema):
    """POST /events/:id/people"""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=120,
                error="Name must be between 1 and 120 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    contact = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=200, error="Contact must be at most 200 characters."),
    )
