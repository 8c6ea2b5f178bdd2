"""
models/event.py — Event table definition.

An event is one accounting scope: its people, expenses and payments are
never mixed with another event's. No business logic here.

Key design points:
  - `currency` is a 3-letter display code stored upper-case. Amounts are
    never converted between currencies.
  - end_date is optional but, when present, may not precede start_date.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventledger.app.extensions import db


class Event(db.Model):
    __tablename__ = "events"

    __table_args__ = (
        # Also enforced by CreateEventSchema; the schema is the primary gate.
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_events_name_nonempty",
        ),
        CheckConstraint(
            "LENGTH(currency) = 3",
            name="ck_events_currency_length",
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_events_date_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    end_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="EUR",
        server_default="EUR",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    people: Mapped[list["Person"]] = relationship(  # noqa: F821
        "Person",
        order_by="Person.name",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Event id={self.id} name={self.name!r} currency={self.currency}>"
