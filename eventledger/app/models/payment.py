"""
models/payment.py — Payment (direct settlement) table definition.

A payment moves money from one person to another inside an event. It is
not an expense: nothing is apportioned, it only reduces what the sender
owes the receiver. No business logic here.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - CHECK(from_person_id <> to_person_id) is the last line of defence;
    payment_service rejects self-payments with SELF_PAYMENT (422) first.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventledger.app.extensions import db


class Payment(db.Model):
    __tablename__ = "payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "from_person_id <> to_person_id",
            name="ck_payments_no_self_payment",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    from_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
    )

    to_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
    )

    note: Mapped[str | None] = mapped_column(
        String(300),
        nullable=True,
    )

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    sender: Mapped["Person"] = relationship(  # noqa: F821
        "Person",
        foreign_keys=[from_person_id],
    )

    receiver: Mapped["Person"] = relationship(  # noqa: F821
        "Person",
        foreign_keys=[to_person_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Payment id={self.id} "
            f"event_id={self.event_id} "
            f"from={self.from_person_id} "
            f"to={self.to_person_id} "
            f"amount={self.amount}>"
        )
