"""
models/expense.py — Expense table definition.

No business logic. No imports from services or routes.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - `split_mode` records how the shares were produced. The shares themselves
    are the source of truth for the ledger; the mode is kept for display and
    for re-splitting on the client.
  - SplitMode is a Python enum so schemas and the share splitter import it
    instead of repeating string literals.
"""

from __future__ import annotations

import datetime as dt
import enum
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventledger.app.extensions import db


class SplitMode(str, enum.Enum):
    EQUAL         = "equal"
    CUSTOM_AMOUNT = "custom_amount"
    CUSTOM_RATIO  = "custom_ratio"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'equal'), not names ('EQUAL')."""
    return [member.value for member in enum_cls]


class Expense(db.Model):
    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_expenses_title_nonempty",
        ),
        # Expense lists and the daily view are filtered by event and date.
        Index("idx_expenses_event_date", "event_id", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    paid_by_person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(
        String(250),
        nullable=False,
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    category: Mapped[str | None] = mapped_column(
        String(80),
        nullable=True,
    )

    split_mode: Mapped[SplitMode] = mapped_column(
        Enum(
            SplitMode,
            name="split_mode_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=SplitMode.EQUAL,
        server_default=SplitMode.EQUAL.value,
    )

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    payer: Mapped["Person"] = relationship(  # noqa: F821
        "Person",
        foreign_keys=[paid_by_person_id],
    )

    # ON DELETE CASCADE — shares are owned by their expense.
    shares: Mapped[list["ExpenseShare"]] = relationship(  # noqa: F821
        "ExpenseShare",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ExpenseShare.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id} "
            f"event_id={self.event_id} "
            f"amount={self.amount} "
            f"split_mode={self.split_mode.value}>"
        )
