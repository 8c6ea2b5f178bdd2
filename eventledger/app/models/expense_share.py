"""
models/expense_share.py — ExpenseShare table definition.

One row per participant of an expense, written once by expense_service from
the output of share_splitter.compute_shares(). No business logic here.

Key design points:
  - share_amount uses Numeric(12, 2) — never Float.
  - expense_id is ON DELETE CASCADE — shares are owned by their expense.
  - UNIQUE(expense_id, person_id): a participant appears once per expense.
  - sum(share_amount) == expense.amount is guaranteed by the share splitter
    and backed in PostgreSQL by the deferred trigger in migration 002.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventledger.app.extensions import db


class ExpenseShare(db.Model):
    __tablename__ = "expense_shares"

    __table_args__ = (
        UniqueConstraint("expense_id", "person_id", name="uq_expense_shares_expense_person"),
        CheckConstraint("share_amount > 0", name="ck_expense_shares_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    expense_id: Mapped[int] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    person_id: Mapped[int] = mapped_column(
        ForeignKey("people.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    share_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    person: Mapped["Person"] = relationship(  # noqa: F821
        "Person",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<ExpenseShare id={self.id} "
            f"expense_id={self.expense_id} "
            f"person_id={self.person_id} "
            f"share_amount={self.share_amount}>"
        )
