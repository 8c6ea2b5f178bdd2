"""Initial schema — all tables, enums, constraints, and indexes.

Revision: 001_initial_schema

Creates the complete EventLedger database schema.

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. PostgreSQL enum type (must exist before the table that references it)
  2. Tables in FK dependency order (events → people → expenses
     → expense_shares, payments)
  3. Indexes

ON DELETE policies:
  people.event_id              → RESTRICT  (cannot delete an event with people)
  expenses.*                   → RESTRICT  (cannot delete event/person with expenses)
  expense_shares.expense_id    → CASCADE   (shares owned by expense)
  expense_shares.person_id     → RESTRICT  (cannot delete person with shares)
  payments.*                   → RESTRICT  (cannot delete event/person with payments)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    """
    Apply the full initial schema.

    The enum type is created with op.execute() so the exact SQL is explicit
    and reviewable; the column below references it with create_type=False.
    """

    # ── Step 1: PostgreSQL enum type ──────────────────────────────────────

    op.execute("""
        CREATE TYPE split_mode_enum AS ENUM ('equal', 'custom_amount', 'custom_ratio')
    """)

    # ── Step 2: events ─────────────────────────────────────────────────────

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column(
            "currency",
            sa.String(3),
            nullable=False,
            server_default="EUR",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_events"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_events_name_nonempty",
        ),
        sa.CheckConstraint(
            "LENGTH(currency) = 3",
            name="ck_events_currency_length",
        ),
        sa.CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_events_date_range",
        ),
    )

    # ── Step 3: people ─────────────────────────────────────────────────────
    # Names are not unique: two "Alex"es in one event are two people.

    op.create_table(
        "people",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="RESTRICT", name="fk_people_event"),
            nullable=False,
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("contact", sa.String(200), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_people"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_people_name_nonempty",
        ),
    )

    # ── Step 4: expenses ───────────────────────────────────────────────────

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="RESTRICT", name="fk_expenses_event"),
            nullable=False,
        ),
        sa.Column(
            "paid_by_person_id",
            sa.Integer(),
            sa.ForeignKey("people.id", ondelete="RESTRICT", name="fk_expenses_payer"),
            nullable=False,
        ),
        sa.Column("title", sa.String(250), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(80), nullable=True),
        sa.Column(
            "split_mode",
            postgresql.ENUM(
                "equal", "custom_amount", "custom_ratio",
                name="split_mode_enum",
                create_type=False,
            ),
            nullable=False,
            server_default="equal",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        sa.CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_expenses_title_nonempty",
        ),
    )

    # ── Step 5: expense_shares ─────────────────────────────────────────────
    # FK: expense_id ON DELETE CASCADE — shares are owned by their expense.

    op.create_table(
        "expense_shares",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "expense_id",
            sa.Integer(),
            sa.ForeignKey("expenses.id", ondelete="CASCADE", name="fk_expense_shares_expense"),
            nullable=False,
        ),
        sa.Column(
            "person_id",
            sa.Integer(),
            sa.ForeignKey("people.id", ondelete="RESTRICT", name="fk_expense_shares_person"),
            nullable=False,
        ),
        sa.Column("share_amount", sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_expense_shares"),
        sa.UniqueConstraint(
            "expense_id", "person_id",
            name="uq_expense_shares_expense_person",
        ),
        sa.CheckConstraint(
            "share_amount > 0",
            name="ck_expense_shares_amount_positive",
        ),
    )

    # ── Step 6: payments ───────────────────────────────────────────────────

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="RESTRICT", name="fk_payments_event"),
            nullable=False,
        ),
        sa.Column(
            "from_person_id",
            sa.Integer(),
            sa.ForeignKey("people.id", ondelete="RESTRICT", name="fk_payments_sender"),
            nullable=False,
        ),
        sa.Column(
            "to_person_id",
            sa.Integer(),
            sa.ForeignKey("people.id", ondelete="RESTRICT", name="fk_payments_receiver"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("note", sa.String(300), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.CheckConstraint(
            "from_person_id <> to_person_id",
            name="ck_payments_no_self_payment",
        ),
    )

    # ── Step 7: indexes ────────────────────────────────────────────────────

    op.create_index("ix_people_event_id", "people", ["event_id"])
    op.create_index("ix_expenses_event_id", "expenses", ["event_id"])
    op.create_index("idx_expenses_event_date", "expenses", ["event_id", "date"])
    op.create_index("ix_expense_shares_expense_id", "expense_shares", ["expense_id"])
    op.create_index("ix_expense_shares_person_id", "expense_shares", ["person_id"])
    op.create_index("ix_payments_event_id", "payments", ["event_id"])


def downgrade() -> None:
    """
    Drop all objects created in upgrade(), in reverse dependency order.

    Provided for local development reset. In production, prefer a
    corrective migration over a rollback.
    """

    op.drop_index("ix_payments_event_id",          table_name="payments")
    op.drop_index("ix_expense_shares_person_id",   table_name="expense_shares")
    op.drop_index("ix_expense_shares_expense_id",  table_name="expense_shares")
    op.drop_index("idx_expenses_event_date",       table_name="expenses")
    op.drop_index("ix_expenses_event_id",          table_name="expenses")
    op.drop_index("ix_people_event_id",            table_name="people")

    op.drop_table("payments")
    op.drop_table("expense_shares")
    op.drop_table("expenses")
    op.drop_table("people")
    op.drop_table("events")

    op.execute("DROP TYPE IF EXISTS split_mode_enum")
