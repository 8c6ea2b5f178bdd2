"""Add share sum integrity trigger.

Revision: 002_add_share_sum_trigger

The share splitter guarantees sum(expense_shares.share_amount) ==
expenses.amount before anything is written. This trigger backs that up in
the database so a write that bypasses the service layer still fails.

Why a trigger and not a CHECK constraint:
  CHECK constraints are evaluated per row and cannot aggregate sibling rows
  against a parent column. An AFTER row-level trigger on expense_shares can.

Trigger design:
  Function : fn_check_share_sum()
    - Takes expense_id from NEW (INSERT/UPDATE) or OLD (DELETE).
    - Skips the check if the expense itself is gone (cascade delete).
    - Raises SQLSTATE 23514 (check_violation) if the sums differ.

  Trigger  : trg_expense_shares_sum_check
    - CONSTRAINT TRIGGER, AFTER INSERT OR UPDATE OR DELETE, FOR EACH ROW
    - DEFERRABLE INITIALLY DEFERRED: expense_service writes the expense,
      then one share at a time; only the state at COMMIT must balance.

Append-only:
  This file must NEVER be edited after it has been applied to any database.
"""

from __future__ import annotations

from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "002_add_share_sum_trigger"
down_revision: str | None = "001_initial_schema"
branch_labels: tuple | None = None
depends_on: tuple | None = None


# ── SQL definitions ────────────────────────────────────────────────────────

_CREATE_FUNCTION = """
CREATE OR REPLACE FUNCTION fn_check_share_sum()
RETURNS TRIGGER
LANGUAGE plpgsql
AS $$
DECLARE
    v_expense_id  INTEGER;
    v_share_sum   NUMERIC(12, 2);
    v_expense_amt NUMERIC(12, 2);
BEGIN
    IF TG_OP = 'DELETE' THEN
        v_expense_id := OLD.expense_id;
    ELSE
        v_expense_id := NEW.expense_id;
    END IF;

    SELECT amount
      INTO v_expense_amt
      FROM expenses
     WHERE id = v_expense_id;

    -- The expense was deleted and its shares cascaded with it.
    IF NOT FOUND THEN
        RETURN NULL;
    END IF;

    SELECT COALESCE(SUM(share_amount), 0)
      INTO v_share_sum
      FROM expense_shares
     WHERE expense_id = v_expense_id;

    IF v_share_sum <> v_expense_amt THEN
        RAISE EXCEPTION
            'share sum (%) does not equal expense amount (%) for expense id=%',
            v_share_sum, v_expense_amt, v_expense_id
            USING ERRCODE = '23514';  -- check_violation
    END IF;

    RETURN NULL;
END;
$$;
"""

_CREATE_TRIGGER = """
CREATE CONSTRAINT TRIGGER trg_expense_shares_sum_check
    AFTER INSERT OR UPDATE OR DELETE
    ON expense_shares
    DEFERRABLE INITIALLY DEFERRED
    FOR EACH ROW
    EXECUTE FUNCTION fn_check_share_sum();
"""

_DROP_TRIGGER = "DROP TRIGGER IF EXISTS trg_expense_shares_sum_check ON expense_shares;"
_DROP_FUNCTION = "DROP FUNCTION IF EXISTS fn_check_share_sum();"


def upgrade() -> None:
    """Function first, then the trigger that references it."""
    op.execute(_CREATE_FUNCTION)
    op.execute(_CREATE_TRIGGER)


def downgrade() -> None:
    """Trigger first (it references the function), then the function."""
    op.execute(_DROP_TRIGGER)
    op.execute(_DROP_FUNCTION)
