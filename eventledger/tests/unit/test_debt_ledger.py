"""
tests/unit/test_debt_ledger.py — Unit tests for debt_ledger.compute_debts.

What this file proves:
  - shares create debts from participant to payer; the payer's own share does not
  - payments reduce a pair's debt and can flip its direction
  - opposite directions net to a single entry, or disappear when equal
  - output: at most one entry per pair, amounts > 0, no self-debts,
    rounded to cents, sorted by (debtor_id, creditor_id)
  - the function is deterministic and keeps no state between calls
  - unknown ids pass through untouched

No database. No Flask application context. Decimal only.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from eventledger.app.services.debt_ledger import (
    EPSILON,
    DebtEntry,
    PaymentRow,
    ShareRow,
    _canonicalize,
    _net_pairs,
    compute_debts,
)


def _share(expense_id: int, person_id, amount: str, payer_id) -> ShareRow:
    return ShareRow(expense_id, person_id, Decimal(amount), payer_id)


def _payment(from_id, to_id, amount: str) -> PaymentRow:
    return PaymentRow(from_id, to_id, Decimal(amount))


def _equal_30_paid_by_a() -> list[ShareRow]:
    """30.00 paid by A, shared equally by A, B, C."""
    return [
        _share(1, "A", "10.00", "A"),
        _share(1, "B", "10.00", "A"),
        _share(1, "C", "10.00", "A"),
    ]


def _as_tuples(debts: list[DebtEntry]) -> list[tuple]:
    return [(d.debtor_id, d.creditor_id, d.amount) for d in debts]


# ═══════════════════════════════════════════════════════════════════════════
# Shares
# ═══════════════════════════════════════════════════════════════════════════

class TestSharesOnly:

    def test_participants_owe_payer(self):
        assert _as_tuples(compute_debts(_equal_30_paid_by_a())) == [
            ("B", "A", Decimal("10.00")),
            ("C", "A", Decimal("10.00")),
        ]

    def test_no_data_no_debts(self):
        assert compute_debts([]) == []

    def test_payer_only_share_creates_nothing(self):
        assert compute_debts([_share(1, "A", "30.00", "A")]) == []

    def test_same_pair_accumulates_across_expenses(self):
        shares = [
            _share(1, "B", "4.00", "A"),
            _share(2, "B", "6.50", "A"),
        ]
        assert _as_tuples(compute_debts(shares)) == [("B", "A", Decimal("10.50"))]

    def test_opposite_expenses_net(self):
        shares = [
            _share(1, "B", "15.00", "A"),
            _share(2, "A", "5.00", "B"),
        ]
        assert _as_tuples(compute_debts(shares)) == [("B", "A", Decimal("10.00"))]

    def test_equal_opposite_expenses_cancel(self):
        shares = [
            _share(1, "A", "15.00", "B"),
            _share(2, "B", "15.00", "A"),
        ]
        assert compute_debts(shares) == []

    def test_larger_reverse_direction_wins(self):
        shares = [
            _share(1, "A", "5.00", "B"),
            _share(2, "B", "12.00", "A"),
        ]
        assert _as_tuples(compute_debts(shares)) == [("B", "A", Decimal("7.00"))]

    def test_accepts_orm_like_objects(self):
        rows = [SimpleNamespace(expense_id=1, person_id=2, share_amount=Decimal("3.00"), payer_id=1)]
        assert _as_tuples(compute_debts(rows)) == [(2, 1, Decimal("3.00"))]


# ═══════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════

class TestPayments:

    def test_payment_settles_pair(self):
        debts = compute_debts(_equal_30_paid_by_a(), [_payment("B", "A", "10.00")])
        assert _as_tuples(debts) == [("C", "A", Decimal("10.00"))]

    def test_partial_payment_reduces(self):
        debts = compute_debts(_equal_30_paid_by_a(), [_payment("B", "A", "4.00")])
        assert _as_tuples(debts)[0] == ("B", "A", Decimal("6.00"))

    def test_overpayment_flips_direction(self):
        debts = compute_debts(_equal_30_paid_by_a(), [_payment("B", "A", "15.00")])
        assert _as_tuples(debts) == [
            ("A", "B", Decimal("5.00")),
            ("C", "A", Decimal("10.00")),
        ]

    def test_payment_without_expenses_creates_reverse_debt(self):
        debts = compute_debts([], [_payment("B", "A", "20.00")])
        assert _as_tuples(debts) == [("A", "B", Decimal("20.00"))]

    def test_payment_in_debt_direction_adds(self):
        """Paying in the direction of a debt you are owed increases it."""
        debts = compute_debts(_equal_30_paid_by_a(), [_payment("A", "B", "5.00")])
        assert _as_tuples(debts)[0] == ("B", "A", Decimal("15.00"))

    def test_include_payments_false_ignores_payments(self):
        debts = compute_debts(
            _equal_30_paid_by_a(),
            [_payment("B", "A", "10.00")],
            include_payments=False,
        )
        assert _as_tuples(debts) == [
            ("B", "A", Decimal("10.00")),
            ("C", "A", Decimal("10.00")),
        ]

    def test_self_payment_is_ignored(self):
        debts = compute_debts(_equal_30_paid_by_a(), [_payment("B", "B", "10.00")])
        assert len(debts) == 2


# ═══════════════════════════════════════════════════════════════════════════
# Output guarantees
# ═══════════════════════════════════════════════════════════════════════════

class TestOutputGuarantees:

    def test_sorted_by_debtor_then_creditor(self):
        shares = [
            _share(1, 3, "1.00", 2),
            _share(2, 1, "1.00", 3),
            _share(3, 1, "1.00", 2),
        ]
        keys = [(d.debtor_id, d.creditor_id) for d in compute_debts(shares)]
        assert keys == sorted(keys)

    def test_at_most_one_entry_per_pair(self):
        shares = [
            _share(1, "B", "7.00", "A"),
            _share(2, "A", "3.00", "B"),
            _share(3, "C", "2.00", "B"),
            _share(4, "B", "2.50", "C"),
        ]
        payments = [_payment("A", "B", "1.00"), _payment("C", "B", "0.25")]
        debts = compute_debts(shares, payments)
        pairs = [frozenset((d.debtor_id, d.creditor_id)) for d in debts]
        assert len(pairs) == len(set(pairs))
        assert all(d.amount > 0 for d in debts)
        assert all(d.debtor_id != d.creditor_id for d in debts)

    def test_amounts_rounded_half_even(self):
        shares = [_share(1, "B", "0.125", "A"), _share(2, "C", "0.135", "A")]
        assert _as_tuples(compute_debts(shares)) == [
            ("B", "A", Decimal("0.12")),
            ("C", "A", Decimal("0.14")),
        ]

    def test_noise_below_epsilon_is_dropped(self):
        shares = [_share(1, "B", "10.00", "A"), _share(2, "A", "9.99995", "B")]
        assert compute_debts(shares) == []

    def test_idempotent(self):
        shares = _equal_30_paid_by_a()
        payments = [_payment("B", "A", "3.00")]
        assert compute_debts(shares, payments) == compute_debts(shares, payments)

    def test_calls_do_not_share_state(self):
        compute_debts([_share(1, "X", "99.00", "Y")])
        assert _as_tuples(compute_debts(_equal_30_paid_by_a()))[0][0] == "B"

    def test_unknown_ids_pass_through(self):
        debts = compute_debts([_share(1, 404, "5.00", 1)])
        assert _as_tuples(debts) == [(404, 1, Decimal("5.00"))]

    def test_to_dict(self):
        entry = DebtEntry("B", "A", Decimal("1.00"))
        assert entry.to_dict() == {"debtor_id": "B", "creditor_id": "A", "amount": Decimal("1.00")}


# ═══════════════════════════════════════════════════════════════════════════
# Internal phases
# ═══════════════════════════════════════════════════════════════════════════

class TestPhases:

    def test_canonicalize_flips_negative(self):
        assert _canonicalize({("A", "B"): Decimal("-5")}) == {("B", "A"): Decimal("5")}

    def test_canonicalize_merges_flipped_into_existing(self):
        raw = {("B", "A"): Decimal("2"), ("A", "B"): Decimal("-3")}
        assert _canonicalize(raw) == {("B", "A"): Decimal("5")}

    def test_canonicalize_drops_self_pairs_and_noise(self):
        raw = {("A", "A"): Decimal("5"), ("A", "B"): EPSILON}
        assert _canonicalize(raw) == {}

    @pytest.mark.parametrize("forward,backward,expected", [
        ("15", "15", {}),
        ("20", "15", {("A", "B"): Decimal("5")}),
        ("15", "20", {("B", "A"): Decimal("5")}),
        ("15", "15.00005", {}),
    ])
    def test_net_pairs_three_way_split(self, forward, backward, expected):
        canonical = {("A", "B"): Decimal(forward), ("B", "A"): Decimal(backward)}
        assert _net_pairs(canonical) == expected
