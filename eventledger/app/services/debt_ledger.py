"""
services/debt_ledger.py — Pairwise debts and per-person balances.

This file is the SINGLE SOURCE OF TRUTH for how debts are derived from
expense shares and settlement payments. Views that show "who owes whom"
(debts, balances, person summary, overpayment warning) all go through
compute_debts(); none re-implement the netting.

Layer rules:
  - No Flask imports. No database access.
  - Consumes plain records (anything exposing the attributes of ShareRow /
    PaymentRow — ORM rows work too) and returns frozen dataclasses.
  - Every accumulator is local to one call; there is no module-level state.

Identifiers are opaque. The ledger does not check that a debtor or creditor
belongs to the event; unknown ids flow through to the output unchanged.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Hashable, Iterable, NamedTuple

# Amounts at or below this are treated as zero (rounding noise).
EPSILON = Decimal("0.0001")

_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")


# ── Records ────────────────────────────────────────────────────────────────

class ShareRow(NamedTuple):
    """One participant's share of one expense, joined with the expense payer."""
    expense_id: int
    person_id: Hashable
    share_amount: Decimal
    payer_id: Hashable


class PaymentRow(NamedTuple):
    """A direct settlement from one person to another."""
    from_person_id: Hashable
    to_person_id: Hashable
    amount: Decimal


@dataclass(frozen=True)
class DebtEntry:
    debtor_id: Hashable
    creditor_id: Hashable
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "debtor_id": self.debtor_id,
            "creditor_id": self.creditor_id,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class PersonBalance:
    person_id: Hashable
    owes_total: Decimal
    is_owed_total: Decimal

    @property
    def net(self) -> Decimal:
        """Positive: the person is owed money overall. Negative: they owe."""
        return self.is_owed_total - self.owes_total

    def to_dict(self) -> dict:
        return {
            "person_id": self.person_id,
            "owes_total": self.owes_total,
            "is_owed_total": self.is_owed_total,
            "net": self.net,
        }


# ── Helpers ────────────────────────────────────────────────────────────────

def _round2(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_EVEN)


def _add_delta(accumulator: dict, key: tuple, delta: Decimal) -> None:
    """Adds delta to accumulator[key], skipping self-pairs and noise."""
    debtor_id, creditor_id = key
    if debtor_id == creditor_id or abs(delta) <= EPSILON:
        return
    accumulator[key] = accumulator.get(key, _ZERO) + delta


def _canonicalize(raw: dict) -> dict:
    """
    Turns signed amounts into positive ones by flipping the direction of
    negative entries, merging entries that land on the same key.

    {(A, B): -5} → {(B, A): 5}
    """
    canonical: dict = {}
    for (debtor_id, creditor_id), amount in raw.items():
        if debtor_id == creditor_id or abs(amount) <= EPSILON:
            continue
        if amount < 0:
            debtor_id, creditor_id = creditor_id, debtor_id
            amount = -amount
        _add_delta(canonical, (debtor_id, creditor_id), amount)
    return canonical


def _net_pairs(canonical: dict) -> dict:
    """
    Collapses A→B and B→A into a single residual entry.

    For each entry, the opposite key already in the result decides:
      opposite larger  → opposite shrinks by amount, entry dropped
      entry larger     → opposite removed, entry kept with the difference
      equal (±EPSILON) → both disappear
    """
    netted: dict = {}
    for (debtor_id, creditor_id), amount in canonical.items():
        if debtor_id == creditor_id or abs(amount) <= EPSILON:
            continue

        opposite_key = (creditor_id, debtor_id)
        if opposite_key in netted:
            opposite = netted[opposite_key]
            if opposite > amount + EPSILON:
                netted[opposite_key] = opposite - amount
                continue

            if amount > opposite + EPSILON:
                del netted[opposite_key]
                _add_delta(netted, (debtor_id, creditor_id), amount - opposite)
                continue

            del netted[opposite_key]
            continue

        _add_delta(netted, (debtor_id, creditor_id), amount)
    return netted


# ── Public API ─────────────────────────────────────────────────────────────

def compute_debts(
        shares: Iterable,
        payments: Iterable = (),
        include_payments: bool = True,
) -> list[DebtEntry]:
    """
    Derives canonical pairwise debts from expense shares and payments.

    Steps:
      1. Every share whose person is not the payer adds share_amount to
         (person_id → payer_id).
      2. If include_payments, every payment adds -amount to
         (from_person_id → to_person_id): paying someone reduces what you
         owe them, and can push the pair past zero.
      3. Negative entries flip direction (_canonicalize).
      4. Opposite directions are netted pairwise (_net_pairs).
      5. Amounts <= EPSILON are dropped; the rest are rounded to cents and
         sorted by (debtor_id, creditor_id).

    Example:
      $30.00 paid by A, shared equally by A, B, C
        → [B→A 10.00, C→A 10.00]
      plus a $10.00 payment B→A
        → [C→A 10.00]

    Guarantees: at most one entry per unordered pair, every amount > 0,
    no self-debts. The result depends only on the input, so repeated calls
    on the same snapshot return the same list.
    """
    raw: dict = {}

    for share in shares:
        if share.person_id == share.payer_id:
            continue
        _add_delta(raw, (share.person_id, share.payer_id), Decimal(share.share_amount))

    if include_payments:
        for payment in payments:
            _add_delta(
                raw,
                (payment.from_person_id, payment.to_person_id),
                -Decimal(payment.amount),
            )

    netted = _net_pairs(_canonicalize(raw))

    debts = [
        DebtEntry(debtor_id, creditor_id, _round2(amount))
        for (debtor_id, creditor_id), amount in netted.items()
        if amount > EPSILON
    ]
    debts.sort(key=lambda d: (d.debtor_id, d.creditor_id))
    return debts


def compute_balances(
        participant_ids: Iterable,
        debts: Iterable[DebtEntry],
) -> list[PersonBalance]:
    """
    Totals each person's debts in both directions.

    Every id in participant_ids appears in the result, with zero totals if
    they have no debts. Ids that appear only in debts are included as well.

    Sorted by net descending (largest creditor first), ties by person_id.
    The nets always sum to zero: every debt is one person's owes_total and
    another's is_owed_total.
    """
    owes: dict = defaultdict(lambda: _ZERO)
    owed: dict = defaultdict(lambda: _ZERO)

    person_ids = list(dict.fromkeys(participant_ids))
    known = set(person_ids)
    for person_id in person_ids:
        owes[person_id] = _ZERO
        owed[person_id] = _ZERO

    for debt in debts:
        owes[debt.debtor_id] += debt.amount
        owed[debt.creditor_id] += debt.amount
        for person_id in (debt.debtor_id, debt.creditor_id):
            if person_id not in known:
                known.add(person_id)
                person_ids.append(person_id)

    balances = [
        PersonBalance(person_id, _round2(owes[person_id]), _round2(owed[person_id]))
        for person_id in person_ids
    ]
    balances.sort(key=lambda b: (-b.net, b.person_id))
    return balances
