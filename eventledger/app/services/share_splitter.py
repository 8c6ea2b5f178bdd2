"""
services/share_splitter.py — Apportions one expense among its participants.

This module is the only place where an expense amount is turned into
per-person shares. Every share row in the database was produced here.

Input:
  total_amount  Decimal, the expense amount.
  payer_id      The person who fronted the money.
  participants  Ordered list of {"person_id", "custom_amount"?, "ratio"?}
                dicts, as loaded by ParticipantInputSchema.
  mode          SplitMode (or its string value).

Output:
  [{"person_id": ..., "amount": Decimal}, ...] in participant input order.

Guarantees on success:
  - sum(amounts) == round(total_amount, 2) exactly
  - every amount > 0
  - no person_id appears twice

Tie-break policies (output-compatible, do not change):
  - EQUAL:        leftover cents all go to the payer if they participate,
                  otherwise to the first participant.
  - CUSTOM_RATIO: the last participant absorbs the rounding residue.

Layer rules:
  - No Flask imports and no database access. Pure Decimal arithmetic.
  - Failures raise ShareSplitError (422); nothing is silently corrected.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from eventledger.app.errors import ErrorCode, ShareSplitError
from eventledger.app.models.expense import SplitMode

CENT = Decimal("0.01")

# Maximum allowed gap between the sum of custom amounts and the total.
CUSTOM_TOTAL_TOLERANCE = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Rounds to 2 decimal places, halves away from zero."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _round_input(value: Decimal, code: str, message: str, field: str = "participants") -> Decimal:
    """
    round_money() for client-supplied values. A value too large to carry
    cents within Decimal precision (e.g. 1E+30) fails as a split error.
    """
    try:
        return round_money(value)
    except InvalidOperation as exc:
        raise ShareSplitError(code, message, field=field) from exc


# ── Mode implementations ───────────────────────────────────────────────────

def _split_equal(
        total: Decimal,
        payer_id,
        participants: list[dict],
) -> list[dict]:
    """
    Integer-cent equal split.

    $10.00 among [A(payer), B, C] → 1000 cents, base 333, remainder 1
    → A 3.34, B 3.33, C 3.33.
    """
    n = len(participants)
    total_cents = int(total * 100)
    base_cents = total_cents // n
    remainder_cents = total_cents - base_cents * n

    participant_ids = [p["person_id"] for p in participants]
    remainder_target = payer_id if payer_id in participant_ids else participant_ids[0]

    shares = []
    for person_id in participant_ids:
        cents = base_cents
        if person_id == remainder_target:
            cents += remainder_cents

        amount = (Decimal(cents) / 100).quantize(CENT)
        if amount <= 0:
            raise ShareSplitError(
                ErrorCode.AMOUNT_TOO_SMALL_FOR_SPLIT,
                f"Amount {total} is too small for an equal split among "
                f"{n} participants.",
            )
        shares.append({"person_id": person_id, "amount": amount})

    return shares


def _split_custom_amount(total: Decimal, participants: list[dict]) -> list[dict]:
    """Uses the amount each participant supplied; the sum must match the total."""
    shares = []
    for p in participants:
        raw = p.get("custom_amount")
        if raw is None:
            amount = Decimal("0.00")
        else:
            amount = _round_input(
                raw,
                ErrorCode.CUSTOM_TOTAL_MISMATCH,
                f"Custom amount {raw} for person {p['person_id']} cannot match total {total}.",
            )
        if amount <= 0:
            raise ShareSplitError(
                ErrorCode.ZERO_OR_NEGATIVE_AMOUNT,
                f"Custom amount for person {p['person_id']} must be greater than zero.",
            )
        shares.append({"person_id": p["person_id"], "amount": amount})

    custom_total = sum((s["amount"] for s in shares), Decimal("0.00"))
    if abs(custom_total - total) > CUSTOM_TOTAL_TOLERANCE:
        raise ShareSplitError(
            ErrorCode.CUSTOM_TOTAL_MISMATCH,
            f"Custom amounts ({custom_total}) must total exactly {total}.",
        )

    # A residue inside the tolerance lands on the last participant so the
    # stored shares still add up to the expense amount.
    residue = total - custom_total
    if residue:
        last = shares[-1]
        last["amount"] += residue
        if last["amount"] <= 0:
            raise ShareSplitError(
                ErrorCode.ZERO_OR_NEGATIVE_AMOUNT,
                f"Custom amount for person {last['person_id']} must be greater than zero.",
            )

    return shares


def _split_custom_ratio(total: Decimal, participants: list[dict]) -> list[dict]:
    """
    Weighted split. Every participant but the last gets
    round(total * ratio / sum(ratios)); the last gets whatever is left.

    $100.00 with ratios [1, 1, 1] → 33.33, 33.33, 33.34.
    """
    ratios = []
    for p in participants:
        ratio = p.get("ratio")
        if ratio is None or Decimal(ratio) <= 0:
            raise ShareSplitError(
                ErrorCode.INVALID_RATIO,
                f"Ratio for person {p['person_id']} must be greater than zero.",
            )
        ratios.append(Decimal(ratio))

    total_ratio = sum(ratios, Decimal("0"))

    shares = []
    running_total = Decimal("0.00")
    last_index = len(participants) - 1
    for index, (p, ratio) in enumerate(zip(participants, ratios)):
        if index == last_index:
            amount = round_money(total - running_total)
        else:
            amount = round_money(total * ratio / total_ratio)
            running_total += amount

        if amount <= 0:
            raise ShareSplitError(
                ErrorCode.AMOUNT_TOO_SMALL_FOR_SPLIT,
                f"Amount {total} is too small for a ratio split among "
                f"{len(participants)} participants.",
            )
        shares.append({"person_id": p["person_id"], "amount": amount})

    return shares


_SPLITTERS = {
    SplitMode.CUSTOM_AMOUNT: _split_custom_amount,
    SplitMode.CUSTOM_RATIO: _split_custom_ratio,
}


# ── Public API ─────────────────────────────────────────────────────────────

def compute_shares(
        total_amount: Decimal,
        payer_id,
        participants: list[dict],
        mode: SplitMode | str = SplitMode.EQUAL,
) -> list[dict]:
    """
    Splits total_amount among participants according to mode.

    Raises:
        ShareSplitError(ZERO_OR_NEGATIVE_AMOUNT)    total rounds to <= 0.
        ShareSplitError(ZERO_OR_NEGATIVE_AMOUNT)    total too large to round to cents.
        ShareSplitError(EMPTY_PARTICIPANTS)         no participants selected.
        ShareSplitError(DUPLICATE_PARTICIPANT)      a person_id appears twice.
        ShareSplitError(AMOUNT_TOO_SMALL_FOR_SPLIT) equal/ratio share <= 0.
        ShareSplitError(ZERO_OR_NEGATIVE_AMOUNT)    custom amount <= 0.
        ShareSplitError(CUSTOM_TOTAL_MISMATCH)      custom sum off by > 0.01.
        ShareSplitError(CUSTOM_TOTAL_MISMATCH)      custom amount too large to round to cents.
        ShareSplitError(INVALID_RATIO)              ratio missing or <= 0.
        ValueError                                  unknown mode.
    """
    mode = SplitMode(mode)
    total = _round_input(
        total_amount,
        ErrorCode.ZERO_OR_NEGATIVE_AMOUNT,
        f"Expense amount {total_amount} is not a valid amount.",
        field="amount",
    )

    if total <= 0:
        raise ShareSplitError(
            ErrorCode.ZERO_OR_NEGATIVE_AMOUNT,
            "Expense amount must be greater than zero.",
            field="amount",
        )

    if not participants:
        raise ShareSplitError(
            ErrorCode.EMPTY_PARTICIPANTS,
            "Select at least one participant.",
        )

    seen = set()
    for p in participants:
        if p["person_id"] in seen:
            raise ShareSplitError(
                ErrorCode.DUPLICATE_PARTICIPANT,
                f"Person {p['person_id']} appears more than once in participants.",
            )
        seen.add(p["person_id"])

    if mode == SplitMode.EQUAL:
        return _split_equal(total, payer_id, participants)
    return _SPLITTERS[mode](total, participants)
