"""
services/balance_service.py — Ledger views over an event.

Loads a snapshot of shares and payments from the database, hands it to
debt_ledger, and shapes the result for the API:

  get_debts_response()     GET /events/:id/debts
  get_balances_response()  GET /events/:id/balances
  get_person_summary()     GET /events/:id/people/:pid
  get_daily_summary()      GET /events/:id/daily

The netting itself lives in debt_ledger.py. Nothing here re-derives who owes
whom from raw amounts; it only adds names, totals and grouping.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives event_id (int) and session (SQLAlchemy Session) as arguments.
  - Returns plain Python dicts and lists. Amounts are strings ("10.00").
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from eventledger.app.errors import AppError, ErrorCode
from eventledger.app.models.expense import Expense
from eventledger.app.models.expense_share import ExpenseShare
from eventledger.app.models.payment import Payment
from eventledger.app.services import debt_ledger
from eventledger.app.services.debt_ledger import EPSILON, PaymentRow, ShareRow
from eventledger.app.services.event_service import (
    get_event_or_404,
    get_person_ids,
    get_person_names,
    get_person_or_404,
)

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"

_ZERO = Decimal("0.00")


def _money(value: Decimal) -> str:
    return str(Decimal(value).quantize(Decimal("0.01")))


# ── Data access helpers ────────────────────────────────────────────────────
# The only sanctioned way to feed the ledger from the database.

def get_share_rows(event_id: int, session: Session) -> list[ShareRow]:
    """Every share in the event, joined with the payer of its expense."""
    stmt = (
        select(
            ExpenseShare.expense_id,
            ExpenseShare.person_id,
            ExpenseShare.share_amount,
            Expense.paid_by_person_id,
        )
        .join(Expense, ExpenseShare.expense_id == Expense.id)
        .where(Expense.event_id == event_id)
        .order_by(ExpenseShare.id)
    )
    return [ShareRow(*row) for row in session.execute(stmt).all()]


def get_payment_rows(event_id: int, session: Session) -> list[PaymentRow]:
    """Every payment in the event."""
    stmt = (
        select(Payment.from_person_id, Payment.to_person_id, Payment.amount)
        .where(Payment.event_id == event_id)
        .order_by(Payment.id)
    )
    return [PaymentRow(*row) for row in session.execute(stmt).all()]


def _compute_event_debts(
        event_id: int,
        session: Session,
        include_payments: bool = True,
) -> list[debt_ledger.DebtEntry]:
    debts = debt_ledger.compute_debts(
        get_share_rows(event_id, session),
        get_payment_rows(event_id, session),
        include_payments=include_payments,
    )
    logger.debug(
        "Computed %s debt entries for event %s (include_payments=%s)",
        len(debts), event_id, include_payments,
    )
    return debts


# ── Ledger views ───────────────────────────────────────────────────────────

def get_debts_response(
        event_id: int,
        session: Session,
        include_payments: bool = True,
) -> dict:
    """
    Builds the payload for GET /events/:id/debts.

    Each entry names both sides. An id with no matching person (which the
    write path never produces) is shown as "Unknown" rather than failing.
    """
    get_event_or_404(event_id, session)

    debts = _compute_event_debts(event_id, session, include_payments)
    names = get_person_names(event_id, session)

    return {
        "event_id": event_id,
        "include_payments": include_payments,
        "debts": [
            {
                "debtor_id": d.debtor_id,
                "debtor_name": names.get(d.debtor_id, UNKNOWN_NAME),
                "creditor_id": d.creditor_id,
                "creditor_name": names.get(d.creditor_id, UNKNOWN_NAME),
                "amount": _money(d.amount),
            }
            for d in debts
        ],
    }


def get_balances_response(
        event_id: int,
        session: Session,
        include_payments: bool = True,
) -> dict:
    """
    Builds the payload for GET /events/:id/balances.

    net_control is the sum of every net balance. Each debt is counted once
    as owed and once as owing, so anything other than "0.00" means the
    stored data is corrupt; that surfaces as INTERNAL_ERROR (500).
    """
    get_event_or_404(event_id, session)

    debts = _compute_event_debts(event_id, session, include_payments)
    balances = debt_ledger.compute_balances(get_person_ids(event_id, session), debts)
    names = get_person_names(event_id, session)

    net_control = sum((b.net for b in balances), _ZERO)
    if net_control != _ZERO:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Balance integrity check failed: net sum was {net_control} "
            f"(expected 0.00). Event {event_id} has inconsistent data.",
            500,
        )

    return {
        "event_id": event_id,
        "include_payments": include_payments,
        "balances": [
            {
                "person_id": b.person_id,
                "name": names.get(b.person_id, UNKNOWN_NAME),
                "owes_total": _money(b.owes_total),
                "is_owed_total": _money(b.is_owed_total),
                "net": _money(b.net),
            }
            for b in balances
        ],
        "net_control": _money(net_control),
    }


def get_person_summary(event_id: int, person_id: int, session: Session) -> dict:
    """
    Everything one person did in an event, and where they stand.

    owes / is_owed come from the same compute_debts() call that feeds
    GET /debts, filtered to this person.
    """
    get_event_or_404(event_id, session)
    person = get_person_or_404(event_id, person_id, session)
    names = get_person_names(event_id, session)

    paid_expenses = session.execute(
        select(Expense)
        .where(Expense.event_id == event_id, Expense.paid_by_person_id == person_id)
        .order_by(Expense.date.desc(), Expense.id.desc())
    ).scalars().all()

    shares = session.execute(
        select(ExpenseShare, Expense)
        .join(Expense, ExpenseShare.expense_id == Expense.id)
        .where(Expense.event_id == event_id, ExpenseShare.person_id == person_id)
        .order_by(Expense.date.desc(), Expense.id.desc())
    ).all()

    payments = session.execute(
        select(Payment)
        .where(
            Payment.event_id == event_id,
            (Payment.from_person_id == person_id) | (Payment.to_person_id == person_id),
        )
        .order_by(Payment.date.desc(), Payment.id.desc())
    ).scalars().all()

    debts = _compute_event_debts(event_id, session)
    owes = [d for d in debts if d.debtor_id == person_id]
    is_owed = [d for d in debts if d.creditor_id == person_id]

    owes_total = sum((d.amount for d in owes), _ZERO)
    is_owed_total = sum((d.amount for d in is_owed), _ZERO)

    sent = [p for p in payments if p.from_person_id == person_id]
    received = [p for p in payments if p.to_person_id == person_id]

    return {
        "person": {
            "id": person.id,
            "event_id": person.event_id,
            "name": person.name,
            "contact": person.contact,
        },
        "paid_expenses": [
            {
                "id": e.id,
                "title": e.title,
                "date": e.date.isoformat(),
                "amount": _money(e.amount),
            }
            for e in paid_expenses
        ],
        "shares": [
            {
                "expense_id": e.id,
                "title": e.title,
                "date": e.date.isoformat(),
                "paid_by_person_id": e.paid_by_person_id,
                "share_amount": _money(s.share_amount),
            }
            for s, e in shares
        ],
        "owes": [
            {
                "person_id": d.creditor_id,
                "name": names.get(d.creditor_id, UNKNOWN_NAME),
                "amount": _money(d.amount),
            }
            for d in owes
        ],
        "is_owed": [
            {
                "person_id": d.debtor_id,
                "name": names.get(d.debtor_id, UNKNOWN_NAME),
                "amount": _money(d.amount),
            }
            for d in is_owed
        ],
        "payments_sent": [
            {
                "id": p.id,
                "to_person_id": p.to_person_id,
                "name": names.get(p.to_person_id, UNKNOWN_NAME),
                "date": p.date.isoformat(),
                "amount": _money(p.amount),
            }
            for p in sent
        ],
        "payments_received": [
            {
                "id": p.id,
                "from_person_id": p.from_person_id,
                "name": names.get(p.from_person_id, UNKNOWN_NAME),
                "date": p.date.isoformat(),
                "amount": _money(p.amount),
            }
            for p in received
        ],
        "totals": {
            "paid": _money(sum((e.amount for e in paid_expenses), _ZERO)),
            "share": _money(sum((s.share_amount for s, _ in shares), _ZERO)),
            "sent": _money(sum((p.amount for p in sent), _ZERO)),
            "received": _money(sum((p.amount for p in received), _ZERO)),
            "owes": _money(owes_total),
            "is_owed": _money(is_owed_total),
            "net": _money(is_owed_total - owes_total),
        },
    }


def get_daily_summary(
        event_id: int,
        session: Session,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
) -> dict:
    """
    Groups an event's activity by calendar day, newest day first.

    Per-person delta for a day:
      payer of an expense      + each share of it (their own share cancels)
      participant of a share   - share_amount
      sender of a payment      + amount
      receiver of a payment    - amount

    Each day also lists its expenses (by id) and its payments (by sender
    name, then receiver name).

    Deltas within EPSILON of zero are dropped. The rest are sorted by
    absolute size, largest first, then by name. Both date bounds are
    inclusive.
    """
    get_event_or_404(event_id, session)
    names = get_person_names(event_id, session)

    expense_stmt = select(Expense).where(Expense.event_id == event_id)
    payment_stmt = select(Payment).where(Payment.event_id == event_id)
    if date_from is not None:
        expense_stmt = expense_stmt.where(Expense.date >= date_from)
        payment_stmt = payment_stmt.where(Payment.date >= date_from)
    if date_to is not None:
        expense_stmt = expense_stmt.where(Expense.date <= date_to)
        payment_stmt = payment_stmt.where(Payment.date <= date_to)

    expenses = session.execute(expense_stmt.order_by(Expense.id)).scalars().all()
    payments = session.execute(payment_stmt.order_by(Payment.id)).scalars().all()

    days: dict = defaultdict(lambda: {
        "expense_total": _ZERO,
        "payment_total": _ZERO,
        "expense_count": 0,
        "payment_count": 0,
        "expenses": [],
        "payments": [],
        "deltas": defaultdict(lambda: _ZERO),
    })

    for expense in expenses:
        day = days[expense.date]
        day["expense_total"] += expense.amount
        day["expense_count"] += 1
        day["expenses"].append(expense)
        for share in expense.shares:
            day["deltas"][expense.paid_by_person_id] += share.share_amount
            day["deltas"][share.person_id] -= share.share_amount

    for payment in payments:
        day = days[payment.date]
        day["payment_total"] += payment.amount
        day["payment_count"] += 1
        day["payments"].append(payment)
        day["deltas"][payment.from_person_id] += payment.amount
        day["deltas"][payment.to_person_id] -= payment.amount

    result = []
    for date in sorted(days, reverse=True):
        day = days[date]
        deltas = [
            (person_id, delta)
            for person_id, delta in day["deltas"].items()
            if abs(delta) > EPSILON
        ]
        deltas.sort(key=lambda item: (-abs(item[1]), names.get(item[0], UNKNOWN_NAME)))
        day_payments = sorted(
            day["payments"],
            key=lambda p: (
                names.get(p.from_person_id, UNKNOWN_NAME),
                names.get(p.to_person_id, UNKNOWN_NAME),
            ),
        )
        result.append({
            "date": date.isoformat(),
            "expense_total": _money(day["expense_total"]),
            "payment_total": _money(day["payment_total"]),
            "expense_count": day["expense_count"],
            "payment_count": day["payment_count"],
            "expenses": [
                {
                    "id": e.id,
                    "title": e.title,
                    "amount": _money(e.amount),
                    "paid_by_person_id": e.paid_by_person_id,
                    "payer_name": names.get(e.paid_by_person_id, UNKNOWN_NAME),
                }
                for e in day["expenses"]
            ],
            "payments": [
                {
                    "id": p.id,
                    "from_person_id": p.from_person_id,
                    "from_name": names.get(p.from_person_id, UNKNOWN_NAME),
                    "to_person_id": p.to_person_id,
                    "to_name": names.get(p.to_person_id, UNKNOWN_NAME),
                    "amount": _money(p.amount),
                    "note": p.note,
                }
                for p in day_payments
            ],
            "deltas": [
                {
                    "person_id": person_id,
                    "name": names.get(person_id, UNKNOWN_NAME),
                    "delta": _money(delta),
                }
                for person_id, delta in deltas
            ],
        })

    return {
        "event_id": event_id,
        "date_from": date_from.isoformat() if date_from else None,
        "date_to": date_to.isoformat() if date_to else None,
        "days": result,
    }
