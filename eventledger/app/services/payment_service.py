"""
services/payment_service.py — Settlement payment business logic.

Rules enforced here:
  SELF_PAYMENT (422)          — from_person_id must not equal to_person_id
  SENDER_NOT_IN_EVENT (422)   — the sender must belong to the event
  RECEIVER_NOT_IN_EVENT (422) — the receiver must belong to the event
  OVERPAYMENT warning         — paying more than is owed is recorded anyway

Notes on overpayment:
  The outstanding debt is read from debt_ledger.compute_debts() over the
  current snapshot, so the warning agrees with GET /debts. The payment is
  still written and the route returns 201; the pair's debt simply flips
  direction.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from eventledger.app.errors import AppError, ErrorCode, WarningCode
from eventledger.app.models.payment import Payment
from eventledger.app.services import debt_ledger
from eventledger.app.services.balance_service import get_payment_rows, get_share_rows
from eventledger.app.services.event_service import get_event_or_404, get_person_ids

logger = logging.getLogger(__name__)


def _outstanding_debt(
        event_id: int,
        debtor_id: int,
        creditor_id: int,
        session: Session,
) -> Decimal:
    """What debtor_id currently owes creditor_id, or 0.00 if nothing."""
    debts = debt_ledger.compute_debts(
        get_share_rows(event_id, session),
        get_payment_rows(event_id, session),
    )
    for debt in debts:
        if debt.debtor_id == debtor_id and debt.creditor_id == creditor_id:
            return debt.amount
    return Decimal("0.00")


def create_payment(
        event_id: int,
        data: dict,
        session: Session,
) -> tuple[Payment, list[dict]]:
    """
    Records a payment from one person to another inside an event.

    Args:
        event_id: The event this payment belongs to.
        data:     Validated dict from CreatePaymentSchema.
                  Keys: from_person_id, to_person_id, amount, date, note?.

    Returns:
        (Payment, warnings). An empty warnings list means no warnings.
        Example warning: {"code": "OVERPAYMENT", "message": "..."}
    """
    get_event_or_404(event_id, session)

    from_person_id: int = data["from_person_id"]
    to_person_id: int = data["to_person_id"]
    amount: Decimal = data["amount"]

    if from_person_id == to_person_id:
        raise AppError(
            ErrorCode.SELF_PAYMENT,
            "A person cannot pay themselves.",
            422,
            field="to_person_id",
        )

    person_ids = set(get_person_ids(event_id, session))
    if from_person_id not in person_ids:
        raise AppError(
            ErrorCode.SENDER_NOT_IN_EVENT,
            f"Person {from_person_id} is not part of event {event_id}.",
            422,
            field="from_person_id",
        )
    if to_person_id not in person_ids:
        raise AppError(
            ErrorCode.RECEIVER_NOT_IN_EVENT,
            f"Person {to_person_id} is not part of event {event_id}.",
            422,
            field="to_person_id",
        )

    warnings: list[dict] = []
    current_debt = _outstanding_debt(event_id, from_person_id, to_person_id, session)
    if amount > current_debt:
        warnings.append({
            "code": WarningCode.OVERPAYMENT,
            "message": (
                f"Payment of {amount} exceeds the outstanding debt of "
                f"{current_debt} from person {from_person_id} to person "
                f"{to_person_id}. Recorded anyway."
            ),
        })

    note = (data.get("note") or "").strip()
    payment = Payment(
        event_id=event_id,
        from_person_id=from_person_id,
        to_person_id=to_person_id,
        amount=amount,
        date=data["date"],
        note=note or None,
    )
    session.add(payment)
    session.flush()

    logger.info(
        "Recorded payment %s in event %s: %s -> %s, %s",
        payment.id, event_id, from_person_id, to_person_id, amount,
    )
    return payment, warnings


def list_payments(
        event_id: int,
        session: Session,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
        person_id: int | None = None,
) -> list[Payment]:
    """
    Payments of an event, newest date first.

    person_id keeps payments the person sent or received.
    """
    get_event_or_404(event_id, session)

    stmt = select(Payment).where(Payment.event_id == event_id)
    if date_from is not None:
        stmt = stmt.where(Payment.date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Payment.date <= date_to)
    if person_id is not None:
        stmt = stmt.where(
            (Payment.from_person_id == person_id) | (Payment.to_person_id == person_id)
        )

    stmt = stmt.order_by(Payment.date.desc(), Payment.id.desc())
    return list(session.execute(stmt).scalars().all())
