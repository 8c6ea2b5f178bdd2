"""
services/expense_service.py — Expense business logic.

Rules enforced here:
  EVENT_NOT_FOUND (404)            — the event must exist
  PAYER_NOT_IN_EVENT (422)         — paid_by_person_id must belong to the event
  PARTICIPANT_NOT_IN_EVENT (422)   — every participant must belong to the event
  ShareSplitError (422)            — raised by share_splitter, passed through

Share computation:
  Shares are produced by share_splitter.compute_shares() and written once.
  This service never edits share amounts afterwards; the splitter guarantees
  sum(shares) == expense.amount before anything is written.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives plain ints and dicts; returns ORM objects or raises AppError.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from eventledger.app.errors import AppError, ErrorCode
from eventledger.app.models.expense import Expense, SplitMode
from eventledger.app.models.expense_share import ExpenseShare
from eventledger.app.services import share_splitter
from eventledger.app.services.event_service import get_event_or_404, get_person_ids
from eventledger.app.services.share_splitter import round_money

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_expense_or_404(event_id: int, expense_id: int, session: Session) -> Expense:
    """Returns the Expense if it belongs to event_id, else EXPENSE_NOT_FOUND (404)."""
    expense = session.get(Expense, expense_id)
    if expense is None or expense.event_id != event_id:
        raise AppError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Expense {expense_id} does not exist in event {event_id}.",
            404,
        )
    return expense


def _validate_payer_in_event(
        paid_by_person_id: int,
        event_id: int,
        person_ids: list[int],
) -> None:
    """Raises PAYER_NOT_IN_EVENT (422) if the payer is not part of the event."""
    if paid_by_person_id not in person_ids:
        raise AppError(
            ErrorCode.PAYER_NOT_IN_EVENT,
            f"Person {paid_by_person_id} is not part of event {event_id}.",
            422,
            field="paid_by_person_id",
        )


def _validate_participants_in_event(
        participants: list[dict],
        event_id: int,
        person_ids: list[int],
) -> None:
    """Raises PARTICIPANT_NOT_IN_EVENT (422) for the first outsider."""
    person_set = set(person_ids)
    for p in participants:
        if p["person_id"] not in person_set:
            raise AppError(
                ErrorCode.PARTICIPANT_NOT_IN_EVENT,
                f"Person {p['person_id']} is not part of event {event_id}.",
                422,
                field="participants",
            )


def _create_share_rows(
        expense: Expense,
        shares: list[dict],
        session: Session,
) -> None:
    """Creates ExpenseShare rows from a list of {person_id, amount} dicts."""
    for s in shares:
        session.add(ExpenseShare(
            expense_id=expense.id,
            person_id=s["person_id"],
            share_amount=s["amount"],
        ))
    session.flush()


# ── Public service functions ───────────────────────────────────────────────

def create_expense(
        event_id: int,
        data: dict,
        session: Session,
) -> Expense:
    """
    Records a new expense and its shares.

    Args:
        event_id: The event this expense belongs to.
        data:     Validated dict from CreateExpenseSchema.

    Order of checks: event exists → payer in event → participants in event
    → share splitting. Nothing is written unless all of them pass.

    Returns:
        The newly created Expense ORM object (with shares loaded).
    """
    get_event_or_404(event_id, session)

    paid_by_person_id: int = data["paid_by_person_id"]
    participants: list[dict] = data["participants"]
    split_mode: SplitMode = data.get("split_mode", SplitMode.EQUAL)

    person_ids = get_person_ids(event_id, session)
    _validate_payer_in_event(paid_by_person_id, event_id, person_ids)
    _validate_participants_in_event(participants, event_id, person_ids)

    shares = share_splitter.compute_shares(
        data["amount"],
        paid_by_person_id,
        participants,
        split_mode,
    )

    # compute_shares has already rejected amounts that cannot carry cents.
    amount = round_money(data["amount"])

    category = (data.get("category") or "").strip()
    expense = Expense(
        event_id=event_id,
        paid_by_person_id=paid_by_person_id,
        title=data["title"].strip(),
        date=data["date"],
        amount=amount,
        category=category or None,
        split_mode=split_mode,
    )
    session.add(expense)
    session.flush()  # populate expense.id before creating shares

    _create_share_rows(expense, shares, session)

    logger.info(
        "Created expense %s in event %s: %s split %s ways (%s)",
        expense.id, event_id, amount, len(shares), split_mode.value,
    )

    # Refresh so the route's serializer sees the shares relationship.
    session.refresh(expense)
    return expense


def list_expenses(
        event_id: int,
        session: Session,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
        payer_id: int | None = None,
        search: str | None = None,
) -> list[Expense]:
    """
    Expenses of an event, newest date first, then newest id first.

    Filters (all optional, combined with AND):
      date_from, date_to  inclusive date bounds
      payer_id            only expenses this person paid
      search              case-insensitive substring of title or category
    """
    get_event_or_404(event_id, session)

    stmt = select(Expense).where(Expense.event_id == event_id)
    if date_from is not None:
        stmt = stmt.where(Expense.date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Expense.date <= date_to)
    if payer_id is not None:
        stmt = stmt.where(Expense.paid_by_person_id == payer_id)

    term = (search or "").strip()
    if term:
        stmt = stmt.where(
            Expense.title.icontains(term, autoescape=True)
            | Expense.category.icontains(term, autoescape=True)
        )

    stmt = stmt.order_by(Expense.date.desc(), Expense.id.desc())
    return list(session.execute(stmt).scalars().all())


def get_expense(event_id: int, expense_id: int, session: Session) -> Expense:
    """Returns a single expense including its shares."""
    get_event_or_404(event_id, session)
    return _get_expense_or_404(event_id, expense_id, session)
