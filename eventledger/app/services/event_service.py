"""
services/event_service.py — Event and person business logic.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from eventledger.app.errors import AppError, ErrorCode
from eventledger.app.models.event import Event
from eventledger.app.models.expense import Expense
from eventledger.app.models.payment import Payment
from eventledger.app.models.person import Person

logger = logging.getLogger(__name__)


# ── Shared lookups ─────────────────────────────────────────────────────────
# Imported by the other services so "not found" reads the same everywhere.

def get_event_or_404(event_id: int, session: Session) -> Event:
    """Returns the Event or raises EVENT_NOT_FOUND (404)."""
    event = session.get(Event, event_id)
    if event is None:
        raise AppError(
            ErrorCode.EVENT_NOT_FOUND,
            f"Event {event_id} does not exist.",
            404,
        )
    return event


def get_person_or_404(event_id: int, person_id: int, session: Session) -> Person:
    """
    Returns the Person if they belong to event_id, else PERSON_NOT_FOUND (404).
    A person from another event is reported exactly like a missing one.
    """
    person = session.get(Person, person_id)
    if person is None or person.event_id != event_id:
        raise AppError(
            ErrorCode.PERSON_NOT_FOUND,
            f"Person {person_id} does not exist in event {event_id}.",
            404,
        )
    return person


def get_person_ids(event_id: int, session: Session) -> list[int]:
    """Returns the ids of everyone in an event, in id order."""
    stmt = select(Person.id).where(Person.event_id == event_id).order_by(Person.id)
    return list(session.execute(stmt).scalars().all())


def get_person_names(event_id: int, session: Session) -> dict[int, str]:
    """Returns {person_id: name} for an event."""
    stmt = select(Person.id, Person.name).where(Person.event_id == event_id)
    return {row.id: row.name for row in session.execute(stmt)}


# ── Serialization ──────────────────────────────────────────────────────────

def _build_event_dict(event: Event) -> dict:
    return {
        "id": event.id,
        "name": event.name,
        "start_date": event.start_date.isoformat(),
        "end_date": event.end_date.isoformat() if event.end_date else None,
        "currency": event.currency,
    }


def _build_person_dict(person: Person) -> dict:
    return {
        "id": person.id,
        "event_id": person.event_id,
        "name": person.name,
        "contact": person.contact,
    }


# ── Public service functions ───────────────────────────────────────────────

def create_event(data: dict, default_currency: str, session: Session) -> dict:
    """
    Creates an event.

    Args:
        data:             Validated dict from CreateEventSchema.
        default_currency: Used when the client sends no currency
                          (app.config["DEFAULT_CURRENCY"], passed by the route).
    """
    currency = data.get("currency") or default_currency
    event = Event(
        name=data["name"].strip(),
        start_date=data["start_date"],
        end_date=data.get("end_date"),
        currency=currency.upper(),
    )
    session.add(event)
    session.flush()

    logger.info("Created event %s (%s)", event.id, event.currency)
    return _build_event_dict(event)


def list_events(session: Session) -> list[dict]:
    """All events, latest start date first."""
    stmt = select(Event).order_by(Event.start_date.desc(), Event.id.desc())
    return [_build_event_dict(e) for e in session.execute(stmt).scalars().all()]


def get_event(event_id: int, session: Session) -> dict:
    """
    Event detail: the event, its people, and headline counts and totals.

    expense_total and payment_total are plain sums of the stored amounts;
    they say nothing about who owes whom.
    """
    event = get_event_or_404(event_id, session)

    expense_count, expense_total = session.execute(
        select(func.count(Expense.id), func.coalesce(func.sum(Expense.amount), 0))
        .where(Expense.event_id == event_id)
    ).one()

    payment_count, payment_total = session.execute(
        select(func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0))
        .where(Payment.event_id == event_id)
    ).one()

    result = _build_event_dict(event)
    result["people"] = [_build_person_dict(p) for p in event.people]
    result["people_count"] = len(result["people"])
    result["expense_count"] = expense_count
    result["expense_total"] = str(Decimal(expense_total).quantize(Decimal("0.01")))
    result["payment_count"] = payment_count
    result["payment_total"] = str(Decimal(payment_total).quantize(Decimal("0.01")))
    return result


def add_person(event_id: int, data: dict, session: Session) -> dict:
    """Adds a person to an event. Names need not be unique."""
    get_event_or_404(event_id, session)

    contact = (data.get("contact") or "").strip()
    person = Person(
        event_id=event_id,
        name=data["name"].strip(),
        contact=contact or None,
    )
    session.add(person)
    session.flush()

    logger.info("Added person %s to event %s", person.id, event_id)
    return _build_person_dict(person)


def list_people(event_id: int, session: Session) -> list[dict]:
    """People in an event, ordered by name."""
    get_event_or_404(event_id, session)
    stmt = (
        select(Person)
        .where(Person.event_id == event_id)
        .order_by(Person.name, Person.id)
    )
    return [_build_person_dict(p) for p in session.execute(stmt).scalars().all()]
