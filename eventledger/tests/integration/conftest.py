"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
    TestingConfig points at in-memory SQLite unless TEST_DATABASE_URL says
    otherwise (a PostgreSQL test database works the same way).
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - make_event(client, ...)         → event dict
  - add_person(client, ...)         → person dict
  - make_people(client, ...)        → list of person dicts
  - make_expense(client, ...)       → HTTP response
  - make_payment(client, ...)       → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from eventledger.app import create_app
from eventledger.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test in FK-safe order:
    shares and payments before expenses, expenses before people,
    people before events.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        _db.session.execute(text("DELETE FROM expense_shares"))
        _db.session.execute(text("DELETE FROM payments"))
        _db.session.execute(text("DELETE FROM expenses"))
        _db.session.execute(text("DELETE FROM people"))
        _db.session.execute(text("DELETE FROM events"))
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_event(
    client,
    name: str = "Ski Trip",
    start_date: str = "2024-03-01",
    end_date: str | None = None,
    currency: str | None = None,
) -> dict:
    """Creates an event and returns the event data dict."""
    payload: dict = {"name": name, "start_date": start_date}
    if end_date is not None:
        payload["end_date"] = end_date
    if currency is not None:
        payload["currency"] = currency

    resp = client.post("/api/v1/events", json=payload)
    assert resp.status_code == 201, f"make_event failed: {resp.get_json()}"
    return resp.get_json()["data"]


def add_person(client, event_id: int, name: str, contact: str | None = None) -> dict:
    """Adds a person to an event and returns the person data dict."""
    payload: dict = {"name": name}
    if contact is not None:
        payload["contact"] = contact

    resp = client.post(f"/api/v1/events/{event_id}/people", json=payload)
    assert resp.status_code == 201, f"add_person failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_people(client, event_id: int, *names: str) -> list[dict]:
    """Adds several people at once, in order."""
    return [add_person(client, event_id, name) for name in names]


def make_expense(
    client,
    event_id: int,
    paid_by_person_id: int,
    amount: str,
    participants: list[dict],
    split_mode: str = "equal",
    title: str = "Test Expense",
    date: str = "2024-03-02",
    category: str | None = None,
):
    """
    Creates an expense and returns the HTTP response.

    participants is a list of {"person_id", "custom_amount"?, "ratio"?} dicts.
    """
    payload: dict = {
        "title": title,
        "date": date,
        "amount": amount,
        "paid_by_person_id": paid_by_person_id,
        "split_mode": split_mode,
        "participants": participants,
    }
    if category is not None:
        payload["category"] = category

    return client.post(f"/api/v1/events/{event_id}/expenses", json=payload)


def make_payment(
    client,
    event_id: int,
    from_person_id: int,
    to_person_id: int,
    amount: str,
    date: str = "2024-03-03",
    note: str | None = None,
):
    """Records a payment and returns the HTTP response."""
    payload: dict = {
        "from_person_id": from_person_id,
        "to_person_id": to_person_id,
        "amount": amount,
        "date": date,
    }
    if note is not None:
        payload["note"] = note

    return client.post(f"/api/v1/events/{event_id}/payments", json=payload)


def everyone(*people: dict) -> list[dict]:
    """Participants list for an equal split among the given people."""
    return [{"person_id": p["id"]} for p in people]
