"""
routes/expenses.py — Expense route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - _serialize_expense() is a pure data-shape helper — not business logic.

Endpoints (base url_prefix=/api/v1/events):
  POST   /events/:id/expenses        → 201  create expense and its shares
  GET    /events/:id/expenses        → 200  list expenses (?date_from=&date_to=&payer_id=&search=)
  GET    /events/:id/expenses/:eid   → 200  get expense + shares
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from eventledger.app.extensions import db
from eventledger.app.models.expense import Expense
from eventledger.app.schemas.expense_schema import CreateExpenseSchema, ExpenseListQuerySchema
from eventledger.app.services import expense_service
from eventledger.app.services.balance_service import UNKNOWN_NAME

expenses_bp = Blueprint("expenses", __name__)


# ── Serialization helper ───────────────────────────────────────────────────
# Pure data-shaping — no DB access beyond loaded relationships. Amounts as strings.

def _serialize_expense(expense: Expense) -> dict:
    """Converts an Expense ORM object to a plain dict for JSON output."""
    return {
        "id": expense.id,
        "event_id": expense.event_id,
        "paid_by_person_id": expense.paid_by_person_id,
        "paid_by_name": expense.payer.name if expense.payer else UNKNOWN_NAME,
        "title": expense.title,
        "date": expense.date.isoformat(),
        "amount": str(expense.amount),                  # Decimal → string
        "category": expense.category,
        "split_mode": expense.split_mode.value,
        "created_at": expense.created_at.isoformat() if expense.created_at else None,
        "shares": [
            {
                "id": s.id,
                "person_id": s.person_id,
                "name": s.person.name,
                "share_amount": str(s.share_amount),    # Decimal → string
            }
            for s in expense.shares
        ],
    }


# ── Route handlers ─────────────────────────────────────────────────────────

@expenses_bp.route("/<int:event_id>/expenses", methods=["POST"])
def create_expense(event_id: int):
    """
    POST /events/:id/expenses — Record a new expense.

    The server computes every share from split_mode; clients never send
    share amounts directly except as custom_amount inputs.
    """
    data = CreateExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.create_expense(
        event_id=event_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 201


@expenses_bp.route("/<int:event_id>/expenses", methods=["GET"])
def list_expenses(event_id: int):
    """GET /events/:id/expenses — Newest first, optionally filtered."""
    params = ExpenseListQuerySchema().load(request.args)
    expenses = expense_service.list_expenses(
        event_id=event_id,
        session=db.session,
        date_from=params["date_from"],
        date_to=params["date_to"],
        payer_id=params["payer_id"],
        search=params["search"],
    )
    return jsonify({
        "data": [_serialize_expense(e) for e in expenses],
        "warnings": [],
    }), 200


@expenses_bp.route("/<int:event_id>/expenses/<int:expense_id>", methods=["GET"])
def get_expense(event_id: int, expense_id: int):
    """GET /events/:id/expenses/:eid — A single expense with its shares."""
    expense = expense_service.get_expense(
        event_id=event_id,
        expense_id=expense_id,
        session=db.session,
    )
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 200
