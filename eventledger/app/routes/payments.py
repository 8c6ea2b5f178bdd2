"""
routes/payments.py — Payment route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Special: create_payment returns (Payment, warnings[]).
  If warnings is non-empty (OVERPAYMENT), they go into the response envelope:
  {"data": {...}, "warnings": [{"code": "OVERPAYMENT", ...}]}.
  The HTTP status is still 201 — overpayment does NOT block the request.

Endpoints (base url_prefix=/api/v1/events):
  POST   /events/:id/payments  → 201  record a payment
  GET    /events/:id/payments  → 200  list payments (?date_from=&date_to=&person_id=)
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from eventledger.app.extensions import db
from eventledger.app.models.payment import Payment
from eventledger.app.schemas.payment_schema import CreatePaymentSchema, PaymentListQuerySchema
from eventledger.app.services import payment_service
from eventledger.app.services.balance_service import UNKNOWN_NAME

payments_bp = Blueprint("payments", __name__)


# ── Serialization helper ───────────────────────────────────────────────────

def _serialize_payment(p: Payment) -> dict:
    """Converts a Payment ORM object to a plain dict for JSON output."""
    return {
        "id": p.id,
        "event_id": p.event_id,
        "from_person_id": p.from_person_id,
        "from_name": p.sender.name if p.sender else UNKNOWN_NAME,
        "to_person_id": p.to_person_id,
        "to_name": p.receiver.name if p.receiver else UNKNOWN_NAME,
        "amount": str(p.amount),  # Decimal → string
        "date": p.date.isoformat(),
        "note": p.note,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


# ── Route handlers ─────────────────────────────────────────────────────────

@payments_bp.route("/<int:event_id>/payments", methods=["POST"])
def create_payment(event_id: int):
    """
    POST /events/:id/payments — Record a payment between two people.

    Paying more than is owed is recorded and reported as a warning.
    """
    data = CreatePaymentSchema().load(request.get_json(force=True) or {})
    payment, warnings = payment_service.create_payment(
        event_id=event_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    # created_at is server-side; reload it after the commit.
    db.session.refresh(payment)
    return jsonify({"data": _serialize_payment(payment), "warnings": warnings}), 201


@payments_bp.route("/<int:event_id>/payments", methods=["GET"])
def list_payments(event_id: int):
    """GET /events/:id/payments — Newest first, optionally filtered."""
    params = PaymentListQuerySchema().load(request.args)
    payments = payment_service.list_payments(
        event_id=event_id,
        session=db.session,
        date_from=params["date_from"],
        date_to=params["date_to"],
        person_id=params["person_id"],
    )
    return jsonify({
        "data": [_serialize_payment(p) for p in payments],
        "warnings": [],
    }), 200
