"""
routes/balances.py — Ledger view route handlers.

Layer rules:
  - Parse query params, call ONE service, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/events):
  GET /events/:id/debts      ?include_payments=  → 200  pairwise debts
  GET /events/:id/balances   ?include_payments=  → 200  per-person totals + net_control
  GET /events/:id/daily      ?date_from=&date_to= → 200  activity grouped by day
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from eventledger.app.extensions import db
from eventledger.app.schemas.ledger_schema import DailyQuerySchema, LedgerQuerySchema
from eventledger.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/<int:event_id>/debts", methods=["GET"])
def get_debts(event_id: int):
    """
    GET /events/:id/debts

    ?include_payments=false shows what expenses alone created, ignoring
    every settlement recorded so far.
    """
    params = LedgerQuerySchema().load(request.args)
    result = balance_service.get_debts_response(
        event_id=event_id,
        session=db.session,
        include_payments=params["include_payments"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/<int:event_id>/balances", methods=["GET"])
def get_balances(event_id: int):
    """
    GET /events/:id/balances

    The service checks net_control == 0.00 and raises INTERNAL_ERROR (500)
    if it is not.
    """
    params = LedgerQuerySchema().load(request.args)
    result = balance_service.get_balances_response(
        event_id=event_id,
        session=db.session,
        include_payments=params["include_payments"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/<int:event_id>/daily", methods=["GET"])
def get_daily(event_id: int):
    """GET /events/:id/daily — Newest day first; both bounds inclusive."""
    params = DailyQuerySchema().load(request.args)
    result = balance_service.get_daily_summary(
        event_id=event_id,
        session=db.session,
        date_from=params["date_from"],
        date_to=params["date_to"],
    )
    return jsonify({"data": result, "warnings": []}), 200
