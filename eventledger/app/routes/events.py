"""
routes/events.py — Event and person route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/events):
  POST   /events                    → 201  create event
  GET    /events                    → 200  list events
  GET    /events/:id                → 200  event detail with people and totals
  POST   /events/:id/people         → 201  add a person
  GET    /events/:id/people         → 200  list people
  GET    /events/:id/people/:pid    → 200  person summary
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from eventledger.app.extensions import db
from eventledger.app.schemas.event_schema import CreateEventSchema, CreatePersonSchema
from eventledger.app.services import balance_service, event_service

events_bp = Blueprint("events", __name__)


@events_bp.route("", methods=["POST"])
def create_event():
    """
    POST /events — Create an event.

    currency falls back to DEFAULT_CURRENCY from the app config.
    """
    data = CreateEventSchema().load(request.get_json(force=True) or {})
    result = event_service.create_event(
        data=data,
        default_currency=current_app.config["DEFAULT_CURRENCY"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@events_bp.route("", methods=["GET"])
def list_events():
    """GET /events — All events, latest start date first."""
    result = event_service.list_events(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int):
    """GET /events/:id — Event detail with people, expense and payment totals."""
    result = event_service.get_event(event_id=event_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@events_bp.route("/<int:event_id>/people", methods=["POST"])
def add_person(event_id: int):
    """POST /events/:id/people — Add a person to the event."""
    data = CreatePersonSchema().load(request.get_json(force=True) or {})
    result = event_service.add_person(
        event_id=event_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@events_bp.route("/<int:event_id>/people", methods=["GET"])
def list_people(event_id: int):
    """GET /events/:id/people — People in the event, ordered by name."""
    result = event_service.list_people(event_id=event_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@events_bp.route("/<int:event_id>/people/<int:person_id>", methods=["GET"])
def get_person_summary(event_id: int, person_id: int):
    """
    GET /events/:id/people/:pid — What one person paid, shared, sent and
    received, plus who they owe and who owes them.
    """
    result = balance_service.get_person_summary(
        event_id=event_id,
        person_id=person_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
