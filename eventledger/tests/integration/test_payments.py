"""
tests/integration/test_payments.py — Integration tests for payment endpoints.

Endpoints covered:
  POST /events/:id/payments → 201 (with or without OVERPAYMENT warning) / 400 / 404 / 422
  GET  /events/:id/payments → 200

Notes:
  - Overpayment is valid: the payment is recorded, the response is 201 and
    carries an OVERPAYMENT warning. The debt between the pair flips direction.
  - Self-payment is a service check (SELF_PAYMENT, 422) backed by a DB CHECK.
"""

from __future__ import annotations

from decimal import Decimal

from .conftest import everyone, make_event, make_expense, make_payment, make_people


def _setup(client):
    """Alice pays 30.00 for Alice, Bob and Charlie. Bob and Charlie owe Alice 10.00 each."""
    event = make_event(client)
    alice, bob, charlie = make_people(client, event["id"], "Alice", "Bob", "Charlie")
    resp = make_expense(client, event["id"], alice["id"], "30.00", everyone(alice, bob, charlie))
    assert resp.status_code == 201
    return event, alice, bob, charlie


# ═══════════════════════════════════════════════════════════════════════════
# POST /events/:id/payments — happy path
# ═══════════════════════════════════════════════════════════════════════════

class TestCreatePayment:

    def test_create_payment_returns_201(self, client):
        event, alice, bob, _ = _setup(client)

        resp = make_payment(client, event["id"], bob["id"], alice["id"], "10.00", note=" cash ")
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["from_person_id"] == bob["id"]
        assert data["to_person_id"]   == alice["id"]
        assert data["amount"]         == "10.00"   # string, not number
        assert data["date"]           == "2024-03-03"
        assert data["note"]           == "cash"
        assert data["created_at"] is not None

    def test_exact_payment_has_no_warnings(self, client):
        event, alice, bob, _ = _setup(client)
        resp = make_payment(client, event["id"], bob["id"], alice["id"], "10.00")
        assert resp.get_json()["warnings"] == []

    def test_partial_payment_has_no_warnings(self, client):
        event, alice, bob, _ = _setup(client)
        resp = make_payment(client, event["id"], bob["id"], alice["id"], "4.00")
        assert resp.get_json()["warnings"] == []

    def test_second_payment_sees_the_first(self, client):
        """After paying 6.00 of 10.00, another 6.00 exceeds what is left."""
        event, alice, bob, _ = _setup(client)
        make_payment(client, event["id"], bob["id"], alice["id"], "6.00")

        resp = make_payment(client, event["id"], bob["id"], alice["id"], "6.00")
        assert resp.status_code == 201
        assert [w["code"] for w in resp.get_json()["warnings"]] == ["OVERPAYMENT"]


# ═══════════════════════════════════════════════════════════════════════════
# Overpayment warning
# ═══════════════════════════════════════════════════════════════════════════

class TestOverpaymentWarning:

    def test_overpayment_returns_201_with_warning(self, client):
        event, alice, bob, _ = _setup(client)

        resp = make_payment(client, event["id"], bob["id"], alice["id"], "15.00")
        assert resp.status_code == 201, "Overpayment must still return 201"
        codes = [w["code"] for w in resp.get_json()["warnings"]]
        assert codes == ["OVERPAYMENT"]

    def test_overpayment_is_recorded(self, client):
        event, alice, bob, _ = _setup(client)
        make_payment(client, event["id"], bob["id"], alice["id"], "15.00")

        resp = client.get(f"/api/v1/events/{event['id']}/payments")
        amounts = [Decimal(p["amount"]) for p in resp.get_json()["data"]]
        assert amounts == [Decimal("15.00")]

    def test_payment_against_the_debt_direction_warns(self, client):
        """Alice owes Bob nothing; paying him is a pre-payment."""
        event, alice, bob, _ = _setup(client)
        resp = make_payment(client, event["id"], alice["id"], bob["id"], "1.00")
        assert resp.status_code == 201
        assert [w["code"] for w in resp.get_json()["warnings"]] == ["OVERPAYMENT"]


# ═══════════════════════════════════════════════════════════════════════════
# Validation failures
# ═══════════════════════════════════════════════════════════════════════════

class TestPaymentValidation:

    def test_self_payment_returns_422(self, client):
        event, alice, _, _ = _setup(client)
        resp = make_payment(client, event["id"], alice["id"], alice["id"], "5.00")
        assert resp.status_code == 422
        error = resp.get_json()["error"]
        assert error["code"]  == "SELF_PAYMENT"
        assert error["field"] == "to_person_id"

    def test_sender_from_other_event_returns_422(self, client):
        event, alice, _, _ = _setup(client)
        other = make_event(client, name="Other")
        (stranger,) = make_people(client, other["id"], "Stranger")

        resp = make_payment(client, event["id"], stranger["id"], alice["id"], "5.00")
        assert resp.status_code == 422
        error = resp.get_json()["error"]
        assert error["code"]  == "SENDER_NOT_IN_EVENT"
        assert error["field"] == "from_person_id"

    def test_receiver_from_other_event_returns_422(self, client):
        event, alice, _, _ = _setup(client)
        other = make_event(client, name="Other")
        (stranger,) = make_people(client, other["id"], "Stranger")

        resp = make_payment(client, event["id"], alice["id"], stranger["id"], "5.00")
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "RECEIVER_NOT_IN_EVENT"

    def test_zero_amount_returns_400(self, client):
        event, alice, bob, _ = _setup(client)
        resp = make_payment(client, event["id"], bob["id"], alice["id"], "0.00")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "amount"

    def test_three_decimal_amount_returns_400(self, client):
        event, alice, bob, _ = _setup(client)
        resp = make_payment(client, event["id"], bob["id"], alice["id"], "1.001")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_AMOUNT_PRECISION"

    def test_amount_beyond_column_range_returns_400(self, client):
        event, alice, bob, _ = _setup(client)
        resp = make_payment(client, event["id"], bob["id"], alice["id"], "1E+27")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "amount"

    def test_missing_receiver_returns_400(self, client):
        event, _, bob, _ = _setup(client)
        resp = client.post(f"/api/v1/events/{event['id']}/payments", json={
            "from_person_id": bob["id"],
            "amount": "5.00",
        })
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"]  == "MISSING_FIELD"
        assert error["field"] == "to_person_id"

    def test_unknown_event_returns_404(self, client):
        resp = make_payment(client, 99999, 1, 2, "5.00")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "EVENT_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# GET /events/:id/payments
# ═══════════════════════════════════════════════════════════════════════════

class TestListPayments:

    def test_list_newest_date_first(self, client):
        event, alice, bob, charlie = _setup(client)
        make_payment(client, event["id"], bob["id"], alice["id"], "5.00", date="2024-03-03")
        make_payment(client, event["id"], charlie["id"], alice["id"], "7.00", date="2024-03-05")

        resp = client.get(f"/api/v1/events/{event['id']}/payments")
        assert resp.status_code == 200
        amounts = [p["amount"] for p in resp.get_json()["data"]]
        assert amounts == ["7.00", "5.00"]

    def test_list_is_scoped_to_event(self, client):
        event, alice, bob, _ = _setup(client)
        make_payment(client, event["id"], bob["id"], alice["id"], "5.00")
        other = make_event(client, name="Other")

        resp = client.get(f"/api/v1/events/{other['id']}/payments")
        assert resp.get_json()["data"] == []

    def test_rows_carry_sender_and_receiver_names(self, client):
        event, alice, bob, _ = _setup(client)
        make_payment(client, event["id"], bob["id"], alice["id"], "5.00", note="cash")

        (row,) = client.get(f"/api/v1/events/{event['id']}/payments").get_json()["data"]
        assert row["from_name"] == "Bob"
        assert row["to_name"]   == "Alice"
        assert row["note"]      == "cash"


class TestPaymentFilters:

    def _seed(self, client):
        event, alice, bob, charlie = _setup(client)
        make_payment(client, event["id"], bob["id"], alice["id"], "1.00", date="2024-03-03")
        make_payment(client, event["id"], charlie["id"], alice["id"], "2.00", date="2024-03-04")
        make_payment(client, event["id"], alice["id"], charlie["id"], "3.00", date="2024-03-05")
        return event, alice, bob, charlie

    def _amounts(self, client, event_id: int, query: str) -> list[str]:
        resp = client.get(f"/api/v1/events/{event_id}/payments{query}")
        assert resp.status_code == 200
        return [p["amount"] for p in resp.get_json()["data"]]

    def test_date_range_is_inclusive(self, client):
        event, _, _, _ = self._seed(client)
        assert self._amounts(client, event["id"], "?date_from=2024-03-04&date_to=2024-03-05") == ["3.00", "2.00"]

    def test_date_to_only(self, client):
        event, _, _, _ = self._seed(client)
        assert self._amounts(client, event["id"], "?date_to=2024-03-03") == ["1.00"]

    def test_person_matches_either_side(self, client):
        event, _, _, charlie = self._seed(client)
        assert self._amounts(client, event["id"], f"?person_id={charlie['id']}") == ["3.00", "2.00"]

    def test_person_and_dates_combine(self, client):
        event, alice, _, _ = self._seed(client)
        query = f"?person_id={alice['id']}&date_from=2024-03-04"
        assert self._amounts(client, event["id"], query) == ["3.00", "2.00"]

    def test_reversed_range_returns_400(self, client):
        event, _, _, _ = self._seed(client)
        resp = client.get(f"/api/v1/events/{event['id']}/payments?date_from=2024-03-05&date_to=2024-03-01")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_DATE_RANGE"
