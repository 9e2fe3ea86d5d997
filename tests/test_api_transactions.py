"""API tests for transaction CRUD, listing and recurring notifications."""

from __future__ import annotations

from datetime import datetime, timedelta


def create(client, **fields):
    payload = {"type": "expense", "amount": 25, "category": "Food"}
    payload.update(fields)
    res = client.post("/api/transactions", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def test_create_then_fetch_round_trip(client) -> None:
    created = create(client, amount=42.5, description="Lunch", date="2026-10-01T12:30:00",
                     tags=["work", "lunch"], isRecurring=True, recurrencePattern="weekly",
                     recurrenceEndDate="2027-01-01")
    fetched = client.get(f"/api/transactions/{created['id']}").get_json()
    assert fetched == created
    assert fetched["amount"] == 42.5
    assert fetched["date"] == "2026-10-01T12:30:00"
    assert fetched["tags"] == ["work", "lunch"]
    assert fetched["recurrencePattern"] == "weekly"
    assert fetched["recurrenceEndDate"] == "2027-01-01T00:00:00"


def test_date_defaults_to_now(client) -> None:
    created = create(client)
    assert created["date"] is not None
    assert created["tags"] == []
    assert created["isRecurring"] is False


def test_create_requires_fields_and_valid_type(client) -> None:
    assert client.post("/api/transactions", json={"type": "expense", "amount": 10}).status_code == 400
    res = client.post("/api/transactions", json={"type": "gift", "amount": 10, "category": "Other"})
    assert res.status_code == 400
    assert res.get_json()["message"] == "Invalid value for type"


def test_list_filters_and_sorts(client) -> None:
    create(client, amount=30, category="Food", tags=["groceries"])
    create(client, type="income", amount=1000, category="Salary")
    create(client, amount=10, category="Food", tags=["coffee"])

    expenses = client.get("/api/transactions?type=expense&sortBy=amount&order=desc").get_json()
    assert [t["amount"] for t in expenses] == [30, 10]

    tagged = client.get("/api/transactions?tags=coffee,tea").get_json()
    assert [t["amount"] for t in tagged] == [10]

    assert client.get("/api/transactions?sortBy=password").status_code == 400


def test_update_and_delete(client) -> None:
    created = create(client)
    res = client.put(f"/api/transactions/{created['id']}", json={"amount": 99, "category": "Dining"})
    assert res.status_code == 200
    assert res.get_json()["amount"] == 99
    assert res.get_json()["category"] == "Dining"

    assert client.delete(f"/api/transactions/{created['id']}").get_json() == {"message": "Transaction removed"}
    assert client.get(f"/api/transactions/{created['id']}").status_code == 404


def test_other_users_cannot_touch_transaction(client, make_user) -> None:
    created = create(client)
    intruder = make_user(email="intruder@example.com")
    assert intruder.get(f"/api/transactions/{created['id']}").status_code == 403
    assert intruder.put(f"/api/transactions/{created['id']}", json={"amount": 1}).status_code == 403
    assert intruder.delete(f"/api/transactions/{created['id']}").status_code == 403
    assert client.get(f"/api/transactions/{created['id']}").get_json()["amount"] == 25
    assert intruder.get("/api/transactions").get_json() == []


def test_missing_transaction_is_not_found(client) -> None:
    assert client.put("/api/transactions/999", json={"amount": 1}).status_code == 404


def test_recurring_notifications(client) -> None:
    now = datetime.now()
    soon = create(client, category="Phone", isRecurring=True, date=(now + timedelta(days=3)).isoformat())
    missed = create(client, category="Rent", isRecurring=True, date=(now - timedelta(days=5)).isoformat(),
                    recurrenceEndDate=(now + timedelta(days=60)).isoformat())
    create(client, category="Gym", isRecurring=True, date=(now + timedelta(days=20)).isoformat())

    body = client.get("/api/transactions/notifications").get_json()
    assert [t["id"] for t in body["upcoming"]] == [soon["id"]]
    assert [t["id"] for t in body["missed"]] == [missed["id"]]

    wider = client.get("/api/transactions/notifications?upcomingDays=30").get_json()
    assert len(wider["upcoming"]) == 2
    assert client.get("/api/transactions/notifications?upcomingDays=soon").status_code == 400

    recurring = client.get("/api/transactions/recurring").get_json()
    assert [t["category"] for t in recurring] == ["Rent"]


def test_notification_horizon_out_of_range(client) -> None:
    create(client, category="Phone", isRecurring=True)
    for days in ("99999999999", "36501", "-1"):
        res = client.get(f"/api/transactions/notifications?upcomingDays={days}")
        assert res.status_code == 400
        assert res.get_json()["message"] == "Invalid value for upcomingDays"
    assert client.get("/api/transactions/notifications?upcomingDays=36500").status_code == 200


def test_required_text_fields_reject_null_and_blank(client) -> None:
    created = create(client, category="Food")
    for value in (None, "   ", 12):
        res = client.put(f"/api/transactions/{created['id']}", json={"category": value})
        assert res.status_code == 400
        assert res.get_json()["message"] == "Invalid value for category"
    assert client.get(f"/api/transactions/{created['id']}").get_json()["category"] == "Food"
