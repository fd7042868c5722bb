"""End-to-end tests for the Haul Ledger HTTP routes."""

from __future__ import annotations

from io import BytesIO

from haul_ledger_web import gemini
from haul_ledger_web.repositories import RecordsRepository


def _create_trip(client, **overrides):
    """Submit a valid trip and return the response."""

    payload = {
        "truck_id": "rc-1",
        "date": "2024-05-10",
        "destination": "Coyah",
        "bag_count": "700",
        "fuel_liters": "50",
    }
    payload.update(overrides)
    return client.post("/api/trips", data=payload)


def test_full_ledger_flow(client):
    """Creating trips and expenses feeds the dashboard end-to-end."""

    response = _create_trip(client)
    assert response.status_code == 201
    trip = response.get_json()
    assert trip["truck_id"] == "RC-1"
    assert trip["net_profit"] == "1850000"

    expense = client.post(
        "/api/expenses",
        json={
            "truck_id": "RC-2",
            "date": "2024-05-11",
            "category": "Maintenance",
            "amount": 200000,
        },
    )
    assert expense.status_code == 201

    listing = client.get("/api/records").get_json()
    assert [record["kind"] for record in listing] == ["expense", "trip"]
    assert len(client.get("/api/records?truck=rc-2").get_json()) == 1

    dashboard = client.get("/api/dashboard").get_json()
    assert dashboard["totals"]["total_trip_count"] == 1
    assert dashboard["totals"]["total_profit"] == 1650000
    assert dashboard["destinations"][0]["name"] == "Coyah"
    assert dashboard["cost_breakdown"]["maintenance"] == 200000
    assert [point["kind"] for point in dashboard["profit_series"]] == ["trip", "expense"]

    summary = client.get("/summary.txt")
    assert summary.status_code == 200
    assert b"Haul Ledger Summary" in summary.data

    deleted = client.delete(f"/api/records/{trip['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/api/records/{trip['id']}").status_code == 404
    assert client.delete(f"/api/records/{trip['id']}").status_code == 404


def test_invalid_trip_is_rejected(client, app):
    response = _create_trip(client, bag_count="0")
    assert response.status_code == 400
    assert "Bag count must be at least 1." in response.get_json()["errors"]

    repo = RecordsRepository(app.config["DB_ENGINE"])
    with client.session_transaction() as session:
        user_id = session["user_id"]
    assert repo.list_records(user_id) == []


def test_unknown_expense_category_is_rejected(client):
    response = client.post(
        "/api/expenses",
        data={"truck_id": "RC-1", "date": "2024-05-11", "category": "Food", "amount": "10"},
    )
    assert response.status_code == 400


def test_rate_update_applies_to_new_trips_only(client):
    first = _create_trip(client).get_json()

    response = client.put(
        "/api/rates",
        json={
            "fuel_price_per_liter": "12000",
            "revenue_per_ton": "100000",
            "labor_cost_per_ton": "15000",
        },
    )
    assert response.status_code == 200
    assert client.get("/api/rates").get_json()["revenue_per_ton"] == "100000"

    second = _create_trip(client).get_json()
    stored_first = client.get(f"/api/records/{first['id']}").get_json()
    assert stored_first["revenue"] == first["revenue"]
    assert stored_first["applied_rates"]["revenue_per_ton"] == "85000"
    assert second["revenue"] == "3500000"


def test_records_are_scoped_per_session(app):
    first = app.test_client()
    second = app.test_client()
    assert _create_trip(first).status_code == 201

    assert len(first.get("/api/records").get_json()) == 1
    assert second.get("/api/records").get_json() == []


def test_categories_listed(client):
    codes = [item["code"] for item in client.get("/api/categories").get_json()]
    assert codes == ["Maintenance", "Tires", "Taxes", "Fuel", "Other"]


def test_report_route_returns_text(client, monkeypatch):
    _create_trip(client)
    captured = {}

    def fake_generate(self, records):
        captured["count"] = len(list(records))
        return "**Financial Summary**: fine."

    monkeypatch.setattr(gemini.GeminiClient, "generate_report", fake_generate)
    response = client.post("/api/report")
    assert response.status_code == 200
    assert response.get_json() == {"report": "**Financial Summary**: fine."}
    assert captured["count"] == 1


def test_report_route_maps_ai_errors(client, monkeypatch):
    def failing(self, records):
        raise gemini.AIServiceError("Error connecting to AI service.")

    monkeypatch.setattr(gemini.GeminiClient, "generate_report", failing)
    response = client.post("/api/report")
    assert response.status_code == 502


def test_receipt_scan_returns_candidate(client, monkeypatch):
    monkeypatch.setattr(
        gemini.GeminiClient,
        "scan_receipt",
        lambda self, image, mime_type: gemini.ReceiptExtraction(
            date="2024-05-09", amount=45000, description="Tire Repair"
        ),
    )
    response = client.post(
        "/api/receipts/scan",
        data={
            "truck_id": "rc-7",
            "category": "Tires",
            "receipt": (BytesIO(b"\x89PNG"), "receipt.png", "image/png"),
        },
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["candidate"]["amount"] == "45000"
    assert payload["candidate"]["net_profit"] == "-45000"
    assert payload["candidate"]["truck_id"] == "RC-7"
    assert client.get("/api/records").get_json() == []


def test_receipt_scan_rejects_invalid_extraction(client, monkeypatch):
    monkeypatch.setattr(
        gemini.GeminiClient,
        "scan_receipt",
        lambda self, image, mime_type: gemini.ReceiptExtraction(
            date="not a date", amount=-3, description="???"
        ),
    )
    response = client.post(
        "/api/receipts/scan",
        data={
            "truck_id": "RC-7",
            "receipt": (BytesIO(b"\x89PNG"), "receipt.png", "image/png"),
        },
        content_type="multipart/form-data",
    )
    assert response.status_code == 422
    errors = response.get_json()["errors"]
    assert "Amount cannot be negative." in errors
    assert "Date is required and must be YYYY-MM-DD." in errors


def test_rate_update_rejects_non_finite_values(client):
    for raw in ("Infinity", "NaN"):
        response = client.put(
            "/api/rates",
            json={
                "fuel_price_per_liter": raw,
                "revenue_per_ton": "85000",
                "labor_cost_per_ton": "15000",
            },
        )
        assert response.status_code == 400
        assert response.get_json() == {"errors": ["Fuel price must be a valid number."]}
    assert client.get("/api/rates").get_json()["fuel_price_per_liter"] == "12000"


def test_receipt_scan_accepts_numeric_description(client, monkeypatch):
    monkeypatch.setattr(
        gemini.GeminiClient,
        "scan_receipt",
        lambda self, image, mime_type: gemini.ReceiptExtraction(
            date="2024-05-09", amount=45000, description=42
        ),
    )
    response = client.post(
        "/api/receipts/scan",
        data={
            "truck_id": "RC-7",
            "receipt": (BytesIO(b"\x89PNG"), "receipt.png", "image/png"),
        },
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    assert response.get_json()["candidate"]["description"] == "42"
