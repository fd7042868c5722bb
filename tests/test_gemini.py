"""Tests for the Gemini client with the HTTP layer stubbed out."""

from __future__ import annotations

import base64
import json

import pytest
import requests

from haul_common import ExpenseInput, TripInput, normalize_expense, normalize_trip
from haul_ledger_web.gemini import (
    AIServiceError,
    AIServiceNotConfigured,
    GeminiClient,
    ReceiptExtraction,
    expense_input_from_receipt,
)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _text_response(text):
    return FakeResponse({"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _records(rates, count):
    return [
        normalize_trip(
            TripInput(
                truck_id="RC-1",
                date=f"2024-03-{day:02d}",
                destination="Coyah",
                bag_count=100,
                fuel_liters=10,
            ),
            rates,
        )
        for day in range(1, count + 1)
    ]


def test_generate_report_sends_recent_records(rates):
    session = FakeSession(_text_response("Report body"))
    client = GeminiClient("key", "gemini-test", timeout=5, session=session)

    report = client.generate_report(_records(rates, 31))

    assert report == "Report body"
    url, kwargs = session.calls[0]
    assert url.endswith("/models/gemini-test:generateContent")
    assert kwargs["params"] == {"key": "key"}
    assert kwargs["timeout"] == 5
    prompt = kwargs["json"]["contents"][0]["parts"][0]["text"]
    assert "Recommendation" in prompt
    assert prompt.count('"kind": "trip"') == 30
    assert "2024-03-31" in prompt
    assert '"2024-03-01"' not in prompt


def test_generate_report_requires_api_key(rates):
    client = GeminiClient(None, "gemini-test", session=FakeSession())

    with pytest.raises(AIServiceNotConfigured):
        client.generate_report(_records(rates, 1))


def test_generate_report_wraps_network_errors(rates):
    session = FakeSession(error=requests.ConnectionError("offline"))
    client = GeminiClient("key", "gemini-test", session=session)

    with pytest.raises(AIServiceError):
        client.generate_report(_records(rates, 1))


def test_generate_report_rejects_empty_candidates(rates):
    session = FakeSession(FakeResponse({"candidates": []}))
    client = GeminiClient("key", "gemini-test", session=session)

    with pytest.raises(AIServiceError):
        client.generate_report(_records(rates, 1))


def test_scan_receipt_parses_json():
    body = json.dumps({"date": "2024-05-09", "amount": 45000, "description": "Fuel"})
    session = FakeSession(_text_response(body))
    client = GeminiClient("key", "gemini-test", session=session)

    extraction = client.scan_receipt(b"image-bytes", "image/jpeg")

    assert extraction == ReceiptExtraction(
        date="2024-05-09", amount=45000, description="Fuel"
    )
    payload = session.calls[0][1]["json"]
    inline = payload["contents"][0]["parts"][1]["inlineData"]
    assert inline["mimeType"] == "image/jpeg"
    assert base64.b64decode(inline["data"]) == b"image-bytes"
    assert payload["generationConfig"] == {"responseMimeType": "application/json"}


def test_scan_receipt_coerces_non_text_fields():
    body = json.dumps({"date": "2024-05-09", "amount": "45000", "description": 42})
    client = GeminiClient("key", "gemini-test", session=FakeSession(_text_response(body)))

    extraction = client.scan_receipt(b"image-bytes")

    assert extraction.description == "42"
    assert extraction.date == "2024-05-09"


def test_scan_receipt_rejects_malformed_json():
    session = FakeSession(_text_response("```json\n{oops}\n```"))
    client = GeminiClient("key", "gemini-test", session=session)

    with pytest.raises(AIServiceError):
        client.scan_receipt(b"image-bytes")


def test_scan_receipt_http_error():
    session = FakeSession(FakeResponse({}, status_code=500))
    client = GeminiClient("key", "gemini-test", session=session)

    with pytest.raises(AIServiceError):
        client.scan_receipt(b"image-bytes")


def test_expense_input_from_receipt_uses_fallbacks():
    candidate = expense_input_from_receipt(
        ReceiptExtraction(date=None, amount=None, description="Tire Repair"),
        truck_id="rc-3",
        category="Tires",
        fallback_date="2024-05-01",
        fallback_amount="12000",
        fallback_description="typed",
    )

    assert candidate == ExpenseInput(
        truck_id="rc-3",
        date="2024-05-01",
        category="Tires",
        amount="12000",
        description="Tire Repair",
    )
    assert normalize_expense(candidate).net_profit == -12000
