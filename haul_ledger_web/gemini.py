"""Gemini ``generateContent`` client used for reports and receipt scans."""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import requests

from haul_common import (
    ExpenseInput,
    FinancialRecord,
    most_recent,
    record_to_document,
)

logger = logging.getLogger(__name__)

API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

REPORT_PROMPT = """
You are a logistics business analyst for a cement company in Guinea.
Analyze the following trip data (JSON). Currency is GNF.

Data: {data}

Please provide a concise but insightful report with the following sections (use Markdown):
1. **Financial Summary**: Net profit trends and margins.
2. **Operational Efficiency**: Which truck or route is performing best?
3. **Cost Analysis**: Are fuel or maintenance costs rising?
4. **Recommendation**: One specific action to improve profitability.

Keep it professional, encouraging, and brief (under 200 words).
"""

RECEIPT_PROMPT = """
Look at this receipt image. Extract the following details and return ONLY a valid JSON object. Do not include Markdown formatting or backticks.

Fields to extract:
- "date": The date found on the receipt (format YYYY-MM-DD). If not found, use today's date.
- "amount": The total amount (number only, remove currency symbols).
- "description": A short summary of items purchased (e.g., "Fuel", "Tire Repair").

JSON Structure:
{ "date": "...", "amount": 0, "description": "..." }
"""


class AIServiceError(RuntimeError):
    """Raised when the Gemini API cannot produce a usable answer."""


class AIServiceNotConfigured(AIServiceError):
    """Raised when no API key has been configured."""


@dataclass(slots=True)
class ReceiptExtraction:
    """Fields read off a receipt; any of them may be missing."""

    date: Optional[str] = None
    amount: Optional[Any] = None
    description: Optional[str] = None


def _optional_text(value: Any) -> Optional[str]:
    # The model sometimes answers with numbers where text was asked for.
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def expense_input_from_receipt(
    extraction: ReceiptExtraction,
    *,
    truck_id: str,
    category: str,
    fallback_date: Optional[str] = None,
    fallback_amount: Optional[Any] = None,
    fallback_description: str = "",
) -> ExpenseInput:
    """Merge extracted receipt fields with what the user already typed.

    Extracted values win when present; blank ones fall back to the form.
    The result is only a candidate and must still pass
    :func:`haul_common.normalize_expense`.
    """

    amount = extraction.amount
    if amount in (None, "", 0):
        amount = fallback_amount
    return ExpenseInput(
        truck_id=truck_id,
        date=extraction.date or fallback_date or "",
        category=category,
        amount=amount,
        description=extraction.description or fallback_description,
    )


class GeminiClient:
    """Thin wrapper around the Gemini REST endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._session = session or requests.Session()

    def generate_report(self, records: Iterable[FinancialRecord]) -> str:
        """Return a prose analysis of the most recent records.

        The text is returned verbatim for display; it is not parsed.
        """

        documents = [record_to_document(record) for record in most_recent(records)]
        prompt = REPORT_PROMPT.format(data=json.dumps(documents))
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        return self._first_text(self._post(payload))

    def scan_receipt(self, image: bytes, mime_type: str = "image/png") -> ReceiptExtraction:
        """Extract ``date``, ``amount`` and ``description`` from a receipt."""

        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": RECEIPT_PROMPT},
                        {
                            "inlineData": {
                                "mimeType": mime_type,
                                "data": base64.b64encode(image).decode("ascii"),
                            }
                        },
                    ],
                }
            ],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        text = self._first_text(self._post(payload))
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Receipt scan returned non-JSON text: %r", text[:200])
            raise AIServiceError("Could not scan receipt.") from exc
        if not isinstance(parsed, dict):
            raise AIServiceError("Could not scan receipt.")
        return ReceiptExtraction(
            date=_optional_text(parsed.get("date")),
            amount=parsed.get("amount"),
            description=_optional_text(parsed.get("description")),
        )

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self._api_key:
            raise AIServiceNotConfigured("GEMINI_API_KEY is not configured.")
        url = API_URL.format(model=self._model)
        try:
            response = self._session.post(
                url,
                params={"key": self._api_key},
                json=payload,
                timeout=self._timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            logger.error("Gemini request failed: %s", exc)
            raise AIServiceError("Error connecting to AI service.") from exc
        except ValueError as exc:
            logger.error("Gemini returned an invalid JSON body: %s", exc)
            raise AIServiceError("Error connecting to AI service.") from exc

    @staticmethod
    def _first_text(data: Dict[str, Any]) -> str:
        candidates: List[Dict[str, Any]] = data.get("candidates") or []
        try:
            text = candidates[0]["content"]["parts"][0]["text"]
        except (IndexError, KeyError, TypeError):
            text = None
        if not text:
            raise AIServiceError("AI service returned an empty response.")
        return text
