"""Form parsing helpers.

Each parser returns ``(result, errors)``. The parsers only coerce raw
strings into typed values; range checks such as "bag count must be at least
one" live in :mod:`haul_common.records` so manually typed and AI-extracted
input go through the same rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Mapping, Optional, Tuple

from werkzeug.datastructures import FileStorage

from haul_common import (
    ExpenseCategory,
    ExpenseInput,
    RateConfig,
    TripInput,
    ValidationError,
)

DATE_INPUT_FORMAT = "%Y-%m-%d"


@dataclass(slots=True)
class ReceiptScanFormData:
    """Validated receipt upload plus the fallbacks typed on the form."""

    image: bytes
    mime_type: str
    truck_id: str
    category: str
    date: Optional[str]
    amount: Optional[str]
    description: str


def _text(form: Mapping[str, object], key: str, default: str = "") -> str:
    value = form.get(key, default)
    if value is None:
        return default
    return str(value).strip()


def _parse_date(raw: str, errors: List[str]) -> Optional[date]:
    try:
        return datetime.strptime(raw, DATE_INPUT_FORMAT).date()
    except ValueError:
        errors.append("Date is required and must be YYYY-MM-DD.")
        return None


def _parse_decimal(
    raw: str, label: str, errors: List[str], *, required: bool = True
) -> Decimal:
    if not raw:
        if required:
            errors.append(f"{label} is required.")
        return Decimal("0")
    try:
        value = Decimal(raw)
    except (InvalidOperation, ValueError):
        errors.append(f"{label} must be a valid number.")
        return Decimal("0")
    if not value.is_finite():
        errors.append(f"{label} must be a valid number.")
        return Decimal("0")
    return value


def parse_trip_form(
    form: Mapping[str, object],
) -> Tuple[Optional[TripInput], List[str]]:
    """Validate a trip submission."""

    errors: List[str] = []
    trip_date = _parse_date(_text(form, "date"), errors)
    truck_id = _text(form, "truck_id")
    if not truck_id:
        errors.append("Truck number is required.")

    bags_raw = _text(form, "bag_count")
    bag_count = 0
    if not bags_raw:
        errors.append("Bag count is required.")
    else:
        try:
            bag_count = int(bags_raw)
        except ValueError:
            errors.append("Bag count must be a whole number.")

    fuel_liters = _parse_decimal(
        _text(form, "fuel_liters"), "Fuel liters", errors, required=False
    )
    other_cost = _parse_decimal(
        _text(form, "other_cost"), "Other cost", errors, required=False
    )

    if errors:
        return None, errors

    return (
        TripInput(
            truck_id=truck_id,
            date=trip_date,
            destination=_text(form, "destination"),
            bag_count=bag_count,
            fuel_liters=fuel_liters,
            other_cost=other_cost,
            other_description=_text(form, "other_description"),
        ),
        [],
    )


def parse_expense_form(
    form: Mapping[str, object],
) -> Tuple[Optional[ExpenseInput], List[str]]:
    """Validate a standalone expense submission."""

    errors: List[str] = []
    expense_date = _parse_date(_text(form, "date"), errors)
    truck_id = _text(form, "truck_id")
    if not truck_id:
        errors.append("Truck number is required.")
    category = _text(form, "category", ExpenseCategory.MAINTENANCE.value)
    amount = _parse_decimal(_text(form, "amount"), "Amount", errors)

    if errors:
        return None, errors

    return (
        ExpenseInput(
            truck_id=truck_id,
            date=expense_date,
            category=category,
            amount=amount,
            description=_text(form, "description"),
        ),
        [],
    )


def parse_rates_form(
    form: Mapping[str, object],
) -> Tuple[Optional[RateConfig], List[str]]:
    """Validate the settings form used to change the active rates."""

    errors: List[str] = []
    fuel = _parse_decimal(_text(form, "fuel_price_per_liter"), "Fuel price", errors)
    revenue = _parse_decimal(
        _text(form, "revenue_per_ton"), "Revenue per ton", errors
    )
    labor = _parse_decimal(
        _text(form, "labor_cost_per_ton"), "Labor cost per ton", errors
    )
    if errors:
        return None, errors
    for label, value in (
        ("Fuel price", fuel),
        ("Revenue per ton", revenue),
        ("Labor cost per ton", labor),
    ):
        if value <= 0:
            errors.append(f"{label} must be greater than zero.")
    if errors:
        return None, errors
    try:
        rates = RateConfig(
            fuel_price_per_liter=fuel, revenue_per_ton=revenue, labor_cost_per_ton=labor
        )
    except ValidationError as exc:
        return None, exc.errors
    return rates, []


def parse_receipt_form(
    form: Mapping[str, object], receipt: Optional[FileStorage]
) -> Tuple[Optional[ReceiptScanFormData], List[str]]:
    """Validate a receipt scan request."""

    errors: List[str] = []
    image = b""
    mime_type = ""
    if receipt is None or not receipt.filename:
        errors.append("A receipt image is required.")
    else:
        mime_type = (receipt.mimetype or "").lower()
        if not mime_type.startswith("image/"):
            errors.append("Receipt must be an image file.")
        image = receipt.read()
        if not image:
            errors.append("Receipt image is empty.")

    if errors:
        return None, errors

    return (
        ReceiptScanFormData(
            image=image,
            mime_type=mime_type,
            truck_id=_text(form, "truck_id"),
            category=_text(form, "category", ExpenseCategory.MAINTENANCE.value),
            date=_text(form, "date") or None,
            amount=_text(form, "amount") or None,
            description=_text(form, "description"),
        ),
        [],
    )
