"""Trip and expense records with their derived financial fields.

Records are produced once from raw user input and the financial rates in
force at that moment. They intentionally avoid persistence concerns so the
models can be used from the Flask service, command line helpers, or tests
without a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

BAG_WEIGHT_KG = Decimal(50)
KG_PER_TON = Decimal(1000)
DATE_INPUT_FORMAT = "%Y-%m-%d"

DEFAULT_FUEL_PRICE = Decimal(12000)
DEFAULT_REVENUE_PER_TON = Decimal(85000)
DEFAULT_LABOR_PER_TON = Decimal(15000)

ZERO = Decimal(0)


class ValidationError(ValueError):
    """Raised when raw input cannot be turned into a financial record.

    ``errors`` lists every problem found so callers can present them all at
    once instead of re-prompting field by field.
    """

    def __init__(self, errors: Union[str, List[str]]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors))


class RecordKind(str, Enum):
    TRIP = "trip"
    EXPENSE = "expense"


class ExpenseCategory(str, Enum):
    """Fixed set of categories a standalone expense can be filed under."""

    MAINTENANCE = "Maintenance"
    TIRES = "Tires"
    TAXES = "Taxes"
    FUEL = "Fuel"
    OTHER = "Other"


def _to_decimal(value: Any, label: str, errors: List[str]) -> Decimal:
    """Coerce ``value`` to :class:`Decimal`, recording an error on failure."""

    if value is None or value == "":
        errors.append(f"{label} is required.")
        return ZERO
    if isinstance(value, bool):
        errors.append(f"{label} must be a valid number.")
        return ZERO
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        errors.append(f"{label} must be a valid number.")
        return ZERO
    if not result.is_finite():
        errors.append(f"{label} must be a valid number.")
        return ZERO
    return result


def _to_date(value: Any, errors: List[str]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value or "").strip(), DATE_INPUT_FORMAT).date()
    except ValueError:
        errors.append("Date is required and must be YYYY-MM-DD.")
        return None


def _to_bag_count(value: Any, errors: List[str]) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        count = value
    else:
        problems: List[str] = []
        parsed = _to_decimal(value, "Bag count", problems)
        if problems or parsed != parsed.to_integral_value():
            errors.append("Bag count must be a whole number.")
            return 0
        count = int(parsed)
    if count < 1:
        errors.append("Bag count must be at least 1.")
    return count


def _normalise_truck(value: Optional[str], errors: List[str]) -> str:
    truck_id = str(value or "").strip().upper()
    if not truck_id:
        errors.append("Truck number is required.")
    return truck_id


def date_to_timestamp(value: date) -> int:
    """Return ``value`` at UTC midnight as epoch milliseconds."""

    midnight = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return int(midnight.timestamp()) * 1000


@dataclass(frozen=True, slots=True)
class RateConfig:
    """Per-unit rates applied when a trip is recorded."""

    fuel_price_per_liter: Decimal = DEFAULT_FUEL_PRICE
    revenue_per_ton: Decimal = DEFAULT_REVENUE_PER_TON
    labor_cost_per_ton: Decimal = DEFAULT_LABOR_PER_TON

    def __post_init__(self) -> None:
        errors: List[str] = []
        for name, label in (
            ("fuel_price_per_liter", "Fuel price"),
            ("revenue_per_ton", "Revenue per ton"),
            ("labor_cost_per_ton", "Labor cost per ton"),
        ):
            problems: List[str] = []
            amount = _to_decimal(getattr(self, name), label, problems)
            if not problems and amount <= 0:
                problems.append(f"{label} must be greater than zero.")
            errors.extend(problems)
            object.__setattr__(self, name, amount)
        if errors:
            raise ValidationError(errors)

    def to_dict(self) -> Dict[str, str]:
        return {
            "fuel_price_per_liter": str(self.fuel_price_per_liter),
            "revenue_per_ton": str(self.revenue_per_ton),
            "labor_cost_per_ton": str(self.labor_cost_per_ton),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RateConfig":
        return cls(
            fuel_price_per_liter=payload.get(
                "fuel_price_per_liter", DEFAULT_FUEL_PRICE
            ),
            revenue_per_ton=payload.get("revenue_per_ton", DEFAULT_REVENUE_PER_TON),
            labor_cost_per_ton=payload.get(
                "labor_cost_per_ton", DEFAULT_LABOR_PER_TON
            ),
        )


@dataclass(slots=True)
class TripInput:
    """Raw trip entry as typed by the driver or dispatcher."""

    truck_id: str
    date: Union[str, date]
    bag_count: Any
    fuel_liters: Any = ZERO
    destination: Optional[str] = None
    other_cost: Any = ZERO
    other_description: str = ""


@dataclass(slots=True)
class ExpenseInput:
    """Raw standalone expense entry."""

    truck_id: str
    date: Union[str, date]
    category: Any
    amount: Any
    description: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class _RecordBase:
    truck_id: str
    date: date
    total_expenses: Decimal
    net_profit: Decimal
    timestamp: int
    id: Optional[str] = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TripRecord(_RecordBase):
    """One cargo delivery with its revenue and direct costs."""

    kind: ClassVar[RecordKind] = RecordKind.TRIP

    bag_count: int
    weight_tons: Decimal
    revenue: Decimal
    labor_cost: Decimal
    fuel_liters: Decimal
    fuel_cost: Decimal
    other_cost: Decimal
    applied_rates: RateConfig
    destination: Optional[str] = None
    other_description: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpenseRecord(_RecordBase):
    """A cost not tied to a specific delivery.

    Trip-only monetary fields read as zero so aggregations can fold over a
    mixed collection without branching on every field.
    """

    kind: ClassVar[RecordKind] = RecordKind.EXPENSE

    category: ExpenseCategory
    amount: Decimal
    description: str = ""

    @property
    def revenue(self) -> Decimal:
        return ZERO

    @property
    def weight_tons(self) -> Decimal:
        return ZERO

    @property
    def bag_count(self) -> int:
        return 0

    @property
    def labor_cost(self) -> Decimal:
        return ZERO

    @property
    def fuel_cost(self) -> Decimal:
        return ZERO

    @property
    def other_cost(self) -> Decimal:
        return ZERO


FinancialRecord = Union[TripRecord, ExpenseRecord]


def normalize_trip(trip: TripInput, rates: RateConfig) -> TripRecord:
    """Build a :class:`TripRecord` from raw input and the active rates.

    Args:
        trip: Raw values captured from the trip form.
        rates: Rates in force at creation time. They are copied onto the
            record as ``applied_rates`` and never consulted again.

    Returns:
        TripRecord: Record with every derived monetary field populated.

    Raises:
        ValidationError: When the truck number is blank, the date is not a
            calendar date, the bag count is not a positive integer, or a
            cost is negative.
    """

    errors: List[str] = []
    truck_id = _normalise_truck(trip.truck_id, errors)
    trip_date = _to_date(trip.date, errors)

    bag_count = _to_bag_count(trip.bag_count, errors)
    fuel_liters = _to_decimal(trip.fuel_liters, "Fuel liters", errors)
    if fuel_liters < 0:
        errors.append("Fuel liters cannot be negative.")
    other_cost = _to_decimal(trip.other_cost, "Other cost", errors)
    if other_cost < 0:
        errors.append("Other cost cannot be negative.")

    if errors:
        raise ValidationError(errors)

    weight_tons = Decimal(bag_count) * BAG_WEIGHT_KG / KG_PER_TON
    revenue = weight_tons * rates.revenue_per_ton
    labor_cost = weight_tons * rates.labor_cost_per_ton
    fuel_cost = fuel_liters * rates.fuel_price_per_liter
    total_expenses = fuel_cost + labor_cost + other_cost
    destination = trip.destination or None

    return TripRecord(
        truck_id=truck_id,
        date=trip_date,
        timestamp=date_to_timestamp(trip_date),
        destination=destination,
        bag_count=bag_count,
        weight_tons=weight_tons,
        revenue=revenue,
        labor_cost=labor_cost,
        fuel_liters=fuel_liters,
        fuel_cost=fuel_cost,
        other_cost=other_cost,
        other_description=str(trip.other_description or "").strip(),
        total_expenses=total_expenses,
        net_profit=revenue - total_expenses,
        applied_rates=rates,
    )


def normalize_expense(expense: ExpenseInput) -> ExpenseRecord:
    """Build an :class:`ExpenseRecord` from raw input.

    Raises:
        ValidationError: On a blank truck number, invalid date, unknown
            category, or a negative or non-numeric amount.
    """

    errors: List[str] = []
    truck_id = _normalise_truck(expense.truck_id, errors)
    expense_date = _to_date(expense.date, errors)

    category: Optional[ExpenseCategory]
    try:
        category = ExpenseCategory(expense.category)
    except ValueError:
        errors.append(
            "Category must be one of: "
            + ", ".join(member.value for member in ExpenseCategory)
            + "."
        )
        category = None

    amount = _to_decimal(expense.amount, "Amount", errors)
    if amount < 0:
        errors.append("Amount cannot be negative.")

    if errors:
        raise ValidationError(errors)

    return ExpenseRecord(
        truck_id=truck_id,
        date=expense_date,
        timestamp=date_to_timestamp(expense_date),
        category=category,
        amount=amount,
        description=str(expense.description or "").strip(),
        total_expenses=amount,
        net_profit=-amount,
    )


def record_to_document(record: FinancialRecord) -> Dict[str, Any]:
    """Serialise ``record`` into a JSON-compatible mapping.

    Decimals are written as strings so the round trip through
    :func:`record_from_document` is lossless.
    """

    document: Dict[str, Any] = {
        "id": record.id,
        "kind": record.kind.value,
        "truck_id": record.truck_id,
        "date": record.date.isoformat(),
        "timestamp": record.timestamp,
        "total_expenses": str(record.total_expenses),
        "net_profit": str(record.net_profit),
    }
    if isinstance(record, TripRecord):
        document.update(
            destination=record.destination,
            bag_count=record.bag_count,
            weight_tons=str(record.weight_tons),
            revenue=str(record.revenue),
            labor_cost=str(record.labor_cost),
            fuel_liters=str(record.fuel_liters),
            fuel_cost=str(record.fuel_cost),
            other_cost=str(record.other_cost),
            other_description=record.other_description,
            applied_rates=record.applied_rates.to_dict(),
        )
    else:
        document.update(
            category=record.category.value,
            amount=str(record.amount),
            description=record.description,
        )
    return document


def record_from_document(
    document: Mapping[str, Any], record_id: Optional[str] = None
) -> FinancialRecord:
    """Rebuild a record previously written by :func:`record_to_document`.

    Stored values are trusted as-is; derived fields are read back rather than
    recomputed so later rate changes never alter historical records.
    """

    kind = RecordKind(document["kind"])
    common = {
        "id": record_id if record_id is not None else document.get("id"),
        "truck_id": document["truck_id"],
        "date": date.fromisoformat(document["date"]),
        "timestamp": int(document["timestamp"]),
        "total_expenses": Decimal(document["total_expenses"]),
        "net_profit": Decimal(document["net_profit"]),
    }
    if kind is RecordKind.TRIP:
        return TripRecord(
            **common,
            destination=document.get("destination"),
            bag_count=int(document["bag_count"]),
            weight_tons=Decimal(document["weight_tons"]),
            revenue=Decimal(document["revenue"]),
            labor_cost=Decimal(document["labor_cost"]),
            fuel_liters=Decimal(document["fuel_liters"]),
            fuel_cost=Decimal(document["fuel_cost"]),
            other_cost=Decimal(document["other_cost"]),
            other_description=document.get("other_description", ""),
            applied_rates=RateConfig.from_dict(document["applied_rates"]),
        )
    return ExpenseRecord(
        **common,
        category=ExpenseCategory(document["category"]),
        amount=Decimal(document["amount"]),
        description=document.get("description", ""),
    )


__all__ = [
    "BAG_WEIGHT_KG",
    "ExpenseCategory",
    "ExpenseInput",
    "ExpenseRecord",
    "FinancialRecord",
    "RateConfig",
    "RecordKind",
    "TripInput",
    "TripRecord",
    "ValidationError",
    "date_to_timestamp",
    "normalize_expense",
    "normalize_trip",
    "record_from_document",
    "record_to_document",
]
