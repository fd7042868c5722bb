"""Dashboard aggregations over a collection of financial records.

Every helper here is a pure fold: records are read, never mutated, and an
empty collection produces zero/empty results rather than an error.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

from .records import ExpenseCategory, ExpenseRecord, FinancialRecord, TripRecord

UNKNOWN_DESTINATION = "Unknown"
REPORT_RECORD_LIMIT = 30

_MAINTENANCE_CATEGORIES = {ExpenseCategory.MAINTENANCE, ExpenseCategory.TIRES}


@dataclass(frozen=True, slots=True)
class Totals:
    """Portfolio-level totals shown on the dashboard cards."""

    total_trip_count: int = 0
    total_tons: Decimal = Decimal(0)
    total_revenue: Decimal = Decimal(0)
    total_profit: Decimal = Decimal(0)
    total_expenses: Decimal = Decimal(0)


@dataclass(frozen=True, slots=True)
class ProfitPoint:
    """One bar of the chronological revenue/profit chart."""

    date: date
    record: FinancialRecord
    profit_ratio: Decimal


@dataclass(frozen=True, slots=True)
class DestinationStat:
    """Volume delivered to a single destination."""

    name: str
    trip_count: int = 0
    total_tons: Decimal = Decimal(0)
    total_revenue: Decimal = Decimal(0)


@dataclass(frozen=True, slots=True)
class CostBreakdown:
    """Spend split across the four dashboard cost categories."""

    fuel: Decimal
    labor: Decimal
    maintenance: Decimal
    other: Decimal

    @property
    def total(self) -> Decimal:
        return self.fuel + self.labor + self.maintenance + self.other

    def share(self, category: str) -> Decimal:
        """Return ``category`` as a percentage of :attr:`total`.

        A zero total is treated as one so every share reads 0% instead of
        dividing by zero.
        """

        denominator = self.total or Decimal(1)
        return getattr(self, category) / denominator * 100


def compute_totals(records: Iterable[FinancialRecord]) -> Totals:
    """Sum trip count, tonnage, revenue, profit and expenses."""

    trip_count = 0
    tons = revenue = profit = expenses = Decimal(0)
    for record in records:
        if isinstance(record, TripRecord):
            trip_count += 1
        tons += record.weight_tons
        revenue += record.revenue
        profit += record.net_profit
        expenses += record.total_expenses
    return Totals(
        total_trip_count=trip_count,
        total_tons=tons,
        total_revenue=revenue,
        total_profit=profit,
        total_expenses=expenses,
    )


def profit_ratio(record: FinancialRecord) -> Decimal:
    """Return the share of revenue kept as profit, clamped to ``[0, 1]``.

    Loss-making trips render with an empty profit overlay rather than a
    negative bar, so the sign of the loss is deliberately dropped here.
    Expenses and zero-revenue records always read as 0.
    """

    if not isinstance(record, TripRecord) or record.revenue <= 0:
        return Decimal(0)
    ratio = record.net_profit / record.revenue
    return min(max(ratio, Decimal(0)), Decimal(1))


def build_profit_series(records: Iterable[FinancialRecord]) -> List[ProfitPoint]:
    """Return records oldest-first, ties kept in their input order."""

    ordered = sorted(records, key=lambda record: record.date)
    return [
        ProfitPoint(date=record.date, record=record, profit_ratio=profit_ratio(record))
        for record in ordered
    ]


def compute_destination_stats(
    records: Iterable[FinancialRecord],
) -> List[DestinationStat]:
    """Group trips by destination and rank them by tonnage.

    Destinations are matched exactly, so ``"Coyah"`` and ``"coyah"`` are
    reported separately. Blank destinations are grouped under
    :data:`UNKNOWN_DESTINATION`; expenses are ignored.
    """

    stats: Dict[str, DestinationStat] = {}
    for record in records:
        if not isinstance(record, TripRecord):
            continue
        name = record.destination or UNKNOWN_DESTINATION
        stat = stats.get(name) or DestinationStat(name=name)
        stats[name] = replace(
            stat,
            trip_count=stat.trip_count + 1,
            total_tons=stat.total_tons + record.weight_tons,
            total_revenue=stat.total_revenue + record.revenue,
        )
    return sorted(stats.values(), key=lambda stat: stat.total_tons, reverse=True)


def compute_cost_breakdown(records: Iterable[FinancialRecord]) -> CostBreakdown:
    """Attribute trip costs and standalone expenses to dashboard categories."""

    fuel = labor = maintenance = other = Decimal(0)
    for record in records:
        fuel += record.fuel_cost
        labor += record.labor_cost
        other += record.other_cost
        if isinstance(record, ExpenseRecord):
            if record.category is ExpenseCategory.FUEL:
                fuel += record.amount
            elif record.category in _MAINTENANCE_CATEGORIES:
                maintenance += record.amount
            else:
                other += record.amount
    return CostBreakdown(fuel=fuel, labor=labor, maintenance=maintenance, other=other)


def filter_by_truck(
    records: Iterable[FinancialRecord], query: str = ""
) -> List[FinancialRecord]:
    """Return records whose truck number contains ``query``, newest first."""

    needle = (query or "").strip().upper()
    matches = [record for record in records if needle in record.truck_id]
    return sorted(matches, key=lambda record: record.date, reverse=True)


def most_recent(
    records: Iterable[FinancialRecord], limit: int = REPORT_RECORD_LIMIT
) -> List[FinancialRecord]:
    """Return at most ``limit`` records ordered newest first."""

    ordered = sorted(records, key=lambda record: record.timestamp, reverse=True)
    return ordered[:limit]


__all__ = [
    "CostBreakdown",
    "DestinationStat",
    "ProfitPoint",
    "REPORT_RECORD_LIMIT",
    "Totals",
    "UNKNOWN_DESTINATION",
    "build_profit_series",
    "compute_cost_breakdown",
    "compute_destination_stats",
    "compute_totals",
    "filter_by_truck",
    "most_recent",
    "profit_ratio",
]
