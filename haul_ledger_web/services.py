"""Business logic helpers for the Haul Ledger views."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List

from haul_common import (
    ExpenseCategory,
    FinancialRecord,
    RateConfig,
    build_profit_series,
    compute_cost_breakdown,
    compute_destination_stats,
    compute_totals,
)

COST_CATEGORIES = ("fuel", "labor", "maintenance", "other")


@dataclass(frozen=True, slots=True)
class CategoryOption:
    """Expense category presented in the new expense form."""

    code: str
    label: str
    description: str = ""


DEFAULT_CATEGORIES: List[CategoryOption] = [
    CategoryOption(
        code=ExpenseCategory.MAINTENANCE.value,
        label="Maintenance",
        description="Repairs, servicing, and spare parts.",
    ),
    CategoryOption(
        code=ExpenseCategory.TIRES.value,
        label="Tires",
        description="Tire purchases and repairs.",
    ),
    CategoryOption(
        code=ExpenseCategory.TAXES.value,
        label="Taxes & Fees",
        description="Road taxes, permits, and tolls.",
    ),
    CategoryOption(
        code=ExpenseCategory.FUEL.value,
        label="Fuel (extra)",
        description="Fuel bought outside a recorded trip.",
    ),
    CategoryOption(
        code=ExpenseCategory.OTHER.value, label="Other", description="Anything else."
    ),
]


def categories_for_select() -> Iterable[CategoryOption]:
    """Return categories presented in the new expense form."""

    return DEFAULT_CATEGORIES


def format_currency(amount: Decimal) -> str:
    """Format ``amount`` as whole Guinean francs, e.g. ``1 850 000 GNF``."""

    whole = Decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return f"{whole:,.0f}".replace(",", " ") + " GNF"


def _money(value: Decimal) -> float:
    return float(value)


def build_dashboard(records: Iterable[FinancialRecord]) -> Dict[str, Any]:
    """Fold ``records`` into the JSON payload behind the analytics view."""

    records = list(records)
    totals = compute_totals(records)
    breakdown = compute_cost_breakdown(records)
    return {
        "totals": {
            "total_trip_count": totals.total_trip_count,
            "total_tons": _money(totals.total_tons),
            "total_revenue": _money(totals.total_revenue),
            "total_profit": _money(totals.total_profit),
            "total_expenses": _money(totals.total_expenses),
        },
        "profit_series": [
            {
                "date": point.date.isoformat(),
                "id": point.record.id,
                "kind": point.record.kind.value,
                "revenue": _money(point.record.revenue),
                "total_expenses": _money(point.record.total_expenses),
                "net_profit": _money(point.record.net_profit),
                "profit_ratio": _money(point.profit_ratio),
            }
            for point in build_profit_series(records)
        ],
        "destinations": [
            {
                "name": stat.name,
                "trip_count": stat.trip_count,
                "total_tons": _money(stat.total_tons),
                "total_revenue": _money(stat.total_revenue),
            }
            for stat in compute_destination_stats(records)
        ],
        "cost_breakdown": {
            **{name: _money(getattr(breakdown, name)) for name in COST_CATEGORIES},
            "total": _money(breakdown.total),
            "shares": {
                name: _money(breakdown.share(name)) for name in COST_CATEGORIES
            },
        },
    }


def build_summary_text(records: Iterable[FinancialRecord], rates: RateConfig) -> str:
    """Render a copy-ready plain-text summary of the ledger."""

    records = list(records)
    totals = compute_totals(records)
    breakdown = compute_cost_breakdown(records)
    lines = [
        "Haul Ledger Summary",
        f"Trips: {totals.total_trip_count} | Tons delivered: {totals.total_tons:.2f}",
        f"Revenue: {format_currency(totals.total_revenue)}",
        f"Expenses: {format_currency(totals.total_expenses)}",
        f"Net profit: {format_currency(totals.total_profit)}",
        "",
        "Active rates:",
        f"  - Fuel price per liter: {format_currency(rates.fuel_price_per_liter)}",
        f"  - Revenue per ton: {format_currency(rates.revenue_per_ton)}",
        f"  - Labor cost per ton: {format_currency(rates.labor_cost_per_ton)}",
        "",
        "Top destinations:",
    ]
    destinations = compute_destination_stats(records)
    if not destinations:
        lines.append("  - No trips recorded yet.")
    for stat in destinations:
        lines.append(
            f"  - {stat.name}: {stat.trip_count} trip(s), {stat.total_tons:.2f} t, "
            f"{format_currency(stat.total_revenue)}"
        )
    lines.extend(["", "Cost breakdown:"])
    for name in COST_CATEGORIES:
        lines.append(
            f"  - {name.capitalize()}: {format_currency(getattr(breakdown, name))} "
            f"({breakdown.share(name):.0f}%)"
        )
    return "\n".join(lines)
