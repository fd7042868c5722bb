"""Trip and expense domain models and dashboard aggregations."""

from .aggregation import (
    CostBreakdown,
    DestinationStat,
    ProfitPoint,
    Totals,
    build_profit_series,
    compute_cost_breakdown,
    compute_destination_stats,
    compute_totals,
    filter_by_truck,
    most_recent,
)
from .records import (
    ExpenseCategory,
    ExpenseInput,
    ExpenseRecord,
    FinancialRecord,
    RateConfig,
    RecordKind,
    TripInput,
    TripRecord,
    ValidationError,
    normalize_expense,
    normalize_trip,
    record_from_document,
    record_to_document,
)

__all__ = [
    "CostBreakdown",
    "DestinationStat",
    "ExpenseCategory",
    "ExpenseInput",
    "ExpenseRecord",
    "FinancialRecord",
    "ProfitPoint",
    "RateConfig",
    "RecordKind",
    "Totals",
    "TripInput",
    "TripRecord",
    "ValidationError",
    "build_profit_series",
    "compute_cost_breakdown",
    "compute_destination_stats",
    "compute_totals",
    "filter_by_truck",
    "most_recent",
    "normalize_expense",
    "normalize_trip",
    "record_from_document",
    "record_to_document",
]
