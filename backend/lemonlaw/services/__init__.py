"""
Lemon Law Fee Suite
Services Module
"""
from lemonlaw.services.laffey_service import (
    laffey_service,
    LaffeyService,
    LaffeyTier,
    TimeEntry,
    RosterAttorney,
    RateSchedule,
    AttorneyAggregate,
    AttorneyComparison,
    ComparisonResult,
    FeeCalculationError,
    InvalidInputError,
    IncompleteScheduleError,
    resolve_tier,
    resolve_benchmark_rate,
    resolve_paralegal_rate,
    aggregate,
    compare,
    calculate_comparison,
)
from lemonlaw.services.fee_report import (
    FeeComparisonReport,
    format_comparison,
    format_currency,
    format_hours,
)
from lemonlaw.services.ai_service import ai_service, AIService, AIServiceError

__all__ = [
    # Laffey Matrix comparison
    "laffey_service",
    "LaffeyService",
    "LaffeyTier",
    "TimeEntry",
    "RosterAttorney",
    "RateSchedule",
    "AttorneyAggregate",
    "AttorneyComparison",
    "ComparisonResult",
    "FeeCalculationError",
    "InvalidInputError",
    "IncompleteScheduleError",
    "resolve_tier",
    "resolve_benchmark_rate",
    "resolve_paralegal_rate",
    "aggregate",
    "compare",
    "calculate_comparison",
    # Report
    "FeeComparisonReport",
    "format_comparison",
    "format_currency",
    "format_hours",
    # AI extraction
    "ai_service",
    "AIService",
    "AIServiceError",
]
