"""
Lemon Law Fee Suite
Laffey Matrix Fee Comparison Service

Aggregates billable time by attorney and compares the billed totals
against the benchmark rates of a Laffey Matrix period. The result feeds
the fee motion and its exhibits.
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from lemonlaw.core.config import settings

logger = logging.getLogger(__name__)


DEFAULT_YEARS_EXPERIENCE = 5

# Billed amounts within this many dollars of the benchmark count as equal
BENCHMARK_TOLERANCE = 1e-6


class LaffeyTier(str, Enum):
    """Experience buckets of the Laffey Matrix"""
    JUNIOR = "junior"        # 0-3 years
    MID = "mid"              # 4-7 years
    SENIOR = "senior"        # 8-10 years
    PRINCIPAL = "principal"  # 11-19 years
    VETERAN = "veteran"      # 20+ years
    PARALEGAL = "paralegal"


# Inclusive upper bound in years -> tier, checked in ascending order
TIER_BOUNDARIES = [
    (3, LaffeyTier.JUNIOR),
    (7, LaffeyTier.MID),
    (10, LaffeyTier.SENIOR),
    (19, LaffeyTier.PRINCIPAL),
]

TIER_RATE_FIELDS = {
    LaffeyTier.JUNIOR: "tier1to3_rate",
    LaffeyTier.MID: "tier4to7_rate",
    LaffeyTier.SENIOR: "tier8to10_rate",
    LaffeyTier.PRINCIPAL: "tier11to19_rate",
    LaffeyTier.VETERAN: "tier20_plus_rate",
    LaffeyTier.PARALEGAL: "paralegal_rate",
}


def is_at_or_below(billed: float, benchmark: float) -> bool:
    """billed <= benchmark, treating float drift from the running mean as equality"""
    return billed <= benchmark + BENCHMARK_TOLERANCE


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and not math.isinf(value)


# ============================================================
# ERRORS
# ============================================================

class FeeCalculationError(Exception):
    """Base error for fee comparison failures"""

    def __init__(self, message: str, attorney: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.attorney = attorney
        self.field = field

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"message": self.message, "attorney": self.attorney, "field": self.field}


class InvalidInputError(FeeCalculationError, ValueError):
    """Negative hours, rates or experience, or a malformed time entry"""


class IncompleteScheduleError(FeeCalculationError):
    """The rate schedule has no rate for the tier an attorney resolves to"""


# ============================================================
# DATA MODEL
# ============================================================

@dataclass(frozen=True)
class TimeEntry:
    """One attorney's recorded work at one billed rate"""
    attorney: str
    hours: float
    billed_rate: float
    years_experience: Optional[int] = None
    date: str = ""
    description: str = ""


@dataclass(frozen=True)
class RosterAttorney:
    """Roster record used to fill in missing experience"""
    name: str
    years_experience: int
    is_paralegal: bool = False


@dataclass(frozen=True)
class RateSchedule:
    """A Laffey Matrix period: one hourly rate per tier plus a paralegal rate"""
    tier1to3_rate: Optional[float] = None
    tier4to7_rate: Optional[float] = None
    tier8to10_rate: Optional[float] = None
    tier11to19_rate: Optional[float] = None
    tier20_plus_rate: Optional[float] = None
    paralegal_rate: Optional[float] = None
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    adjustment_factor: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping) -> "RateSchedule":
        """Build from snake_case or camelCase keys (tier1to3Rate, tier20PlusRate, ...)"""
        aliases = {
            "tier1to3Rate": "tier1to3_rate",
            "tier4to7Rate": "tier4to7_rate",
            "tier8to10Rate": "tier8to10_rate",
            "tier11to19Rate": "tier11to19_rate",
            "tier20PlusRate": "tier20_plus_rate",
            "paralegalRate": "paralegal_rate",
            "periodStart": "period_start",
            "periodEnd": "period_end",
            "adjustmentFactor": "adjustment_factor",
        }
        known = set(cls.__dataclass_fields__)
        values = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name in known:
                values[name] = value
        return cls(**values)


@dataclass
class AttorneyAggregate:
    """Hours and hours-weighted billed rate for one attorney"""
    attorney: str
    hours: float
    blended_rate: float
    years_experience: int
    is_paralegal: bool = False
    entry_count: int = 0

    @property
    def billed_amount(self) -> float:
        return self.hours * self.blended_rate


@dataclass(frozen=True)
class AttorneyComparison:
    """Per-attorney line of a comparison"""
    attorney: str
    tier: LaffeyTier
    years_experience: int
    hours: float
    billed_rate: float
    benchmark_rate: float
    billed_amount: float
    benchmark_amount: float

    @property
    def is_at_or_below_benchmark(self) -> bool:
        return is_at_or_below(self.billed_amount, self.benchmark_amount)


@dataclass(frozen=True)
class ComparisonResult:
    """Billed vs. benchmark totals with a per-attorney breakdown"""
    total_hours: float = 0.0
    total_billed: float = 0.0
    total_benchmark: float = 0.0
    difference: float = 0.0
    is_at_or_below_benchmark: bool = True
    by_attorney: List[AttorneyComparison] = field(default_factory=list)

    @property
    def attorneys_over_benchmark(self) -> List[str]:
        return [a.attorney for a in self.by_attorney if not a.is_at_or_below_benchmark]

    def to_dict(self) -> Dict:
        return {
            "total_hours": self.total_hours,
            "total_billed": self.total_billed,
            "total_benchmark": self.total_benchmark,
            "difference": self.difference,
            "is_at_or_below_benchmark": self.is_at_or_below_benchmark,
            "attorneys_over_benchmark": self.attorneys_over_benchmark,
            "by_attorney": [
                {
                    "attorney": a.attorney,
                    "tier": a.tier.value,
                    "years_experience": a.years_experience,
                    "hours": a.hours,
                    "billed_rate": a.billed_rate,
                    "benchmark_rate": a.benchmark_rate,
                    "billed_amount": a.billed_amount,
                    "benchmark_amount": a.benchmark_amount,
                    "is_at_or_below_benchmark": a.is_at_or_below_benchmark,
                }
                for a in self.by_attorney
            ],
        }


# ============================================================
# RATE TIER RESOLVER
# ============================================================

def resolve_tier(years_experience: int) -> LaffeyTier:
    """Map years of experience to a Laffey tier"""
    if not _is_number(years_experience) or years_experience < 0:
        raise InvalidInputError(
            f"Years of experience must be a non-negative number, got {years_experience!r}",
            field="years_experience",
        )

    for upper_bound, tier in TIER_BOUNDARIES:
        if years_experience <= upper_bound:
            return tier
    return LaffeyTier.VETERAN


def _rate_for_tier(tier: LaffeyTier, schedule: RateSchedule, attorney: Optional[str] = None) -> float:
    if schedule is None:
        raise IncompleteScheduleError("No Laffey Matrix rate schedule supplied", attorney=attorney)

    field_name = TIER_RATE_FIELDS[tier]
    rate = getattr(schedule, field_name, None)
    if rate is None:
        raise IncompleteScheduleError(
            f"Laffey Matrix has no {field_name} for the {tier.value} tier",
            attorney=attorney,
            field=field_name,
        )
    if not _is_number(rate):
        raise InvalidInputError(
            f"Laffey Matrix {field_name} must be a number, got {rate!r}",
            attorney=attorney,
            field=field_name,
        )
    if rate < 0:
        raise InvalidInputError(
            f"Laffey Matrix {field_name} is negative ({rate})",
            attorney=attorney,
            field=field_name,
        )
    return float(rate)


def resolve_benchmark_rate(years_experience: int, schedule: RateSchedule) -> float:
    """Benchmark hourly rate for an attorney with the given experience"""
    return _rate_for_tier(resolve_tier(years_experience), schedule)


def resolve_paralegal_rate(schedule: RateSchedule) -> float:
    """Benchmark hourly rate for paraprofessional staff"""
    return _rate_for_tier(LaffeyTier.PARALEGAL, schedule)


# ============================================================
# ATTORNEY AGGREGATOR
# ============================================================

def _check_non_negative(value, label: str, attorney: Optional[str], field_name: str):
    if not _is_number(value):
        raise InvalidInputError(
            f"{label} must be a number, got {value!r}",
            attorney=attorney,
            field=field_name,
        )
    if value < 0:
        raise InvalidInputError(
            f"{label} must be non-negative, got {value!r}",
            attorney=attorney,
            field=field_name,
        )


def _validate_entries(entries: List[TimeEntry]):
    for entry in entries:
        name = entry.attorney
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError("Time entry has no attorney name", attorney=name, field="attorney")
        _check_non_negative(entry.hours, f"Hours for {name}", name, "hours")
        _check_non_negative(entry.billed_rate, f"Billed rate for {name}", name, "billed_rate")
        if entry.years_experience is not None:
            _check_non_negative(
                entry.years_experience, f"Years of experience for {name}", name, "years_experience"
            )


def _validate_roster(roster: List[RosterAttorney]):
    for member in roster:
        if member.years_experience is not None:
            _check_non_negative(
                member.years_experience,
                f"Roster experience for {member.name}",
                member.name,
                "years_experience",
            )


def aggregate(
    entries: Iterable[TimeEntry],
    roster: Optional[Iterable[RosterAttorney]] = None,
    default_years_experience: int = DEFAULT_YEARS_EXPERIENCE,
) -> Dict[str, AttorneyAggregate]:
    """
    Group time entries by attorney.

    Experience is taken from the entry, then the roster (exact name
    match), then ``default_years_experience``. The first entry for an
    attorney fixes that attorney's experience.

    Returns:
        Mapping of attorney name to AttorneyAggregate, in order of
        first appearance.
    """
    entries = list(entries)
    roster = list(roster or [])
    _check_non_negative(
        default_years_experience, "Default years of experience", None, "default_years_experience"
    )

    _validate_entries(entries)
    _validate_roster(roster)

    roster_by_name = {}
    for member in roster:
        roster_by_name.setdefault(member.name, member)

    aggregates: Dict[str, AttorneyAggregate] = {}

    for entry in entries:
        existing = aggregates.get(entry.attorney)

        if existing is None:
            member = roster_by_name.get(entry.attorney)
            if entry.years_experience is not None:
                years = entry.years_experience
            elif member is not None and member.years_experience is not None:
                years = member.years_experience
            else:
                years = default_years_experience

            aggregates[entry.attorney] = AttorneyAggregate(
                attorney=entry.attorney,
                hours=float(entry.hours),
                blended_rate=float(entry.billed_rate),
                years_experience=years,
                is_paralegal=bool(member.is_paralegal) if member else False,
                entry_count=1,
            )
            continue

        existing.entry_count += 1
        total_hours = existing.hours + entry.hours
        if entry.hours == 0 or total_hours == 0:
            continue

        existing.blended_rate = (
            existing.blended_rate * existing.hours + entry.billed_rate * entry.hours
        ) / total_hours
        existing.hours = total_hours

    logger.debug("Aggregated %d time entries into %d attorneys", len(entries), len(aggregates))
    return aggregates


# ============================================================
# COMPARISON ENGINE
# ============================================================

def compare(aggregates: Mapping[str, AttorneyAggregate], schedule: RateSchedule) -> ComparisonResult:
    """Compare aggregated billing against the schedule's benchmark rates"""
    by_attorney: List[AttorneyComparison] = []

    for name, data in aggregates.items():
        if data.is_paralegal:
            tier = LaffeyTier.PARALEGAL
        else:
            try:
                tier = resolve_tier(data.years_experience)
            except InvalidInputError as e:
                raise InvalidInputError(e.message, attorney=name, field=e.field) from e
        benchmark_rate = _rate_for_tier(tier, schedule, attorney=name)

        by_attorney.append(AttorneyComparison(
            attorney=name,
            tier=tier,
            years_experience=data.years_experience,
            hours=data.hours,
            billed_rate=data.blended_rate,
            benchmark_rate=benchmark_rate,
            billed_amount=data.hours * data.blended_rate,
            benchmark_amount=data.hours * benchmark_rate,
        ))

    total_hours = sum(a.hours for a in by_attorney)
    total_billed = sum(a.billed_amount for a in by_attorney)
    total_benchmark = sum(a.benchmark_amount for a in by_attorney)

    return ComparisonResult(
        total_hours=total_hours,
        total_billed=total_billed,
        total_benchmark=total_benchmark,
        difference=total_benchmark - total_billed,
        is_at_or_below_benchmark=is_at_or_below(total_billed, total_benchmark),
        by_attorney=by_attorney,
    )


def calculate_comparison(
    entries: Iterable[TimeEntry],
    schedule: RateSchedule,
    roster: Optional[Iterable[RosterAttorney]] = None,
    default_years_experience: int = DEFAULT_YEARS_EXPERIENCE,
) -> ComparisonResult:
    """Aggregate then compare in one call"""
    return compare(aggregate(entries, roster, default_years_experience), schedule)


class LaffeyService:
    """
    Laffey Matrix comparison with the configured fallback experience.

    Stateless: every call gets its full input and returns a fresh result.
    """

    def __init__(self, default_years_experience: int = DEFAULT_YEARS_EXPERIENCE):
        self.default_years_experience = default_years_experience

    def compare_entries(
        self,
        entries: Iterable[TimeEntry],
        schedule: RateSchedule,
        roster: Optional[Iterable[RosterAttorney]] = None,
    ) -> ComparisonResult:
        return calculate_comparison(entries, schedule, roster, self.default_years_experience)

    def tier_for(self, years_experience: int) -> LaffeyTier:
        return resolve_tier(years_experience)


# Singleton instance
laffey_service = LaffeyService(default_years_experience=settings.DEFAULT_YEARS_EXPERIENCE)
