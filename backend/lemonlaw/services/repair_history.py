"""
Lemon Law Fee Suite
Repair History Summary

Totals a vehicle's dealership visits for Exhibit A and the motion's
statement of facts: repair attempts, days out of service, and whether the
Song-Beverly 30-day presumption is triggered.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Optional


PRESUMPTION_DAYS = 30
REPAIR_ATTEMPT_THRESHOLD = 4
MAX_LISTED_ISSUES = 5
ISSUE_LENGTH = 100


def _field(repair: Any, name: str) -> Any:
    if isinstance(repair, dict):
        return repair.get(name)
    return getattr(repair, name, None)


def _as_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def days_between(date_in: Optional[date], date_out: Optional[date]) -> int:
    """Calendar days between check-in and pick-up; 0 when either is unknown"""
    if not date_in or not date_out:
        return 0
    return max((date_out - date_in).days, 0)


def days_down_for(repair: Any) -> int:
    """Stored days_down, falling back to the visit's dates"""
    days = _field(repair, "days_down")
    if days:
        return int(days)
    return days_between(_as_date(_field(repair, "date_in")), _as_date(_field(repair, "date_out")))


@dataclass
class RepairHistory:
    """Aggregate of a case's repair visits"""
    attempts: int = 0
    total_days_down: int = 0
    issues: List[str] = field(default_factory=list)

    @property
    def average_days(self) -> float:
        if not self.attempts:
            return 0.0
        return self.total_days_down / self.attempts

    @property
    def exceeds_presumption(self) -> bool:
        return self.total_days_down >= PRESUMPTION_DAYS

    @property
    def exceeds_attempt_threshold(self) -> bool:
        return self.attempts >= REPAIR_ATTEMPT_THRESHOLD


def sort_repairs(repair_orders: Iterable[Any]) -> list:
    """Chronological by date_in; undated visits last"""
    def key(repair):
        date_in = _as_date(_field(repair, "date_in"))
        return (date_in is None, date_in or date.min, _field(repair, "id") or 0)

    return sorted(repair_orders, key=key)


def summarize_repairs(repair_orders: Iterable[Any]) -> RepairHistory:
    repairs = sort_repairs(repair_orders)
    issues: List[str] = []
    for repair in repairs:
        concern = (_field(repair, "customer_concern") or "").strip()[:ISSUE_LENGTH]
        if concern and concern not in issues:
            issues.append(concern)

    return RepairHistory(
        attempts=len(repairs),
        total_days_down=sum(days_down_for(r) for r in repairs),
        issues=issues[:MAX_LISTED_ISSUES],
    )
