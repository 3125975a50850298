"""
Lemon Law Fee Suite
Fee Comparison API Router - Laffey Matrix Reasonableness
"""
import logging
from dataclasses import dataclass
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from lemonlaw.api.cases import get_case_or_404
from lemonlaw.db.database import get_db
from lemonlaw.db.models import (
    Attorney, BillingEntry, BillingType, Case, Cost, LaffeyMatrixPeriod, RepairOrder
)
from lemonlaw.schemas.legal_schemas import (
    FeeComparisonRequest, FeeComparisonResponse, FeeReportResponse
)
from lemonlaw.services.fee_report import FeeComparisonReport, format_comparison
from lemonlaw.services.laffey_service import (
    ComparisonResult,
    FeeCalculationError,
    RateSchedule,
    RosterAttorney,
    TimeEntry,
    calculate_comparison,
    laffey_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class CaseFeeData:
    """Everything stored for a case that the fee motion needs"""
    case: Case
    repair_orders: List[RepairOrder]
    billing_entries: List[BillingEntry]
    costs: List[Cost]
    period: Optional[LaffeyMatrixPeriod]
    comparison: Optional[ComparisonResult]
    report: Optional[FeeComparisonReport]


def schedule_from_period(period: LaffeyMatrixPeriod) -> RateSchedule:
    return RateSchedule(
        tier1to3_rate=period.tier1to3_rate,
        tier4to7_rate=period.tier4to7_rate,
        tier8to10_rate=period.tier8to10_rate,
        tier11to19_rate=period.tier11to19_rate,
        tier20_plus_rate=period.tier20_plus_rate,
        paralegal_rate=period.paralegal_rate,
        period_start=period.period_start.isoformat() if period.period_start else None,
        period_end=period.period_end.isoformat() if period.period_end else None,
        adjustment_factor=period.adjustment_factor,
    )


def calculation_error(e: FeeCalculationError) -> HTTPException:
    logger.warning("Fee comparison rejected: %s", e.message)
    return HTTPException(status_code=422, detail=e.to_dict())


async def _get_period(db: AsyncSession, period_id: Optional[int]) -> Optional[LaffeyMatrixPeriod]:
    if period_id is not None:
        period = await db.get(LaffeyMatrixPeriod, period_id)
        if not period:
            raise HTTPException(status_code=404, detail="Laffey Matrix period not found")
        return period

    result = await db.execute(
        select(LaffeyMatrixPeriod).order_by(LaffeyMatrixPeriod.period_start.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def load_case_fee_data(
    db: AsyncSession,
    case_id: int,
    laffey_period_id: Optional[int] = None,
) -> CaseFeeData:
    """
    Load a case's repair orders, billing, costs and roster and run the
    Laffey comparison.

    The comparison is None when no Laffey Matrix period is stored.
    Calculator errors surface as HTTP 422.
    """
    case = await get_case_or_404(db, case_id)

    repair_orders = (await db.execute(
        select(RepairOrder)
        .where(RepairOrder.case_id == case_id)
        .order_by(RepairOrder.date_in.asc(), RepairOrder.id.asc())
    )).scalars().all()
    billing_entries = (await db.execute(
        select(BillingEntry)
        .where(BillingEntry.case_id == case_id)
        .order_by(BillingEntry.date.asc(), BillingEntry.id.asc())
    )).scalars().all()
    costs = (await db.execute(
        select(Cost).where(Cost.case_id == case_id).order_by(Cost.date.asc(), Cost.id.asc())
    )).scalars().all()
    period = await _get_period(db, laffey_period_id)

    comparison = None
    report = None
    if period is not None:
        roster = [
            RosterAttorney(name=a.name, years_experience=a.years_out_of_law_school, is_paralegal=a.is_paralegal)
            for a in (await db.execute(select(Attorney))).scalars().all()
        ]
        entries = [
            TimeEntry(
                attorney=e.attorney,
                hours=e.hours,
                billed_rate=e.rate,
                date=e.date.isoformat() if e.date else "",
                description=e.description or "",
            )
            for e in billing_entries
            if e.type != BillingType.NON_BILLABLE
        ]
        try:
            comparison = laffey_service.compare_entries(entries, schedule_from_period(period), roster)
        except FeeCalculationError as e:
            raise calculation_error(e) from e
        report = format_comparison(comparison)

    return CaseFeeData(
        case=case,
        repair_orders=list(repair_orders),
        billing_entries=list(billing_entries),
        costs=list(costs),
        period=period,
        comparison=comparison,
        report=report,
    )


def _response(result: ComparisonResult, period_id: Optional[int] = None) -> FeeComparisonResponse:
    report = format_comparison(result)
    return FeeComparisonResponse(
        comparison=result.to_dict(),
        report=FeeReportResponse(headers=report.headers, rows=report.rows, sentences=report.sentences),
        laffey_period_id=period_id,
    )


@router.post("/comparison", response_model=FeeComparisonResponse)
async def compare_fees(request: FeeComparisonRequest):
    """
    Compare supplied time entries against a supplied rate schedule.

    Returns the per-attorney breakdown, totals and the formatted
    table/sentences used in the fee motion.
    """
    default_years = request.default_years_experience
    if default_years is None:
        default_years = laffey_service.default_years_experience
    try:
        result = calculate_comparison(
            [e.to_time_entry() for e in request.entries],
            request.schedule.to_schedule(),
            [r.to_roster_attorney() for r in request.roster],
            default_years,
        )
    except FeeCalculationError as e:
        raise calculation_error(e) from e
    return _response(result)


@router.get("/cases/{case_id}/comparison", response_model=FeeComparisonResponse)
async def compare_case_fees(
    case_id: int,
    laffey_period_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Compare a case's stored billing against the newest (or chosen) Laffey period"""
    data = await load_case_fee_data(db, case_id, laffey_period_id)
    if data.comparison is None:
        raise HTTPException(status_code=404, detail="No Laffey Matrix period available")
    return _response(data.comparison, data.period.id)
