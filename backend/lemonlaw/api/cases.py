"""
Lemon Law Fee Suite
Cases API Router - Case CRUD Operations
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload

from lemonlaw.db.database import get_db
from lemonlaw.db.models import Case, RepairOrder, BillingEntry, Cost, CaseStatus, BillingType
from lemonlaw.schemas.legal_schemas import (
    CaseCreate, CaseUpdate, CaseResponse, CaseListResponse
)

router = APIRouter()


async def _case_stats(db: AsyncSession, case_id: int) -> dict:
    billing = await db.execute(
        select(
            func.count(BillingEntry.id),
            func.coalesce(func.sum(BillingEntry.hours), 0.0),
            func.coalesce(func.sum(BillingEntry.amount), 0.0),
        ).where(BillingEntry.case_id == case_id, BillingEntry.type == BillingType.BILLABLE)
    )
    count, hours, fees = billing.one()
    costs = await db.execute(
        select(func.coalesce(func.sum(Cost.amount), 0.0)).where(Cost.case_id == case_id)
    )
    repairs = await db.execute(
        select(
            func.count(RepairOrder.id),
            func.coalesce(func.sum(RepairOrder.days_down), 0),
        ).where(RepairOrder.case_id == case_id)
    )
    repair_count, days_down = repairs.one()
    return {
        "repair_order_count": repair_count or 0,
        "total_days_down": int(days_down or 0),
        "billing_entry_count": count or 0,
        "total_hours": float(hours or 0),
        "total_fees": float(fees or 0),
        "total_costs": float(costs.scalar() or 0),
    }


async def _case_response(db: AsyncSession, case: Case) -> CaseResponse:
    case_dict = CaseResponse.model_validate(case).model_dump()
    case_dict.update(await _case_stats(db, case.id))
    return CaseResponse(**case_dict)


async def get_case_or_404(db: AsyncSession, case_id: int) -> Case:
    result = await db.execute(select(Case).where(Case.id == case_id))
    case = result.scalar_one_or_none()
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


@router.get("/", response_model=CaseListResponse)
async def list_cases(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: Optional[CaseStatus] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """List cases with pagination and filtering"""
    query = select(Case)

    if status:
        query = query.where(Case.status == status)
    if search:
        query = query.where(or_(
            Case.client_name.ilike(f"%{search}%"),
            Case.case_number.ilike(f"%{search}%"),
            Case.defendant.ilike(f"%{search}%"),
            Case.vin.ilike(f"%{search}%"),
        ))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Case.updated_at.desc(), Case.id.desc())
    query = query.offset((page - 1) * per_page).limit(per_page)
    cases = (await db.execute(query)).scalars().all()

    return CaseListResponse(
        items=[await _case_response(db, case) for case in cases],
        total=total,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page
    )


@router.post("/", response_model=CaseResponse, status_code=201)
async def create_case(
    case_data: CaseCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create a new case"""
    if case_data.case_number:
        existing = await db.execute(select(Case).where(Case.case_number == case_data.case_number))
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=409, detail="Case number already exists")

    case = Case(**case_data.model_dump())
    db.add(case)
    await db.commit()
    await db.refresh(case)

    return await _case_response(db, case)


@router.get("/{case_id}", response_model=CaseResponse)
async def get_case(
    case_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Get a case with its repair, fee and cost totals"""
    case = await get_case_or_404(db, case_id)
    return await _case_response(db, case)


@router.put("/{case_id}", response_model=CaseResponse)
async def update_case(
    case_id: int,
    case_data: CaseUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Update a case"""
    case = await get_case_or_404(db, case_id)

    update_data = case_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(case, field, value)

    await db.commit()
    await db.refresh(case)

    return await _case_response(db, case)


@router.delete("/{case_id}")
async def delete_case(
    case_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete a case with its repair orders, billing entries and costs"""
    result = await db.execute(
        select(Case)
        .options(
            selectinload(Case.repair_orders),
            selectinload(Case.billing_entries),
            selectinload(Case.costs),
        )
        .where(Case.id == case_id)
    )
    case = result.scalar_one_or_none()
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")

    await db.delete(case)
    await db.commit()

    return {"message": "Case deleted", "case_id": case_id}
