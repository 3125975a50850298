"""
Lemon Law Fee Suite
Billing & Costs API Router
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from lemonlaw.api.cases import get_case_or_404
from lemonlaw.db.database import get_db
from lemonlaw.db.models import BillingEntry, Cost
from lemonlaw.schemas.legal_schemas import (
    BulkBillingCreate, BillingEntryResponse, BulkCostCreate, CostResponse
)

router = APIRouter()


# ============================================================
# BILLING ENTRIES
# ============================================================

@router.get("/billing", response_model=List[BillingEntryResponse])
async def list_billing_entries(
    case_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """List billing entries, optionally for one case"""
    query = select(BillingEntry)
    if case_id is not None:
        query = query.where(BillingEntry.case_id == case_id)
    query = query.order_by(BillingEntry.date.desc(), BillingEntry.id.desc())

    entries = (await db.execute(query)).scalars().all()
    return [BillingEntryResponse.model_validate(e) for e in entries]


@router.post("/billing", response_model=List[BillingEntryResponse], status_code=201)
async def create_billing_entries(
    request: BulkBillingCreate,
    db: AsyncSession = Depends(get_db)
):
    """Bulk create billing entries; amount is hours * rate"""
    case = await get_case_or_404(db, request.case_id)

    entries = [
        BillingEntry(
            case_id=case.id,
            amount=item.hours * item.rate,
            **item.model_dump()
        )
        for item in request.billing_entries
    ]
    db.add_all(entries)
    case.updated_at = datetime.utcnow()
    await db.commit()

    for entry in entries:
        await db.refresh(entry)
    return [BillingEntryResponse.model_validate(e) for e in entries]


@router.delete("/billing/{entry_id}")
async def delete_billing_entry(
    entry_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete a billing entry"""
    entry = await db.get(BillingEntry, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Billing entry not found")

    await db.delete(entry)
    await db.commit()
    return {"message": "Billing entry deleted", "entry_id": entry_id}


# ============================================================
# COSTS
# ============================================================

@router.get("/costs", response_model=List[CostResponse])
async def list_costs(
    case_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """List costs, optionally for one case"""
    query = select(Cost)
    if case_id is not None:
        query = query.where(Cost.case_id == case_id)
    query = query.order_by(Cost.date.desc(), Cost.id.desc())

    costs = (await db.execute(query)).scalars().all()
    return [CostResponse.model_validate(c) for c in costs]


@router.post("/costs", response_model=List[CostResponse], status_code=201)
async def create_costs(
    request: BulkCostCreate,
    db: AsyncSession = Depends(get_db)
):
    """Bulk create cost records"""
    case = await get_case_or_404(db, request.case_id)

    costs = [Cost(case_id=case.id, **item.model_dump()) for item in request.costs]
    db.add_all(costs)
    case.updated_at = datetime.utcnow()
    await db.commit()

    for cost in costs:
        await db.refresh(cost)
    return [CostResponse.model_validate(c) for c in costs]


@router.delete("/costs/{cost_id}")
async def delete_cost(
    cost_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete a cost record"""
    cost = await db.get(Cost, cost_id)
    if not cost:
        raise HTTPException(status_code=404, detail="Cost not found")

    await db.delete(cost)
    await db.commit()
    return {"message": "Cost deleted", "cost_id": cost_id}
