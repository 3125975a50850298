"""
Lemon Law Fee Suite
Repair Orders API Router
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from lemonlaw.api.cases import get_case_or_404
from lemonlaw.db.database import get_db
from lemonlaw.db.models import RepairOrder
from lemonlaw.schemas.legal_schemas import (
    BulkRepairOrderCreate, RepairOrderResponse, RepairOrderUpdate
)
from lemonlaw.services.repair_history import days_between

router = APIRouter()


async def _get_repair_order_or_404(db: AsyncSession, repair_order_id: int) -> RepairOrder:
    repair = await db.get(RepairOrder, repair_order_id)
    if not repair:
        raise HTTPException(status_code=404, detail="Repair order not found")
    return repair


@router.get("/repair-orders", response_model=List[RepairOrderResponse])
async def list_repair_orders(
    case_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """List repair orders in chronological order, optionally for one case"""
    query = select(RepairOrder)
    if case_id is not None:
        query = query.where(RepairOrder.case_id == case_id)
    query = query.order_by(RepairOrder.date_in.asc(), RepairOrder.id.asc())

    repairs = (await db.execute(query)).scalars().all()
    return [RepairOrderResponse.model_validate(r) for r in repairs]


@router.post("/repair-orders", response_model=List[RepairOrderResponse], status_code=201)
async def create_repair_orders(
    request: BulkRepairOrderCreate,
    db: AsyncSession = Depends(get_db)
):
    """Bulk create repair orders; days_down defaults to the days between date_in and date_out"""
    case = await get_case_or_404(db, request.case_id)

    repairs = []
    for item in request.repair_orders:
        data = item.model_dump()
        if data["days_down"] is None:
            data["days_down"] = days_between(item.date_in, item.date_out)
        repairs.append(RepairOrder(case_id=case.id, **data))

    db.add_all(repairs)
    case.updated_at = datetime.utcnow()
    await db.commit()

    for repair in repairs:
        await db.refresh(repair)
    return [RepairOrderResponse.model_validate(r) for r in repairs]


@router.get("/repair-orders/{repair_order_id}", response_model=RepairOrderResponse)
async def get_repair_order(
    repair_order_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Get a repair order"""
    repair = await _get_repair_order_or_404(db, repair_order_id)
    return RepairOrderResponse.model_validate(repair)


@router.put("/repair-orders/{repair_order_id}", response_model=RepairOrderResponse)
async def update_repair_order(
    repair_order_id: int,
    repair_data: RepairOrderUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Update a repair order"""
    repair = await _get_repair_order_or_404(db, repair_order_id)

    update_data = repair_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(repair, field, value)

    if repair.date_in and repair.date_out and repair.date_out < repair.date_in:
        raise HTTPException(status_code=422, detail="date_out must not precede date_in")

    # Changed dates without an explicit days_down recompute it
    dates_changed = bool(update_data.keys() & {"date_in", "date_out"})
    if repair.days_down is None or (dates_changed and "days_down" not in update_data):
        repair.days_down = days_between(repair.date_in, repair.date_out)

    await db.commit()
    await db.refresh(repair)

    return RepairOrderResponse.model_validate(repair)


@router.delete("/repair-orders/{repair_order_id}")
async def delete_repair_order(
    repair_order_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete a repair order"""
    repair = await _get_repair_order_or_404(db, repair_order_id)

    await db.delete(repair)
    await db.commit()
    return {"message": "Repair order deleted", "repair_order_id": repair_order_id}
