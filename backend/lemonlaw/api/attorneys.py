"""
Lemon Law Fee Suite
Attorney Roster & Laffey Matrix API Router
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from lemonlaw.db.database import get_db
from lemonlaw.db.models import Attorney, LaffeyMatrixPeriod
from lemonlaw.schemas.legal_schemas import (
    AttorneyCreate, AttorneyResponse, LaffeyMatrixCreate, LaffeyMatrixResponse
)

router = APIRouter()


@router.get("/attorneys", response_model=List[AttorneyResponse])
async def list_attorneys(db: AsyncSession = Depends(get_db)):
    """List the attorney roster by name"""
    result = await db.execute(select(Attorney).order_by(Attorney.name.asc()))
    return [AttorneyResponse.model_validate(a) for a in result.scalars().all()]


@router.post("/attorneys", response_model=AttorneyResponse, status_code=201)
async def create_attorney(
    attorney_data: AttorneyCreate,
    db: AsyncSession = Depends(get_db)
):
    """Add an attorney or paralegal to the roster"""
    existing = await db.execute(select(Attorney).where(Attorney.name == attorney_data.name))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Attorney already exists")

    attorney = Attorney(**attorney_data.model_dump())
    db.add(attorney)
    await db.commit()
    await db.refresh(attorney)
    return AttorneyResponse.model_validate(attorney)


@router.get("/laffey-matrix", response_model=List[LaffeyMatrixResponse])
async def list_laffey_periods(db: AsyncSession = Depends(get_db)):
    """List Laffey Matrix periods, newest first"""
    result = await db.execute(
        select(LaffeyMatrixPeriod).order_by(LaffeyMatrixPeriod.period_start.desc())
    )
    return [LaffeyMatrixResponse.model_validate(p) for p in result.scalars().all()]


@router.post("/laffey-matrix", response_model=LaffeyMatrixResponse, status_code=201)
async def create_laffey_period(
    period_data: LaffeyMatrixCreate,
    db: AsyncSession = Depends(get_db)
):
    """Store the rates for a Laffey Matrix period"""
    period = LaffeyMatrixPeriod(**period_data.model_dump())
    db.add(period)
    await db.commit()
    await db.refresh(period)
    return LaffeyMatrixResponse.model_validate(period)
