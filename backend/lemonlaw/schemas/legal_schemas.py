"""
Lemon Law Fee Suite
Pydantic Schemas for API Request/Response Validation
"""
from datetime import date as DateType, datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator
from enum import Enum

from lemonlaw.db.models import CaseStatus, BillingType, CostCategory, RepairCategory, ResolvedStatus
from lemonlaw.services.laffey_service import RateSchedule, RosterAttorney, TimeEntry


class DocumentKind(str, Enum):
    MOTION = "motion"
    REPAIR_SUMMARY = "repair_summary"
    BILLING_SUMMARY = "billing_summary"
    LAFFEY_EXHIBIT = "laffey_exhibit"
    FULL_PACKAGE = "full_package"


class ExtractionType(str, Enum):
    REPAIR_ORDERS = "repair_orders"
    BILLING = "billing"
    COSTS = "costs"


# ============================================================
# CASE SCHEMAS
# ============================================================

class CaseBase(BaseModel):
    """Base schema for cases"""
    case_number: Optional[str] = Field(None, max_length=100)
    client_name: str = Field(..., min_length=1, max_length=255)
    defendant: str = Field(..., min_length=1, max_length=255)
    court_name: Optional[str] = None
    county: Optional[str] = None

    vehicle_year: Optional[int] = Field(None, ge=1900, le=2100)
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vin: Optional[str] = Field(None, max_length=32)
    purchase_date: Optional[DateType] = None
    purchase_price: Optional[float] = Field(None, ge=0)

    status: CaseStatus = CaseStatus.ACTIVE


class CaseCreate(CaseBase):
    """Schema for creating a new case"""
    pass


class CaseUpdate(BaseModel):
    """Schema for updating a case"""
    case_number: Optional[str] = None
    client_name: Optional[str] = None
    defendant: Optional[str] = None
    court_name: Optional[str] = None
    county: Optional[str] = None
    vehicle_year: Optional[int] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vin: Optional[str] = None
    purchase_date: Optional[DateType] = None
    purchase_price: Optional[float] = None
    status: Optional[CaseStatus] = None


class CaseResponse(CaseBase):
    """Schema for case responses"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime

    # Computed stats
    repair_order_count: int = 0
    total_days_down: int = 0
    billing_entry_count: int = 0
    total_hours: float = 0.0
    total_fees: float = 0.0
    total_costs: float = 0.0


class CaseListResponse(BaseModel):
    """Schema for paginated case list"""
    items: List[CaseResponse]
    total: int
    page: int
    per_page: int
    pages: int


# ============================================================
# ATTORNEY SCHEMAS
# ============================================================

class AttorneyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    bar_number: Optional[str] = None
    years_out_of_law_school: int = Field(..., ge=0)
    is_paralegal: bool = False
    default_rate: Optional[float] = Field(None, ge=0)


class AttorneyResponse(AttorneyCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


# ============================================================
# REPAIR ORDER SCHEMAS
# ============================================================

class RepairOrderInput(BaseModel):
    ro_number: Optional[str] = None
    dealership: Optional[str] = None
    tech_number: Optional[str] = None
    date_in: Optional[DateType] = None
    date_out: Optional[DateType] = None
    mileage_in: Optional[int] = Field(None, ge=0)
    mileage_out: Optional[int] = Field(None, ge=0)
    days_down: Optional[int] = Field(None, ge=0)
    category: RepairCategory = RepairCategory.OTHER
    customer_concern: str = ""
    work_performed: str = ""
    parts_replaced: str = ""
    resolved: ResolvedStatus = ResolvedStatus.NO
    raw_text: Optional[str] = None
    source_file: Optional[str] = None

    @field_validator("date_out")
    @classmethod
    def out_after_in(cls, v, info):
        date_in = info.data.get("date_in")
        if v and date_in and v < date_in:
            raise ValueError("date_out must not precede date_in")
        return v


class BulkRepairOrderCreate(BaseModel):
    case_id: int
    repair_orders: List[RepairOrderInput] = Field(..., min_length=1)


class RepairOrderUpdate(BaseModel):
    ro_number: Optional[str] = None
    dealership: Optional[str] = None
    tech_number: Optional[str] = None
    date_in: Optional[DateType] = None
    date_out: Optional[DateType] = None
    mileage_in: Optional[int] = Field(None, ge=0)
    mileage_out: Optional[int] = Field(None, ge=0)
    days_down: Optional[int] = Field(None, ge=0)
    category: Optional[RepairCategory] = None
    customer_concern: Optional[str] = None
    work_performed: Optional[str] = None
    parts_replaced: Optional[str] = None
    resolved: Optional[ResolvedStatus] = None


class RepairOrderResponse(RepairOrderInput):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_id: int
    days_down: int = 0
    created_at: datetime


# ============================================================
# BILLING & COST SCHEMAS
# ============================================================

class BillingEntryInput(BaseModel):
    date: Optional[DateType] = None
    type: BillingType = BillingType.BILLABLE
    description: str = ""
    attorney: str = Field(..., min_length=1)
    hours: float = Field(..., ge=0)
    rate: float = Field(..., ge=0)
    is_reduced: bool = False


class BulkBillingCreate(BaseModel):
    case_id: int
    billing_entries: List[BillingEntryInput] = Field(..., min_length=1)


class BillingEntryResponse(BillingEntryInput):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_id: int
    amount: float
    created_at: datetime


class CostInput(BaseModel):
    date: Optional[DateType] = None
    vendor: str = ""
    reference: Optional[str] = None
    description: str = ""
    category: CostCategory = CostCategory.OTHER
    amount: float = Field(..., ge=0)


class BulkCostCreate(BaseModel):
    case_id: int
    costs: List[CostInput] = Field(..., min_length=1)


class CostResponse(CostInput):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_id: int
    created_at: datetime


# ============================================================
# LAFFEY MATRIX SCHEMAS
# ============================================================

class LaffeyMatrixCreate(BaseModel):
    period_start: DateType
    period_end: DateType
    adjustment_factor: float = 1.0
    paralegal_rate: float = Field(..., ge=0)
    tier1to3_rate: float = Field(..., ge=0)
    tier4to7_rate: float = Field(..., ge=0)
    tier8to10_rate: float = Field(..., ge=0)
    tier11to19_rate: float = Field(..., ge=0)
    tier20_plus_rate: float = Field(..., ge=0)

    @field_validator("period_end")
    @classmethod
    def end_after_start(cls, v, info):
        start = info.data.get("period_start")
        if start and v < start:
            raise ValueError("period_end must not precede period_start")
        return v


class LaffeyMatrixResponse(LaffeyMatrixCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


# ============================================================
# FEE COMPARISON SCHEMAS
# ============================================================

class TimeEntryInput(BaseModel):
    """Time entry for an ad-hoc comparison; validated by the calculator"""
    attorney: str
    hours: float
    rate: float
    years_experience: Optional[int] = None
    date: Optional[str] = None
    description: str = ""

    def to_time_entry(self) -> TimeEntry:
        return TimeEntry(
            attorney=self.attorney,
            hours=self.hours,
            billed_rate=self.rate,
            years_experience=self.years_experience,
            date=self.date or "",
            description=self.description,
        )


class RateScheduleInput(BaseModel):
    tier1to3_rate: Optional[float] = None
    tier4to7_rate: Optional[float] = None
    tier8to10_rate: Optional[float] = None
    tier11to19_rate: Optional[float] = None
    tier20_plus_rate: Optional[float] = None
    paralegal_rate: Optional[float] = None

    def to_schedule(self) -> RateSchedule:
        return RateSchedule(**self.model_dump())


class RosterInput(BaseModel):
    name: str
    years_experience: int
    is_paralegal: bool = False

    def to_roster_attorney(self) -> RosterAttorney:
        return RosterAttorney(
            name=self.name,
            years_experience=self.years_experience,
            is_paralegal=self.is_paralegal,
        )


class FeeComparisonRequest(BaseModel):
    entries: List[TimeEntryInput] = []
    schedule: RateScheduleInput
    roster: List[RosterInput] = []
    default_years_experience: Optional[int] = None


class FeeReportResponse(BaseModel):
    headers: List[str]
    rows: List[List[str]]
    sentences: List[str]


class FeeComparisonResponse(BaseModel):
    comparison: Dict[str, Any]
    report: FeeReportResponse
    laffey_period_id: Optional[int] = None


# ============================================================
# DOCUMENT GENERATION SCHEMAS
# ============================================================

class AttorneyInfo(BaseModel):
    name: str
    bar_number: str = ""
    firm_name: str = ""
    address: List[str] = []
    phone: str = ""
    email: str = ""


class GenerateRequest(BaseModel):
    case_id: int
    type: DocumentKind = DocumentKind.FULL_PACKAGE
    laffey_period_id: Optional[int] = None
    attorney_info: Optional[AttorneyInfo] = None


class ExtractionResponse(BaseModel):
    success: bool
    type: ExtractionType
    data: List[Dict[str, Any]]
    raw_text: Optional[str] = None
