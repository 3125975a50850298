"""
Lemon Law Fee Suite
SQLAlchemy Database Models
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, ForeignKey,
    Text, Boolean, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from lemonlaw.db.database import Base
import enum


# ============================================================
# ENUMS
# ============================================================

class CaseStatus(str, enum.Enum):
    ACTIVE = "Active"
    DISCOVERY = "Discovery"
    SETTLED = "Settled"
    CLOSED = "Closed"


class BillingType(str, enum.Enum):
    BILLABLE = "Billable"
    NON_BILLABLE = "Non-billable"


class RepairCategory(str, enum.Enum):
    ENGINE = "Engine"
    TRANSMISSION = "Transmission"
    ELECTRICAL = "Electrical"
    SUSPENSION = "Suspension"
    BRAKES = "Brakes"
    HVAC = "HVAC"
    BATTERY = "Battery"
    DRIVETRAIN = "Drivetrain"
    SOFTWARE = "Software"
    BODY = "Body"
    OTHER = "Other"


class ResolvedStatus(str, enum.Enum):
    YES = "Yes"
    NO = "No"
    PARTIAL = "Partial"


class CostCategory(str, enum.Enum):
    FILING = "Filing"
    SERVICE = "Service"
    APPEARANCE = "Appearance"
    EXPERT = "Expert"
    DEPOSITION = "Deposition"
    OTHER = "Other"


# ============================================================
# CORE MODELS
# ============================================================

class Case(Base):
    """Lemon law matter"""
    __tablename__ = "cases"

    id = Column(Integer, primary_key=True, index=True)
    case_number = Column(String(100), unique=True, index=True)

    # Parties
    client_name = Column(String(255), nullable=False, index=True)
    defendant = Column(String(255), nullable=False)
    court_name = Column(String(255))
    county = Column(String(100))

    # Vehicle
    vehicle_year = Column(Integer)
    vehicle_make = Column(String(100))
    vehicle_model = Column(String(100))
    vin = Column(String(32), index=True)
    purchase_date = Column(Date)
    purchase_price = Column(Float)

    status = Column(SQLEnum(CaseStatus), default=CaseStatus.ACTIVE)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    repair_orders = relationship("RepairOrder", back_populates="case", cascade="all, delete-orphan")
    billing_entries = relationship("BillingEntry", back_populates="case", cascade="all, delete-orphan")
    costs = relationship("Cost", back_populates="case", cascade="all, delete-orphan")


class Attorney(Base):
    """Timekeeper roster entry"""
    __tablename__ = "attorneys"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    bar_number = Column(String(50))
    years_out_of_law_school = Column(Integer, nullable=False, default=0)
    is_paralegal = Column(Boolean, default=False)
    default_rate = Column(Float)

    created_at = Column(DateTime, default=datetime.utcnow)


class RepairOrder(Base):
    """Dealership repair visit for the subject vehicle"""
    __tablename__ = "repair_orders"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)

    ro_number = Column(String(100))
    dealership = Column(String(255))
    tech_number = Column(String(50))

    date_in = Column(Date, index=True)
    date_out = Column(Date)
    mileage_in = Column(Integer)
    mileage_out = Column(Integer)
    days_down = Column(Integer, default=0)

    category = Column(SQLEnum(RepairCategory), default=RepairCategory.OTHER)
    customer_concern = Column(Text, default="")
    work_performed = Column(Text, default="")
    parts_replaced = Column(Text, default="")
    resolved = Column(SQLEnum(ResolvedStatus), default=ResolvedStatus.NO)

    # Source
    raw_text = Column(Text)
    source_file = Column(String(500))

    created_at = Column(DateTime, default=datetime.utcnow)

    case = relationship("Case", back_populates="repair_orders")


class BillingEntry(Base):
    """Billed time on a case"""
    __tablename__ = "billing_entries"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)

    date = Column(Date)
    type = Column(SQLEnum(BillingType), default=BillingType.BILLABLE)
    description = Column(Text, default="")
    attorney = Column(String(255), nullable=False, index=True)
    hours = Column(Float, nullable=False, default=0.0)
    rate = Column(Float, nullable=False, default=0.0)
    amount = Column(Float, nullable=False, default=0.0)  # hours * rate
    is_reduced = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    case = relationship("Case", back_populates="billing_entries")


class Cost(Base):
    """Litigation cost on a case"""
    __tablename__ = "costs"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)

    date = Column(Date)
    vendor = Column(String(255), default="")
    reference = Column(String(100))
    description = Column(Text, default="")
    category = Column(SQLEnum(CostCategory), default=CostCategory.OTHER)
    amount = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, default=datetime.utcnow)

    case = relationship("Case", back_populates="costs")


class LaffeyMatrixPeriod(Base):
    """Published Laffey Matrix rates for one period"""
    __tablename__ = "laffey_matrix"

    id = Column(Integer, primary_key=True, index=True)
    period_start = Column(Date, nullable=False, index=True)
    period_end = Column(Date, nullable=False)
    adjustment_factor = Column(Float, default=1.0)

    paralegal_rate = Column(Float, nullable=False)
    tier1to3_rate = Column(Float, nullable=False)
    tier4to7_rate = Column(Float, nullable=False)
    tier8to10_rate = Column(Float, nullable=False)
    tier11to19_rate = Column(Float, nullable=False)
    tier20_plus_rate = Column(Float, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
