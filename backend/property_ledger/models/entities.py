"""Database entity models for the Property Ledger."""

from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric,
    ForeignKey, Enum as SQLEnum, Boolean, Text
)
from sqlalchemy.orm import relationship
from .database import Base


class PropertyStatus(str, Enum):
    """Lifecycle status of an investment property."""
    ACTIVE = "active"
    SOLD = "sold"  # Terminal


class DepreciationCategory(str, Enum):
    """ATO depreciation division."""
    PLANT_EQUIPMENT = "plant_equipment"  # Division 40
    CAPITAL_WORKS = "capital_works"      # Division 43


class DepreciationMethod(str, Enum):
    DIMINISHING_VALUE = "diminishing_value"
    PRIME_COST = "prime_cost"


class PoolType(str, Enum):
    """How an asset is depreciated for tax purposes."""
    INDIVIDUAL = "individual"                  # cost > $1,000
    LOW_VALUE = "low_value"                    # $300 < cost <= $1,000
    IMMEDIATE_WRITEOFF = "immediate_writeoff"  # cost <= $300


class Property(Base):
    """
    Investment property.

    Owned by the property domain; the ledger only reads it, except for the
    sale transition to ``sold``.
    """
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    address = Column(String(255), nullable=False)
    suburb = Column(String(100))
    state = Column(String(3))

    purchase_price = Column(Numeric(18, 2), nullable=False)
    purchase_date = Column(Date, nullable=False)

    status = Column(SQLEnum(PropertyStatus), nullable=False, default=PropertyStatus.ACTIVE)
    sold_at = Column(Date)

    # Relationships
    transactions = relationship("Transaction", back_populates="property")
    schedules = relationship("DepreciationSchedule", back_populates="property")
    capital_works = relationship("CapitalWork", back_populates="property")
    sales = relationship("PropertySale", back_populates="property")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Transaction(Base):
    """Categorised bank transaction (read-only here, synced by the banking domain)."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    description = Column(String(255))
    category = Column(String(50), nullable=False, index=True)  # e.g. stamp_duty, conveyancing
    amount = Column(Numeric(18, 2), nullable=False)  # Expenses are negative

    property = relationship("Property", back_populates="transactions")

    created_at = Column(DateTime, default=datetime.utcnow)


class DepreciationSchedule(Base):
    """A quantity surveyor valuation of a property at one point in time."""
    __tablename__ = "depreciation_schedules"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    document_id = Column(String(64))  # Source report in document storage

    effective_date = Column(Date, nullable=False)
    total_value = Column(Numeric(18, 2), nullable=False)

    property = relationship("Property", back_populates="schedules")
    assets = relationship(
        "DepreciationAsset",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="DepreciationAsset.id"
    )
    claims = relationship(
        "DepreciationClaim",
        back_populates="schedule",
        cascade="all, delete-orphan"
    )

    created_at = Column(DateTime, default=datetime.utcnow)


class DepreciationAsset(Base):
    """
    A depreciable item on a schedule.

    ``yearly_deduction`` and ``remaining_value`` are derived by the
    depreciation service and never written from caller input.
    """
    __tablename__ = "depreciation_assets"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("depreciation_schedules.id"), nullable=False, index=True)

    asset_name = Column(String(255), nullable=False)
    category = Column(SQLEnum(DepreciationCategory), nullable=False)
    original_cost = Column(Numeric(18, 2), nullable=False)
    effective_life = Column(Numeric(6, 2), nullable=False)  # Years
    method = Column(SQLEnum(DepreciationMethod), nullable=False)
    purchase_date = Column(Date)
    pool_type = Column(SQLEnum(PoolType), nullable=False)

    # Starting basis once moved into the low-value pool
    opening_written_down_value = Column(Numeric(18, 2))
    moved_to_pool_fy = Column(Integer)

    # Derived
    yearly_deduction = Column(Numeric(18, 2), nullable=False)
    remaining_value = Column(Numeric(18, 2), nullable=False)

    schedule = relationship("DepreciationSchedule", back_populates="assets")
    claims = relationship(
        "DepreciationClaim",
        back_populates="asset",
        cascade="all, delete",
        order_by="DepreciationClaim.financial_year"
    )

    created_at = Column(DateTime, default=datetime.utcnow)


class DepreciationClaim(Base):
    """
    Amount actually claimed for one financial year.

    A null ``asset_id`` is a pool-level claim. Claims accumulate: there is no
    uniqueness on (asset, year), callers remove a year with unclaim first.
    """
    __tablename__ = "depreciation_claims"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("depreciation_schedules.id"), nullable=False, index=True)
    asset_id = Column(Integer, ForeignKey("depreciation_assets.id"), nullable=True, index=True)

    financial_year = Column(Integer, nullable=False, index=True)
    amount = Column(Numeric(18, 2), nullable=False)

    schedule = relationship("DepreciationSchedule", back_populates="claims")
    asset = relationship("DepreciationAsset", back_populates="claims")

    claimed_at = Column(DateTime, default=datetime.utcnow)


class CapitalWork(Base):
    """Division 43 building cost, tracked outside any schedule."""
    __tablename__ = "capital_works"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    owner_id = Column(String(64), nullable=False, index=True)

    description = Column(String(255), nullable=False)
    construction_date = Column(Date, nullable=False)
    construction_cost = Column(Numeric(18, 2), nullable=False)
    claim_start_date = Column(Date, nullable=False)

    property = relationship("Property", back_populates="capital_works")

    created_at = Column(DateTime, default=datetime.utcnow)


class PropertySale(Base):
    """CGT event recorded when a property is sold. One per property."""
    __tablename__ = "property_sales"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, unique=True)
    owner_id = Column(String(64), nullable=False, index=True)

    sale_price = Column(Numeric(18, 2), nullable=False)
    settlement_date = Column(Date, nullable=False)
    contract_date = Column(Date)

    # Selling costs
    agent_commission = Column(Numeric(18, 2), default=0)
    legal_fees = Column(Numeric(18, 2), default=0)
    marketing_costs = Column(Numeric(18, 2), default=0)
    other_selling_costs = Column(Numeric(18, 2), default=0)

    # CGT result
    cost_base = Column(Numeric(18, 2), nullable=False)
    capital_gain = Column(Numeric(18, 2), nullable=False)
    discounted_gain = Column(Numeric(18, 2))
    held_over_twelve_months = Column(Boolean, nullable=False)

    notes = Column(Text)

    property = relationship("Property", back_populates="sales")

    created_at = Column(DateTime, default=datetime.utcnow)
