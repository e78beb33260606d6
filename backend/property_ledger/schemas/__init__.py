from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..models.entities import (
    DepreciationCategory,
    DepreciationMethod,
    PoolType,
    PropertyStatus,
)


# Depreciation -------------------------------------------------------------


class ScheduleCreate(BaseModel):
    effective_date: date
    total_value: Decimal = Field(ge=0)
    document_id: Optional[str] = None


class AssetCreate(BaseModel):
    asset_name: str = Field(min_length=1)
    category: DepreciationCategory
    original_cost: Decimal = Field(gt=0)
    effective_life: Decimal = Field(gt=0)
    method: DepreciationMethod
    purchase_date: Optional[date] = None


class AssetUpdate(BaseModel):
    """Derived fields (pool, yearly deduction, remaining value) are not patchable."""
    asset_name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[DepreciationCategory] = None
    original_cost: Optional[Decimal] = Field(default=None, gt=0)
    effective_life: Optional[Decimal] = Field(default=None, gt=0)
    method: Optional[DepreciationMethod] = None
    purchase_date: Optional[date] = None


class ClaimResponse(BaseModel):
    id: int
    schedule_id: int
    asset_id: Optional[int] = None
    financial_year: int
    amount: Decimal
    claimed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssetResponse(BaseModel):
    id: int
    schedule_id: int
    asset_name: str
    category: DepreciationCategory
    original_cost: Decimal
    effective_life: Decimal
    method: DepreciationMethod
    purchase_date: Optional[date] = None
    pool_type: PoolType
    opening_written_down_value: Optional[Decimal] = None
    moved_to_pool_fy: Optional[int] = None
    yearly_deduction: Decimal
    remaining_value: Decimal
    claims: list[ClaimResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScheduleResponse(BaseModel):
    id: int
    property_id: int
    document_id: Optional[str] = None
    effective_date: date
    total_value: Decimal
    assets: list[AssetResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CapitalWorkCreate(BaseModel):
    description: str = Field(min_length=1)
    construction_date: date
    construction_cost: Decimal = Field(gt=0)
    claim_start_date: date


class CapitalWorkUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1)
    construction_date: Optional[date] = None
    construction_cost: Optional[Decimal] = Field(default=None, gt=0)
    claim_start_date: Optional[date] = None


class CapitalWorkResponse(BaseModel):
    id: int
    property_id: int
    description: str
    construction_date: date
    construction_cost: Decimal
    claim_start_date: date
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PropertyDepreciationResponse(BaseModel):
    schedules: list[ScheduleResponse]
    capital_works: list[CapitalWorkResponse]


class ClaimLine(BaseModel):
    asset_id: Optional[int] = None  # None claims at pool level
    amount: Decimal = Field(ge=0)


class ClaimRequest(BaseModel):
    amounts: list[ClaimLine]


class ExtractedAssetIn(BaseModel):
    """Asset as produced by document extraction. Loosely typed: it is untrusted."""
    asset_name: Optional[str] = None
    category: Optional[str] = None
    original_cost: Optional[Decimal] = None
    effective_life: Optional[Decimal] = None
    method: Optional[str] = None
    yearly_deduction: Optional[Decimal] = None


class ExtractedScheduleImport(BaseModel):
    effective_date: date
    document_id: Optional[str] = None
    assets: list[ExtractedAssetIn]


class ValidatedAssetResponse(BaseModel):
    asset_name: str
    category: DepreciationCategory
    original_cost: Decimal
    effective_life: Decimal
    method: DepreciationMethod
    yearly_deduction: Decimal
    supplied_deduction: Decimal
    discrepancy: bool

    class Config:
        from_attributes = True


class ImportResponse(BaseModel):
    schedule: ScheduleResponse
    validated_assets: list[ValidatedAssetResponse]
    discrepancy_count: int


class ProjectionRowResponse(BaseModel):
    financial_year: int
    div40_total: Decimal
    div43_total: Decimal
    low_value_pool_total: Decimal
    grand_total: Decimal

    class Config:
        from_attributes = True


# CGT ---------------------------------------------------------------------


class SaleCreate(BaseModel):
    sale_price: Decimal = Field(ge=0)
    settlement_date: date
    contract_date: Optional[date] = None
    agent_commission: Decimal = Field(default=Decimal("0"), ge=0)
    legal_fees: Decimal = Field(default=Decimal("0"), ge=0)
    marketing_costs: Decimal = Field(default=Decimal("0"), ge=0)
    other_selling_costs: Decimal = Field(default=Decimal("0"), ge=0)


class SaleResponse(BaseModel):
    id: int
    property_id: int
    sale_price: Decimal
    settlement_date: date
    contract_date: Optional[date] = None
    agent_commission: Decimal
    legal_fees: Decimal
    marketing_costs: Decimal
    other_selling_costs: Decimal
    cost_base: Decimal
    capital_gain: Decimal
    discounted_gain: Optional[Decimal] = None
    held_over_twelve_months: bool

    class Config:
        from_attributes = True


class CGTResultResponse(BaseModel):
    cost_base: Decimal
    selling_costs: Decimal
    effective_cost_base: Decimal
    sale_price: Decimal
    capital_gain: Decimal
    discounted_gain: Decimal
    held_over_twelve_months: bool
    days_held: int

    class Config:
        from_attributes = True


class RecordSaleResponse(BaseModel):
    sale: SaleResponse
    cgt_result: CGTResultResponse


class AcquisitionCostResponse(BaseModel):
    category: str
    description: Optional[str] = None
    amount: Decimal
    date: date

    class Config:
        from_attributes = True


class CostBaseResponse(BaseModel):
    property_id: int
    purchase_price: Decimal
    purchase_date: date
    acquisition_costs: list[AcquisitionCostResponse]
    total_acquisition_costs: Decimal
    total_cost_base: Decimal

    class Config:
        from_attributes = True


class PropertySummaryResponse(BaseModel):
    id: int
    address: str
    suburb: Optional[str] = None
    state: Optional[str] = None
    status: PropertyStatus
    purchase_price: Decimal
    purchase_date: date
    cost_base: Decimal
    sale: Optional[SaleResponse] = None


class CGTSummaryResponse(BaseModel):
    properties: list[PropertySummaryResponse]
    active_count: int
    sold_count: int
    total_cost_base: Decimal


class SellingCostTransactionResponse(BaseModel):
    id: int
    category: str
    description: Optional[str] = None
    amount: Decimal
    date: date
