"""Depreciation router: schedules, assets, claims, capital works and projections."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..models import get_db
from ..schemas import (
    AssetCreate,
    AssetResponse,
    AssetUpdate,
    CapitalWorkCreate,
    CapitalWorkResponse,
    CapitalWorkUpdate,
    ClaimRequest,
    ClaimResponse,
    ExtractedAssetIn,
    ExtractedScheduleImport,
    ImportResponse,
    ProjectionRowResponse,
    PropertyDepreciationResponse,
    ScheduleCreate,
    ScheduleResponse,
    ValidatedAssetResponse,
)
from ..services import (
    ClaimAmount,
    DepreciationProjectionBuilder,
    DepreciationService,
    validate_and_recalculate,
)
from ..services.asset_validator import filter_extracted_candidates
from .deps import get_owner_id

router = APIRouter(prefix="/depreciation", tags=["depreciation"])


def get_depreciation_service(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id)
) -> DepreciationService:
    return DepreciationService(db, owner_id)


@router.get("/properties/{property_id}", response_model=PropertyDepreciationResponse)
async def list_schedules(
    property_id: int,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """List schedules (with assets and claims) and capital works for a property."""
    result = service.list_schedules(property_id)
    return {"schedules": result.schedules, "capital_works": result.capital_works}


@router.post("/properties/{property_id}/schedules", response_model=ScheduleResponse, status_code=201)
async def create_schedule(
    property_id: int,
    schedule: ScheduleCreate,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Create an empty schedule for manually entered assets."""
    return service.create_schedule(
        property_id,
        effective_date=schedule.effective_date,
        total_value=schedule.total_value,
        document_id=schedule.document_id
    )


@router.post("/properties/{property_id}/schedules/import", response_model=ImportResponse, status_code=201)
async def import_extracted_schedule(
    property_id: int,
    payload: ExtractedScheduleImport,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """
    Create a schedule from AI-extracted report data.

    Every deduction is recalculated before persisting; the response flags
    assets whose extracted deduction was off by more than 10%.
    """
    result = service.import_extracted_schedule(
        property_id,
        effective_date=payload.effective_date,
        raw_assets=[a.model_dump() for a in payload.assets],
        document_id=payload.document_id
    )
    return {
        "schedule": result.schedule,
        "validated_assets": result.validated_assets,
        "discrepancy_count": result.discrepancy_count,
    }


@router.post(
    "/validate",
    response_model=List[ValidatedAssetResponse],
    dependencies=[Depends(get_owner_id)]
)
async def validate_extracted_assets(assets: List[ExtractedAssetIn]):
    """Recalculate extracted assets without saving anything."""
    candidates = filter_extracted_candidates(a.model_dump() for a in assets)
    return validate_and_recalculate(candidates)


@router.post("/schedules/{schedule_id}/assets", response_model=AssetResponse, status_code=201)
async def add_asset(
    schedule_id: int,
    asset: AssetCreate,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Add an asset. Pool type and yearly deduction are calculated automatically."""
    return service.add_asset(schedule_id, **asset.model_dump())


@router.patch("/assets/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: int,
    patch: AssetUpdate,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Update an asset. Only provided fields are changed."""
    return service.update_asset(asset_id, patch.model_dump(exclude_unset=True))


@router.delete("/assets/{asset_id}")
async def delete_asset(
    asset_id: int,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Delete an asset."""
    service.delete_asset(asset_id)
    return {"success": True}


@router.post("/assets/{asset_id}/move-to-pool", response_model=AssetResponse)
async def move_to_pool(
    asset_id: int,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Move an asset into the low-value pool (remaining value must be $1,000 or less)."""
    return service.move_to_pool(asset_id)


@router.post(
    "/schedules/{schedule_id}/claims/{financial_year}",
    response_model=List[ClaimResponse],
    status_code=201
)
async def claim_fy(
    schedule_id: int,
    financial_year: int,
    request: ClaimRequest,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """
    Record claimed deductions for a financial year.

    Claims accumulate; remove the year first to replace an earlier claim.
    """
    amounts = [ClaimAmount(asset_id=line.asset_id, amount=line.amount) for line in request.amounts]
    return service.claim_fy(schedule_id, financial_year, amounts)


@router.delete("/schedules/{schedule_id}/claims/{financial_year}")
async def unclaim_fy(
    schedule_id: int,
    financial_year: int,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Remove all claims for a schedule in a financial year."""
    removed = service.unclaim_fy(schedule_id, financial_year)
    return {"success": True, "removed": removed}


@router.post(
    "/properties/{property_id}/capital-works",
    response_model=CapitalWorkResponse,
    status_code=201
)
async def add_capital_works(
    property_id: int,
    capital_work: CapitalWorkCreate,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Add a Division 43 capital works entry."""
    return service.add_capital_works(property_id, **capital_work.model_dump())


@router.patch("/capital-works/{capital_work_id}", response_model=CapitalWorkResponse)
async def update_capital_works(
    capital_work_id: int,
    patch: CapitalWorkUpdate,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Update a capital works entry. Only provided fields are changed."""
    return service.update_capital_works(capital_work_id, patch.model_dump(exclude_unset=True))


@router.delete("/capital-works/{capital_work_id}")
async def delete_capital_works(
    capital_work_id: int,
    service: DepreciationService = Depends(get_depreciation_service)
):
    """Delete a capital works entry."""
    service.delete_capital_works(capital_work_id)
    return {"success": True}


@router.get("/properties/{property_id}/projection", response_model=List[ProjectionRowResponse])
async def get_projection(
    property_id: int,
    from_fy: Optional[int] = Query(None, description="First financial year (defaults to current FY)"),
    to_fy: Optional[int] = Query(None, description="Last financial year, inclusive"),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id)
):
    """Projected deductions per financial year split into Div 40, Div 43 and low-value pool."""
    builder = DepreciationProjectionBuilder(db, owner_id)
    return builder.get_projection(property_id, from_fy=from_fy, to_fy=to_fy)
