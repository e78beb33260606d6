"""CGT router: cost base, sale recording and portfolio CGT summary."""

from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..models import get_db
from ..schemas import (
    CGTSummaryResponse,
    CostBaseResponse,
    RecordSaleResponse,
    SaleCreate,
    SaleResponse,
    SellingCostTransactionResponse,
)
from ..services import CGTService, SellingCosts
from .deps import get_owner_id

router = APIRouter(prefix="/cgt", tags=["cgt"])


def get_cgt_service(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id)
) -> CGTService:
    return CGTService(db, owner_id)


@router.get("/properties/{property_id}/cost-base", response_model=CostBaseResponse)
async def get_cost_base(
    property_id: int,
    service: CGTService = Depends(get_cgt_service)
):
    """Cost base breakdown: purchase price plus acquisition costs."""
    return service.get_cost_base(property_id)


@router.post("/properties/{property_id}/sale", response_model=RecordSaleResponse, status_code=201)
async def record_sale(
    property_id: int,
    sale: SaleCreate,
    service: CGTService = Depends(get_cgt_service)
):
    """Record a property sale, calculate the capital gain, and archive the property."""
    record, result = service.record_sale(
        property_id,
        sale_price=sale.sale_price,
        settlement_date=sale.settlement_date,
        contract_date=sale.contract_date,
        selling_costs=SellingCosts(
            agent_commission=sale.agent_commission,
            legal_fees=sale.legal_fees,
            marketing_costs=sale.marketing_costs,
            other_selling_costs=sale.other_selling_costs
        )
    )
    return {"sale": record, "cgt_result": result}


@router.get("/properties/{property_id}/sale", response_model=SaleResponse)
async def get_sale_details(
    property_id: int,
    service: CGTService = Depends(get_cgt_service)
):
    """Sale record of a sold property."""
    return service.get_sale_details(property_id)


@router.get("/properties/{property_id}/selling-costs", response_model=List[SellingCostTransactionResponse])
async def get_selling_costs(
    property_id: int,
    service: CGTService = Depends(get_cgt_service)
):
    """Transactions that look like selling costs, for pre-filling a sale."""
    return [
        {
            "id": t.id,
            "category": t.category,
            "description": t.description,
            "amount": abs(t.amount),
            "date": t.date,
        }
        for t in service.get_selling_costs(property_id)
    ]


@router.get("/summary", response_model=CGTSummaryResponse)
async def get_summary(
    status: str = Query("all", pattern="^(active|sold|all)$"),
    service: CGTService = Depends(get_cgt_service)
):
    """Cost base and sale figures for every property."""
    summary = service.get_summary(status)
    return {
        "properties": [
            {
                "id": s.property.id,
                "address": s.property.address,
                "suburb": s.property.suburb,
                "state": s.property.state,
                "status": s.property.status,
                "purchase_price": s.property.purchase_price,
                "purchase_date": s.property.purchase_date,
                "cost_base": s.cost_base,
                "sale": s.sale,
            }
            for s in summary.properties
        ],
        "active_count": summary.active_count,
        "sold_count": summary.sold_count,
        "total_cost_base": summary.total_cost_base,
    }
