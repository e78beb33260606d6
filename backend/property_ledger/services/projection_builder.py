"""
Depreciation Projection Builder

Projects deductions for a property across a range of financial years:
- Division 40 (plant & equipment)
  - immediate write-off: full cost in the purchase year
  - individual assets: diminishing value or prime cost, first year pro-rated
- Low-value pool: 37.5% of cost in the purchase year, then 18.75% of the
  declining balance. An asset moved into the pool is depreciated
  individually up to the year before its move, then declines from its
  opening written-down value at 18.75% a year.
- Division 43 (capital works): 2.5% per year for 40 years. Schedule assets
  in the capital works category are replayed at prime cost into the same
  total.

Every requested year gets a row, zero-filled when nothing is depreciating.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from ..config import get_settings
from ..exceptions import PropertyNotFoundError
from ..models import (
    CapitalWork,
    DepreciationCategory,
    DepreciationMethod,
    DepreciationSchedule,
    PoolType,
    Property,
    PropertyStatus,
)
from .depreciation_formulas import (
    CENT,
    capital_works_deduction,
    days_in_first_financial_year,
    diminishing_value_deduction,
    financial_year_for,
    low_value_pool_deduction,
    prime_cost_deduction,
    round_money,
    to_decimal,
)

logger = structlog.get_logger(__name__)


@dataclass
class ProjectionAsset:
    id: int
    cost: Decimal
    effective_life: Decimal
    method: DepreciationMethod
    purchase_date: date
    pool_type: PoolType
    opening_written_down_value: Optional[Decimal] = None
    moved_to_pool_fy: Optional[int] = None
    category: DepreciationCategory = DepreciationCategory.PLANT_EQUIPMENT


@dataclass
class ProjectionCapitalWork:
    id: int
    construction_cost: Decimal
    construction_date: date
    claim_start_date: date


@dataclass
class ProjectionRow:
    """Projected deductions for one financial year."""
    financial_year: int
    div40_total: Decimal = Decimal("0")
    div43_total: Decimal = Decimal("0")
    low_value_pool_total: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")


def _low_value_pool_share(asset: ProjectionAsset, start_fy: int, financial_year: int) -> Decimal:
    """
    This asset's contribution to the low-value pool deduction for a year.

    ``start_fy`` is the year the asset entered the pool: its purchase year for
    a new addition, the move year for a moved asset.
    """
    if asset.opening_written_down_value is not None:
        balance = to_decimal(asset.opening_written_down_value)
        is_addition = False
    else:
        balance = to_decimal(asset.cost)
        is_addition = True

    for fy in range(start_fy, financial_year + 1):
        if balance <= CENT:
            return Decimal("0")

        if fy == start_fy and is_addition:
            deduction = low_value_pool_deduction(0, additions=balance)
        else:
            deduction = low_value_pool_deduction(balance)

        if fy == financial_year:
            return deduction

        balance = round_money(balance - deduction)

    return Decimal("0")


def _individual_share(asset: ProjectionAsset, year_index: int) -> Decimal:
    days_first = days_in_first_financial_year(asset.purchase_date)
    if asset.method == DepreciationMethod.DIMINISHING_VALUE:
        return diminishing_value_deduction(asset.cost, asset.effective_life, year_index, days_first)
    return prime_cost_deduction(asset.cost, asset.effective_life, year_index, days_first)


def project_schedule(
    assets: list[ProjectionAsset],
    capital_works: list[ProjectionCapitalWork],
    from_fy: int,
    to_fy: int,
    last_fy: Optional[int] = None
) -> list[ProjectionRow]:
    """
    Project deductions for every financial year from ``from_fy`` to ``to_fy``.

    ``last_fy`` stops all deductions after that year (e.g. the year a
    property was sold). Returns an empty list when from_fy > to_fy.
    """
    if from_fy > to_fy:
        return []

    rows = []

    for fy in range(from_fy, to_fy + 1):
        row = ProjectionRow(financial_year=fy)

        if last_fy is not None and fy > last_fy:
            rows.append(row)
            continue

        for asset in assets:
            purchase_fy = financial_year_for(asset.purchase_date)
            if fy < purchase_fy:
                continue

            if asset.category == DepreciationCategory.CAPITAL_WORKS:
                row.div43_total += prime_cost_deduction(
                    asset.cost,
                    asset.effective_life,
                    fy - purchase_fy,
                    days_in_first_financial_year(asset.purchase_date)
                )

            elif asset.pool_type == PoolType.IMMEDIATE_WRITEOFF:
                if fy == purchase_fy:
                    row.div40_total += round_money(to_decimal(asset.cost))

            elif asset.pool_type == PoolType.LOW_VALUE:
                pool_start_fy = purchase_fy
                if asset.moved_to_pool_fy is not None:
                    pool_start_fy = max(purchase_fy, asset.moved_to_pool_fy)

                if fy < pool_start_fy:
                    row.div40_total += _individual_share(asset, fy - purchase_fy)
                else:
                    row.low_value_pool_total += _low_value_pool_share(asset, pool_start_fy, fy)

            else:
                row.div40_total += _individual_share(asset, fy - purchase_fy)

        for cw in capital_works:
            row.div43_total += capital_works_deduction(
                cw.construction_cost,
                cw.construction_date,
                cw.claim_start_date,
                fy
            )

        row.grand_total = row.div40_total + row.div43_total + row.low_value_pool_total
        rows.append(row)

    return rows


class DepreciationProjectionBuilder:
    """Loads a property's depreciation data and projects it over financial years."""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def get_projection(
        self,
        property_id: int,
        from_fy: Optional[int] = None,
        to_fy: Optional[int] = None
    ) -> list[ProjectionRow]:
        """Projection for a property; defaults to the current FY plus the configured span."""
        prop = self.db.query(Property).filter(
            Property.id == property_id,
            Property.owner_id == self.owner_id
        ).first()
        if not prop:
            raise PropertyNotFoundError(property_id)

        from_fy = from_fy if from_fy is not None else financial_year_for()
        to_fy = to_fy if to_fy is not None else from_fy + get_settings().projection_years

        schedules = self.db.query(DepreciationSchedule).filter(
            DepreciationSchedule.property_id == property_id,
            DepreciationSchedule.owner_id == self.owner_id
        ).all()
        capital_works = self.db.query(CapitalWork).filter(
            CapitalWork.property_id == property_id,
            CapitalWork.owner_id == self.owner_id
        ).all()

        assets = [
            ProjectionAsset(
                id=asset.id,
                cost=to_decimal(asset.original_cost),
                effective_life=to_decimal(asset.effective_life),
                method=asset.method,
                purchase_date=asset.purchase_date or schedule.effective_date,
                pool_type=asset.pool_type,
                opening_written_down_value=asset.opening_written_down_value,
                moved_to_pool_fy=asset.moved_to_pool_fy,
                category=asset.category
            )
            for schedule in schedules
            for asset in schedule.assets
        ]
        projection_works = [
            ProjectionCapitalWork(
                id=cw.id,
                construction_cost=to_decimal(cw.construction_cost),
                construction_date=cw.construction_date,
                claim_start_date=cw.claim_start_date
            )
            for cw in capital_works
        ]

        last_fy = None
        if prop.status == PropertyStatus.SOLD and prop.sold_at:
            last_fy = financial_year_for(prop.sold_at)

        rows = project_schedule(assets, projection_works, from_fy, to_fy, last_fy=last_fy)

        logger.debug(
            "projection_built",
            owner_id=self.owner_id,
            property_id=property_id,
            from_fy=from_fy,
            to_fy=to_fy,
            assets=len(assets),
            capital_works=len(projection_works),
        )
        return rows
