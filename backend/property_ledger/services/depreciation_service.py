"""
Depreciation Schedule Service

Manages depreciation schedules, their assets, per-year claims, and Division 43
capital works for one owner. Every lookup filters by the acting owner; an
entity belonging to someone else is reported exactly like a missing one.

Derived asset fields are recomputed on every relevant write:
- pool_type from original cost (unless the asset was moved into the pool)
- yearly_deduction from cost, effective life and method
- remaining_value = original cost less everything claimed against the asset

Claims accumulate. Re-claiming a financial year without first removing it
with ``unclaim_fy`` records the amounts twice.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..exceptions import (
    AssetNotFoundError,
    AssetNotIndividualError,
    CapitalWorkNotFoundError,
    ClaimAssetMismatchError,
    InvalidAssetInputError,
    PropertyAlreadySoldError,
    PropertyNotFoundError,
    ScheduleNotFoundError,
)
from ..models import (
    CapitalWork,
    DepreciationAsset,
    DepreciationClaim,
    DepreciationSchedule,
    DepreciationCategory,
    DepreciationMethod,
    PoolType,
    Property,
    PropertyStatus,
)
from .asset_validator import (
    ValidatedAsset,
    filter_extracted_candidates,
    validate_and_recalculate,
)
from .depreciation_formulas import enforce_division_43, financial_year_for, round_money, to_decimal
from .pool_classifier import assign_pool_type, check_can_move_to_pool, initial_yearly_deduction

logger = structlog.get_logger(__name__)

ASSET_FIELDS = {"asset_name", "category", "original_cost", "effective_life", "method", "purchase_date"}
DERIVATION_INPUTS = {"category", "original_cost", "effective_life", "method"}
CAPITAL_WORK_FIELDS = {"description", "construction_date", "construction_cost", "claim_start_date"}


@dataclass
class ClaimAmount:
    """One line of a financial year claim. ``asset_id=None`` claims at pool level."""
    asset_id: Optional[int]
    amount: Decimal


@dataclass
class PropertyDepreciation:
    """Everything depreciable on a property."""
    schedules: list[DepreciationSchedule]
    capital_works: list[CapitalWork]


@dataclass
class ImportResult:
    """A schedule created from extracted data, with the validation outcome per asset."""
    schedule: DepreciationSchedule
    validated_assets: list[ValidatedAsset]

    @property
    def discrepancy_count(self) -> int:
        return sum(1 for asset in self.validated_assets if asset.discrepancy)


class DepreciationService:
    """Owner-scoped lifecycle operations for depreciation data."""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id
        self.log = logger.bind(owner_id=owner_id)

    # ─── Lookups ──────────────────────────────────────────────────

    def _get_property(self, property_id: int) -> Property:
        prop = self.db.query(Property).filter(
            Property.id == property_id,
            Property.owner_id == self.owner_id
        ).first()
        if not prop:
            raise PropertyNotFoundError(property_id)
        return prop

    def _get_active_property(self, property_id: int) -> Property:
        prop = self._get_property(property_id)
        if prop.status == PropertyStatus.SOLD:
            raise PropertyAlreadySoldError(property_id)
        return prop

    def _get_schedule(self, schedule_id: int) -> DepreciationSchedule:
        schedule = self.db.query(DepreciationSchedule).filter(
            DepreciationSchedule.id == schedule_id,
            DepreciationSchedule.owner_id == self.owner_id
        ).first()
        if not schedule:
            raise ScheduleNotFoundError(schedule_id)
        return schedule

    def _find_asset(self, asset_id: int) -> Optional[DepreciationAsset]:
        return self.db.query(DepreciationAsset).join(DepreciationSchedule).filter(
            DepreciationAsset.id == asset_id,
            DepreciationSchedule.owner_id == self.owner_id
        ).first()

    def _get_asset(self, asset_id: int) -> DepreciationAsset:
        asset = self._find_asset(asset_id)
        if not asset:
            raise AssetNotFoundError(asset_id)
        return asset

    def _find_capital_work(self, capital_work_id: int) -> Optional[CapitalWork]:
        return self.db.query(CapitalWork).filter(
            CapitalWork.id == capital_work_id,
            CapitalWork.owner_id == self.owner_id
        ).first()

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # ─── Derived fields ───────────────────────────────────────────

    @staticmethod
    def _validate_cost_and_life(original_cost: Decimal, effective_life: Decimal):
        if original_cost <= 0:
            raise InvalidAssetInputError("Original cost must be positive")
        if effective_life <= 0:
            raise InvalidAssetInputError("Effective life must be positive")

    @staticmethod
    def _refresh_remaining_value(asset: DepreciationAsset):
        claimed = sum((to_decimal(c.amount) for c in asset.claims), Decimal("0"))
        asset.remaining_value = max(Decimal("0"), round_money(to_decimal(asset.original_cost) - claimed))

    def _apply_derived_fields(self, asset: DepreciationAsset):
        """Recompute method/life rules, pool, yearly deduction and remaining value."""
        asset.method, asset.effective_life = enforce_division_43(
            asset.category, asset.method, asset.effective_life
        )

        # Reclassifying discards any earlier move into the low-value pool
        asset.pool_type = assign_pool_type(asset.original_cost)
        asset.opening_written_down_value = None
        asset.moved_to_pool_fy = None

        asset.yearly_deduction = initial_yearly_deduction(
            asset.original_cost, asset.effective_life, asset.method, asset.pool_type
        )
        self._refresh_remaining_value(asset)

    # ─── Schedules ────────────────────────────────────────────────

    def list_schedules(self, property_id: int) -> PropertyDepreciation:
        """Schedules (with assets and their claims) and capital works for a property."""
        schedules = self.db.query(DepreciationSchedule).options(
            selectinload(DepreciationSchedule.assets).selectinload(DepreciationAsset.claims)
        ).filter(
            DepreciationSchedule.property_id == property_id,
            DepreciationSchedule.owner_id == self.owner_id
        ).order_by(DepreciationSchedule.effective_date).all()

        capital_works = self.db.query(CapitalWork).filter(
            CapitalWork.property_id == property_id,
            CapitalWork.owner_id == self.owner_id
        ).order_by(CapitalWork.created_at.desc(), CapitalWork.id.desc()).all()

        return PropertyDepreciation(schedules=schedules, capital_works=capital_works)

    def create_schedule(
        self,
        property_id: int,
        effective_date: date,
        total_value: Decimal,
        document_id: Optional[str] = None
    ) -> DepreciationSchedule:
        """Create an empty schedule for manual entry."""
        schedule = self._new_schedule(property_id, effective_date, total_value, document_id)
        self._commit()
        self.db.refresh(schedule)
        self.log.info("schedule_created", schedule_id=schedule.id, property_id=property_id)
        return schedule

    def _new_schedule(
        self,
        property_id: int,
        effective_date: date,
        total_value: Decimal,
        document_id: Optional[str]
    ) -> DepreciationSchedule:
        self._get_active_property(property_id)

        total_value = to_decimal(total_value)
        if total_value < 0:
            raise InvalidAssetInputError("Schedule total value cannot be negative")

        schedule = DepreciationSchedule(
            property_id=property_id,
            owner_id=self.owner_id,
            document_id=document_id,
            effective_date=effective_date,
            total_value=round_money(total_value)
        )
        self.db.add(schedule)
        self.db.flush()
        return schedule

    def import_extracted_schedule(
        self,
        property_id: int,
        effective_date: date,
        raw_assets: Iterable[dict[str, Any]],
        document_id: Optional[str] = None
    ) -> ImportResult:
        """
        Create a schedule from document extraction output.

        Untrusted items are filtered, validated and recalculated before
        anything is written; only recalculated amounts are persisted.
        """
        candidates = filter_extracted_candidates(raw_assets)
        validated = validate_and_recalculate(candidates)
        total_value = sum((v.original_cost for v in validated), Decimal("0"))

        try:
            schedule = self._new_schedule(property_id, effective_date, total_value, document_id)
            for item in validated:
                self._new_asset(
                    schedule,
                    asset_name=item.asset_name,
                    category=item.category,
                    original_cost=item.original_cost,
                    effective_life=item.effective_life,
                    method=item.method,
                    purchase_date=None
                )
        except Exception:
            self.db.rollback()
            raise

        self._commit()
        self.db.refresh(schedule)

        result = ImportResult(schedule=schedule, validated_assets=validated)
        self.log.info(
            "schedule_imported",
            schedule_id=schedule.id,
            property_id=property_id,
            asset_count=len(validated),
            discrepancies=result.discrepancy_count,
        )
        return result

    # ─── Assets ───────────────────────────────────────────────────

    def add_asset(
        self,
        schedule_id: int,
        asset_name: str,
        category: str,
        original_cost: Decimal,
        effective_life: Decimal,
        method: str,
        purchase_date: Optional[date] = None
    ) -> DepreciationAsset:
        """Add an asset; pool, yearly deduction and remaining value are derived."""
        schedule = self._get_schedule(schedule_id)
        self._get_active_property(schedule.property_id)

        asset = self._new_asset(
            schedule,
            asset_name=asset_name,
            category=category,
            original_cost=original_cost,
            effective_life=effective_life,
            method=method,
            purchase_date=purchase_date
        )
        self._commit()
        self.db.refresh(asset)

        self.log.info(
            "asset_added",
            asset_id=asset.id,
            schedule_id=schedule_id,
            pool_type=asset.pool_type.value,
            yearly_deduction=str(asset.yearly_deduction),
        )
        return asset

    def _new_asset(self, schedule: DepreciationSchedule, **fields) -> DepreciationAsset:
        original_cost = to_decimal(fields.pop("original_cost"))
        effective_life = to_decimal(fields.pop("effective_life"))
        self._validate_cost_and_life(original_cost, effective_life)
        fields["category"] = DepreciationCategory(fields["category"])
        fields["method"] = DepreciationMethod(fields["method"])

        asset = DepreciationAsset(
            schedule=schedule,
            original_cost=round_money(original_cost),
            effective_life=effective_life,
            **fields
        )
        self._apply_derived_fields(asset)
        self.db.add(asset)
        self.db.flush()
        return asset

    def update_asset(self, asset_id: int, patch: dict[str, Any]) -> DepreciationAsset:
        """
        Update the provided fields of an asset.

        Derived fields cannot be patched. A change to cost, effective life,
        method or category reclassifies the pool and recomputes the deduction.
        """
        asset = self._get_asset(asset_id)

        changes = {k: v for k, v in patch.items() if k in ASSET_FIELDS and v is not None}

        if "original_cost" in changes:
            changes["original_cost"] = round_money(to_decimal(changes["original_cost"]))
        if "effective_life" in changes:
            changes["effective_life"] = to_decimal(changes["effective_life"])
        if "category" in changes:
            changes["category"] = DepreciationCategory(changes["category"])
        if "method" in changes:
            changes["method"] = DepreciationMethod(changes["method"])
        self._validate_cost_and_life(
            changes.get("original_cost", to_decimal(asset.original_cost)),
            changes.get("effective_life", to_decimal(asset.effective_life))
        )

        for key, value in changes.items():
            setattr(asset, key, value)

        if DERIVATION_INPUTS & changes.keys():
            self._apply_derived_fields(asset)

        self._commit()
        self.db.refresh(asset)

        self.log.info("asset_updated", asset_id=asset_id, fields=sorted(changes))
        return asset

    def delete_asset(self, asset_id: int) -> None:
        """Delete an asset. Unknown or foreign ids are ignored."""
        asset = self._find_asset(asset_id)
        if not asset:
            return

        self.db.delete(asset)
        self._commit()
        self.log.info("asset_deleted", asset_id=asset_id)

    def move_to_pool(self, asset_id: int) -> DepreciationAsset:
        """
        Move an asset into the low-value pool.

        Only individually depreciated assets qualify, and only once their
        remaining value is $1,000 or less. The remaining value becomes the
        opening written-down value in the pool from the current financial year.
        """
        asset = self._get_asset(asset_id)
        if asset.pool_type != PoolType.INDIVIDUAL:
            raise AssetNotIndividualError(asset_id, asset.pool_type.value)

        opening_value = check_can_move_to_pool(asset.remaining_value)

        asset.pool_type = PoolType.LOW_VALUE
        asset.opening_written_down_value = round_money(opening_value)
        asset.moved_to_pool_fy = financial_year_for()
        self._commit()
        self.db.refresh(asset)

        self.log.info(
            "asset_moved_to_pool",
            asset_id=asset_id,
            opening_written_down_value=str(asset.opening_written_down_value),
            moved_to_pool_fy=asset.moved_to_pool_fy,
        )
        return asset

    # ─── Claims ───────────────────────────────────────────────────

    def claim_fy(
        self,
        schedule_id: int,
        financial_year: int,
        amounts: Iterable[ClaimAmount]
    ) -> list[DepreciationClaim]:
        """
        Record claimed amounts for a financial year, one claim per line.

        All lines are written in a single transaction.
        """
        schedule = self._get_schedule(schedule_id)
        amounts = list(amounts)

        assets = {asset.id: asset for asset in schedule.assets}
        for line in amounts:
            if line.asset_id is not None and line.asset_id not in assets:
                raise ClaimAssetMismatchError(line.asset_id, schedule_id)
            if to_decimal(line.amount) < 0:
                raise InvalidAssetInputError("Claim amount cannot be negative")

        claims = []
        try:
            for line in amounts:
                claim = DepreciationClaim(
                    schedule=schedule,
                    asset=assets.get(line.asset_id),
                    financial_year=financial_year,
                    amount=round_money(to_decimal(line.amount))
                )
                self.db.add(claim)
                claims.append(claim)

            self.db.flush()
            for asset_id in {line.asset_id for line in amounts if line.asset_id is not None}:
                self._refresh_remaining_value(assets[asset_id])
        except Exception:
            self.db.rollback()
            raise

        self._commit()
        for claim in claims:
            self.db.refresh(claim)

        self.log.info(
            "claims_recorded",
            schedule_id=schedule_id,
            financial_year=financial_year,
            count=len(claims),
        )
        return claims

    def unclaim_fy(self, schedule_id: int, financial_year: int) -> int:
        """Delete every claim for a schedule and financial year. Returns the number removed."""
        schedule = self._get_schedule(schedule_id)

        claims = self.db.query(DepreciationClaim).filter(
            DepreciationClaim.schedule_id == schedule.id,
            DepreciationClaim.financial_year == financial_year
        ).all()
        affected = {claim.asset for claim in claims if claim.asset is not None}

        for claim in claims:
            self.db.delete(claim)
        self.db.flush()

        for asset in affected:
            self.db.expire(asset, ["claims"])
            self._refresh_remaining_value(asset)

        self._commit()
        self.log.info(
            "claims_removed",
            schedule_id=schedule_id,
            financial_year=financial_year,
            count=len(claims),
        )
        return len(claims)

    # ─── Capital works ────────────────────────────────────────────

    def add_capital_works(
        self,
        property_id: int,
        description: str,
        construction_date: date,
        construction_cost: Decimal,
        claim_start_date: date
    ) -> CapitalWork:
        """Add a Division 43 capital works entry for a property."""
        self._get_active_property(property_id)

        construction_cost = to_decimal(construction_cost)
        if construction_cost <= 0:
            raise InvalidAssetInputError("Construction cost must be positive")

        capital_work = CapitalWork(
            property_id=property_id,
            owner_id=self.owner_id,
            description=description,
            construction_date=construction_date,
            construction_cost=round_money(construction_cost),
            claim_start_date=claim_start_date
        )
        self.db.add(capital_work)
        self._commit()
        self.db.refresh(capital_work)

        self.log.info("capital_works_added", capital_work_id=capital_work.id, property_id=property_id)
        return capital_work

    def update_capital_works(self, capital_work_id: int, patch: dict[str, Any]) -> CapitalWork:
        """Update the provided fields of a capital works entry."""
        capital_work = self._find_capital_work(capital_work_id)
        if not capital_work:
            raise CapitalWorkNotFoundError(capital_work_id)

        changes = {k: v for k, v in patch.items() if k in CAPITAL_WORK_FIELDS and v is not None}
        if "construction_cost" in changes:
            cost = to_decimal(changes["construction_cost"])
            if cost <= 0:
                raise InvalidAssetInputError("Construction cost must be positive")
            changes["construction_cost"] = round_money(cost)

        for key, value in changes.items():
            setattr(capital_work, key, value)

        self._commit()
        self.db.refresh(capital_work)
        self.log.info("capital_works_updated", capital_work_id=capital_work_id, fields=sorted(changes))
        return capital_work

    def delete_capital_works(self, capital_work_id: int) -> None:
        """Delete a capital works entry. Unknown or foreign ids are ignored."""
        capital_work = self._find_capital_work(capital_work_id)
        if not capital_work:
            return

        self.db.delete(capital_work)
        self._commit()
        self.log.info("capital_works_deleted", capital_work_id=capital_work_id)
