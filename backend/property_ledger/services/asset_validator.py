"""
Extracted Asset Validator

Assets read from quantity surveyor reports by the (external) AI extraction
step are untrusted. Extraction is trusted to identify an asset (name,
category, cost, effective life) but never for the money it produces:

1. Capital works are forced to prime cost over 40 years (Division 43)
2. The yearly deduction is recalculated from first principles
3. A discrepancy is flagged when the supplied deduction differs from the
   recalculated one by more than 10%

The recalculated deduction is always the authoritative value. The supplied
one is only reported back so the caller can review the correction.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional

import structlog

from ..models.entities import DepreciationCategory, DepreciationMethod
from .depreciation_formulas import (
    calculate_yearly_deduction,
    enforce_division_43,
    to_decimal,
)

logger = structlog.get_logger(__name__)

DISCREPANCY_TOLERANCE = Decimal("0.10")

VALID_CATEGORIES = {c.value for c in DepreciationCategory}
VALID_METHODS = {m.value for m in DepreciationMethod}


@dataclass
class ExtractedAsset:
    """An asset as reported by document extraction."""
    asset_name: str
    category: DepreciationCategory
    original_cost: Decimal
    effective_life: Decimal
    method: DepreciationMethod
    yearly_deduction: Decimal  # As read from the report


@dataclass
class ValidatedAsset:
    """An extracted asset after authoritative recalculation."""
    asset_name: str
    category: DepreciationCategory
    original_cost: Decimal
    effective_life: Decimal
    method: DepreciationMethod
    yearly_deduction: Decimal   # Recalculated
    supplied_deduction: Decimal  # From extraction, never persisted
    discrepancy: bool


def is_discrepant(calculated: Decimal, supplied: Decimal) -> bool:
    """True when the supplied amount is more than 10% away from the calculated one."""
    return abs(calculated - supplied) > calculated * DISCREPANCY_TOLERANCE


def validate_and_recalculate(candidates: Iterable[ExtractedAsset]) -> list[ValidatedAsset]:
    """Recalculate every candidate's deduction and flag discrepancies."""
    results = []

    for candidate in candidates:
        method, effective_life = enforce_division_43(
            candidate.category, candidate.method, candidate.effective_life
        )

        calculated = calculate_yearly_deduction(
            candidate.original_cost, effective_life, method
        )
        supplied = to_decimal(candidate.yearly_deduction)
        discrepancy = is_discrepant(calculated, supplied)

        if discrepancy:
            logger.warning(
                "extracted_deduction_discrepancy",
                asset_name=candidate.asset_name,
                supplied=str(supplied),
                calculated=str(calculated),
            )

        results.append(ValidatedAsset(
            asset_name=candidate.asset_name,
            category=DepreciationCategory(candidate.category),
            original_cost=to_decimal(candidate.original_cost),
            effective_life=effective_life,
            method=method,
            yearly_deduction=calculated,
            supplied_deduction=supplied,
            discrepancy=discrepancy
        ))

    return results


def filter_extracted_candidates(raw_items: Iterable[dict[str, Any]]) -> list[ExtractedAsset]:
    """
    Turn raw extraction output into candidates, dropping unusable items.

    Items need a name, a positive cost and effective life, and a known
    category and method. A missing yearly deduction is read as 0, which
    always shows up as a discrepancy.
    """
    candidates = []

    for index, item in enumerate(raw_items):
        reason = _rejection_reason(item)
        if reason:
            logger.info("extracted_asset_rejected", index=index, reason=reason)
            continue

        candidates.append(ExtractedAsset(
            asset_name=str(item["asset_name"]).strip(),
            category=DepreciationCategory(item["category"]),
            original_cost=to_decimal(item["original_cost"]),
            effective_life=to_decimal(item["effective_life"]),
            method=DepreciationMethod(item["method"]),
            yearly_deduction=to_decimal(item.get("yearly_deduction") or 0)
        ))

    return candidates


def _rejection_reason(item: dict[str, Any]) -> Optional[str]:
    if not str(item.get("asset_name") or "").strip():
        return "missing asset name"
    if item.get("category") not in VALID_CATEGORIES:
        return "unknown category"
    if item.get("method") not in VALID_METHODS:
        return "unknown method"

    for field_name in ("original_cost", "effective_life"):
        try:
            value = to_decimal(item.get(field_name))
        except ArithmeticError:
            return f"invalid {field_name}"
        if not value.is_finite() or value <= 0:
            return f"non-positive {field_name}"

    return None
