from .depreciation_formulas import (
    calculate_yearly_deduction,
    calculate_remaining_value,
    generate_multi_year_schedule,
    financial_year_for,
    YearEntry,
)
from .pool_classifier import assign_pool_type
from .asset_validator import validate_and_recalculate, ExtractedAsset, ValidatedAsset
from .depreciation_service import DepreciationService, ClaimAmount
from .projection_builder import DepreciationProjectionBuilder, ProjectionRow, project_schedule
from .cgt_calculator import CGTService, CGTResult, SellingCosts

__all__ = [
    "calculate_yearly_deduction",
    "calculate_remaining_value",
    "generate_multi_year_schedule",
    "financial_year_for",
    "YearEntry",
    "assign_pool_type",
    "validate_and_recalculate",
    "ExtractedAsset",
    "ValidatedAsset",
    "DepreciationService",
    "ClaimAmount",
    "DepreciationProjectionBuilder",
    "ProjectionRow",
    "project_schedule",
    "CGTService",
    "CGTResult",
    "SellingCosts",
]
