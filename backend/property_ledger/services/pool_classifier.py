"""
Asset Pool Classifier

Decides how an asset is depreciated based on its cost:
- cost <= $300: immediate write-off (full cost deducted in the purchase year)
- $300 < cost <= $1,000: low-value pool
- cost > $1,000: individual schedule (diminishing value or prime cost)

An individual asset can later be moved into the low-value pool once its
remaining value has fallen to $1,000 or less.
"""

from decimal import Decimal

from ..exceptions import PoolThresholdExceededError
from ..models.entities import PoolType
from .depreciation_formulas import Number, calculate_yearly_deduction, to_decimal

IMMEDIATE_WRITEOFF_THRESHOLD = Decimal("300")
LOW_VALUE_POOL_THRESHOLD = Decimal("1000")


def assign_pool_type(original_cost: Number) -> PoolType:
    """Pool for an asset of the given cost."""
    cost = to_decimal(original_cost)
    if cost <= IMMEDIATE_WRITEOFF_THRESHOLD:
        return PoolType.IMMEDIATE_WRITEOFF
    if cost <= LOW_VALUE_POOL_THRESHOLD:
        return PoolType.LOW_VALUE
    return PoolType.INDIVIDUAL


def initial_yearly_deduction(
    original_cost: Number,
    effective_life: Number,
    method: str,
    pool_type: PoolType
) -> Decimal:
    """Yearly deduction for a pool; immediate write-offs deduct the full cost."""
    if pool_type == PoolType.IMMEDIATE_WRITEOFF:
        return to_decimal(original_cost)
    return calculate_yearly_deduction(original_cost, effective_life, method)


def check_can_move_to_pool(remaining_value: Number) -> Decimal:
    """
    Validate a move into the low-value pool.

    Returns the remaining value, which becomes the asset's opening written-down
    value in the pool. Raises PoolThresholdExceededError above $1,000.
    """
    remaining = to_decimal(remaining_value)
    if remaining > LOW_VALUE_POOL_THRESHOLD:
        raise PoolThresholdExceededError(remaining, LOW_VALUE_POOL_THRESHOLD)
    return remaining
