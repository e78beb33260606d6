"""
Typed exceptions for the Property Ledger.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer reports it with. Callers catch by type, never by message.

    PropertyLedgerError
    +-- NotFoundError
    |   +-- PropertyNotFoundError
    |   +-- ScheduleNotFoundError
    |   +-- AssetNotFoundError
    |   +-- CapitalWorkNotFoundError
    |   +-- SaleNotFoundError
    +-- BusinessRuleError
    |   +-- PoolThresholdExceededError
    |   +-- PropertyAlreadySoldError
    |   +-- InvalidSaleError
    |   +-- ClaimAssetMismatchError
    |   +-- AssetNotIndividualError
    +-- InvalidInputError
        +-- InvalidAssetInputError

Not-found covers "exists but belongs to another owner" as well, so existence
is never leaked across owners.
"""

from decimal import Decimal
from typing import Optional


class PropertyLedgerError(Exception):
    """Base class for all ledger errors."""

    code: str = "LEDGER_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Not found ---------------------------------------------------------------


class NotFoundError(PropertyLedgerError):
    code = "NOT_FOUND"
    status_code = 404
    entity = "Entity"

    def __init__(self, entity_id: Optional[int] = None):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found")


class PropertyNotFoundError(NotFoundError):
    code = "PROPERTY_NOT_FOUND"
    entity = "Property"


class ScheduleNotFoundError(NotFoundError):
    code = "SCHEDULE_NOT_FOUND"
    entity = "Depreciation schedule"


class AssetNotFoundError(NotFoundError):
    code = "ASSET_NOT_FOUND"
    entity = "Asset"


class CapitalWorkNotFoundError(NotFoundError):
    code = "CAPITAL_WORK_NOT_FOUND"
    entity = "Capital works entry"


class SaleNotFoundError(NotFoundError):
    code = "SALE_NOT_FOUND"
    entity = "Sale record"


# Business rules ----------------------------------------------------------


class BusinessRuleError(PropertyLedgerError):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 400


class PoolThresholdExceededError(BusinessRuleError):
    """Asset is still worth more than the low-value pool threshold."""

    code = "POOL_THRESHOLD_EXCEEDED"

    def __init__(self, remaining_value: Decimal, threshold: Decimal):
        self.remaining_value = remaining_value
        self.threshold = threshold
        super().__init__(
            f"Remaining value (${remaining_value:,.2f}) exceeds "
            f"${threshold:,.0f} threshold for low-value pool"
        )


class PropertyAlreadySoldError(BusinessRuleError):
    code = "PROPERTY_ALREADY_SOLD"

    def __init__(self, property_id: int):
        self.property_id = property_id
        super().__init__("Property is already sold")


class InvalidSaleError(BusinessRuleError):
    code = "INVALID_SALE"


class ClaimAssetMismatchError(BusinessRuleError):
    """A claim references an asset outside the schedule being claimed."""

    code = "CLAIM_ASSET_MISMATCH"

    def __init__(self, asset_id: int, schedule_id: int):
        self.asset_id = asset_id
        self.schedule_id = schedule_id
        super().__init__(f"Asset {asset_id} does not belong to schedule {schedule_id}")


class AssetNotIndividualError(BusinessRuleError):
    """Only individually depreciated assets can be moved into the low-value pool."""

    code = "ASSET_NOT_INDIVIDUAL"

    def __init__(self, asset_id: int, pool_type: str):
        self.asset_id = asset_id
        self.pool_type = pool_type
        super().__init__(f"Asset {asset_id} is already in the {pool_type} pool")


# Input validation --------------------------------------------------------


class InvalidInputError(PropertyLedgerError):
    code = "INVALID_INPUT"
    status_code = 422


class InvalidAssetInputError(InvalidInputError):
    code = "INVALID_ASSET_INPUT"
