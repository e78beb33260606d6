from .database import Base, engine, get_db, init_db
from .entities import (
    Property,
    Transaction,
    DepreciationSchedule,
    DepreciationAsset,
    DepreciationClaim,
    CapitalWork,
    PropertySale,
    PropertyStatus,
    DepreciationCategory,
    DepreciationMethod,
    PoolType,
)

__all__ = [
    "Base",
    "engine",
    "get_db",
    "init_db",
    "Property",
    "Transaction",
    "DepreciationSchedule",
    "DepreciationAsset",
    "DepreciationClaim",
    "CapitalWork",
    "PropertySale",
    "PropertyStatus",
    "DepreciationCategory",
    "DepreciationMethod",
    "PoolType",
]
