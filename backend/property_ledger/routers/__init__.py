from .depreciation import router as depreciation_router
from .cgt import router as cgt_router

__all__ = ["depreciation_router", "cgt_router"]
