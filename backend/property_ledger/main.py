"""
Property Ledger API

A FastAPI application for Australian residential property investors.

Supports:
- Depreciation schedules (Div 40 plant & equipment, Div 43 capital works)
- Low-value pool and immediate write-off classification
- Validation of AI-extracted depreciation reports
- Multi-year depreciation projections
- CGT cost base and property sale recording (50% discount after 12 months)
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .exceptions import PropertyLedgerError
from .logging_config import configure_logging
from .models import init_db
from .routers import depreciation_router, cgt_router

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize the database on startup."""
    configure_logging()
    init_db()
    logger.info("startup_complete", database_url=settings.database_url.split("@")[-1])
    yield


app = FastAPI(
    title="Property Ledger",
    description="Depreciation and CGT calculations for Australian investment properties",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(depreciation_router)
app.include_router(cgt_router)


@app.exception_handler(PropertyLedgerError)
async def ledger_error_handler(request: Request, exc: PropertyLedgerError):
    """Map typed ledger errors to JSON responses."""
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.message}
    )


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Property Ledger",
        "version": "0.1.0",
        "endpoints": {
            "depreciation": {
                "list": "/depreciation/properties/{property_id}",
                "projection": "/depreciation/properties/{property_id}/projection",
                "import": "/depreciation/properties/{property_id}/schedules/import",
                "validate": "/depreciation/validate"
            },
            "cgt": {
                "cost_base": "/cgt/properties/{property_id}/cost-base",
                "sale": "/cgt/properties/{property_id}/sale",
                "summary": "/cgt/summary"
            }
        },
        "rules": {
            "immediate_writeoff": "cost <= $300",
            "low_value_pool": "$300 < cost <= $1,000 (37.5% first year, 18.75% after)",
            "capital_works": "2.5% prime cost over 40 years",
            "cgt_discount": "50% when held 12 months or more"
        },
        "documentation": "/docs"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
