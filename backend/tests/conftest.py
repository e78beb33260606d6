"""
Pytest configuration and fixtures.
"""
import os

os.environ.setdefault("LEDGER_DATABASE_URL", "sqlite://")

import pytest
from decimal import Decimal
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from property_ledger.models import Base, Property, Transaction, get_db
from property_ledger.main import app

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session bound to the in-memory engine."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sample_property(db):
    """Active property bought 1 Jul 2020 for $850,000."""
    prop = Property(
        owner_id=OWNER_ID,
        address="12 Example Street",
        suburb="Richmond",
        state="VIC",
        purchase_price=Decimal("850000.00"),
        purchase_date=date(2020, 7, 1)
    )
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


@pytest.fixture
def other_owner_property(db):
    """Property belonging to a different owner."""
    prop = Property(
        owner_id=OTHER_OWNER_ID,
        address="99 Elsewhere Road",
        suburb="Fitzroy",
        state="VIC",
        purchase_price=Decimal("600000.00"),
        purchase_date=date(2019, 3, 1)
    )
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


@pytest.fixture
def acquisition_transactions(db, sample_property):
    """Stamp duty $35,000 and conveyancing $2,000, plus unrelated spending."""
    txns = [
        Transaction(
            property_id=sample_property.id,
            owner_id=OWNER_ID,
            date=date(2020, 7, 1),
            description="Stamp duty",
            category="stamp_duty",
            amount=Decimal("-35000.00")
        ),
        Transaction(
            property_id=sample_property.id,
            owner_id=OWNER_ID,
            date=date(2020, 7, 1),
            description="Conveyancer",
            category="conveyancing",
            amount=Decimal("-2000.00")
        ),
        Transaction(
            property_id=sample_property.id,
            owner_id=OWNER_ID,
            date=date(2021, 2, 10),
            description="Council rates",
            category="council_rates",
            amount=Decimal("-1800.00")
        ),
    ]
    db.add_all(txns)
    db.commit()
    return txns


@pytest.fixture
def client(db):
    """API client sharing the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-Owner-Id": OWNER_ID}
