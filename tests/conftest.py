"""
Shared fixtures.

Provides:
- an in-memory SQLite session per test (tables created from the models)
- a FixedClock every service is wired to
- ProductCatalog / ScanEventLog / ReportAggregator instances
- a FastAPI TestClient whose requests use the test session and clock
- a file-backed SQLite session factory for the threaded race tests
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from furniture_stock.config import settings
from furniture_stock.database import Base, get_db, make_engine
import furniture_stock.models.log  # noqa: F401
import furniture_stock.models.product  # noqa: F401
import furniture_stock.models.scan  # noqa: F401
import furniture_stock.models.stock  # noqa: F401
from furniture_stock.models.product import Product
from furniture_stock.models.scan import ScanEvent
from furniture_stock.services.catalog import ProductCatalog
from furniture_stock.services.code_allocator import CodeAllocator
from furniture_stock.services.reports import ReportAggregator
from furniture_stock.services.scan_log import ScanEventLog
from furniture_stock.utils.clock import FixedClock
from furniture_stock.utils.deps import get_clock

START = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No sleeping between retries in unit tests."""
    monkeypatch.setattr(settings, "CODE_RETRY_BACKOFF_SECONDS", 0.0)
    monkeypatch.setattr(settings, "STOCK_RETRY_BACKOFF_SECONDS", 0.0)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def allocator(session, clock):
    return CodeAllocator(session, clock=clock, backoff_seconds=0)


@pytest.fixture
def catalog(session, clock, allocator):
    return ProductCatalog(session, clock=clock, allocator=allocator)


@pytest.fixture
def scan_log(session, clock, catalog):
    return ScanEventLog(session, clock=clock, catalog=catalog)


@pytest.fixture
def reports(session, catalog, scan_log):
    return ReportAggregator(session, catalog=catalog, scan_log=scan_log)


@pytest.fixture
def make_product(session):
    """Insert a product row directly, bypassing the catalog."""

    def _make(code="FUR-001", name=None, category="Sofas", stock=0, sale_price=100.0, **extra):
        product = Product(
            code=code,
            name=name or f"Product {code}",
            category=category,
            stock=stock,
            sale_price=sale_price,
            **extra,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_scan(session, clock):
    """Insert a scan row directly at the clock's current time (or `at`)."""

    def _make(code, quantity=1, scan_type="sale", product_id=None, at=None, **extra):
        scan = ScanEvent(
            code=code,
            quantity=quantity,
            scan_type=scan_type,
            product_id=product_id,
            created_at=at or clock.now(),
            **extra,
        )
        session.add(scan)
        session.commit()
        session.refresh(scan)
        return scan

    return _make


@pytest.fixture
def client(session, clock):
    from furniture_stock.main import app

    def _get_db():
        yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_clock] = lambda: clock
    # No context manager: the lifespan (logging setup, init_db on the
    # configured database) is not run against the test session.
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a real SQLite file, so threads get separate connections."""
    eng = make_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=eng)
    yield sessionmaker(autocommit=False, autoflush=False, bind=eng)
    eng.dispose()
