import os

os.environ.setdefault("COURTSIDE_DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from courtside.core.database import Base, get_db, init_db
from courtside.main import create_app
from courtside.services.balance_cache import BalanceViewCache, get_balance_cache

engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

TEAM_ID = 3
COACH_ID = 5


@pytest.fixture
def db_engine():
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(db_engine):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def cache():
    return BalanceViewCache()


@pytest.fixture
def client(db_engine, cache):
    app = create_app()

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_balance_cache] = lambda: cache
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def coach_headers():
    return {"X-User-Id": str(COACH_ID)}


@pytest.fixture
def session_factory(db_engine):
    return TestingSessionLocal
