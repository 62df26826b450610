"""Shared fixtures: in-memory database, API client and token helpers."""

import os

# Must be set before progress_engine.config is first imported
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from progress_engine import models  # noqa: F401
from progress_engine.database import Base, get_db
from progress_engine.main import app
from progress_engine.models.proposal import Proposal
from progress_engine.services.events import get_event_dispatcher
from progress_engine.utils.constants import ROLE_BRAND, ROLE_INFLUENCER
from progress_engine.utils.security import create_access_token

T0 = datetime.datetime(2026, 3, 1, 9, 0, 0)

INFLUENCER_ID = "influencer-1"
OTHER_INFLUENCER_ID = "influencer-2"
BRAND_ID = "brand-1"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """On-disk database: each session gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'progress.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_sessions(file_engine):
    return sessionmaker(bind=file_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def dispatcher():
    """Fresh event dispatcher per test."""
    get_event_dispatcher.cache_clear()
    yield get_event_dispatcher()
    get_event_dispatcher.cache_clear()


@pytest.fixture
def make_proposal(db):
    def _make(compensation="40000", currency="INR", influencer_id=INFLUENCER_ID):
        proposal = Proposal(
            influencer_id=influencer_id,
            proposed_compensation=Decimal(compensation),
            currency=currency,
        )
        db.add(proposal)
        db.commit()
        db.refresh(proposal)
        return proposal

    return _make


@pytest.fixture
def proposal(make_proposal):
    return make_proposal()


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(actor_id=INFLUENCER_ID, role=ROLE_INFLUENCER):
    token = create_access_token({"sub": actor_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def influencer_headers():
    return auth_headers()


@pytest.fixture
def brand_headers():
    return auth_headers(BRAND_ID, ROLE_BRAND)


@pytest.fixture
def headers_for():
    return auth_headers
