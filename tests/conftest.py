"""
Pytest fixtures for testing
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.infrastructure.db.session import Base
from app.infrastructure.db import models  # noqa: F401  (registers tables)
from app.infrastructure.cache.memory import InMemoryCache
from app.infrastructure.storage.people import PersonRepository
from app.infrastructure.storage.plans import PlanRepository
from app.infrastructure.storage.person_subs import PersonSubRepository
from app.infrastructure.storage.freezes import FreezeRepository
from app.infrastructure.storage.single_visits import SingleVisitRepository
from app.infrastructure.storage.statistics import StatisticsRepository

TODAY = date(2026, 3, 15)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads, foreign keys enforced."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def today():
    """Fixed "today" callable for services"""
    return lambda: TODAY


# ============================================================================
# Repositories
# ============================================================================

@pytest.fixture
def people_repo(db_session):
    return PersonRepository(db_session)


@pytest.fixture
def plans_repo(db_session):
    return PlanRepository(db_session)


@pytest.fixture
def person_subs_repo(db_session):
    return PersonSubRepository(db_session)


@pytest.fixture
def freezes_repo(db_session):
    return FreezeRepository(db_session)


@pytest.fixture
def visits_repo(db_session):
    return SingleVisitRepository(db_session)


@pytest.fixture
def stats_repo(db_session):
    return StatisticsRepository(db_session)


# ============================================================================
# Sample data
# ============================================================================

@pytest.fixture
def john(people_repo):
    person_id = people_repo.add("John Doe", "+79990000001")
    people_repo.commit()
    return person_id


@pytest.fixture
def jane(people_repo):
    person_id = people_repo.add("Jane Roe", "+79990000002")
    people_repo.commit()
    return person_id


@pytest.fixture
def monthly_plan(plans_repo):
    """Месячный тариф: 1000 руб., 30 дней, 5 дней заморозки"""
    plan_id = plans_repo.add("Monthly", Decimal("1000"), 30, 5)
    plans_repo.commit()
    return plan_id


@pytest.fixture
def no_freeze_plan(plans_repo):
    plan_id = plans_repo.add("Monthly, no freeze", Decimal("800"), 30, 0)
    plans_repo.commit()
    return plan_id
