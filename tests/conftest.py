"""Pytest fixtures for fleet payroll tests."""

from __future__ import annotations

from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fleet_payroll.calculators.types import (
    DistanceTierEntry,
    EmployeeRecord,
    TariffParameters,
    TariffSchedule,
)
from fleet_payroll.config import Settings
from fleet_payroll.models import Base
from fleet_payroll.repositories.memory import MemoryPayrollRepository
from fleet_payroll.repositories.sql import SqlAlchemyPayrollRepository
from fleet_payroll.services.tariff_store import TariffStore
from factories import YEAR

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        default_adjustment_coefficient=Decimal("1.17"),
        default_hourly_waiting_rate=Decimal("15.00"),
        default_overage_rate_per_km=Decimal("0.25"),
    )


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sql_repository(session: AsyncSession, settings: Settings) -> SqlAlchemyPayrollRepository:
    return SqlAlchemyPayrollRepository(session, settings)


@pytest.fixture
def repository() -> MemoryPayrollRepository:
    return MemoryPayrollRepository()


@pytest.fixture
def tariff_store(repository: MemoryPayrollRepository, settings: Settings) -> TariffStore:
    return TariffStore(repository, settings)


@pytest.fixture
def parameters() -> TariffParameters:
    """Reference year configuration: +17%, 15/h waiting, 0.25/km overage."""
    return TariffParameters(
        year=YEAR,
        adjustment_coefficient=Decimal("1.17"),
        hourly_waiting_rate=Decimal("15"),
        overage_rate_per_km=Decimal("0.25"),
    )


@pytest.fixture
def tier_entries() -> list[DistanceTierEntry]:
    return [
        DistanceTierEntry(year=YEAR, km=12, base_amount=Decimal("15.00")),
        DistanceTierEntry(year=YEAR, km=15, base_amount=Decimal("20.00")),
        DistanceTierEntry(year=YEAR, km=20, base_amount=Decimal("22.00")),
        DistanceTierEntry(year=YEAR, km=25, base_amount=Decimal("24.50")),
    ]


@pytest.fixture
def schedule(parameters: TariffParameters, tier_entries: list[DistanceTierEntry]) -> TariffSchedule:
    return TariffSchedule.build(parameters, tier_entries)


@pytest.fixture
async def seeded_repository(
    repository: MemoryPayrollRepository,
    parameters: TariffParameters,
    tier_entries: list[DistanceTierEntry],
) -> MemoryPayrollRepository:
    """Memory repository holding the reference tariffs for YEAR."""
    await repository.save_config(parameters)
    await repository.replace_tiers(YEAR, tier_entries)
    return repository


@pytest.fixture
def driver() -> EmployeeRecord:
    return EmployeeRecord(
        employee_id=uuid4(),
        first_name="Marco",
        last_name="Rossi",
        role="partner",
    )
