"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.database import async_session_factory
from fleet_payroll.repositories.sql import SqlAlchemyPayrollRepository
from fleet_payroll.services.statement_service import StatementService
from fleet_payroll.services.tariff_store import TariffStore


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_repository(db: DbSession) -> SqlAlchemyPayrollRepository:
    return SqlAlchemyPayrollRepository(db)


Repository = Annotated[SqlAlchemyPayrollRepository, Depends(get_repository)]


def get_tariff_store(repository: Repository) -> TariffStore:
    return TariffStore(repository)


def get_statement_service(repository: Repository) -> StatementService:
    return StatementService(repository)


Tariffs = Annotated[TariffStore, Depends(get_tariff_store)]
Statements = Annotated[StatementService, Depends(get_statement_service)]
