"""Storage seam for tariffs, upstream records and statements."""

from fleet_payroll.repositories.memory import MemoryPayrollRepository
from fleet_payroll.repositories.protocols import (
    IActivityRepository,
    IPayrollRepository,
    IStatementRepository,
    ITariffRepository,
)
from fleet_payroll.repositories.sql import SqlAlchemyPayrollRepository

__all__ = [
    "IActivityRepository",
    "IPayrollRepository",
    "IStatementRepository",
    "ITariffRepository",
    "MemoryPayrollRepository",
    "SqlAlchemyPayrollRepository",
]
