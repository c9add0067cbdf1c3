"""SQLAlchemy ORM models."""

from fleet_payroll.models.base import Base, TimestampMixin
from fleet_payroll.models.activity import Employee, ExpenseClaim, TreasuryMovement, Trip
from fleet_payroll.models.statement import MonthlyStatement, MonthlyStatementLine
from fleet_payroll.models.payment import SalaryPayment
from fleet_payroll.models.tariff import DistanceTier, TariffConfig

__all__ = [
    "Base",
    "TimestampMixin",
    "DistanceTier",
    "Employee",
    "ExpenseClaim",
    "MonthlyStatement",
    "MonthlyStatementLine",
    "SalaryPayment",
    "TariffConfig",
    "TreasuryMovement",
    "Trip",
]
