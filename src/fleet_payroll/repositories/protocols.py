"""Repository protocols: the only seam between the engine and storage."""

from __future__ import annotations

from datetime import date
from typing import Protocol
from uuid import UUID

from fleet_payroll.calculators.types import (
    DistanceTierEntry,
    EmployeeRecord,
    ExpenseClaimRecord,
    MonthlyStatementResult,
    SalaryPaymentRecord,
    StatementRecord,
    TariffParameters,
    TreasuryMovementRecord,
    TripRecord,
)


class ITariffRepository(Protocol):
    """Per-year tariff configuration and distance tiers."""

    async def get_config(self, year: int) -> TariffParameters | None: ...

    async def save_config(self, parameters: TariffParameters) -> None: ...

    async def list_tiers(self, year: int) -> list[DistanceTierEntry]: ...

    async def upsert_tier(self, entry: DistanceTierEntry) -> None: ...

    async def delete_tier(self, year: int, km: int) -> bool: ...

    async def replace_tiers(self, year: int, entries: list[DistanceTierEntry]) -> None:
        """Replace every tier of the year, all or nothing."""
        ...


class IActivityRepository(Protocol):
    """Read-only access to upstream operational records."""

    async def get_employee(self, employee_id: UUID) -> EmployeeRecord | None: ...

    async def list_employees(self) -> list[EmployeeRecord]: ...

    async def list_trips(self, assignee_id: UUID, start: date, end: date) -> list[TripRecord]: ...

    async def list_expense_claims(
        self, owner_id: UUID, start: date, end: date
    ) -> list[ExpenseClaimRecord]: ...

    async def list_treasury_movements(
        self, owner_id: UUID, start: date, end: date
    ) -> list[TreasuryMovementRecord]: ...


class IStatementRepository(Protocol):
    """Materialized monthly statements."""

    async def get_statement(self, owner_id: UUID, month: int, year: int) -> StatementRecord | None: ...

    async def save_statement(
        self, result: MonthlyStatementResult, engine_version: str
    ) -> StatementRecord:
        """Insert or overwrite the statement for (owner, month, year)."""
        ...

    async def set_status(self, statement_id: UUID, status: str) -> StatementRecord: ...


class IPaymentRepository(Protocol):
    """Salary payment register."""

    async def add_payment(self, payment: SalaryPaymentRecord) -> SalaryPaymentRecord: ...

    async def get_payment(self, payment_id: UUID) -> SalaryPaymentRecord | None: ...

    async def list_payments(
        self,
        year: int | None = None,
        month: int | None = None,
        owner_id: UUID | None = None,
        status: str | None = None,
    ) -> list[SalaryPaymentRecord]:
        """Payments matching every given filter, newest payment date first."""
        ...

    async def update_payment(
        self, payment_id: UUID, status: str, notes: str | None
    ) -> SalaryPaymentRecord: ...


class IPayrollRepository(
    ITariffRepository, IActivityRepository, IStatementRepository, IPaymentRepository, Protocol
):
    """Everything the engine and services read and write."""
