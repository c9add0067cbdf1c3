"""In-memory payroll repository for tests and local experiments."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from uuid import UUID, uuid4

from fleet_payroll.calculators.types import (
    DistanceTierEntry,
    EmployeeRecord,
    ExpenseClaimRecord,
    MonthlyStatementResult,
    SalaryPaymentRecord,
    StatementRecord,
    StatementStatus,
    TariffParameters,
    TreasuryMovementRecord,
    TripRecord,
)


class MemoryPayrollRepository:
    """Dict-backed repository. Not thread-safe."""

    def __init__(self) -> None:
        self.configs: dict[int, TariffParameters] = {}
        self.tiers: dict[int, dict[int, DistanceTierEntry]] = {}
        self.employees: dict[UUID, EmployeeRecord] = {}
        self.trips: list[TripRecord] = []
        self.expense_claims: list[ExpenseClaimRecord] = []
        self.movements: list[TreasuryMovementRecord] = []
        self.statements: dict[tuple[UUID, int, int], StatementRecord] = {}
        self.payments: dict[UUID, SalaryPaymentRecord] = {}

    # ----- seeding helpers -----

    def add_employee(self, employee: EmployeeRecord) -> EmployeeRecord:
        self.employees[employee.employee_id] = employee
        return employee

    def add_trip(self, trip: TripRecord) -> TripRecord:
        self.trips.append(trip)
        return trip

    def add_expense_claim(self, claim: ExpenseClaimRecord) -> ExpenseClaimRecord:
        self.expense_claims.append(claim)
        return claim

    def add_movement(self, movement: TreasuryMovementRecord) -> TreasuryMovementRecord:
        self.movements.append(movement)
        return movement

    # ----- tariffs -----

    async def get_config(self, year: int) -> TariffParameters | None:
        return self.configs.get(year)

    async def save_config(self, parameters: TariffParameters) -> None:
        self.configs[parameters.year] = replace(parameters, is_default=False)

    async def list_tiers(self, year: int) -> list[DistanceTierEntry]:
        return sorted(self.tiers.get(year, {}).values(), key=lambda t: t.km)

    async def upsert_tier(self, entry: DistanceTierEntry) -> None:
        self.tiers.setdefault(entry.year, {})[entry.km] = entry

    async def delete_tier(self, year: int, km: int) -> bool:
        return self.tiers.get(year, {}).pop(km, None) is not None

    async def replace_tiers(self, year: int, entries: list[DistanceTierEntry]) -> None:
        self.tiers[year] = {entry.km: entry for entry in entries}

    # ----- upstream records -----

    async def get_employee(self, employee_id: UUID) -> EmployeeRecord | None:
        return self.employees.get(employee_id)

    async def list_employees(self) -> list[EmployeeRecord]:
        return list(self.employees.values())

    async def list_trips(self, assignee_id: UUID, start: date, end: date) -> list[TripRecord]:
        return [
            t for t in self.trips
            if t.assignee_id == assignee_id and start <= t.service_date <= end
        ]

    async def list_expense_claims(
        self, owner_id: UUID, start: date, end: date
    ) -> list[ExpenseClaimRecord]:
        return [
            c for c in self.expense_claims
            if c.owner_id == owner_id and start <= c.claim_date <= end
        ]

    async def list_treasury_movements(
        self, owner_id: UUID, start: date, end: date
    ) -> list[TreasuryMovementRecord]:
        return [
            m for m in self.movements
            if m.owner_id == owner_id and start <= m.movement_date <= end
        ]

    # ----- statements -----

    async def get_statement(self, owner_id: UUID, month: int, year: int) -> StatementRecord | None:
        return self.statements.get((owner_id, month, year))

    async def save_statement(
        self, result: MonthlyStatementResult, engine_version: str
    ) -> StatementRecord:
        key = (result.owner_id, result.month, result.year)
        existing = self.statements.get(key)
        record = StatementRecord(
            statement_id=existing.statement_id if existing else uuid4(),
            owner_id=result.owner_id,
            month=result.month,
            year=result.year,
            status=existing.status if existing else StatementStatus.DRAFT.value,
            distance_compensation=result.distance_compensation,
            waiting_compensation=result.waiting_compensation,
            cash_deduction=result.cash_deduction,
            expense_additions=result.expense_additions,
            carry_over=result.carry_over,
            withdrawals=result.withdrawals,
            collections=result.collections,
            total_additions=result.total_additions,
            total_deductions=result.total_deductions,
            net_amount=result.net_amount,
            trip_count=result.trip_count,
            inputs_fingerprint=result.inputs_fingerprint,
            engine_version=engine_version,
            warnings=list(result.warnings),
            lines=list(result.lines),
        )
        self.statements[key] = record
        return record

    async def set_status(self, statement_id: UUID, status: str) -> StatementRecord:
        for key, record in self.statements.items():
            if record.statement_id != statement_id:
                continue
            now = datetime.now(timezone.utc)
            changes: dict[str, object] = {"status": status}
            if status == StatementStatus.CONFIRMED.value:
                changes["confirmed_at"] = record.confirmed_at or now
                changes["paid_at"] = None
            elif status == StatementStatus.PAID.value:
                changes["paid_at"] = now
            updated = replace(record, **changes)
            self.statements[key] = updated
            return updated
        raise ValueError(f"Statement {statement_id} not found")

    # ----- salary payments -----

    async def add_payment(self, payment: SalaryPaymentRecord) -> SalaryPaymentRecord:
        stored = replace(payment, created_at=payment.created_at or datetime.now(timezone.utc))
        self.payments[stored.payment_id] = stored
        return stored

    async def get_payment(self, payment_id: UUID) -> SalaryPaymentRecord | None:
        return self.payments.get(payment_id)

    async def list_payments(
        self,
        year: int | None = None,
        month: int | None = None,
        owner_id: UUID | None = None,
        status: str | None = None,
    ) -> list[SalaryPaymentRecord]:
        matches = [
            p for p in self.payments.values()
            if (year is None or p.year == year)
            and (month is None or p.month == month)
            and (owner_id is None or p.owner_id == owner_id)
            and (status is None or p.status == status)
        ]
        return sorted(matches, key=lambda p: (p.payment_date, p.created_at), reverse=True)

    async def update_payment(
        self, payment_id: UUID, status: str, notes: str | None
    ) -> SalaryPaymentRecord:
        if payment_id not in self.payments:
            raise ValueError(f"Salary payment {payment_id} not found")
        updated = replace(self.payments[payment_id], status=status, notes=notes)
        self.payments[payment_id] = updated
        return updated
