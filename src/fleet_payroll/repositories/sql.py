"""SQLAlchemy implementation of the payroll repository."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators.line_builder import StatementLineBuilder
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
from fleet_payroll.config import Settings, get_settings
from fleet_payroll.exceptions import TariffValidationError
from fleet_payroll.models import (
    DistanceTier,
    Employee,
    ExpenseClaim,
    MonthlyStatement,
    MonthlyStatementLine,
    SalaryPayment,
    TariffConfig,
    TreasuryMovement,
    Trip,
)
from fleet_payroll.models.base import utcnow

logger = logging.getLogger(__name__)


class SqlAlchemyPayrollRepository:
    """Repository over one AsyncSession.

    Writes are flushed, never committed: the caller owns the transaction
    (see database.get_session).
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    # ----- tariffs -----

    async def get_config(self, year: int) -> TariffParameters | None:
        config = await self.session.get(TariffConfig, year)
        if config is None:
            return None
        return config.to_parameters(self.settings.default_overage_rate_per_km)

    async def save_config(self, parameters: TariffParameters) -> None:
        config = await self.session.get(TariffConfig, parameters.year)
        if config is None:
            config = TariffConfig(year=parameters.year)
            self.session.add(config)
        config.adjustment_coefficient = parameters.adjustment_coefficient
        config.hourly_waiting_rate = parameters.hourly_waiting_rate
        config.overage_rate_per_km = parameters.overage_rate_per_km
        await self.session.flush()

    async def list_tiers(self, year: int) -> list[DistanceTierEntry]:
        result = await self.session.execute(
            select(DistanceTier)
            .where(DistanceTier.year == year)
            .order_by(DistanceTier.km)
        )
        return [tier.to_entry() for tier in result.scalars()]

    async def _get_tier(self, year: int, km: int) -> DistanceTier | None:
        result = await self.session.execute(
            select(DistanceTier).where(DistanceTier.year == year, DistanceTier.km == km)
        )
        return result.scalar_one_or_none()

    async def upsert_tier(self, entry: DistanceTierEntry) -> None:
        tier = await self._get_tier(entry.year, entry.km)
        if tier is None:
            self.session.add(
                DistanceTier(year=entry.year, km=entry.km, base_amount=entry.base_amount)
            )
        else:
            tier.base_amount = entry.base_amount
        await self.session.flush()

    async def delete_tier(self, year: int, km: int) -> bool:
        result = await self.session.execute(
            delete(DistanceTier).where(DistanceTier.year == year, DistanceTier.km == km)
        )
        return result.rowcount > 0

    async def replace_tiers(self, year: int, entries: list[DistanceTierEntry]) -> None:
        """Delete the year's tiers and insert the new set in one flush.

        Raises:
            TariffValidationError: If the database rejects the set; the
                transaction is rolled back so the old tiers remain.
        """
        try:
            await self.session.execute(delete(DistanceTier).where(DistanceTier.year == year))
            self.session.add_all(
                DistanceTier(year=year, km=entry.km, base_amount=entry.base_amount)
                for entry in entries
            )
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error("Tier replacement for %s rejected by the database: %s", year, e.orig)
            raise TariffValidationError([f"Database rejected tiers for {year}: {e.orig}"]) from e

    # ----- upstream records -----

    async def get_employee(self, employee_id: UUID) -> EmployeeRecord | None:
        employee = await self.session.get(Employee, employee_id)
        return employee.to_record() if employee else None

    async def list_employees(self) -> list[EmployeeRecord]:
        result = await self.session.execute(
            select(Employee).order_by(Employee.last_name, Employee.first_name)
        )
        return [employee.to_record() for employee in result.scalars()]

    async def list_trips(self, assignee_id: UUID, start: date, end: date) -> list[TripRecord]:
        result = await self.session.execute(
            select(Trip)
            .where(
                Trip.assignee_id == assignee_id,
                Trip.service_date >= start,
                Trip.service_date <= end,
            )
            .order_by(Trip.service_date)
        )
        return [trip.to_record() for trip in result.scalars()]

    async def list_expense_claims(
        self, owner_id: UUID, start: date, end: date
    ) -> list[ExpenseClaimRecord]:
        result = await self.session.execute(
            select(ExpenseClaim)
            .where(
                ExpenseClaim.owner_id == owner_id,
                ExpenseClaim.claim_date >= start,
                ExpenseClaim.claim_date <= end,
            )
            .order_by(ExpenseClaim.claim_date)
        )
        return [claim.to_record() for claim in result.scalars()]

    async def list_treasury_movements(
        self, owner_id: UUID, start: date, end: date
    ) -> list[TreasuryMovementRecord]:
        result = await self.session.execute(
            select(TreasuryMovement)
            .where(
                TreasuryMovement.owner_id == owner_id,
                TreasuryMovement.movement_date >= start,
                TreasuryMovement.movement_date <= end,
            )
            .order_by(TreasuryMovement.movement_date)
        )
        return [movement.to_record() for movement in result.scalars()]

    # ----- statements -----

    async def _find_statement(self, owner_id: UUID, month: int, year: int) -> MonthlyStatement | None:
        result = await self.session.execute(
            select(MonthlyStatement).where(
                MonthlyStatement.owner_id == owner_id,
                MonthlyStatement.month == month,
                MonthlyStatement.year == year,
            )
        )
        return result.scalar_one_or_none()

    async def get_statement(self, owner_id: UUID, month: int, year: int) -> StatementRecord | None:
        statement = await self._find_statement(owner_id, month, year)
        return statement.to_record() if statement else None

    async def save_statement(
        self, result: MonthlyStatementResult, engine_version: str
    ) -> StatementRecord:
        statement = await self._find_statement(result.owner_id, result.month, result.year)
        if statement is None:
            statement = MonthlyStatement(
                owner_id=result.owner_id,
                month=result.month,
                year=result.year,
                status=StatementStatus.DRAFT.value,
            )
            self.session.add(statement)

        statement.distance_compensation = result.distance_compensation
        statement.waiting_compensation = result.waiting_compensation
        statement.cash_deduction = result.cash_deduction
        statement.expense_additions = result.expense_additions
        statement.carry_over = result.carry_over
        statement.withdrawals = result.withdrawals
        statement.collections = result.collections
        statement.total_additions = result.total_additions
        statement.total_deductions = result.total_deductions
        statement.net_amount = result.net_amount
        statement.trip_count = result.trip_count
        statement.inputs_fingerprint = result.inputs_fingerprint
        statement.engine_version = engine_version
        statement.warnings_json = list(result.warnings)
        statement.lines = [
            MonthlyStatementLine(
                position=position,
                line_type=line.line_type.value,
                amount=line.amount,
                source_id=line.source_id,
                explanation=line.explanation,
                line_hash=StatementLineBuilder.compute_line_hash(line),
            )
            for position, line in enumerate(result.lines)
        ]

        await self.session.flush()
        return statement.to_record()

    async def set_status(self, statement_id: UUID, status: str) -> StatementRecord:
        statement = await self.session.get(MonthlyStatement, statement_id)
        if statement is None:
            raise ValueError(f"Statement {statement_id} not found")

        statement.status = status
        if status == StatementStatus.CONFIRMED.value:
            statement.confirmed_at = statement.confirmed_at or utcnow()
            statement.paid_at = None
        elif status == StatementStatus.PAID.value:
            statement.paid_at = utcnow()
        await self.session.flush()
        return statement.to_record()


    # ----- salary payments -----

    async def add_payment(self, payment: SalaryPaymentRecord) -> SalaryPaymentRecord:
        row = SalaryPayment(
            payment_id=payment.payment_id,
            statement_id=payment.statement_id,
            owner_id=payment.owner_id,
            month=payment.month,
            year=payment.year,
            amount=payment.amount,
            method=payment.method,
            payment_date=payment.payment_date,
            status=payment.status,
            notes=payment.notes,
        )
        self.session.add(row)
        await self.session.flush()
        return row.to_record()

    async def get_payment(self, payment_id: UUID) -> SalaryPaymentRecord | None:
        payment = await self.session.get(SalaryPayment, payment_id)
        return payment.to_record() if payment else None

    async def list_payments(
        self,
        year: int | None = None,
        month: int | None = None,
        owner_id: UUID | None = None,
        status: str | None = None,
    ) -> list[SalaryPaymentRecord]:
        query = select(SalaryPayment)
        if year is not None:
            query = query.where(SalaryPayment.year == year)
        if month is not None:
            query = query.where(SalaryPayment.month == month)
        if owner_id is not None:
            query = query.where(SalaryPayment.owner_id == owner_id)
        if status is not None:
            query = query.where(SalaryPayment.status == status)
        result = await self.session.execute(
            query.order_by(SalaryPayment.payment_date.desc(), SalaryPayment.created_at.desc())
        )
        return [payment.to_record() for payment in result.scalars()]

    async def update_payment(
        self, payment_id: UUID, status: str, notes: str | None
    ) -> SalaryPaymentRecord:
        payment = await self.session.get(SalaryPayment, payment_id)
        if payment is None:
            raise ValueError(f"Salary payment {payment_id} not found")

        payment.status = status
        payment.notes = notes
        await self.session.flush()
        return payment.to_record()
