"""Statement service - preview, persist and advance monthly statements."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from fleet_payroll.calculators.engine import MonthRunResult, PayrollEngine
from fleet_payroll.calculators.types import (
    MonthlyStatementResult,
    PaymentMethod,
    SalaryPaymentRecord,
    SalaryPaymentStatus,
    StatementRecord,
)
from fleet_payroll.exceptions import (
    PaymentCancellationError,
    PaymentNotFoundError,
    StatementLockedError,
    StatementNotFoundError,
)
from fleet_payroll.services.state_machine import (
    InvalidTransitionError,
    StatementStateMachine,
    StatementStatus,
)

if TYPE_CHECKING:
    from fleet_payroll.repositories.protocols import IPayrollRepository

logger = logging.getLogger(__name__)


class StatementService:
    """Service for the monthly statement lifecycle.

    Operations:
    - preview: Compute a statement without storing it
    - save_draft: Compute and store as draft (drafts only)
    - confirm: Recompute, store and lock the statement
    - mark_paid: Pay out a confirmed statement and register the payment
    - cancel_payment: Cancel a payment and reopen its statement as confirmed
    - list_payments: Query the salary payment register
    - get: Load a stored statement
    - run_month: Compute every automatically paid employee

    The service flushes through the repository; committing is up to the
    caller's session scope.
    """

    def __init__(self, repository: IPayrollRepository, engine: PayrollEngine | None = None):
        self.repository = repository
        self.engine = engine or PayrollEngine(repository)

    @property
    def engine_version(self) -> str:
        return self.engine.settings.engine_version

    async def preview(self, owner_id: UUID, month: int, year: int) -> MonthlyStatementResult:
        return await self.engine.compute_statement(owner_id, month, year)

    async def get(self, owner_id: UUID, month: int, year: int) -> StatementRecord:
        """Load a stored statement.

        Raises:
            StatementNotFoundError: If nothing is stored for the period.
        """
        record = await self.repository.get_statement(owner_id, month, year)
        if record is None:
            raise StatementNotFoundError(owner_id, month, year)
        return record

    async def save_draft(self, owner_id: UUID, month: int, year: int) -> StatementRecord:
        """Compute and upsert the statement as a draft.

        Raises:
            StatementLockedError: If the stored statement is confirmed or paid.
        """
        existing = await self.repository.get_statement(owner_id, month, year)
        if existing is not None and not StatementStateMachine.can_recompute(existing.status):
            raise StatementLockedError(owner_id, month, year, existing.status)

        result = await self.engine.compute_statement(owner_id, month, year)
        record = await self.repository.save_statement(result, self.engine_version)
        logger.info(
            "Saved draft statement %s for %s %02d/%s (net %s)",
            record.statement_id,
            owner_id,
            month,
            year,
            record.net_amount,
        )
        return record

    async def confirm(self, owner_id: UUID, month: int, year: int) -> StatementRecord:
        """Recompute from current inputs, store and move to confirmed.

        Raises:
            InvalidTransitionError: If the stored statement is already
                confirmed or paid.
        """
        existing = await self.repository.get_statement(owner_id, month, year)
        if existing is not None:
            StatementStateMachine.validate_transition(existing.status, StatementStatus.CONFIRMED)

        result = await self.engine.compute_statement(owner_id, month, year)
        record = await self.repository.save_statement(result, self.engine_version)
        record = await self.repository.set_status(record.statement_id, StatementStatus.CONFIRMED.value)
        logger.info(
            "Confirmed statement %s for %s %02d/%s (net %s)",
            record.statement_id,
            owner_id,
            month,
            year,
            record.net_amount,
        )
        return record

    async def mark_paid(
        self,
        owner_id: UUID,
        month: int,
        year: int,
        method: str = PaymentMethod.BANK_TRANSFER.value,
        payment_date: date | None = None,
        notes: str | None = None,
    ) -> StatementRecord:
        """Move a confirmed statement to paid and register the payout.

        The payment amount is the statement's stored net.

        Raises:
            StatementNotFoundError: If nothing is stored for the period.
            InvalidTransitionError: If the statement is not confirmed.
            ValueError: If the payment method is unknown.
        """
        method = PaymentMethod(method).value
        record = await self.get(owner_id, month, year)
        StatementStateMachine.validate_transition(record.status, StatementStatus.PAID)

        payment = await self.repository.add_payment(
            SalaryPaymentRecord(
                payment_id=uuid4(),
                statement_id=record.statement_id,
                owner_id=owner_id,
                month=month,
                year=year,
                amount=record.net_amount,
                method=method,
                payment_date=payment_date or date.today(),
                notes=notes or None,
            )
        )
        record = await self.repository.set_status(record.statement_id, StatementStatus.PAID.value)
        logger.info(
            "Statement %s for %s %02d/%s marked paid (payment %s, %s %s)",
            record.statement_id,
            owner_id,
            month,
            year,
            payment.payment_id,
            payment.amount,
            payment.method,
        )
        return record

    async def cancel_payment(self, payment_id: UUID, reason: str) -> SalaryPaymentRecord:
        """Cancel a salary payment and move its statement back to confirmed.

        The reason is appended to the payment notes; the row is kept.

        Raises:
            PaymentCancellationError: If the reason is blank or the payment
                is already cancelled.
            PaymentNotFoundError: If no payment has this id.
        """
        reason = (reason or "").strip()
        if not reason:
            raise PaymentCancellationError(payment_id, "a cancellation reason is required")

        payment = await self.get_payment(payment_id)
        if payment.is_cancelled:
            raise PaymentCancellationError(payment_id, "payment is already cancelled")

        statement = await self.get(payment.owner_id, payment.month, payment.year)
        StatementStateMachine.validate_reversal(statement.status, StatementStatus.CONFIRMED)

        marker = f"[CANCELLED] {reason}"
        notes = f"{payment.notes}\n\n{marker}" if payment.notes else marker
        payment = await self.repository.update_payment(
            payment_id, SalaryPaymentStatus.CANCELLED.value, notes
        )
        await self.repository.set_status(statement.statement_id, StatementStatus.CONFIRMED.value)
        logger.warning(
            "Salary payment %s for %s %02d/%s cancelled: %s",
            payment_id,
            payment.owner_id,
            payment.month,
            payment.year,
            reason,
        )
        return payment

    async def get_payment(self, payment_id: UUID) -> SalaryPaymentRecord:
        payment = await self.repository.get_payment(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    async def list_payments(
        self,
        year: int | None = None,
        month: int | None = None,
        owner_id: UUID | None = None,
        status: str | None = None,
    ) -> list[SalaryPaymentRecord]:
        return await self.repository.list_payments(
            year=year, month=month, owner_id=owner_id, status=status
        )

    async def active_payment(self, owner_id: UUID, month: int, year: int) -> SalaryPaymentRecord | None:
        """The payment that currently settles the statement, if any."""
        payments = await self.repository.list_payments(
            year=year, month=month, owner_id=owner_id, status=SalaryPaymentStatus.PAID.value
        )
        return payments[0] if payments else None

    async def run_month(self, month: int, year: int, save_drafts: bool = False) -> MonthRunResult:
        """Compute every active admin and partner for the month.

        With save_drafts, each successful result is stored as a draft;
        employees whose statement is already confirmed or paid keep it and
        are reported as errors.
        """
        run = await self.engine.compute_month(month, year)
        if save_drafts:
            await self._save_run_drafts(run)

        logger.info(
            "Monthly run %02d/%s: %d employees, %d errors, total net %s",
            month,
            year,
            len(run.results),
            run.error_count,
            run.total_net,
        )
        return run

    async def _save_run_drafts(self, run: MonthRunResult) -> None:
        for employee_id, entry in run.results.items():
            if entry.statement is None:
                continue
            existing = await self.repository.get_statement(employee_id, run.month, run.year)
            if existing is not None and not StatementStateMachine.can_recompute(existing.status):
                entry.error = str(
                    StatementLockedError(employee_id, run.month, run.year, existing.status)
                )
                run.error_count += 1
                continue
            await self.repository.save_statement(entry.statement, self.engine_version)


__all__ = ["InvalidTransitionError", "StatementService"]
