"""Monthly compensation engine - main orchestrator."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from fleet_payroll.calculators.line_builder import StatementLineBuilder
from fleet_payroll.calculators.trip_calculator import TripCompensationCalculator
from fleet_payroll.calculators.types import (
    AUTOMATIC_PAYROLL_ROLES,
    ClaimStatus,
    ExpenseClaimRecord,
    LineType,
    MonthlyStatementResult,
    MovementKind,
    StatementLine,
    TariffSchedule,
    TreasuryMovementRecord,
    TripCompensation,
    TripRecord,
    ZERO,
    as_decimal,
)
from fleet_payroll.config import get_settings
from fleet_payroll.exceptions import InvalidTripError, PayrollError, StatementComputationError

if TYPE_CHECKING:
    from fleet_payroll.repositories.protocols import IPayrollRepository
    from fleet_payroll.services.tariff_store import TariffStore

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_period(month: int, year: int) -> tuple[int, int]:
    """(month, year) of the month before."""
    if month == 1:
        return 12, year - 1
    return month - 1, year


@dataclass
class StatementInputs:
    """Everything fetched for one employee and month."""

    owner_id: UUID
    month: int
    year: int
    schedule: TariffSchedule
    trips: list[TripRecord] = field(default_factory=list)
    expense_claims: list[ExpenseClaimRecord] = field(default_factory=list)
    movements: list[TreasuryMovementRecord] = field(default_factory=list)
    prior_net_amount: Decimal | None = None
    employee_known: bool = True


@dataclass
class EmployeeRunResult:
    """Outcome of the monthly run for one employee."""

    employee_id: UUID
    display_name: str
    statement: MonthlyStatementResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class MonthRunResult:
    """Result of computing every automatically paid employee for a month."""

    month: int
    year: int
    results: dict[UUID, EmployeeRunResult] = field(default_factory=dict)
    total_net: Decimal = ZERO
    error_count: int = 0


class MonthlyAggregator:
    """Reconciles one employee's month into a statement.

    Pipeline (stable order):
    1) Price each finalized trip; sum distance, waiting and cash subtotals
    2) Sum approved expense claims
    3) Split the prior month's net into credit or debt
    4) Sum withdrawals and collections
    5) Additions - deductions = net (negative allowed)

    Pure: all inputs are passed in, nothing is read or written.
    """

    def __init__(self, calculator: TripCompensationCalculator | None = None):
        self.calculator = calculator or TripCompensationCalculator()

    def aggregate(self, inputs: StatementInputs) -> MonthlyStatementResult:
        schedule = inputs.schedule
        result = MonthlyStatementResult(
            owner_id=inputs.owner_id,
            month=inputs.month,
            year=inputs.year,
            parameters=schedule.parameters,
        )
        lines: list[StatementLine] = []

        if not inputs.employee_known:
            result.warnings.append(f"Employee {inputs.owner_id} not found in directory")
        if schedule.parameters.is_default:
            result.warnings.append(
                f"No tariff configuration for {inputs.year}; default parameters applied"
            )

        # 1) Trips
        for trip in sorted(inputs.trips, key=lambda t: (t.service_date, str(t.trip_id))):
            if not trip.is_finalized:
                continue
            try:
                comp = self.calculator.compute_trip(trip, schedule)
            except InvalidTripError as e:
                logger.warning("Skipping trip in statement for %s: %s", inputs.owner_id, e)
                result.warnings.append(f"Skipped: {e}")
                continue

            if comp.base.tier_missing:
                result.warnings.append(
                    f"Trip {trip.trip_id}: no tier for {comp.base.normalized_km} km, "
                    "distance compensation is 0"
                )
            result.trips.append(comp)
            lines.extend(self._trip_lines(trip, comp))

            result.distance_compensation += comp.distance_comp
            result.waiting_compensation += comp.waiting_comp
            result.cash_deduction += comp.cash_deduction

        # 2) Expense claims
        for claim in inputs.expense_claims:
            if claim.status != ClaimStatus.APPROVED.value:
                continue
            amount = as_decimal(claim.amount)
            if amount < 0:
                result.warnings.append(
                    f"Skipped: expense claim {claim.claim_id} has negative amount {amount}"
                )
                continue
            result.expense_additions += amount
            lines.append(
                StatementLineBuilder.create_addition_line(
                    LineType.EXPENSE_REIMBURSEMENT,
                    amount,
                    source_id=claim.claim_id,
                    explanation=f"Expense claim of {claim.claim_date}",
                )
            )

        # 3) Carry-over
        result.carry_over = as_decimal(inputs.prior_net_amount)
        prior_month, prior_year = previous_period(inputs.month, inputs.year)
        carry_line = StatementLineBuilder.create_carry_over_line(
            result.carry_over, prior_month, prior_year
        )
        if carry_line:
            lines.append(carry_line)

        # 4) Treasury movements
        for movement in inputs.movements:
            amount = as_decimal(movement.amount)
            if amount < 0:
                result.warnings.append(
                    f"Skipped: treasury movement {movement.movement_id} has negative amount {amount}"
                )
                continue
            if movement.kind == MovementKind.WITHDRAWAL.value:
                result.withdrawals += amount
                line_type = LineType.WITHDRAWAL
            elif movement.kind == MovementKind.COLLECTION.value:
                result.collections += amount
                line_type = LineType.COLLECTION
            else:
                result.warnings.append(
                    f"Treasury movement {movement.movement_id} has unknown kind '{movement.kind}'"
                )
                continue
            lines.append(
                StatementLineBuilder.create_deduction_line(
                    line_type,
                    amount,
                    source_id=movement.movement_id,
                    explanation=f"{line_type.value.title()} of {movement.movement_date}",
                )
            )

        # 5) Reconcile
        result.total_additions = (
            result.distance_compensation
            + result.waiting_compensation
            + result.expense_additions
            + max(result.carry_over, ZERO)
        )
        result.total_deductions = (
            result.withdrawals
            + result.collections
            + result.cash_deduction
            + max(-result.carry_over, ZERO)
        )
        result.net_amount = result.total_additions - result.total_deductions

        sign_errors = StatementLineBuilder.validate_line_signs(lines)
        if sign_errors:
            raise StatementComputationError(
                inputs.owner_id, inputs.month, inputs.year, "; ".join(sign_errors)
            )
        line_additions = StatementLineBuilder.total_additions(lines)
        line_deductions = StatementLineBuilder.total_deductions(lines)
        if (line_additions, line_deductions) != (result.total_additions, result.total_deductions):
            raise StatementComputationError(
                inputs.owner_id,
                inputs.month,
                inputs.year,
                f"lines total +{line_additions}/-{line_deductions}, "
                f"subtotals +{result.total_additions}/-{result.total_deductions}",
            )

        result.lines = lines
        result.inputs_fingerprint = StatementLineBuilder.compute_fingerprint(
            lines,
            extra={
                "owner_id": str(inputs.owner_id),
                "period": f"{inputs.year}-{inputs.month:02d}",
                "coefficient": str(schedule.parameters.adjustment_coefficient.normalize()),
                "waiting_rate": str(schedule.parameters.hourly_waiting_rate.normalize()),
                "overage_rate": str(schedule.parameters.overage_rate_per_km.normalize()),
            },
        )
        return result

    @staticmethod
    def _trip_lines(trip: TripRecord, comp: TripCompensation) -> list[StatementLine]:
        lines = [
            StatementLineBuilder.create_addition_line(
                LineType.DISTANCE,
                comp.distance_comp,
                source_id=trip.trip_id,
                explanation=f"{trip.service_date}: {comp.base.detail}",
            )
        ]
        if comp.waiting_comp:
            lines.append(
                StatementLineBuilder.create_addition_line(
                    LineType.WAITING,
                    comp.waiting_comp,
                    source_id=trip.trip_id,
                    explanation=f"{trip.service_date}: {as_decimal(trip.waiting_hours)} h waiting",
                )
            )
        if comp.cash_deduction:
            lines.append(
                StatementLineBuilder.create_deduction_line(
                    LineType.CASH_COLLECTED,
                    comp.cash_deduction,
                    source_id=trip.trip_id,
                    explanation=f"{trip.service_date}: cash collected from customer",
                )
            )
        return lines


class PayrollEngine:
    """Fetches a month's inputs through the repository and aggregates them."""

    def __init__(
        self,
        repository: IPayrollRepository,
        tariff_store: TariffStore | None = None,
        aggregator: MonthlyAggregator | None = None,
    ):
        # Import here to avoid circular imports
        from fleet_payroll.services.tariff_store import TariffStore

        self.repository = repository
        self.tariff_store = tariff_store or TariffStore(repository)
        self.aggregator = aggregator or MonthlyAggregator()
        self.settings = get_settings()

    async def compute_statement(
        self, employee_id: UUID, month: int, year: int
    ) -> MonthlyStatementResult:
        """Compute the statement for one employee and month.

        Raises:
            StatementComputationError: If the period is invalid.
        """
        inputs = await self.load_inputs(employee_id, month, year)
        result = self.aggregator.aggregate(inputs)

        logger.info(
            "Computed statement %s %02d/%s: %s trips, net %s",
            employee_id,
            month,
            year,
            result.trip_count,
            result.net_amount,
        )
        return result

    async def load_inputs(self, employee_id: UUID, month: int, year: int) -> StatementInputs:
        if not 1 <= month <= 12:
            raise StatementComputationError(employee_id, month, year, f"invalid month {month}")
        if not 1 <= year <= 9999:
            raise StatementComputationError(employee_id, month, year, f"invalid year {year}")

        start, end = month_bounds(year, month)
        prior_month, prior_year = previous_period(month, year)

        # A single AsyncSession cannot run statements concurrently
        employee = await self.repository.get_employee(employee_id)
        schedule = await self.tariff_store.get_schedule(year)
        trips = await self.repository.list_trips(employee_id, start, end)
        claims = await self.repository.list_expense_claims(employee_id, start, end)
        movements = await self.repository.list_treasury_movements(employee_id, start, end)
        prior = await self.repository.get_statement(employee_id, prior_month, prior_year)

        return StatementInputs(
            owner_id=employee_id,
            month=month,
            year=year,
            schedule=schedule,
            trips=trips,
            expense_claims=claims,
            movements=movements,
            prior_net_amount=prior.net_amount if prior else None,
            employee_known=employee is not None,
        )

    async def compute_month(self, month: int, year: int) -> MonthRunResult:
        """Compute statements for every active admin and partner."""
        run = MonthRunResult(month=month, year=year)
        employees = [
            e
            for e in await self.repository.list_employees()
            if e.is_active and e.role in AUTOMATIC_PAYROLL_ROLES
        ]

        for employee in employees:
            entry = EmployeeRunResult(
                employee_id=employee.employee_id,
                display_name=employee.display_name,
            )
            try:
                entry.statement = await self.compute_statement(employee.employee_id, month, year)
                run.total_net += entry.statement.net_amount
            except PayrollError as e:
                logger.exception("Statement failed for %s in %02d/%s", employee.employee_id, month, year)
                entry.error = str(e)
                run.error_count += 1
            run.results[employee.employee_id] = entry

        return run
