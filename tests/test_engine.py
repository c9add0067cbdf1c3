"""Unit tests for MonthlyAggregator and PayrollEngine.

Tests run against the in-memory repository.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fleet_payroll.calculators.engine import (
    MonthlyAggregator,
    PayrollEngine,
    StatementInputs,
    month_bounds,
    previous_period,
)
from fleet_payroll.calculators.types import (
    EmployeeRecord,
    LineType,
    MonthlyStatementResult,
    StatementStatus,
    TariffSchedule,
)
from fleet_payroll.exceptions import StatementComputationError
from fleet_payroll.services.tariff_store import TariffStore
from factories import YEAR, make_claim, make_movement, make_trip


def make_engine(repository, settings) -> PayrollEngine:
    return PayrollEngine(repository, tariff_store=TariffStore(repository, settings))


async def store_prior_net(repository, owner_id, month, year, net: str) -> None:
    await repository.save_statement(
        MonthlyStatementResult(
            owner_id=owner_id, month=month, year=year, net_amount=Decimal(net)
        ),
        "test",
    )


class TestPeriodHelpers:
    """Month arithmetic."""

    def test_month_bounds_leap_february(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_previous_period_wraps_year(self):
        assert previous_period(1, 2024) == (12, 2023)
        assert previous_period(7, 2024) == (6, 2024)


class TestComputeStatement:
    """Statement computation end to end through the repository."""

    async def test_single_trip_statement(self, seeded_repository, settings, driver):
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(make_trip(driver.employee_id, km="14", hours="2"))

        result = await make_engine(seeded_repository, settings).compute_statement(
            driver.employee_id, 3, YEAR
        )

        assert result.distance_compensation == Decimal("23.40")
        assert result.waiting_compensation == Decimal("30.00")
        assert result.net_amount == Decimal("53.40")
        assert result.trip_count == 1
        assert result.status == StatementStatus.DRAFT
        assert result.warnings == []

    async def test_full_month(self, seeded_repository, settings, driver):
        """Trips, claims, movements and a prior debt reconcile exactly."""
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(make_trip(owner, km="14", hours="2"))
        seeded_repository.add_trip(make_trip(owner, km="250", payment_method="cash", collected="40"))
        seeded_repository.add_expense_claim(make_claim(owner, "12.50"))
        seeded_repository.add_expense_claim(make_claim(owner, "99", status="rejected"))
        seeded_repository.add_expense_claim(make_claim(owner, "7", status="pending"))
        seeded_repository.add_movement(make_movement(owner, "20", kind="withdrawal"))
        seeded_repository.add_movement(make_movement(owner, "5", kind="collection"))
        await store_prior_net(seeded_repository, owner, 2, YEAR, "-50")

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert result.distance_compensation == Decimal("96.525")
        assert result.waiting_compensation == Decimal("30")
        assert result.cash_deduction == Decimal("40")
        assert result.expense_additions == Decimal("12.50")
        assert result.carry_over == Decimal("-50")
        assert result.withdrawals == Decimal("20")
        assert result.collections == Decimal("5")
        assert result.total_additions == Decimal("139.025")
        assert result.total_deductions == Decimal("115")
        assert result.net_amount == Decimal("24.025")

    async def test_lines_sum_to_net(self, seeded_repository, settings, driver):
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(make_trip(owner, km="18", hours="1", payment_method="cash", collected="12"))
        seeded_repository.add_movement(make_movement(owner, "3"))
        await store_prior_net(seeded_repository, owner, 2, YEAR, "80")

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert sum(line.amount for line in result.lines) == result.net_amount
        assert {line.line_type for line in result.lines} == {
            LineType.DISTANCE,
            LineType.WAITING,
            LineType.CASH_COLLECTED,
            LineType.CARRY_OVER_CREDIT,
            LineType.WITHDRAWAL,
        }

    async def test_idempotent(self, seeded_repository, settings, driver):
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(make_trip(owner, km="22", hours="0.5"))
        seeded_repository.add_expense_claim(make_claim(owner, "4.20"))
        engine = make_engine(seeded_repository, settings)

        first = await engine.compute_statement(owner, 3, YEAR)
        second = await engine.compute_statement(owner, 3, YEAR)

        assert first.net_amount == second.net_amount
        assert first.total_additions == second.total_additions
        assert first.total_deductions == second.total_deductions
        assert first.inputs_fingerprint == second.inputs_fingerprint

    async def test_negative_net_allowed(self, seeded_repository, settings, driver):
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(make_trip(owner, km="12", payment_method="cash", collected="100"))

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert result.net_amount == Decimal("17.55") - Decimal("100")
        assert result.net_amount < 0

    async def test_only_finalized_trips_in_month_count(self, seeded_repository, settings, driver):
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(make_trip(owner, km="15", status="finalized"))
        seeded_repository.add_trip(make_trip(owner, km="15", status="pending"))
        seeded_repository.add_trip(make_trip(owner, km="15", status="cancelled"))
        seeded_repository.add_trip(make_trip(owner, km="15", service_date=date(YEAR, 4, 1)))
        seeded_repository.add_trip(make_trip(uuid4(), km="15"))

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert result.trip_count == 1
        assert result.distance_compensation == Decimal("23.40")

    async def test_empty_month(self, seeded_repository, settings, driver):
        seeded_repository.add_employee(driver)
        result = await make_engine(seeded_repository, settings).compute_statement(
            driver.employee_id, 3, YEAR
        )
        assert result.net_amount == Decimal("0")
        assert result.lines == []


class TestCarryOver:
    """The prior month's net moves into this month with its sign."""

    async def test_prior_debt(self, seeded_repository, settings, driver):
        seeded_repository.add_employee(driver)
        await store_prior_net(seeded_repository, driver.employee_id, 2, YEAR, "-50")

        result = await make_engine(seeded_repository, settings).compute_statement(
            driver.employee_id, 3, YEAR
        )

        assert result.total_additions == Decimal("0")
        assert result.total_deductions == Decimal("50")
        assert result.net_amount == Decimal("-50")

    async def test_prior_credit(self, seeded_repository, settings, driver):
        seeded_repository.add_employee(driver)
        await store_prior_net(seeded_repository, driver.employee_id, 2, YEAR, "80")

        result = await make_engine(seeded_repository, settings).compute_statement(
            driver.employee_id, 3, YEAR
        )

        assert result.total_additions == Decimal("80")
        assert result.total_deductions == Decimal("0")
        assert result.carry_forward_from_prior_month == Decimal("80")

    async def test_january_reads_previous_december(self, seeded_repository, settings, driver):
        seeded_repository.add_employee(driver)
        await store_prior_net(seeded_repository, driver.employee_id, 12, YEAR - 1, "25")

        result = await make_engine(seeded_repository, settings).compute_statement(
            driver.employee_id, 1, YEAR
        )

        assert result.carry_over == Decimal("25")

    async def test_no_prior_statement(self, seeded_repository, settings, driver):
        seeded_repository.add_employee(driver)
        result = await make_engine(seeded_repository, settings).compute_statement(
            driver.employee_id, 3, YEAR
        )
        assert result.carry_over == Decimal("0")


class TestWarnings:
    """Data problems are flagged, not fatal."""

    async def test_invalid_trip_is_skipped(self, seeded_repository, settings, driver):
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        bad = seeded_repository.add_trip(make_trip(owner, km=None))
        seeded_repository.add_trip(make_trip(owner, km="15"))

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert result.trip_count == 1
        assert any(str(bad.trip_id) in w and w.startswith("Skipped") for w in result.warnings)

    async def test_missing_tier_is_flagged(self, seeded_repository, settings, driver):
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(make_trip(owner, km="48", hours="1"))

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert result.distance_compensation == Decimal("0")
        assert result.waiting_compensation == Decimal("15")
        assert any("no tier for 50 km" in w for w in result.warnings)

    async def test_unknown_employee_is_flagged(self, seeded_repository, settings):
        owner = uuid4()
        seeded_repository.add_trip(make_trip(owner, km="15"))

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert result.trip_count == 1
        assert result.has_warnings
        assert any("not found" in w for w in result.warnings)

    async def test_default_parameters_are_flagged(self, repository, settings, driver):
        repository.add_employee(driver)
        repository.add_trip(make_trip(driver.employee_id, km="300"))

        result = await make_engine(repository, settings).compute_statement(
            driver.employee_id, 3, YEAR
        )

        assert result.parameters.is_default
        assert result.distance_compensation == Decimal("300") * Decimal("0.25") * Decimal("1.17")
        assert any("default parameters" in w for w in result.warnings)

    async def test_negative_claim_is_skipped(self, seeded_repository, settings, driver):
        owner = driver.employee_id
        seeded_repository.add_employee(driver)
        seeded_repository.add_expense_claim(make_claim(owner, "-5"))

        result = await make_engine(seeded_repository, settings).compute_statement(owner, 3, YEAR)

        assert result.expense_additions == Decimal("0")
        assert len(result.warnings) == 1


class TestInvalidPeriod:
    """A period that does not exist cannot be computed."""

    @pytest.mark.parametrize("month", [0, 13])
    async def test_invalid_month(self, seeded_repository, settings, month):
        with pytest.raises(StatementComputationError) as exc_info:
            await make_engine(seeded_repository, settings).compute_statement(uuid4(), month, YEAR)
        assert "invalid month" in str(exc_info.value)


class TestReconciliation:
    """Subtotals must agree with the signed lines."""

    async def test_negative_cash_collected_is_refused(self, seeded_repository, settings, driver):
        seeded_repository.add_employee(driver)
        seeded_repository.add_trip(
            make_trip(driver.employee_id, km="14", payment_method="cash", collected="-5")
        )

        with pytest.raises(StatementComputationError) as exc_info:
            await make_engine(seeded_repository, settings).compute_statement(
                driver.employee_id, 3, YEAR
            )
        assert "lines total" in str(exc_info.value)


class TestComputeMonth:
    """Automatic run over admins and partners."""

    async def test_selects_active_admins_and_partners(self, seeded_repository, settings):
        partner = seeded_repository.add_employee(
            EmployeeRecord(uuid4(), "Anna", "Bianchi", "partner")
        )
        admin = seeded_repository.add_employee(EmployeeRecord(uuid4(), "Luca", "Verdi", "admin"))
        seeded_repository.add_employee(EmployeeRecord(uuid4(), "Gino", "Neri", "employee"))
        seeded_repository.add_employee(
            EmployeeRecord(uuid4(), "Ex", "Socio", "partner", is_active=False)
        )
        seeded_repository.add_trip(make_trip(partner.employee_id, km="14", hours="2"))
        seeded_repository.add_trip(make_trip(admin.employee_id, km="20"))

        run = await make_engine(seeded_repository, settings).compute_month(3, YEAR)

        assert set(run.results) == {partner.employee_id, admin.employee_id}
        assert run.error_count == 0
        assert run.total_net == Decimal("53.40") + Decimal("22.00") * Decimal("1.17")

    async def test_failure_is_captured_per_employee(self, seeded_repository, settings):
        ok = seeded_repository.add_employee(EmployeeRecord(uuid4(), "Anna", "Bianchi", "partner"))
        bad = seeded_repository.add_employee(EmployeeRecord(uuid4(), "Luca", "Verdi", "admin"))

        class FailingAggregator(MonthlyAggregator):
            def aggregate(self, inputs: StatementInputs) -> MonthlyStatementResult:
                if inputs.owner_id == bad.employee_id:
                    raise StatementComputationError(
                        inputs.owner_id, inputs.month, inputs.year, "broken input"
                    )
                return super().aggregate(inputs)

        engine = PayrollEngine(
            seeded_repository,
            tariff_store=TariffStore(seeded_repository, settings),
            aggregator=FailingAggregator(),
        )
        run = await engine.compute_month(3, YEAR)

        assert run.error_count == 1
        assert run.results[ok.employee_id].success
        assert not run.results[bad.employee_id].success
        assert "broken input" in run.results[bad.employee_id].error


class TestAggregatorIsPure:
    """The aggregator works on given inputs only."""

    def test_aggregate_without_repository(self, schedule: TariffSchedule):
        owner = uuid4()
        inputs = StatementInputs(
            owner_id=owner,
            month=3,
            year=YEAR,
            schedule=schedule,
            trips=[make_trip(owner, km="250", payment_method="cash", collected="40")],
            prior_net_amount=Decimal("-50"),
        )

        result = MonthlyAggregator().aggregate(inputs)

        assert result.net_amount == Decimal("33.125") - Decimal("50")
        assert len(result.inputs_fingerprint) == 64
