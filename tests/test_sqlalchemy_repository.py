"""Tests for the SQLAlchemy repository against SQLite."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fleet_payroll.calculators.engine import PayrollEngine
from fleet_payroll.calculators.types import (
    DistanceTierEntry,
    LineType,
    MonthlyStatementResult,
    SalaryPaymentRecord,
    StatementLine,
    TariffParameters,
)
from fleet_payroll.exceptions import TariffValidationError
from fleet_payroll.models import (
    Employee,
    ExpenseClaim,
    TariffConfig,
    TreasuryMovement,
    Trip,
)
from fleet_payroll.services.statement_service import StatementService
from fleet_payroll.services.tariff_store import TariffStore
from factories import YEAR


def tier(km: int, amount: str) -> DistanceTierEntry:
    return DistanceTierEntry(year=YEAR, km=km, base_amount=Decimal(amount))


class TestTariffTables:
    """Configuration and tier persistence."""

    async def test_config_round_trip(self, sql_repository):
        assert await sql_repository.get_config(YEAR) is None

        await sql_repository.save_config(
            TariffParameters(YEAR, Decimal("1.17"), Decimal("15"), Decimal("0.30"))
        )
        config = await sql_repository.get_config(YEAR)

        assert config.adjustment_coefficient == Decimal("1.17")
        assert config.overage_rate_per_km == Decimal("0.30")
        assert config.is_default is False

    async def test_missing_overage_rate_uses_setting(self, sql_repository, session):
        session.add(
            TariffConfig(
                year=YEAR,
                adjustment_coefficient=Decimal("1.10"),
                hourly_waiting_rate=Decimal("12"),
                overage_rate_per_km=None,
            )
        )
        await session.flush()

        config = await sql_repository.get_config(YEAR)
        assert config.overage_rate_per_km == Decimal("0.25")

    async def test_tiers(self, sql_repository):
        await sql_repository.replace_tiers(YEAR, [tier(20, "22"), tier(12, "15")])
        await sql_repository.upsert_tier(tier(15, "20"))
        await sql_repository.upsert_tier(tier(20, "23.50"))

        tiers = await sql_repository.list_tiers(YEAR)

        assert [(t.km, t.base_amount) for t in tiers] == [
            (12, Decimal("15")),
            (15, Decimal("20")),
            (20, Decimal("23.50")),
        ]
        assert await sql_repository.list_tiers(YEAR + 1) == []

    async def test_delete_tier(self, sql_repository):
        await sql_repository.replace_tiers(YEAR, [tier(12, "15")])

        assert await sql_repository.delete_tier(YEAR, 12) is True
        assert await sql_repository.delete_tier(YEAR, 12) is False

    async def test_rejected_replace_keeps_committed_tiers(self, sql_repository, session):
        await sql_repository.replace_tiers(YEAR, [tier(12, "15")])
        await session.commit()

        with pytest.raises(TariffValidationError):
            await sql_repository.replace_tiers(YEAR, [tier(15, "20"), tier(15, "21")])

        assert [t.km for t in await sql_repository.list_tiers(YEAR)] == [12]


class TestActivityReads:
    """Upstream records filtered by owner and period."""

    async def test_period_filter(self, sql_repository, session):
        owner = uuid4()
        session.add_all(
            [
                Employee(employee_id=owner, first_name="Marco", last_name="Rossi", role="partner"),
                Trip(
                    assignee_id=owner,
                    service_date=date(YEAR, 3, 1),
                    total_distance_km=Decimal("14"),
                    waiting_hours=Decimal("2"),
                    payment_method="card",
                    status="completed",
                ),
                Trip(
                    assignee_id=owner,
                    service_date=date(YEAR, 4, 1),
                    total_distance_km=Decimal("30"),
                    payment_method="card",
                    status="completed",
                ),
                ExpenseClaim(
                    owner_id=owner,
                    claim_date=date(YEAR, 3, 31),
                    amount=Decimal("12.50"),
                    status="approved",
                ),
                TreasuryMovement(
                    owner_id=owner,
                    movement_date=date(YEAR, 2, 29),
                    amount=Decimal("20"),
                    kind="withdrawal",
                ),
            ]
        )
        await session.flush()
        start, end = date(YEAR, 3, 1), date(YEAR, 3, 31)

        trips = await sql_repository.list_trips(owner, start, end)
        claims = await sql_repository.list_expense_claims(owner, start, end)
        movements = await sql_repository.list_treasury_movements(owner, start, end)

        assert [t.total_distance_km for t in trips] == [Decimal("14")]
        assert [c.amount for c in claims] == [Decimal("12.50")]
        assert movements == []
        assert (await sql_repository.get_employee(owner)).display_name == "Marco Rossi"
        assert await sql_repository.get_employee(uuid4()) is None


class TestStatements:
    """Statement upsert and status changes."""

    def _result(self, owner, net: str) -> MonthlyStatementResult:
        amount = Decimal(net)
        return MonthlyStatementResult(
            owner_id=owner,
            month=3,
            year=YEAR,
            distance_compensation=amount,
            total_additions=amount,
            net_amount=amount,
            lines=[StatementLine(LineType.DISTANCE, amount, uuid4(), "trip")],
            warnings=["check me"],
            inputs_fingerprint="f" * 64,
        )

    async def test_save_and_get(self, sql_repository):
        owner = uuid4()
        saved = await sql_repository.save_statement(self._result(owner, "73.125"), "1.0.0")

        loaded = await sql_repository.get_statement(owner, 3, YEAR)

        assert loaded.statement_id == saved.statement_id
        assert loaded.status == "draft"
        assert loaded.net_amount == Decimal("73.125")
        assert loaded.engine_version == "1.0.0"
        assert loaded.warnings == ["check me"]
        assert [line.line_type for line in loaded.lines] == [LineType.DISTANCE]
        assert await sql_repository.get_statement(owner, 4, YEAR) is None

    async def test_resave_keeps_identity_and_status(self, sql_repository):
        owner = uuid4()
        first = await sql_repository.save_statement(self._result(owner, "10"), "1.0.0")
        await sql_repository.set_status(first.statement_id, "confirmed")

        second = await sql_repository.save_statement(self._result(owner, "12"), "1.0.1")

        assert second.statement_id == first.statement_id
        assert second.status == "confirmed"
        assert second.net_amount == Decimal("12")
        assert len(second.lines) == 1

    async def test_set_status_timestamps(self, sql_repository):
        saved = await sql_repository.save_statement(self._result(uuid4(), "5"), "1.0.0")

        confirmed = await sql_repository.set_status(saved.statement_id, "confirmed")
        paid = await sql_repository.set_status(saved.statement_id, "paid")

        assert confirmed.confirmed_at is not None
        assert paid.paid_at is not None
        assert paid.status == "paid"

    async def test_set_status_unknown_statement(self, sql_repository):
        with pytest.raises(ValueError):
            await sql_repository.set_status(uuid4(), "confirmed")


class TestEngineOnDatabase:
    """The full pipeline over the SQL repository."""

    async def test_confirm_statement(self, sql_repository, session, settings):
        owner = uuid4()
        store = TariffStore(sql_repository, settings)
        await store.update_config(YEAR, Decimal("1.17"), Decimal("15"), Decimal("0.25"))
        await store.replace_tiers(YEAR, [(12, "15.00"), (15, "20.00")])
        session.add_all(
            [
                Employee(employee_id=owner, first_name="Marco", last_name="Rossi", role="partner"),
                Trip(
                    assignee_id=owner,
                    service_date=date(YEAR, 3, 10),
                    total_distance_km=Decimal("14"),
                    waiting_hours=Decimal("2"),
                    payment_method="card",
                    amount_collected=Decimal("0"),
                    status="completed",
                ),
                Trip(
                    assignee_id=owner,
                    service_date=date(YEAR, 3, 11),
                    total_distance_km=Decimal("250"),
                    waiting_hours=Decimal("0"),
                    payment_method="cash",
                    amount_collected=Decimal("40"),
                    status="finalized",
                ),
            ]
        )
        await session.flush()

        service = StatementService(
            sql_repository, PayrollEngine(sql_repository, tariff_store=store)
        )
        record = await service.confirm(owner, 3, YEAR)

        assert record.status == "confirmed"
        assert record.net_amount == Decimal("53.40") + Decimal("33.125")
        assert record.trip_count == 2
        assert len(record.lines) == 4

    async def test_stored_statement_keeps_full_precision(self, sql_repository, session, settings):
        """201.30 km x 0.25 x 1.17 = 58.88025 survives the round trip."""
        owner = uuid4()
        session.add_all(
            [
                Employee(employee_id=owner, first_name="Marco", last_name="Rossi", role="partner"),
                Trip(
                    assignee_id=owner,
                    service_date=date(YEAR, 3, 10),
                    total_distance_km=Decimal("201.30"),
                    waiting_hours=Decimal("0"),
                    payment_method="card",
                    amount_collected=Decimal("0"),
                    status="completed",
                ),
            ]
        )
        await session.flush()
        service = StatementService(
            sql_repository,
            PayrollEngine(sql_repository, tariff_store=TariffStore(sql_repository, settings)),
        )

        preview = await service.preview(owner, 3, YEAR)
        confirmed = await service.confirm(owner, 3, YEAR)
        await session.commit()
        session.expunge_all()

        stored = await service.get(owner, 3, YEAR)
        april = await service.preview(owner, 4, YEAR)

        assert preview.net_amount == Decimal("58.88025")
        assert confirmed.net_amount == preview.net_amount
        assert stored.net_amount == preview.net_amount
        assert stored.distance_compensation == preview.distance_compensation
        assert [line.amount for line in stored.lines] == [line.amount for line in preview.lines]
        assert april.carry_over == preview.net_amount


class TestSalaryPayments:
    """Payment register rows."""

    async def _statement(self, sql_repository, owner):
        result = MonthlyStatementResult(
            owner_id=owner, month=3, year=YEAR, net_amount=Decimal("58.88025")
        )
        return await sql_repository.save_statement(result, "1.0.0")

    def _payment(self, statement, paid_on: date, notes=None) -> SalaryPaymentRecord:
        return SalaryPaymentRecord(
            payment_id=uuid4(),
            statement_id=statement.statement_id,
            owner_id=statement.owner_id,
            month=statement.month,
            year=statement.year,
            amount=statement.net_amount,
            method="bank_transfer",
            payment_date=paid_on,
            notes=notes,
        )

    async def test_add_and_get(self, sql_repository, session):
        statement = await self._statement(sql_repository, uuid4())

        added = await sql_repository.add_payment(
            self._payment(statement, date(YEAR, 4, 5), notes="April run")
        )
        session.expunge_all()
        loaded = await sql_repository.get_payment(added.payment_id)

        assert loaded.amount == Decimal("58.88025")
        assert loaded.status == "paid"
        assert loaded.notes == "April run"
        assert loaded.created_at is not None
        assert await sql_repository.get_payment(uuid4()) is None

    async def test_list_filters_and_order(self, sql_repository):
        first_owner, second_owner = uuid4(), uuid4()
        first = await self._statement(sql_repository, first_owner)
        second = await self._statement(sql_repository, second_owner)
        older = await sql_repository.add_payment(self._payment(first, date(YEAR, 4, 2)))
        newer = await sql_repository.add_payment(self._payment(second, date(YEAR, 4, 9)))
        await sql_repository.update_payment(older.payment_id, "cancelled", "[CANCELLED] typo")

        everything = await sql_repository.list_payments(year=YEAR, month=3)
        paid = await sql_repository.list_payments(status="paid")
        by_owner = await sql_repository.list_payments(owner_id=first_owner)

        assert [p.payment_id for p in everything] == [newer.payment_id, older.payment_id]
        assert [p.payment_id for p in paid] == [newer.payment_id]
        assert [p.status for p in by_owner] == ["cancelled"]
        assert await sql_repository.list_payments(month=4) == []

    async def test_update_unknown_payment(self, sql_repository):
        with pytest.raises(ValueError):
            await sql_repository.update_payment(uuid4(), "cancelled", None)

    async def test_reopening_clears_paid_at(self, sql_repository):
        statement = await self._statement(sql_repository, uuid4())
        confirmed = await sql_repository.set_status(statement.statement_id, "confirmed")
        await sql_repository.set_status(statement.statement_id, "paid")

        reopened = await sql_repository.set_status(statement.statement_id, "confirmed")

        assert reopened.paid_at is None
        assert reopened.confirmed_at == confirmed.confirmed_at
