"""Unit tests for single-trip compensation."""

from decimal import Decimal
from uuid import uuid4

import pytest

from fleet_payroll.calculators.trip_calculator import TripCompensationCalculator
from fleet_payroll.exceptions import InvalidTripError
from factories import make_trip


class TestEndToEndScenarios:
    """Reference trips priced against the reference year."""

    def test_card_trip_with_waiting(self, schedule):
        """14 km rounds to 15 (20.00), x1.17 = 23.40, plus 2 h x 15."""
        trip = make_trip(uuid4(), km="14", hours="2", payment_method="card", collected="0")

        comp = TripCompensationCalculator().compute_trip(trip, schedule)

        assert comp.base.amount == Decimal("20.00")
        assert comp.distance_comp == Decimal("23.40")
        assert comp.waiting_comp == Decimal("30.00")
        assert comp.cash_deduction == Decimal("0")
        assert comp.net_for_trip == Decimal("53.40")

    def test_long_cash_trip(self, schedule):
        """250 km x 0.25 = 62.50, x1.17 = 73.125, minus 40 cash."""
        trip = make_trip(uuid4(), km="250", hours="0", payment_method="cash", collected="40")

        comp = TripCompensationCalculator().compute_trip(trip, schedule)

        assert comp.base.amount == Decimal("62.50")
        assert comp.distance_comp == Decimal("73.125")
        assert comp.cash_deduction == Decimal("40")
        assert comp.net_for_trip == Decimal("33.125")


class TestCashDeduction:
    """Only cash payments are deducted."""

    @pytest.mark.parametrize("method", ["card", "bank_transfer", "invoice", "other"])
    def test_non_cash_never_deducts(self, schedule, method):
        trip = make_trip(uuid4(), km="20", payment_method=method, collected="99")
        comp = TripCompensationCalculator().compute_trip(trip, schedule)
        assert comp.cash_deduction == Decimal("0")

    @pytest.mark.parametrize("km,hours", [("5", "0"), ("20", "3"), ("480", "1.5")])
    def test_cash_deducts_amount_collected(self, schedule, km, hours):
        trip = make_trip(uuid4(), km=km, hours=hours, payment_method="cash", collected="37.50")
        comp = TripCompensationCalculator().compute_trip(trip, schedule)
        assert comp.cash_deduction == Decimal("37.50")

    def test_cash_is_case_insensitive(self, schedule):
        trip = make_trip(uuid4(), km="20", payment_method="Cash", collected="10")
        comp = TripCompensationCalculator().compute_trip(trip, schedule)
        assert comp.cash_deduction == Decimal("10")

    def test_cash_without_amount_deducts_zero(self, schedule):
        trip = make_trip(uuid4(), km="20", payment_method="cash", collected=None)
        comp = TripCompensationCalculator().compute_trip(trip, schedule)
        assert comp.cash_deduction == Decimal("0")


class TestInvalidTrips:
    """Records that cannot be priced are rejected, not guessed."""

    def test_missing_distance(self, schedule):
        trip = make_trip(uuid4(), km=None)
        with pytest.raises(InvalidTripError) as exc_info:
            TripCompensationCalculator().compute_trip(trip, schedule)
        assert exc_info.value.trip_id == trip.trip_id

    def test_negative_distance(self, schedule):
        with pytest.raises(InvalidTripError):
            TripCompensationCalculator().compute_trip(make_trip(uuid4(), km="-3"), schedule)

    def test_negative_waiting_hours(self, schedule):
        with pytest.raises(InvalidTripError):
            TripCompensationCalculator().compute_trip(
                make_trip(uuid4(), km="20", hours="-1"), schedule
            )

    def test_missing_waiting_hours_is_zero(self, schedule):
        comp = TripCompensationCalculator().compute_trip(
            make_trip(uuid4(), km="20", hours=None), schedule
        )
        assert comp.waiting_comp == Decimal("0")
