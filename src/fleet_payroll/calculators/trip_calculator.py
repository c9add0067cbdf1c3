"""Single-trip compensation."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fleet_payroll.calculators.distance_resolver import DistanceCompensationResolver
from fleet_payroll.calculators.types import (
    PaymentMethod,
    TariffSchedule,
    TripCompensation,
    TripRecord,
    ZERO,
    as_decimal,
)
from fleet_payroll.exceptions import InvalidTripError


class TripCompensationCalculator:
    """Combines distance, waiting time and cash handling for one trip.

    distance_comp = base(distance) * adjustment_coefficient
    waiting_comp  = waiting_hours * hourly_waiting_rate
    cash_deduction = amount_collected when the customer paid cash, else 0
    net_for_trip  = distance_comp + waiting_comp - cash_deduction

    No hidden state: the same trip and schedule always give the same result,
    whether called by the monthly aggregator or by the simulator.
    """

    def __init__(self, resolver: DistanceCompensationResolver | None = None):
        self.resolver = resolver or DistanceCompensationResolver()

    def compute_trip(self, trip: TripRecord, schedule: TariffSchedule) -> TripCompensation:
        """Price a trip.

        Raises:
            InvalidTripError: If distance is missing or negative, or waiting
                hours are negative.
        """
        if trip.total_distance_km is None:
            raise InvalidTripError(trip.trip_id, "total distance is missing")

        distance = as_decimal(trip.total_distance_km)
        if distance < 0:
            raise InvalidTripError(trip.trip_id, f"negative distance {distance} km")

        waiting_hours = as_decimal(trip.waiting_hours)
        if waiting_hours < 0:
            raise InvalidTripError(trip.trip_id, f"negative waiting hours {waiting_hours}")

        return self.compute(
            schedule,
            distance,
            waiting_hours,
            cash_collected=self._cash_deduction(trip),
            trip_id=trip.trip_id,
        )

    def compute(
        self,
        schedule: TariffSchedule,
        total_distance_km: Decimal,
        waiting_hours: Decimal,
        cash_collected: Decimal = ZERO,
        trip_id: UUID | None = None,
    ) -> TripCompensation:
        """Price raw trip figures (shared by trips and simulations)."""
        parameters = schedule.parameters
        base = self.resolver.resolve(schedule, total_distance_km)

        distance_comp = base.amount * parameters.adjustment_coefficient
        waiting_comp = waiting_hours * parameters.hourly_waiting_rate

        return TripCompensation(
            trip_id=trip_id,
            base=base,
            distance_comp=distance_comp,
            waiting_comp=waiting_comp,
            cash_deduction=cash_collected,
            net_for_trip=distance_comp + waiting_comp - cash_collected,
        )

    @staticmethod
    def _cash_deduction(trip: TripRecord) -> Decimal:
        if not PaymentMethod.is_cash(trip.payment_method):
            return ZERO
        return as_decimal(trip.amount_collected)
