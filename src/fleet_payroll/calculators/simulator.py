"""Read-only preview of what a hypothetical trip would earn."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from fleet_payroll.calculators.trip_calculator import TripCompensationCalculator
from fleet_payroll.calculators.types import SimulationPreview, TariffSchedule, as_decimal

if TYPE_CHECKING:
    from fleet_payroll.services.tariff_store import TariffStore


def simulate_trip(
    schedule: TariffSchedule,
    total_distance_km: Decimal | int | float | str,
    waiting_hours: Decimal | int | float | str = 0,
    calculator: TripCompensationCalculator | None = None,
) -> SimulationPreview:
    """Price raw figures against a schedule. No cash deduction applies."""
    calculator = calculator or TripCompensationCalculator()
    distance = as_decimal(total_distance_km)
    hours = as_decimal(waiting_hours)
    if distance < 0:
        raise ValueError(f"Distance cannot be negative: {distance}")
    if hours < 0:
        raise ValueError(f"Waiting hours cannot be negative: {hours}")

    comp = calculator.compute(schedule, distance, hours)
    parameters = schedule.parameters

    return SimulationPreview(
        year=schedule.year,
        total_distance_km=distance,
        waiting_hours=hours,
        base=comp.base,
        adjustment_coefficient=parameters.adjustment_coefficient,
        percent_increase=parameters.percent_increase,
        hourly_waiting_rate=parameters.hourly_waiting_rate,
        distance_comp=comp.distance_comp,
        waiting_comp=comp.waiting_comp,
        total=comp.distance_comp + comp.waiting_comp,
        uses_default_parameters=parameters.is_default,
    )


class Simulator:
    """Runs previews against the stored tariffs of a year. Never writes."""

    def __init__(
        self,
        tariff_store: TariffStore,
        calculator: TripCompensationCalculator | None = None,
    ):
        self.tariff_store = tariff_store
        self.calculator = calculator or TripCompensationCalculator()

    async def simulate(
        self,
        year: int,
        total_distance_km: Decimal | int | float | str,
        waiting_hours: Decimal | int | float | str = 0,
    ) -> SimulationPreview:
        schedule = await self.tariff_store.get_schedule(year)
        return simulate_trip(schedule, total_distance_km, waiting_hours, self.calculator)
