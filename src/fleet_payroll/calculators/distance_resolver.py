"""Distance-based base compensation with tiered lookup and linear overage."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from fleet_payroll.calculators.types import (
    CalculationMode,
    DistanceBase,
    TariffSchedule,
    ZERO,
    as_decimal,
)

logger = logging.getLogger(__name__)

TIER_FLOOR_KM = 12
TIER_CEILING_KM = 200
TIER_STEP_KM = 5


def normalize_distance(total_distance_km: Decimal | int | float | str) -> int:
    """Map a distance to the tier key it is priced at.

    Below the floor clamps up to 12 km, 12 km stays as is, anything above is
    rounded half-up to the nearest multiple of 5 km.
    """
    distance = as_decimal(total_distance_km)
    if distance <= TIER_FLOOR_KM:
        return TIER_FLOOR_KM
    steps = (distance / TIER_STEP_KM).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(steps) * TIER_STEP_KM


class DistanceCompensationResolver:
    """Resolves the base amount a trip earns for its distance.

    Resolution:
    1. Distance up to 200 km: normalize to a tier key and return the stored
       tier amount. A missing tier yields zero (flagged, never raised).
    2. Distance above 200 km: full distance times the year's overage rate.

    Pure: works only on the given schedule.
    """

    def resolve(
        self,
        schedule: TariffSchedule,
        total_distance_km: Decimal | int | float | str,
    ) -> DistanceBase:
        distance = as_decimal(total_distance_km)

        if distance <= TIER_CEILING_KM:
            return self._resolve_from_table(schedule, distance)
        return self._resolve_linear(schedule, distance)

    def resolve_base(
        self,
        schedule: TariffSchedule,
        total_distance_km: Decimal | int | float | str,
    ) -> Decimal:
        """Return only the monetary base amount."""
        return self.resolve(schedule, total_distance_km).amount

    def _resolve_from_table(self, schedule: TariffSchedule, distance: Decimal) -> DistanceBase:
        normalized = normalize_distance(distance)
        amount = schedule.tier_amount(normalized)

        if amount is None:
            logger.warning(
                "No distance tier for %s km in %s (trip distance %s km); base is 0",
                normalized,
                schedule.year,
                distance,
            )
            return DistanceBase(
                amount=ZERO,
                mode=CalculationMode.TABLE,
                distance_km=distance,
                normalized_km=normalized,
                detail=f"{distance} km -> {normalized} km: no tier for {schedule.year}",
                tier_missing=True,
            )

        return DistanceBase(
            amount=amount,
            mode=CalculationMode.TABLE,
            distance_km=distance,
            normalized_km=normalized,
            detail=f"{distance} km -> {normalized} km -> {amount}",
        )

    def _resolve_linear(self, schedule: TariffSchedule, distance: Decimal) -> DistanceBase:
        # Full distance is rated, not only the part above the ceiling
        rate = schedule.parameters.overage_rate_per_km
        amount = distance * rate
        return DistanceBase(
            amount=amount,
            mode=CalculationMode.LINEAR,
            distance_km=distance,
            normalized_km=None,
            detail=f"{distance} km x {rate}/km = {amount}",
        )
