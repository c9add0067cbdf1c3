"""Tariff store: per-year parameters and distance tiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Iterable

from fleet_payroll.calculators.distance_resolver import DistanceCompensationResolver
from fleet_payroll.calculators.types import (
    DistanceBase,
    DistanceTierEntry,
    TariffParameters,
    TariffSchedule,
)
from fleet_payroll.config import Settings, get_settings
from fleet_payroll.exceptions import TariffCloneError, TariffValidationError

if TYPE_CHECKING:
    from fleet_payroll.repositories.protocols import ITariffRepository

logger = logging.getLogger(__name__)

# Decimal places each tariff figure may carry; matches the tariff table columns
TIER_AMOUNT_PLACES = 2
COEFFICIENT_PLACES = 4
WAITING_RATE_PLACES = 2
OVERAGE_RATE_PLACES = 4


@dataclass(frozen=True)
class CloneResult:
    """Outcome of cloning tiers from the previous year."""

    source_year: int
    target_year: int
    tiers_copied: int
    config_copied: bool
    skipped: bool = False


def validate_tier_entries(
    year: int, entries: Iterable[tuple[object, object]]
) -> list[DistanceTierEntry]:
    """Validate (km, amount) pairs as one batch.

    Every problem is collected before raising, so the caller gets the full
    report and nothing is applied.

    Raises:
        TariffValidationError: If any entry is invalid or duplicated.
    """
    errors: list[str] = []
    valid: list[DistanceTierEntry] = []
    seen: set[int] = set()

    for index, (raw_km, raw_amount) in enumerate(entries, start=1):
        try:
            km = parse_tier_km(raw_km)
            amount = parse_tier_amount(raw_amount)
        except ValueError as e:
            errors.append(f"Entry {index}: {e}")
            continue

        if km in seen:
            errors.append(f"Entry {index}: duplicate km {km}")
            continue
        seen.add(km)
        valid.append(DistanceTierEntry(year=year, km=km, base_amount=amount))

    if errors:
        raise TariffValidationError(errors)
    return valid


def decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def parse_tier_km(raw: object) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"km must be a positive integer, got {raw!r}")
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"km must be a positive integer, got {raw!r}")
    if not value.is_finite() or value != value.to_integral_value() or value <= 0:
        raise ValueError(f"km must be a positive integer, got {raw!r}")
    return int(value)


def parse_tier_amount(raw: object) -> Decimal:
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"base amount must be a positive number, got {raw!r}")
    if not value.is_finite() or value <= 0:
        raise ValueError(f"base amount must be a positive number, got {raw!r}")
    if decimal_places(value) > TIER_AMOUNT_PLACES:
        raise ValueError(
            f"base amount must have at most {TIER_AMOUNT_PLACES} decimal places, got {raw!r}"
        )
    return value


class TariffStore:
    """Reads and maintains tariff data for the calculators.

    Missing data never raises on the read side: a year without configuration
    gets the default parameters and a missing tier resolves to zero.
    """

    def __init__(self, repository: ITariffRepository, settings: Settings | None = None):
        self.repository = repository
        self.settings = settings or get_settings()
        self.resolver = DistanceCompensationResolver()

    def default_parameters(self, year: int) -> TariffParameters:
        return TariffParameters(
            year=year,
            adjustment_coefficient=self.settings.default_adjustment_coefficient,
            hourly_waiting_rate=self.settings.default_hourly_waiting_rate,
            overage_rate_per_km=self.settings.default_overage_rate_per_km,
            is_default=True,
        )

    async def get_config(self, year: int) -> TariffParameters:
        """Stored parameters for the year, or the documented defaults."""
        config = await self.repository.get_config(year)
        if config is None:
            logger.warning("No tariff configuration for %s, using defaults", year)
            return self.default_parameters(year)
        return config

    async def update_config(
        self,
        year: int,
        adjustment_coefficient: Decimal | None = None,
        hourly_waiting_rate: Decimal | None = None,
        overage_rate_per_km: Decimal | None = None,
    ) -> TariffParameters:
        """Create or change the parameters of a year; unset fields keep their value."""
        current = await self.get_config(year)
        updated = TariffParameters(
            year=year,
            adjustment_coefficient=(
                Decimal(str(adjustment_coefficient))
                if adjustment_coefficient is not None
                else current.adjustment_coefficient
            ),
            hourly_waiting_rate=(
                Decimal(str(hourly_waiting_rate))
                if hourly_waiting_rate is not None
                else current.hourly_waiting_rate
            ),
            overage_rate_per_km=(
                Decimal(str(overage_rate_per_km))
                if overage_rate_per_km is not None
                else current.overage_rate_per_km
            ),
        )

        errors = []
        if updated.adjustment_coefficient <= 0:
            errors.append(
                f"adjustment coefficient must be positive, got {updated.adjustment_coefficient}"
            )
        if updated.hourly_waiting_rate < 0:
            errors.append(
                f"hourly waiting rate cannot be negative, got {updated.hourly_waiting_rate}"
            )
        if updated.overage_rate_per_km < 0:
            errors.append(f"overage rate cannot be negative, got {updated.overage_rate_per_km}")
        for label, value, places in (
            ("adjustment coefficient", updated.adjustment_coefficient, COEFFICIENT_PLACES),
            ("hourly waiting rate", updated.hourly_waiting_rate, WAITING_RATE_PLACES),
            ("overage rate", updated.overage_rate_per_km, OVERAGE_RATE_PLACES),
        ):
            if value.is_finite() and decimal_places(value) > places:
                errors.append(f"{label} must have at most {places} decimal places, got {value}")
        if errors:
            raise TariffValidationError(errors)

        await self.repository.save_config(updated)
        logger.info("Tariff configuration for %s saved", year)
        return updated

    async def get_tiers(self, year: int) -> list[DistanceTierEntry]:
        """Tiers of the year, ascending by km."""
        tiers = await self.repository.list_tiers(year)
        return sorted(tiers, key=lambda t: t.km)

    async def get_schedule(self, year: int) -> TariffSchedule:
        parameters = await self.get_config(year)
        tiers = await self.get_tiers(year)
        return TariffSchedule.build(parameters, tiers)

    async def resolve_base(
        self, year: int, total_distance_km: Decimal | int | float | str
    ) -> DistanceBase:
        schedule = await self.get_schedule(year)
        return self.resolver.resolve(schedule, total_distance_km)

    async def replace_tiers(
        self, year: int, entries: Iterable[tuple[object, object]]
    ) -> list[DistanceTierEntry]:
        """Install a complete tier set for the year, all or nothing.

        Raises:
            TariffValidationError: If any entry is invalid; the stored tiers
                are left untouched.
        """
        valid = validate_tier_entries(year, entries)
        await self.repository.replace_tiers(year, valid)
        logger.info("Replaced tiers for %s with %d entries", year, len(valid))
        return valid

    async def upsert_tier(self, year: int, km: object, base_amount: object) -> DistanceTierEntry:
        (entry,) = validate_tier_entries(year, [(km, base_amount)])
        await self.repository.upsert_tier(entry)
        logger.info("Tier %s km for %s set to %s", entry.km, year, entry.base_amount)
        return entry

    async def delete_tier(self, year: int, km: int) -> bool:
        deleted = await self.repository.delete_tier(year, km)
        if deleted:
            logger.info("Tier %s km for %s deleted", km, year)
        return deleted

    async def clone_from_previous_year(
        self, target_year: int, overwrite: bool = False
    ) -> CloneResult:
        """Copy the previous year's tiers (and configuration) into target_year.

        If the target year already has tiers the clone is skipped, unless
        overwrite is set, in which case the target tier set is replaced.
        Configuration is copied only when the target year has none.

        Raises:
            TariffCloneError: If the previous year has no tiers.
        """
        source_year = target_year - 1
        source_tiers = await self.get_tiers(source_year)
        if not source_tiers:
            raise TariffCloneError(source_year, target_year, f"no tiers found for {source_year}")

        existing = await self.repository.list_tiers(target_year)
        if existing and not overwrite:
            logger.info(
                "Clone %s -> %s skipped: target already has %d tiers",
                source_year,
                target_year,
                len(existing),
            )
            return CloneResult(
                source_year=source_year,
                target_year=target_year,
                tiers_copied=0,
                config_copied=False,
                skipped=True,
            )

        await self.repository.replace_tiers(
            target_year,
            [
                DistanceTierEntry(year=target_year, km=t.km, base_amount=t.base_amount)
                for t in source_tiers
            ],
        )

        config_copied = False
        source_config = await self.repository.get_config(source_year)
        target_config = await self.repository.get_config(target_year)
        if source_config is not None and target_config is None:
            await self.repository.save_config(
                TariffParameters(
                    year=target_year,
                    adjustment_coefficient=source_config.adjustment_coefficient,
                    hourly_waiting_rate=source_config.hourly_waiting_rate,
                    overage_rate_per_km=source_config.overage_rate_per_km,
                )
            )
            config_copied = True

        logger.info(
            "Cloned %d tiers %s -> %s (config copied: %s)",
            len(source_tiers),
            source_year,
            target_year,
            config_copied,
        )
        return CloneResult(
            source_year=source_year,
            target_year=target_year,
            tiers_copied=len(source_tiers),
            config_copied=config_copied,
        )
