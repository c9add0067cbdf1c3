"""Per-year tariff tables: global parameters and distance tiers."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fleet_payroll.calculators.types import DistanceTierEntry, TariffParameters
from fleet_payroll.models.base import Base, TimestampMixin


class TariffConfig(Base, TimestampMixin):
    """Global tariff parameters for one calendar year."""

    __tablename__ = "tariff_config"

    year: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    adjustment_coefficient: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)
    hourly_waiting_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    overage_rate_per_km: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)

    __table_args__ = (
        CheckConstraint("adjustment_coefficient > 0", name="tariff_config_coefficient_positive"),
        CheckConstraint("hourly_waiting_rate >= 0", name="tariff_config_waiting_rate_check"),
        CheckConstraint(
            "overage_rate_per_km IS NULL OR overage_rate_per_km >= 0",
            name="tariff_config_overage_rate_check",
        ),
    )

    def to_parameters(self, default_overage_rate: Decimal) -> TariffParameters:
        """Build the calculation parameters, filling a missing overage rate."""
        return TariffParameters(
            year=self.year,
            adjustment_coefficient=self.adjustment_coefficient,
            hourly_waiting_rate=self.hourly_waiting_rate,
            overage_rate_per_km=(
                self.overage_rate_per_km
                if self.overage_rate_per_km is not None
                else default_overage_rate
            ),
        )


class DistanceTier(Base, TimestampMixin):
    """Base compensation for one distance bucket in one year."""

    __tablename__ = "distance_tier"

    distance_tier_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    km: Mapped[int] = mapped_column(Integer, nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("year", "km", name="distance_tier_year_km_unique"),
        CheckConstraint("km > 0", name="distance_tier_km_positive"),
        CheckConstraint("base_amount > 0", name="distance_tier_amount_positive"),
    )

    def to_entry(self) -> DistanceTierEntry:
        return DistanceTierEntry(year=self.year, km=self.km, base_amount=self.base_amount)
