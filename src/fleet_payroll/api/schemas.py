"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from fleet_payroll.calculators.engine import MonthRunResult
from fleet_payroll.calculators.types import (
    CalculationMode,
    DistanceBase,
    LineType,
    MonthlyStatementResult,
    PaymentMethod,
    SalaryPaymentRecord,
    SimulationPreview,
    StatementRecord,
    TariffParameters,
    TripCompensation,
)


# ============================================================================
# Tariff schemas
# ============================================================================


class TariffConfigResponse(BaseModel):
    """Global tariff parameters of a year."""

    model_config = ConfigDict(from_attributes=True)

    year: int
    adjustment_coefficient: Decimal
    hourly_waiting_rate: Decimal
    overage_rate_per_km: Decimal
    percent_increase: str
    is_default: bool = False

    @classmethod
    def from_parameters(cls, parameters: TariffParameters) -> TariffConfigResponse:
        return cls.model_validate(parameters)


class TariffConfigUpdate(BaseModel):
    """Fields to change; omitted fields keep their stored or default value."""

    adjustment_coefficient: Decimal | None = None
    hourly_waiting_rate: Decimal | None = None
    overage_rate_per_km: Decimal | None = None


class TierEntry(BaseModel):
    """One distance bucket."""

    model_config = ConfigDict(from_attributes=True)

    km: int
    base_amount: Decimal


class TierAmount(BaseModel):
    base_amount: Decimal


class TierReplaceRequest(BaseModel):
    """Complete tier set for a year."""

    tiers: list[TierEntry]


class TierListResponse(BaseModel):
    year: int
    tiers: list[TierEntry]


class TierImportResponse(BaseModel):
    year: int
    imported: int
    tiers: list[TierEntry]


class CloneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source_year: int
    target_year: int
    tiers_copied: int
    config_copied: bool
    skipped: bool


class DistanceBaseResponse(BaseModel):
    """Base compensation before the coefficient."""

    model_config = ConfigDict(from_attributes=True)

    amount: Decimal
    mode: CalculationMode
    distance_km: Decimal
    normalized_km: int | None = None
    detail: str
    tier_missing: bool = False

    @classmethod
    def from_base(cls, base: DistanceBase) -> DistanceBaseResponse:
        return cls.model_validate(base)


# ============================================================================
# Simulator schemas
# ============================================================================


class SimulationRequest(BaseModel):
    year: int = Field(ge=1, le=9999)
    total_distance_km: Decimal = Field(ge=0)
    waiting_hours: Decimal = Field(default=Decimal("0"), ge=0)


class SimulationResponse(BaseModel):
    """What a hypothetical trip would earn under a year's tariffs."""

    year: int
    total_distance_km: Decimal
    waiting_hours: Decimal
    base: DistanceBaseResponse
    adjustment_coefficient: Decimal
    percent_increase: str
    hourly_waiting_rate: Decimal
    distance_comp: Decimal
    waiting_comp: Decimal
    total: Decimal
    uses_default_parameters: bool

    @classmethod
    def from_preview(cls, preview: SimulationPreview) -> SimulationResponse:
        return cls(
            year=preview.year,
            total_distance_km=preview.total_distance_km,
            waiting_hours=preview.waiting_hours,
            base=DistanceBaseResponse.from_base(preview.base),
            adjustment_coefficient=preview.adjustment_coefficient,
            percent_increase=preview.percent_increase,
            hourly_waiting_rate=preview.hourly_waiting_rate,
            distance_comp=preview.distance_comp,
            waiting_comp=preview.waiting_comp,
            total=preview.total,
            uses_default_parameters=preview.uses_default_parameters,
        )


# ============================================================================
# Statement schemas
# ============================================================================


class StatementLineResponse(BaseModel):
    """Signed statement line (positive adds, negative deducts)."""

    model_config = ConfigDict(from_attributes=True)

    line_type: LineType
    amount: Decimal
    source_id: UUID | None = None
    explanation: str | None = None


class TripCompensationResponse(BaseModel):
    trip_id: UUID | None
    mode: CalculationMode
    normalized_km: int | None
    base_amount: Decimal
    distance_comp: Decimal
    waiting_comp: Decimal
    cash_deduction: Decimal
    net_for_trip: Decimal

    @classmethod
    def from_compensation(cls, comp: TripCompensation) -> TripCompensationResponse:
        return cls(
            trip_id=comp.trip_id,
            mode=comp.base.mode,
            normalized_km=comp.base.normalized_km,
            base_amount=comp.base.amount,
            distance_comp=comp.distance_comp,
            waiting_comp=comp.waiting_comp,
            cash_deduction=comp.cash_deduction,
            net_for_trip=comp.net_for_trip,
        )


class StatementTotals(BaseModel):
    """Subtotals and totals shared by previews and stored statements."""

    model_config = ConfigDict(from_attributes=True)

    owner_id: UUID
    month: int
    year: int
    distance_compensation: Decimal
    waiting_compensation: Decimal
    cash_deduction: Decimal
    expense_additions: Decimal
    carry_over: Decimal
    withdrawals: Decimal
    collections: Decimal
    total_additions: Decimal
    total_deductions: Decimal
    net_amount: Decimal
    trip_count: int
    inputs_fingerprint: str
    warnings: list[str] = []
    lines: list[StatementLineResponse] = []


def _totals(statement: MonthlyStatementResult | StatementRecord) -> dict[str, Any]:
    data = {
        name: getattr(statement, name)
        for name in StatementTotals.model_fields
        if name != "lines"
    }
    data["lines"] = [StatementLineResponse.model_validate(line) for line in statement.lines]
    return data


class StatementPreviewResponse(StatementTotals):
    """Computed statement, not stored."""

    status: str
    trips: list[TripCompensationResponse] = []

    @classmethod
    def from_result(cls, result: MonthlyStatementResult) -> StatementPreviewResponse:
        return cls(
            **_totals(result),
            status=result.status.value,
            trips=[TripCompensationResponse.from_compensation(t) for t in result.trips],
        )


class StatementResponse(StatementTotals):
    """Stored statement."""

    statement_id: UUID
    status: str
    engine_version: str
    confirmed_at: datetime | None = None
    paid_at: datetime | None = None

    @classmethod
    def from_record(cls, record: StatementRecord) -> StatementResponse:
        return cls(
            **_totals(record),
            statement_id=record.statement_id,
            status=record.status,
            engine_version=record.engine_version,
            confirmed_at=record.confirmed_at,
            paid_at=record.paid_at,
        )


class EmployeeRunResponse(BaseModel):
    employee_id: UUID
    display_name: str
    net_amount: Decimal | None = None
    warnings: list[str] = []
    error: str | None = None


class MonthRunResponse(BaseModel):
    """Outcome of the automatic monthly run."""

    month: int
    year: int
    total_net: Decimal
    error_count: int
    results: list[EmployeeRunResponse]

    @classmethod
    def from_run(cls, run: MonthRunResult) -> MonthRunResponse:
        return cls(
            month=run.month,
            year=run.year,
            total_net=run.total_net,
            error_count=run.error_count,
            results=[
                EmployeeRunResponse(
                    employee_id=entry.employee_id,
                    display_name=entry.display_name,
                    net_amount=entry.statement.net_amount if entry.statement else None,
                    warnings=entry.statement.warnings if entry.statement else [],
                    error=entry.error,
                )
                for entry in run.results.values()
            ],
        )


# ============================================================================
# Salary payment schemas
# ============================================================================


class PaymentRequest(BaseModel):
    """How a confirmed statement was paid out."""

    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    payment_date: date | None = None
    notes: str | None = None


class CancelPaymentRequest(BaseModel):
    reason: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SalaryPaymentResponse(BaseModel):
    """One entry of the salary payment register."""

    model_config = ConfigDict(from_attributes=True)

    payment_id: UUID
    statement_id: UUID
    owner_id: UUID
    month: int
    year: int
    amount: Decimal
    method: str
    payment_date: date
    status: str
    notes: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, payment: SalaryPaymentRecord) -> SalaryPaymentResponse:
        return cls.model_validate(payment)


class PaidStatementResponse(StatementResponse):
    """Stored statement together with the payment that settled it."""

    payment: SalaryPaymentResponse | None = None

    @classmethod
    def from_payment(
        cls, record: StatementRecord, payment: SalaryPaymentRecord | None
    ) -> PaidStatementResponse:
        return cls(
            **StatementResponse.from_record(record).model_dump(),
            payment=SalaryPaymentResponse.from_record(payment) if payment else None,
        )


class PaymentListResponse(BaseModel):
    payments: list[SalaryPaymentResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
