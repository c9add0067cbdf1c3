"""Type definitions for the compensation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

ZERO = Decimal("0")


def as_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """Convert a numeric input to Decimal without binary float artifacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class PaymentMethod(str, Enum):
    """How the customer paid for a trip."""

    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    INVOICE = "invoice"
    OTHER = "other"

    @classmethod
    def is_cash(cls, method: str | PaymentMethod | None) -> bool:
        if method is None:
            return False
        value = method.value if isinstance(method, PaymentMethod) else str(method)
        return value.strip().lower() == cls.CASH.value


class TripStatus(str, Enum):
    """Trip lifecycle values."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"


# Trips in these statuses count toward payroll
FINALIZED_TRIP_STATUSES = frozenset({TripStatus.COMPLETED.value, TripStatus.FINALIZED.value})


class ClaimStatus(str, Enum):
    """Expense claim approval values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MovementKind(str, Enum):
    """Treasury movement kinds that offset the amount owed."""

    WITHDRAWAL = "withdrawal"
    COLLECTION = "collection"


class EmployeeRole(str, Enum):
    """Directory roles."""

    ADMIN = "admin"
    PARTNER = "partner"
    EMPLOYEE = "employee"


# Roles paid through the automatic monthly run; plain employees are paid manually
AUTOMATIC_PAYROLL_ROLES = frozenset({EmployeeRole.ADMIN.value, EmployeeRole.PARTNER.value})


class StatementStatus(str, Enum):
    """Monthly statement status values."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    PAID = "paid"


class SalaryPaymentStatus(str, Enum):
    """Salary payment register values."""

    PAID = "paid"
    CANCELLED = "cancelled"


class CalculationMode(str, Enum):
    """Which branch of the distance resolver produced a base amount."""

    TABLE = "table"
    LINEAR = "linear"


class LineType(str, Enum):
    """Statement line item types."""

    DISTANCE = "DISTANCE"
    WAITING = "WAITING"
    EXPENSE_REIMBURSEMENT = "EXPENSE_REIMBURSEMENT"
    CARRY_OVER_CREDIT = "CARRY_OVER_CREDIT"
    CASH_COLLECTED = "CASH_COLLECTED"
    WITHDRAWAL = "WITHDRAWAL"
    COLLECTION = "COLLECTION"
    CARRY_OVER_DEBT = "CARRY_OVER_DEBT"


# ===== Tariff values =====


@dataclass(frozen=True)
class TariffParameters:
    """Global tariff parameters of one year."""

    year: int
    adjustment_coefficient: Decimal
    hourly_waiting_rate: Decimal
    overage_rate_per_km: Decimal
    is_default: bool = False

    @property
    def percent_increase(self) -> str:
        """Coefficient as a label, e.g. 1.17 -> '+17%'."""
        percent = ((self.adjustment_coefficient - 1) * 100).quantize(Decimal("1"))
        sign = "+" if percent >= 0 else ""
        return f"{sign}{percent}%"


@dataclass(frozen=True)
class DistanceTierEntry:
    """Base amount for one distance bucket."""

    year: int
    km: int
    base_amount: Decimal


@dataclass(frozen=True)
class TariffSchedule:
    """Everything the calculators need to price trips of one year."""

    parameters: TariffParameters
    tiers: Mapping[int, Decimal] = field(default_factory=dict)

    @classmethod
    def build(
        cls, parameters: TariffParameters, entries: list[DistanceTierEntry]
    ) -> TariffSchedule:
        return cls(
            parameters=parameters,
            tiers={entry.km: entry.base_amount for entry in entries},
        )

    @property
    def year(self) -> int:
        return self.parameters.year

    def tier_amount(self, km: int) -> Decimal | None:
        return self.tiers.get(km)


# ===== Upstream records =====


@dataclass(frozen=True)
class EmployeeRecord:
    employee_id: UUID
    first_name: str
    last_name: str
    role: str
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class TripRecord:
    """A trip as read from the operational store."""

    trip_id: UUID
    assignee_id: UUID | None
    service_date: date
    total_distance_km: Decimal | None
    waiting_hours: Decimal | None
    payment_method: str
    amount_collected: Decimal | None
    status: str

    @property
    def is_finalized(self) -> bool:
        return self.status in FINALIZED_TRIP_STATUSES


@dataclass(frozen=True)
class ExpenseClaimRecord:
    claim_id: UUID
    owner_id: UUID
    claim_date: date
    amount: Decimal
    status: str


@dataclass(frozen=True)
class TreasuryMovementRecord:
    movement_id: UUID
    owner_id: UUID
    movement_date: date
    amount: Decimal
    kind: str


# ===== Calculation results =====


@dataclass(frozen=True)
class DistanceBase:
    """Base compensation resolved for a distance, before the coefficient."""

    amount: Decimal
    mode: CalculationMode
    distance_km: Decimal
    normalized_km: int | None  # tier key looked up (table mode only)
    detail: str
    tier_missing: bool = False


@dataclass(frozen=True)
class TripCompensation:
    """Contribution of a single trip to the monthly statement."""

    trip_id: UUID | None
    base: DistanceBase
    distance_comp: Decimal
    waiting_comp: Decimal
    cash_deduction: Decimal
    net_for_trip: Decimal


@dataclass
class StatementLine:
    """A signed statement component, kept for audit and display."""

    line_type: LineType
    amount: Decimal  # Signed per conventions
    source_id: UUID | None = None
    explanation: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "line_type": self.line_type.value,
            "source_id": str(self.source_id) if self.source_id else None,
            "amount": str(self.amount.normalize()),
        }


@dataclass
class MonthlyStatementResult:
    """Computed statement for one employee and month."""

    owner_id: UUID
    month: int
    year: int
    distance_compensation: Decimal = ZERO
    waiting_compensation: Decimal = ZERO
    cash_deduction: Decimal = ZERO
    expense_additions: Decimal = ZERO
    carry_over: Decimal = ZERO
    withdrawals: Decimal = ZERO
    collections: Decimal = ZERO
    total_additions: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_amount: Decimal = ZERO
    status: StatementStatus = StatementStatus.DRAFT
    trips: list[TripCompensation] = field(default_factory=list)
    lines: list[StatementLine] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    inputs_fingerprint: str = ""
    parameters: TariffParameters | None = None

    @property
    def trip_count(self) -> int:
        return len(self.trips)

    @property
    def carry_forward_from_prior_month(self) -> Decimal:
        return self.carry_over

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


@dataclass(frozen=True)
class StatementRecord:
    """A statement as stored in the statement repository."""

    statement_id: UUID
    owner_id: UUID
    month: int
    year: int
    status: str
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
    warnings: list[str] = field(default_factory=list)
    engine_version: str = ""
    lines: list[StatementLine] = field(default_factory=list)
    confirmed_at: datetime | None = None
    paid_at: datetime | None = None


@dataclass(frozen=True)
class SalaryPaymentRecord:
    """One payout of a statement's net. Cancelled payments stay in the register."""

    payment_id: UUID
    statement_id: UUID
    owner_id: UUID
    month: int
    year: int
    amount: Decimal
    method: str
    payment_date: date
    status: str = SalaryPaymentStatus.PAID.value
    notes: str | None = None
    created_at: datetime | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == SalaryPaymentStatus.CANCELLED.value


@dataclass(frozen=True)
class SimulationPreview:
    """What a hypothetical trip would earn."""

    year: int
    total_distance_km: Decimal
    waiting_hours: Decimal
    base: DistanceBase
    adjustment_coefficient: Decimal
    percent_increase: str
    hourly_waiting_rate: Decimal
    distance_comp: Decimal
    waiting_comp: Decimal
    total: Decimal
    uses_default_parameters: bool = False
