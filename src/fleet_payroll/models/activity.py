"""Upstream operational records consumed by the payroll engine.

Trips, expense claims and treasury movements are written by other workflows.
The engine only reads them; ownership columns are plain UUIDs because the
referenced profile may have been removed since the record was created.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from fleet_payroll.calculators.types import (
    EmployeeRecord,
    ExpenseClaimRecord,
    TreasuryMovementRecord,
    TripRecord,
)
from fleet_payroll.models.base import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """Directory entry for a driver, partner or administrator."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    first_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    role: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'partner', 'employee')",
            name="employee_role_check",
        ),
    )

    def to_record(self) -> EmployeeRecord:
        return EmployeeRecord(
            employee_id=self.employee_id,
            first_name=self.first_name,
            last_name=self.last_name,
            role=self.role,
            is_active=self.is_active,
        )


class Trip(Base, TimestampMixin):
    """A transport service performed by an assignee."""

    __tablename__ = "trip"

    trip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    assignee_id: Mapped[UUID | None] = mapped_column(nullable=True)
    service_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_distance_km: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    waiting_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    payment_method: Mapped[str] = mapped_column(String, nullable=False)
    amount_collected: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'assigned', 'completed', 'finalized', 'cancelled')",
            name="trip_status_check",
        ),
        Index("ix_trip_assignee_date", "assignee_id", "service_date"),
    )

    def to_record(self) -> TripRecord:
        return TripRecord(
            trip_id=self.trip_id,
            assignee_id=self.assignee_id,
            service_date=self.service_date,
            total_distance_km=self.total_distance_km,
            waiting_hours=self.waiting_hours,
            payment_method=self.payment_method,
            amount_collected=self.amount_collected,
            status=self.status,
        )


class ExpenseClaim(Base, TimestampMixin):
    """Out-of-pocket expense submitted by an employee for reimbursement."""

    __tablename__ = "expense_claim"

    claim_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(nullable=False)
    claim_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="expense_claim_status_check",
        ),
        Index("ix_expense_claim_owner_date", "owner_id", "claim_date"),
    )

    def to_record(self) -> ExpenseClaimRecord:
        return ExpenseClaimRecord(
            claim_id=self.claim_id,
            owner_id=self.owner_id,
            claim_date=self.claim_date,
            amount=self.amount,
            status=self.status,
        )


class TreasuryMovement(Base, TimestampMixin):
    """Money taken out of (withdrawal) or received on behalf of (collection) the company."""

    __tablename__ = "treasury_movement"

    movement_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(nullable=False)
    movement_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "kind IN ('withdrawal', 'collection')",
            name="treasury_movement_kind_check",
        ),
        Index("ix_treasury_movement_owner_date", "owner_id", "movement_date"),
    )

    def to_record(self) -> TreasuryMovementRecord:
        return TreasuryMovementRecord(
            movement_id=self.movement_id,
            owner_id=self.owner_id,
            movement_date=self.movement_date,
            amount=self.amount,
            kind=self.kind,
        )
