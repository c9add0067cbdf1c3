"""Materialized monthly statements and their audit lines."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_payroll.calculators.types import LineType, StatementLine, StatementRecord
from fleet_payroll.models.base import Base, TimestampMixin, utcnow

# Wide enough for km x overage rate x coefficient at the tariff and trip column scales
MONEY = Numeric(20, 10)


class MonthlyStatement(Base, TimestampMixin):
    """Confirmed or draft payroll result for one employee and month.

    Derived data: it can always be recomputed from trips, claims, movements
    and tariffs. Rows are kept for carry-over and as the paid record.
    """

    __tablename__ = "monthly_statement"

    statement_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    distance_compensation: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    waiting_compensation: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    cash_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    expense_additions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    carry_over: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    withdrawals: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    collections: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_additions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    trip_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    inputs_fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    engine_version: Mapped[str] = mapped_column(String, nullable=False)
    warnings_json: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "year", "month", name="monthly_statement_owner_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="monthly_statement_month_check"),
        CheckConstraint(
            "status IN ('draft', 'confirmed', 'paid')",
            name="monthly_statement_status_check",
        ),
    )

    lines: Mapped[list[MonthlyStatementLine]] = relationship(
        back_populates="statement",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MonthlyStatementLine.position",
    )

    def to_record(self) -> StatementRecord:
        return StatementRecord(
            statement_id=self.statement_id,
            owner_id=self.owner_id,
            month=self.month,
            year=self.year,
            status=self.status,
            distance_compensation=self.distance_compensation,
            waiting_compensation=self.waiting_compensation,
            cash_deduction=self.cash_deduction,
            expense_additions=self.expense_additions,
            carry_over=self.carry_over,
            withdrawals=self.withdrawals,
            collections=self.collections,
            total_additions=self.total_additions,
            total_deductions=self.total_deductions,
            net_amount=self.net_amount,
            trip_count=self.trip_count,
            inputs_fingerprint=self.inputs_fingerprint,
            engine_version=self.engine_version,
            warnings=list(self.warnings_json or []),
            lines=[line.to_line() for line in self.lines],
            confirmed_at=self.confirmed_at,
            paid_at=self.paid_at,
        )


class MonthlyStatementLine(Base):
    """One signed component of a statement (earning, reimbursement or deduction)."""

    __tablename__ = "monthly_statement_line"

    line_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    statement_id: Mapped[UUID] = mapped_column(
        ForeignKey("monthly_statement.statement_id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    line_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    source_id: Mapped[UUID | None] = mapped_column(nullable=True)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    line_hash: Mapped[str] = mapped_column(String(32), nullable=False)

    statement: Mapped[MonthlyStatement] = relationship(back_populates="lines")

    def to_line(self) -> StatementLine:
        return StatementLine(
            line_type=LineType(self.line_type),
            amount=self.amount,
            source_id=self.source_id,
            explanation=self.explanation,
        )
