"""Salary payment register."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fleet_payroll.calculators.types import SalaryPaymentRecord
from fleet_payroll.models.base import Base, TimestampMixin
from fleet_payroll.models.statement import MONEY


class SalaryPayment(Base, TimestampMixin):
    """A payout of a statement's net amount.

    Rows are never deleted; a mistaken payment is cancelled and keeps its
    reason in the notes.
    """

    __tablename__ = "salary_payment"

    payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    statement_id: Mapped[UUID] = mapped_column(
        ForeignKey("monthly_statement.statement_id"),
        nullable=False,
    )
    owner_id: Mapped[UUID] = mapped_column(nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    method: Mapped[str] = mapped_column(String, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="paid")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("month BETWEEN 1 AND 12", name="salary_payment_month_check"),
        CheckConstraint("status IN ('paid', 'cancelled')", name="salary_payment_status_check"),
        Index("ix_salary_payment_period", "year", "month"),
        Index("ix_salary_payment_statement", "statement_id"),
    )

    def to_record(self) -> SalaryPaymentRecord:
        return SalaryPaymentRecord(
            payment_id=self.payment_id,
            statement_id=self.statement_id,
            owner_id=self.owner_id,
            month=self.month,
            year=self.year,
            amount=self.amount,
            method=self.method,
            payment_date=self.payment_date,
            status=self.status,
            notes=self.notes,
            created_at=self.created_at,
        )
