"""Payroll engine exception hierarchy."""

from __future__ import annotations

from uuid import UUID


class PayrollError(Exception):
    """Base exception for all payroll engine errors."""


class InvalidTripError(PayrollError):
    """A trip record cannot be priced."""

    def __init__(self, trip_id: UUID | None, reason: str) -> None:
        self.trip_id = trip_id
        self.reason = reason
        super().__init__(f"Trip {trip_id} is invalid: {reason}")


class StatementComputationError(PayrollError):
    """A monthly statement cannot be computed for the requested period."""

    def __init__(self, owner_id: UUID, month: int, year: int, reason: str) -> None:
        self.owner_id = owner_id
        self.month = month
        self.year = year
        self.reason = reason
        super().__init__(
            f"Cannot compute statement for {owner_id} in {month:02d}/{year}: {reason}"
        )


class TariffValidationError(PayrollError):
    """One or more tariff entries were rejected. Nothing was applied."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        summary = "; ".join(self.errors[:5])
        if len(self.errors) > 5:
            summary += f" (+{len(self.errors) - 5} more)"
        super().__init__(f"Rejected tariff data ({len(self.errors)} problems): {summary}")


class TariffCloneError(PayrollError):
    """Tariffs cannot be cloned from the previous year."""

    def __init__(self, source_year: int, target_year: int, reason: str) -> None:
        self.source_year = source_year
        self.target_year = target_year
        super().__init__(f"Cannot clone tariffs {source_year} -> {target_year}: {reason}")


class StatementNotFoundError(PayrollError):
    """No stored statement exists for the employee and period."""

    def __init__(self, owner_id: UUID, month: int, year: int) -> None:
        self.owner_id = owner_id
        self.month = month
        self.year = year
        super().__init__(f"No statement stored for {owner_id} in {month:02d}/{year}")


class StatementLockedError(PayrollError):
    """A confirmed or paid statement cannot be overwritten."""

    def __init__(self, owner_id: UUID, month: int, year: int, status: str) -> None:
        self.owner_id = owner_id
        self.month = month
        self.year = year
        self.status = status
        super().__init__(
            f"Statement for {owner_id} in {month:02d}/{year} is {status} and cannot be recomputed"
        )


class PaymentNotFoundError(PayrollError):
    """No salary payment exists with the given id."""

    def __init__(self, payment_id: UUID) -> None:
        self.payment_id = payment_id
        super().__init__(f"Salary payment {payment_id} not found")


class PaymentCancellationError(PayrollError):
    """A salary payment cannot be cancelled."""

    def __init__(self, payment_id: UUID, reason: str) -> None:
        self.payment_id = payment_id
        self.reason = reason
        super().__init__(f"Cannot cancel salary payment {payment_id}: {reason}")
