"""Monthly statement state machine with transition validation."""

from __future__ import annotations

from fleet_payroll.calculators.types import StatementStatus
from fleet_payroll.exceptions import PayrollError


class InvalidTransitionError(PayrollError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StatementStateMachine:
    """State machine for statement status transitions.

    Allowed transitions:
    - draft → confirmed
    - confirmed → paid

    Paid is terminal for forward transitions. Cancelling the salary payment
    is the only way back, to confirmed. Only drafts may be recomputed and
    overwritten.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        StatementStatus.DRAFT: [StatementStatus.CONFIRMED],
        StatementStatus.CONFIRMED: [StatementStatus.PAID],
        StatementStatus.PAID: [],  # Terminal state
    }

    RECOMPUTE_ALLOWED = {StatementStatus.DRAFT}

    REVERSALS: dict[str, str] = {StatementStatus.PAID: StatementStatus.CONFIRMED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_recompute(cls, status: str) -> bool:
        """Check if a stored statement in this status may be overwritten."""
        return status in cls.RECOMPUTE_ALLOWED

    @classmethod
    def validate_reversal(cls, from_status: str, to_status: str) -> None:
        """Validate undoing a payment, raising InvalidTransitionError if invalid."""
        if cls.REVERSALS.get(from_status) != to_status:
            raise InvalidTransitionError(from_status, to_status, "only a payment can be reversed")


__all__ = ["InvalidTransitionError", "StatementStateMachine", "StatementStatus"]
