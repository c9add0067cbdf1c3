"""Statement line builder with deterministic hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from fleet_payroll.calculators.types import LineType, StatementLine, ZERO

ADDITION_TYPES = frozenset({
    LineType.DISTANCE,
    LineType.WAITING,
    LineType.EXPENSE_REIMBURSEMENT,
    LineType.CARRY_OVER_CREDIT,
})

DEDUCTION_TYPES = frozenset({
    LineType.CASH_COLLECTED,
    LineType.WITHDRAWAL,
    LineType.COLLECTION,
    LineType.CARRY_OVER_DEBT,
})


class StatementLineBuilder:
    """Builds statement lines with deterministic hashing for idempotency.

    Sign conventions (non-negotiable):
    - DISTANCE, WAITING, EXPENSE_REIMBURSEMENT, CARRY_OVER_CREDIT: positive
    - CASH_COLLECTED, WITHDRAWAL, COLLECTION, CARRY_OVER_DEBT: negative

    Rounding:
    - Lines keep full precision; the net is the exact sum of the lines
    - Cents only for display (round_to_cents)
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(StatementLineBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: StatementLine) -> str:
        """Compute deterministic hash for a line."""
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def create_addition_line(
        line_type: LineType,
        amount: Decimal,
        source_id: UUID | None = None,
        explanation: str | None = None,
    ) -> StatementLine:
        """Create a line that increases what the company owes (positive)."""
        if line_type not in ADDITION_TYPES:
            raise ValueError(f"{line_type.value} is not an addition line type")
        return StatementLine(
            line_type=line_type,
            amount=abs(amount),
            source_id=source_id,
            explanation=explanation,
        )

    @staticmethod
    def create_deduction_line(
        line_type: LineType,
        amount: Decimal,
        source_id: UUID | None = None,
        explanation: str | None = None,
    ) -> StatementLine:
        """Create a line that reduces what the company owes (negative)."""
        if line_type not in DEDUCTION_TYPES:
            raise ValueError(f"{line_type.value} is not a deduction line type")
        return StatementLine(
            line_type=line_type,
            amount=-abs(amount),
            source_id=source_id,
            explanation=explanation,
        )

    @staticmethod
    def create_carry_over_line(carry_over: Decimal, prior_month: int, prior_year: int) -> StatementLine | None:
        """Credit or debt line from the prior month's net, or None if zero."""
        if carry_over == 0:
            return None
        label = f"Carry-over from {prior_month:02d}/{prior_year}"
        if carry_over > 0:
            return StatementLineBuilder.create_addition_line(
                LineType.CARRY_OVER_CREDIT, carry_over, explanation=label
            )
        return StatementLineBuilder.create_deduction_line(
            LineType.CARRY_OVER_DEBT, carry_over, explanation=label
        )

    @staticmethod
    def sum_lines(lines: list[StatementLine], line_types: frozenset[LineType] | None = None) -> Decimal:
        """Sum line amounts, optionally restricted to some types."""
        total = ZERO
        for line in lines:
            if line_types is None or line.line_type in line_types:
                total += line.amount
        return total

    @staticmethod
    def total_additions(lines: list[StatementLine]) -> Decimal:
        return StatementLineBuilder.sum_lines(lines, ADDITION_TYPES)

    @staticmethod
    def total_deductions(lines: list[StatementLine]) -> Decimal:
        """Total deductions as a positive amount."""
        return -StatementLineBuilder.sum_lines(lines, DEDUCTION_TYPES)

    @staticmethod
    def validate_line_signs(lines: list[StatementLine]) -> list[str]:
        """Validate that all lines follow sign conventions.

        Returns list of error messages (empty if valid).
        """
        errors = []
        for i, line in enumerate(lines):
            if line.line_type in ADDITION_TYPES and line.amount < 0:
                errors.append(f"Line {i}: {line.line_type.value} should be positive, got {line.amount}")
            elif line.line_type in DEDUCTION_TYPES and line.amount > 0:
                errors.append(f"Line {i}: {line.line_type.value} should be negative, got {line.amount}")
        return errors

    @staticmethod
    def compute_fingerprint(lines: list[StatementLine], extra: dict | None = None) -> str:
        """Fingerprint a whole set of lines plus context, order-independent."""
        payload = {
            "lines": sorted(StatementLineBuilder.compute_line_hash(line) for line in lines),
            "extra": extra or {},
        }
        json_str = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()
