"""Fleet payroll command line interface.

Provides operational tools for:
- Tariff import, template download and yearly cloning
- Trip simulation
- Monthly statement preview, draft, confirmation and payment
- The salary payment register and payment cancellation
- The automatic monthly run

Usage:
    python -m fleet_payroll.cli import-tariffs --year 2025 --file tiers.csv
    python -m fleet_payroll.cli clone-tariffs --year 2026
    python -m fleet_payroll.cli simulate --year 2025 --km 18 --hours 1.5
    python -m fleet_payroll.cli statement --employee-id X --year 2025 --month 3
    python -m fleet_payroll.cli run-month --year 2025 --month 3 --save-drafts
    python -m fleet_payroll.cli payments --year 2025 --month 3
    python -m fleet_payroll.cli cancel-payment --payment-id X --reason "wrong amount"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncContextManager, AsyncIterator, Callable, Coroutine
from uuid import UUID

from fleet_payroll.calculators.line_builder import StatementLineBuilder
from fleet_payroll.calculators.simulator import Simulator
from fleet_payroll.calculators.types import (
    MonthlyStatementResult,
    PaymentMethod,
    SalaryPaymentRecord,
    SalaryPaymentStatus,
    StatementRecord,
)
from fleet_payroll.config import get_settings
from fleet_payroll.exceptions import PayrollError
from fleet_payroll.services.statement_service import StatementService
from fleet_payroll.services.tariff_import import TariffCsvImporter, template_csv
from fleet_payroll.services.tariff_store import TariffStore

if TYPE_CHECKING:
    from fleet_payroll.repositories.protocols import IPayrollRepository

logger = logging.getLogger(__name__)

RepositoryScope = Callable[[], AsyncContextManager["IPayrollRepository"]]


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_decimal(s: str) -> Decimal:
    """Parse a decimal figure, accepting a decimal comma."""
    try:
        return Decimal(s.replace(",", "."))
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {s!r}")


@asynccontextmanager
async def sql_repository() -> AsyncIterator[IPayrollRepository]:
    """Repository over a committed-on-exit database session."""
    from fleet_payroll.database import get_session
    from fleet_payroll.repositories.sql import SqlAlchemyPayrollRepository

    async with get_session() as session:
        yield SqlAlchemyPayrollRepository(session)


def format_money(amount: Decimal) -> str:
    return f"{StatementLineBuilder.round_to_cents(amount):>12,}"


class PayrollCli:
    """Fleet payroll command line interface."""

    def __init__(self, repository_scope: RepositoryScope | None = None) -> None:
        self.repository_scope = repository_scope or sql_repository
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m fleet_payroll.cli",
            description="Fleet payroll operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # import-tariffs command
        importer = subparsers.add_parser(
            "import-tariffs",
            help="Replace a year's distance tiers from a CSV file",
        )
        importer.add_argument("--year", type=int, required=True, help="Target year")
        importer.add_argument(
            "--file",
            type=Path,
            required=True,
            help="CSV file with 'km' and 'importo_base' columns",
        )

        # tariff-template command
        subparsers.add_parser(
            "tariff-template",
            help="Print the CSV template for tariff imports",
        )

        # clone-tariffs command
        clone = subparsers.add_parser(
            "clone-tariffs",
            help="Copy the previous year's tiers and configuration",
        )
        clone.add_argument("--year", type=int, required=True, help="Target year")
        clone.add_argument(
            "--overwrite",
            action="store_true",
            help="Replace tiers already present in the target year",
        )

        # simulate command
        simulate = subparsers.add_parser(
            "simulate",
            help="Preview what a trip would earn",
        )
        simulate.add_argument("--year", type=int, required=True, help="Tariff year")
        simulate.add_argument("--km", type=parse_decimal, required=True, help="Total distance in km")
        simulate.add_argument(
            "--hours",
            type=parse_decimal,
            default=Decimal("0"),
            help="Waiting hours (default: 0)",
        )

        # statement command
        statement = subparsers.add_parser(
            "statement",
            help="Compute or advance one employee's monthly statement",
        )
        statement.add_argument("--employee-id", type=parse_uuid, required=True)
        statement.add_argument("--year", type=int, required=True)
        statement.add_argument("--month", type=int, required=True)
        statement.add_argument(
            "--action",
            choices=["preview", "draft", "confirm", "pay", "show"],
            default="preview",
            help="preview (default), store as draft, confirm, mark paid, or show stored",
        )
        statement.add_argument(
            "--method",
            choices=[m.value for m in PaymentMethod],
            default=PaymentMethod.BANK_TRANSFER.value,
            help="Payment method recorded with --action pay (default: bank_transfer)",
        )
        statement.add_argument(
            "--payment-date",
            type=date.fromisoformat,
            help="Payment date for --action pay (default: today)",
        )
        statement.add_argument("--notes", help="Notes recorded with --action pay")

        # payments command
        payments = subparsers.add_parser(
            "payments",
            help="List the salary payment register",
        )
        payments.add_argument("--year", type=int)
        payments.add_argument("--month", type=int)
        payments.add_argument("--employee-id", type=parse_uuid)
        payments.add_argument("--status", choices=[s.value for s in SalaryPaymentStatus])

        # cancel-payment command
        cancel = subparsers.add_parser(
            "cancel-payment",
            help="Cancel a salary payment and reopen its statement",
        )
        cancel.add_argument("--payment-id", type=parse_uuid, required=True)
        cancel.add_argument("--reason", required=True, help="Why the payment is cancelled")

        # run-month command
        run_month = subparsers.add_parser(
            "run-month",
            help="Compute statements for every active admin and partner",
        )
        run_month.add_argument("--year", type=int, required=True)
        run_month.add_argument("--month", type=int, required=True)
        run_month.add_argument(
            "--save-drafts",
            action="store_true",
            help="Store each computed statement as a draft",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], Coroutine[Any, Any, int]]] = {
            "import-tariffs": self._cmd_import_tariffs,
            "clone-tariffs": self._cmd_clone_tariffs,
            "simulate": self._cmd_simulate,
            "statement": self._cmd_statement,
            "run-month": self._cmd_run_month,
            "payments": self._cmd_payments,
            "cancel-payment": self._cmd_cancel_payment,
        }

        if parsed.command == "tariff-template":
            print(template_csv(), end="")
            return 0

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(handler(parsed))
        except PayrollError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            for detail in getattr(e, "errors", []):
                print(f"  - {detail}", file=sys.stderr)
            return 1

    async def _cmd_import_tariffs(self, args: argparse.Namespace) -> int:
        """Import distance tiers from CSV."""
        try:
            content = args.file.read_text(encoding="utf-8")
        except OSError as e:
            print(f"ERROR: cannot read {args.file}: {e}", file=sys.stderr)
            return 1

        async with self.repository_scope() as repository:
            result = await TariffCsvImporter(TariffStore(repository)).import_csv(content, args.year)

        print(f"Imported {result['imported']} tiers for {args.year}")
        for tier in result["tiers"]:
            print(f"  {tier.km:>4} km  {format_money(tier.base_amount)}")
        return 0

    async def _cmd_clone_tariffs(self, args: argparse.Namespace) -> int:
        """Clone tariffs from the previous year."""
        async with self.repository_scope() as repository:
            result = await TariffStore(repository).clone_from_previous_year(
                args.year, overwrite=args.overwrite
            )

        if result.skipped:
            print(
                f"{args.year} already has tiers; nothing copied (use --overwrite to replace)"
            )
            return 0
        print(f"Copied {result.tiers_copied} tiers {result.source_year} -> {result.target_year}")
        print(f"  Configuration copied: {'yes' if result.config_copied else 'no'}")
        return 0

    async def _cmd_simulate(self, args: argparse.Namespace) -> int:
        """Simulate a trip."""
        try:
            async with self.repository_scope() as repository:
                preview = await Simulator(TariffStore(repository)).simulate(
                    args.year, args.km, args.hours
                )
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        print(f"Simulation for {preview.total_distance_km} km, {preview.waiting_hours} h ({preview.year})")
        print("=" * 50)
        print(f"  Base ({preview.base.detail})")
        print(f"  {'Base amount:':<24}{format_money(preview.base.amount)}")
        print(f"  {'Coefficient:':<24}{preview.adjustment_coefficient:>12} ({preview.percent_increase})")
        print(f"  {'Distance compensation:':<24}{format_money(preview.distance_comp)}")
        print(f"  {'Waiting compensation:':<24}{format_money(preview.waiting_comp)}")
        print(f"  {'Total:':<24}{format_money(preview.total)}")
        if preview.uses_default_parameters:
            print(f"\n  No configuration stored for {preview.year}; defaults applied")
        return 0

    async def _cmd_statement(self, args: argparse.Namespace) -> int:
        """Preview, store or advance a monthly statement."""
        async with self.repository_scope() as repository:
            service = StatementService(repository)
            if args.action == "preview":
                statement: MonthlyStatementResult | StatementRecord = await service.preview(
                    args.employee_id, args.month, args.year
                )
            elif args.action == "draft":
                statement = await service.save_draft(args.employee_id, args.month, args.year)
            elif args.action == "confirm":
                statement = await service.confirm(args.employee_id, args.month, args.year)
            elif args.action == "pay":
                statement = await service.mark_paid(
                    args.employee_id,
                    args.month,
                    args.year,
                    method=args.method,
                    payment_date=args.payment_date,
                    notes=args.notes,
                )
            else:
                statement = await service.get(args.employee_id, args.month, args.year)

        self._print_statement(statement)
        return 0

    async def _cmd_run_month(self, args: argparse.Namespace) -> int:
        """Run the automatic monthly computation."""
        async with self.repository_scope() as repository:
            run = await StatementService(repository).run_month(
                args.month, args.year, save_drafts=args.save_drafts
            )

        print(f"Monthly run {args.month:02d}/{args.year}")
        print("=" * 60)
        for entry in run.results.values():
            name = entry.display_name or str(entry.employee_id)
            if entry.statement is not None:
                print(f"  {name:<30}{format_money(entry.statement.net_amount)}")
            if entry.error:
                print(f"  {name:<30}ERROR: {entry.error}")
        print("-" * 60)
        print(f"  {'Total net:':<30}{format_money(run.total_net)}")
        print(f"  {'Errors:':<30}{run.error_count:>12}")
        return 0 if run.error_count == 0 else 2

    async def _cmd_payments(self, args: argparse.Namespace) -> int:
        """List salary payments."""
        async with self.repository_scope() as repository:
            payments = await StatementService(repository).list_payments(
                year=args.year, month=args.month, owner_id=args.employee_id, status=args.status
            )

        if not payments:
            print("No salary payments found")
            return 0
        for payment in payments:
            self._print_payment(payment)
        return 0

    async def _cmd_cancel_payment(self, args: argparse.Namespace) -> int:
        """Cancel a salary payment."""
        async with self.repository_scope() as repository:
            payment = await StatementService(repository).cancel_payment(
                args.payment_id, args.reason
            )

        print(f"Cancelled payment {payment.payment_id}; statement is confirmed again")
        self._print_payment(payment)
        return 0

    @staticmethod
    def _print_payment(payment: SalaryPaymentRecord) -> None:
        print(
            f"  {payment.payment_date}  {payment.month:02d}/{payment.year}  {payment.owner_id}"
            f"{format_money(payment.amount)}  {payment.method:<14}[{payment.status}]"
            f"  {payment.payment_id}"
        )
        if payment.notes:
            for note in payment.notes.splitlines():
                if note:
                    print(f"      {note}")

    @staticmethod
    def _print_statement(statement: MonthlyStatementResult | StatementRecord) -> None:
        status = getattr(statement.status, "value", statement.status)
        print(f"Statement {statement.owner_id} {statement.month:02d}/{statement.year} [{status}]")
        print("=" * 60)
        for line in statement.lines:
            label = line.explanation or ""
            print(f"  {line.line_type.value:<22}{format_money(line.amount)}  {label}")
        print("-" * 60)
        print(f"  {'Distance:':<22}{format_money(statement.distance_compensation)}")
        print(f"  {'Waiting:':<22}{format_money(statement.waiting_compensation)}")
        print(f"  {'Expenses:':<22}{format_money(statement.expense_additions)}")
        print(f"  {'Carry-over:':<22}{format_money(statement.carry_over)}")
        print(f"  {'Cash collected:':<22}{format_money(-statement.cash_deduction)}")
        print(f"  {'Withdrawals:':<22}{format_money(-statement.withdrawals)}")
        print(f"  {'Collections:':<22}{format_money(-statement.collections)}")
        print(f"  {'Net:':<22}{format_money(statement.net_amount)}")
        for warning in statement.warnings:
            print(f"  WARNING: {warning}")


def main() -> int:
    """CLI entry point."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
