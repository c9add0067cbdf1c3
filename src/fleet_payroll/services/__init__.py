"""Service layer for tariff maintenance and the statement lifecycle."""

from fleet_payroll.services.state_machine import InvalidTransitionError, StatementStateMachine
from fleet_payroll.services.statement_service import StatementService
from fleet_payroll.services.tariff_import import TariffCsvImporter, parse_tariff_csv, template_csv
from fleet_payroll.services.tariff_store import CloneResult, TariffStore, validate_tier_entries

__all__ = [
    "CloneResult",
    "InvalidTransitionError",
    "StatementService",
    "StatementStateMachine",
    "TariffCsvImporter",
    "TariffStore",
    "parse_tariff_csv",
    "template_csv",
    "validate_tier_entries",
]
