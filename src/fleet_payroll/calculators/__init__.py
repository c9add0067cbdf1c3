"""Compensation calculation engine."""

from fleet_payroll.calculators.distance_resolver import DistanceCompensationResolver
from fleet_payroll.calculators.engine import MonthlyAggregator, PayrollEngine, StatementInputs
from fleet_payroll.calculators.line_builder import StatementLineBuilder
from fleet_payroll.calculators.simulator import Simulator, simulate_trip
from fleet_payroll.calculators.trip_calculator import TripCompensationCalculator

__all__ = [
    "DistanceCompensationResolver",
    "MonthlyAggregator",
    "PayrollEngine",
    "StatementInputs",
    "StatementLineBuilder",
    "Simulator",
    "simulate_trip",
    "TripCompensationCalculator",
]
