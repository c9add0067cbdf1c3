"""API routes."""

from fleet_payroll.api.routes.health import router as health_router
from fleet_payroll.api.routes.simulator import router as simulator_router
from fleet_payroll.api.routes.statements import router as statements_router
from fleet_payroll.api.routes.tariffs import router as tariffs_router

__all__ = ["health_router", "simulator_router", "statements_router", "tariffs_router"]
