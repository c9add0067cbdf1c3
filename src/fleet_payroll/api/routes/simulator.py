"""Read-only trip compensation simulator."""

from fastapi import APIRouter

from fleet_payroll.api.dependencies import Tariffs
from fleet_payroll.api.schemas import SimulationRequest, SimulationResponse
from fleet_payroll.calculators.simulator import Simulator

router = APIRouter(prefix="/simulate", tags=["simulator"])


@router.post("", response_model=SimulationResponse)
async def simulate(tariffs: Tariffs, payload: SimulationRequest) -> SimulationResponse:
    """Preview what a trip would earn. Nothing is stored."""
    preview = await Simulator(tariffs).simulate(
        payload.year, payload.total_distance_km, payload.waiting_hours
    )
    return SimulationResponse.from_preview(preview)
