"""Tariff maintenance endpoints: yearly parameters, distance tiers, CSV import."""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, Request, Response, status
from fastapi.responses import PlainTextResponse

from fleet_payroll.api.dependencies import DbSession, Tariffs
from fleet_payroll.api.schemas import (
    CloneResponse,
    DistanceBaseResponse,
    ErrorResponse,
    TariffConfigResponse,
    TariffConfigUpdate,
    TierAmount,
    TierEntry,
    TierImportResponse,
    TierListResponse,
    TierReplaceRequest,
)
from fleet_payroll.exceptions import TariffValidationError
from fleet_payroll.services.tariff_import import TariffCsvImporter, template_csv

router = APIRouter(prefix="/tariffs", tags=["tariffs"])

Year = Annotated[int, Path(ge=1, le=9999)]


# ============================================================================
# Yearly parameters
# ============================================================================


@router.get("/{year}/config", response_model=TariffConfigResponse)
async def get_config(tariffs: Tariffs, year: Year) -> TariffConfigResponse:
    """Stored parameters of the year, or the defaults (is_default=true)."""
    return TariffConfigResponse.from_parameters(await tariffs.get_config(year))


@router.put(
    "/{year}/config",
    response_model=TariffConfigResponse,
    responses={422: {"model": ErrorResponse}},
)
async def update_config(
    db: DbSession,
    tariffs: Tariffs,
    year: Year,
    payload: TariffConfigUpdate,
) -> TariffConfigResponse:
    parameters = await tariffs.update_config(
        year,
        adjustment_coefficient=payload.adjustment_coefficient,
        hourly_waiting_rate=payload.hourly_waiting_rate,
        overage_rate_per_km=payload.overage_rate_per_km,
    )
    await db.commit()
    return TariffConfigResponse.from_parameters(parameters)


# ============================================================================
# Distance tiers
# ============================================================================


@router.get("/{year}/tiers", response_model=TierListResponse)
async def list_tiers(tariffs: Tariffs, year: Year) -> TierListResponse:
    tiers = await tariffs.get_tiers(year)
    return TierListResponse(year=year, tiers=[TierEntry.model_validate(t) for t in tiers])


@router.put(
    "/{year}/tiers",
    response_model=TierListResponse,
    responses={422: {"model": ErrorResponse}},
)
async def replace_tiers(
    db: DbSession,
    tariffs: Tariffs,
    year: Year,
    payload: TierReplaceRequest,
) -> TierListResponse:
    """Replace the whole tier set of the year. Nothing changes on error."""
    entries = await tariffs.replace_tiers(year, [(t.km, t.base_amount) for t in payload.tiers])
    await db.commit()
    return TierListResponse(year=year, tiers=[TierEntry.model_validate(t) for t in entries])


@router.put(
    "/{year}/tiers/{km}",
    response_model=TierEntry,
    responses={422: {"model": ErrorResponse}},
)
async def upsert_tier(
    db: DbSession,
    tariffs: Tariffs,
    year: Year,
    km: Annotated[int, Path()],
    payload: TierAmount,
) -> TierEntry:
    entry = await tariffs.upsert_tier(year, km, payload.base_amount)
    await db.commit()
    return TierEntry.model_validate(entry)


@router.delete(
    "/{year}/tiers/{km}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_tier(
    db: DbSession,
    tariffs: Tariffs,
    year: Year,
    km: Annotated[int, Path()],
) -> Response:
    if not await tariffs.delete_tier(year, km):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No tier for {km} km in {year}",
        )
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{year}/resolve", response_model=DistanceBaseResponse)
async def resolve_base(
    tariffs: Tariffs,
    year: Year,
    km: Annotated[Decimal, Query(ge=0)],
) -> DistanceBaseResponse:
    """Base compensation for a distance, before the coefficient."""
    return DistanceBaseResponse.from_base(await tariffs.resolve_base(year, km))


# ============================================================================
# Bulk operations
# ============================================================================


@router.get("/template.csv", response_class=PlainTextResponse)
async def download_template() -> PlainTextResponse:
    return PlainTextResponse(
        template_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="tariff_template.csv"'},
    )


@router.post(
    "/{year}/import",
    response_model=TierImportResponse,
    responses={422: {"model": ErrorResponse}},
)
async def import_tiers(
    request: Request,
    db: DbSession,
    tariffs: Tariffs,
    year: Year,
) -> TierImportResponse:
    """Replace the year's tiers from a CSV request body."""
    try:
        content = (await request.body()).decode("utf-8")
    except UnicodeDecodeError:
        raise TariffValidationError(["File is not valid UTF-8 text"])

    result = await TariffCsvImporter(tariffs).import_csv(content, year)
    await db.commit()
    return TierImportResponse(
        year=result["year"],
        imported=result["imported"],
        tiers=[TierEntry.model_validate(t) for t in result["tiers"]],
    )


@router.post(
    "/{year}/clone",
    response_model=CloneResponse,
    responses={422: {"model": ErrorResponse}},
)
async def clone_from_previous_year(
    db: DbSession,
    tariffs: Tariffs,
    year: Year,
    overwrite: bool = False,
) -> CloneResponse:
    """Copy the previous year's tiers and configuration into this year."""
    result = await tariffs.clone_from_previous_year(year, overwrite=overwrite)
    await db.commit()
    return CloneResponse.model_validate(result)
