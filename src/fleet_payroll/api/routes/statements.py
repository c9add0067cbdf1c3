"""Monthly statement endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from fleet_payroll.api.dependencies import DbSession, Statements
from fleet_payroll.api.schemas import (
    CancelPaymentRequest,
    ErrorResponse,
    MonthRunResponse,
    PaidStatementResponse,
    PaymentListResponse,
    PaymentRequest,
    SalaryPaymentResponse,
    StatementPreviewResponse,
    StatementResponse,
)

router = APIRouter(tags=["statements"])

Year = Annotated[int, Path(ge=1, le=9999)]
Month = Annotated[int, Path(ge=1, le=12)]

STATEMENT_PATH = "/statements/{employee_id}/{year}/{month}"


@router.get(
    STATEMENT_PATH,
    response_model=StatementResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_statement(
    statements: Statements,
    employee_id: UUID,
    year: Year,
    month: Month,
) -> StatementResponse:
    """Stored statement for the employee and month."""
    return StatementResponse.from_record(await statements.get(employee_id, month, year))


@router.get(
    STATEMENT_PATH + "/preview",
    response_model=StatementPreviewResponse,
    responses={422: {"model": ErrorResponse}},
)
async def preview_statement(
    statements: Statements,
    employee_id: UUID,
    year: Year,
    month: Month,
) -> StatementPreviewResponse:
    """Compute the statement from current inputs without storing it."""
    result = await statements.preview(employee_id, month, year)
    return StatementPreviewResponse.from_result(result)


@router.post(
    STATEMENT_PATH + "/draft",
    response_model=StatementResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def save_draft(
    db: DbSession,
    statements: Statements,
    employee_id: UUID,
    year: Year,
    month: Month,
) -> StatementResponse:
    record = await statements.save_draft(employee_id, month, year)
    await db.commit()
    return StatementResponse.from_record(record)


@router.post(
    STATEMENT_PATH + "/confirm",
    response_model=StatementResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def confirm_statement(
    db: DbSession,
    statements: Statements,
    employee_id: UUID,
    year: Year,
    month: Month,
) -> StatementResponse:
    """Recompute, store and lock the statement."""
    record = await statements.confirm(employee_id, month, year)
    await db.commit()
    return StatementResponse.from_record(record)


@router.post(
    STATEMENT_PATH + "/pay",
    response_model=PaidStatementResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_paid(
    db: DbSession,
    statements: Statements,
    employee_id: UUID,
    year: Year,
    month: Month,
    request: PaymentRequest | None = None,
) -> PaidStatementResponse:
    """Pay out a confirmed statement and register the payment."""
    request = request or PaymentRequest()
    record = await statements.mark_paid(
        employee_id,
        month,
        year,
        method=request.method.value,
        payment_date=request.payment_date,
        notes=request.notes,
    )
    payment = await statements.active_payment(employee_id, month, year)
    await db.commit()
    return PaidStatementResponse.from_payment(record, payment)


@router.post("/payroll-runs/{year}/{month}", response_model=MonthRunResponse)
async def run_month(
    db: DbSession,
    statements: Statements,
    year: Year,
    month: Month,
    save_drafts: bool = False,
) -> MonthRunResponse:
    """Compute every active admin and partner; optionally store drafts."""
    run = await statements.run_month(month, year, save_drafts=save_drafts)
    if save_drafts:
        await db.commit()
    return MonthRunResponse.from_run(run)


@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(
    statements: Statements,
    year: Annotated[int | None, Query(ge=1, le=9999)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
    employee_id: UUID | None = None,
    status: Annotated[str | None, Query(pattern="^(paid|cancelled)$")] = None,
) -> PaymentListResponse:
    """Salary payment register, newest first."""
    payments = await statements.list_payments(
        year=year, month=month, owner_id=employee_id, status=status
    )
    return PaymentListResponse(payments=[SalaryPaymentResponse.from_record(p) for p in payments])


@router.get(
    "/payments/{payment_id}",
    response_model=SalaryPaymentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payment(statements: Statements, payment_id: UUID) -> SalaryPaymentResponse:
    return SalaryPaymentResponse.from_record(await statements.get_payment(payment_id))


@router.post(
    "/payments/{payment_id}/cancel",
    response_model=SalaryPaymentResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def cancel_payment(
    db: DbSession,
    statements: Statements,
    payment_id: UUID,
    request: CancelPaymentRequest,
) -> SalaryPaymentResponse:
    """Cancel a payment; its statement goes back to confirmed."""
    payment = await statements.cancel_payment(payment_id, request.reason)
    await db.commit()
    return SalaryPaymentResponse.from_record(payment)
