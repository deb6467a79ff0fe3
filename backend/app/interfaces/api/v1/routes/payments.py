from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.application.services.ledger_lock_service import ledger_row_lock
from app.application.services.payment_service import (
    record_parent_payment,
    record_teacher_salary_payment,
    serialize_parent_payment_response,
    serialize_teacher_salary_payment_response,
)
from app.domain.roles import PAYMENT_RECORDING_ROLES
from app.infrastructure.db.session import get_db
from app.interfaces.api.v1.dependencies.auth import get_current_school_id, require_school_roles
from app.interfaces.api.v1.schemas.payment import (
    ParentPaymentCreate,
    ParentPaymentResponse,
    TeacherSalaryPaymentCreate,
    TeacherSalaryPaymentResponse,
)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/fees",
    response_model=ParentPaymentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_school_roles(PAYMENT_RECORDING_ROLES))],
    summary="Record parent fee payment",
    description=(
        "Record a payment against one parent fee row of the active school (`X-School-Id`). "
        "The row's paid amount, outstanding balance and status are updated. "
        "A short Redis lock per fee row prevents duplicate submits."
    ),
    responses={
        400: {"description": "Amount is not positive or exceeds the outstanding balance"},
        401: {"description": "Unauthorized"},
        403: {"description": "Insufficient school permissions"},
        404: {"description": "Fee record not found"},
        409: {"description": "Row is locked by another payment or its period is closed"},
    },
)
def create_parent_payment(
    payload: ParentPaymentCreate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    with ledger_row_lock(school_id=school_id, table="parent_month_fees", row_id=payload.parent_month_fee_id):
        payment = record_parent_payment(db, school_id=school_id, payload=payload)
    return serialize_parent_payment_response(payment)


@router.post(
    "/salaries",
    response_model=TeacherSalaryPaymentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_school_roles(PAYMENT_RECORDING_ROLES))],
    summary="Record teacher salary payment",
    description="Record a salary payment against one teacher salary row of the active school.",
    responses={
        400: {"description": "Amount is not positive or exceeds the outstanding balance"},
        401: {"description": "Unauthorized"},
        403: {"description": "Insufficient school permissions"},
        404: {"description": "Salary record not found"},
        409: {"description": "Row is locked by another payment or its period is closed"},
    },
)
def create_teacher_salary_payment(
    payload: TeacherSalaryPaymentCreate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    with ledger_row_lock(
        school_id=school_id, table="teacher_salary_records", row_id=payload.teacher_salary_record_id
    ):
        payment = record_teacher_salary_payment(db, school_id=school_id, payload=payload)
    return serialize_teacher_salary_payment_response(payment)
