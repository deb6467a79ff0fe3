from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.errors import NotFoundError, PersistenceFailureError
from app.application.services.billing_period_service import get_active_billing_period
from app.application.services.notification_service import emit_ledger_events
from app.domain.ledger_events import LedgerEvent
from app.domain.rollover_rules import to_money
from app.infrastructure.db.models import (
    AdvancePayment,
    Parent,
    ParentMonthFee,
    Teacher,
    TeacherAdvancePayment,
    TeacherSalaryRecord,
)
from app.infrastructure.logging import get_logger
from app.interfaces.api.v1.schemas.payment import AdvancePaymentCreate

logger = get_logger(__name__)


def serialize_parent_advance_response(advance: AdvancePayment, armed_billing_period_id: int | None = None) -> dict:
    return {
        "id": advance.id,
        "school_id": advance.school_id,
        "subject_id": advance.parent_id,
        "amount_per_month": advance.amount_per_month,
        "months_paid": advance.months_paid,
        "months_remaining": advance.months_remaining,
        "armed_billing_period_id": armed_billing_period_id,
        "created_at": advance.created_at,
    }


def serialize_teacher_advance_response(
    advance: TeacherAdvancePayment, armed_billing_period_id: int | None = None
) -> dict:
    return {
        "id": advance.id,
        "school_id": advance.school_id,
        "subject_id": advance.teacher_id,
        "amount_per_month": advance.amount_per_month,
        "months_paid": advance.months_paid,
        "months_remaining": advance.months_remaining,
        "armed_billing_period_id": armed_billing_period_id,
        "created_at": advance.created_at,
    }


def _arm_active_row(
    db: Session, *, row_model: type, subject_column, subject_id: int, billing_period_id: int, months: int
):
    """Raise the advance counter on the subject's active-period row so the next rollover sees it."""
    row = db.execute(
        select(row_model)
        .where(subject_column == subject_id, row_model.billing_period_id == billing_period_id)
        .with_for_update()
    ).scalar_one_or_none()
    if row is None:
        return None
    row.advance_months_remaining = (row.advance_months_remaining or 0) + months
    return row


def create_parent_advance_payment(
    db: Session, *, school_id: int, parent_id: int, payload: AdvancePaymentCreate
) -> dict:
    parent = db.execute(
        select(Parent).where(Parent.id == parent_id, Parent.school_id == school_id)
    ).scalar_one_or_none()
    if parent is None:
        raise NotFoundError("Parent not found")

    try:
        advance = AdvancePayment(
            school_id=school_id,
            parent_id=parent.id,
            amount_per_month=to_money(payload.amount_per_month),
            months_paid=payload.months,
            months_remaining=payload.months,
        )
        db.add(advance)
        active_period = get_active_billing_period(db, school_id=school_id)
        armed_row = None
        if active_period is not None:
            armed_row = _arm_active_row(
                db,
                row_model=ParentMonthFee,
                subject_column=ParentMonthFee.parent_id,
                subject_id=parent.id,
                billing_period_id=active_period.id,
                months=payload.months,
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "parent_advance_payment_failed", school_id=school_id, parent_id=parent_id, error=str(exc), exc_info=True
        )
        raise PersistenceFailureError("Failed to record advance payment") from exc

    db.refresh(advance)
    armed_billing_period_id = armed_row.billing_period_id if armed_row is not None else None
    if armed_billing_period_id is not None:
        emit_ledger_events(
            school_id=school_id,
            events=[
                (LedgerEvent.period_updated, {"billing_period_id": armed_billing_period_id}),
                (LedgerEvent.reports_stale, {"billing_period_id": armed_billing_period_id}),
            ],
        )
    logger.info(
        "parent_advance_payment_recorded",
        school_id=school_id,
        parent_id=parent.id,
        advance_payment_id=advance.id,
        months=payload.months,
        armed_billing_period_id=armed_billing_period_id,
    )
    return serialize_parent_advance_response(advance, armed_billing_period_id)


def create_teacher_advance_payment(
    db: Session, *, school_id: int, teacher_id: int, payload: AdvancePaymentCreate
) -> dict:
    teacher = db.execute(
        select(Teacher).where(Teacher.id == teacher_id, Teacher.school_id == school_id)
    ).scalar_one_or_none()
    if teacher is None:
        raise NotFoundError("Teacher not found")

    try:
        advance = TeacherAdvancePayment(
            school_id=school_id,
            teacher_id=teacher.id,
            amount_per_month=to_money(payload.amount_per_month),
            months_paid=payload.months,
            months_remaining=payload.months,
        )
        db.add(advance)
        active_period = get_active_billing_period(db, school_id=school_id)
        armed_row = None
        if active_period is not None:
            armed_row = _arm_active_row(
                db,
                row_model=TeacherSalaryRecord,
                subject_column=TeacherSalaryRecord.teacher_id,
                subject_id=teacher.id,
                billing_period_id=active_period.id,
                months=payload.months,
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "teacher_advance_payment_failed", school_id=school_id, teacher_id=teacher_id, error=str(exc), exc_info=True
        )
        raise PersistenceFailureError("Failed to record advance payment") from exc

    db.refresh(advance)
    armed_billing_period_id = armed_row.billing_period_id if armed_row is not None else None
    if armed_billing_period_id is not None:
        emit_ledger_events(
            school_id=school_id,
            events=[
                (LedgerEvent.period_updated, {"billing_period_id": armed_billing_period_id}),
                (LedgerEvent.reports_stale, {"billing_period_id": armed_billing_period_id}),
            ],
        )
    logger.info(
        "teacher_advance_payment_recorded",
        school_id=school_id,
        teacher_id=teacher.id,
        advance_payment_id=advance.id,
        months=payload.months,
        armed_billing_period_id=armed_billing_period_id,
    )
    return serialize_teacher_advance_response(advance, armed_billing_period_id)


def list_parent_advances_query(*, school_id: int, parent_id: int):
    return (
        select(AdvancePayment)
        .where(AdvancePayment.school_id == school_id, AdvancePayment.parent_id == parent_id)
        .order_by(AdvancePayment.created_at.desc(), AdvancePayment.id.desc())
    )
