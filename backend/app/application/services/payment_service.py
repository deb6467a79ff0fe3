from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.errors import ClosedPeriodError, NotFoundError, PersistenceFailureError, ValidationError
from app.application.services.notification_service import emit_ledger_events
from app.domain.ledger_events import LedgerEvent
from app.domain.ledger_status import ParentFeeStatus, TeacherSalaryStatus
from app.domain.rollover_rules import ZERO, to_money
from app.infrastructure.db.models import ParentMonthFee, Payment, TeacherSalaryPayment, TeacherSalaryRecord
from app.infrastructure.logging import get_logger
from app.interfaces.api.v1.schemas.payment import ParentPaymentCreate, TeacherSalaryPaymentCreate

logger = get_logger(__name__)


def serialize_parent_payment_response(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "school_id": payment.school_id,
        "parent_id": payment.parent_id,
        "billing_period_id": payment.billing_period_id,
        "parent_month_fee_id": payment.parent_month_fee_id,
        "amount": payment.amount,
        "paid_at": payment.paid_at,
        "method": payment.method,
        "notes": payment.notes,
        "fee_status": payment.parent_month_fee.status,
        "outstanding_after_payment": payment.parent_month_fee.outstanding_after_payment,
        "created_at": payment.created_at,
    }


def serialize_teacher_salary_payment_response(payment: TeacherSalaryPayment) -> dict:
    return {
        "id": payment.id,
        "school_id": payment.school_id,
        "teacher_id": payment.teacher_id,
        "billing_period_id": payment.billing_period_id,
        "teacher_salary_record_id": payment.teacher_salary_record_id,
        "amount": payment.amount,
        "paid_at": payment.paid_at,
        "method": payment.method,
        "notes": payment.notes,
        "salary_status": payment.salary_record.status,
        "outstanding_after_payment": payment.salary_record.outstanding_after_payment,
        "created_at": payment.created_at,
    }


def get_parent_fee_in_school(db: Session, *, parent_month_fee_id: int, school_id: int) -> ParentMonthFee:
    fee = db.execute(
        select(ParentMonthFee)
        .where(ParentMonthFee.id == parent_month_fee_id, ParentMonthFee.school_id == school_id)
        .with_for_update()
    ).scalar_one_or_none()
    if fee is None:
        raise NotFoundError("Fee record not found")
    return fee


def get_salary_record_in_school(db: Session, *, teacher_salary_record_id: int, school_id: int) -> TeacherSalaryRecord:
    record = db.execute(
        select(TeacherSalaryRecord)
        .where(TeacherSalaryRecord.id == teacher_salary_record_id, TeacherSalaryRecord.school_id == school_id)
        .with_for_update()
    ).scalar_one_or_none()
    if record is None:
        raise NotFoundError("Salary record not found")
    return record


def _ensure_open_period(row) -> None:
    if not row.billing_period.is_active:
        raise ClosedPeriodError("Billing period is closed; its balance was carried into the next period")


def _apply_payment(row, *, amount: Decimal, paid_status, partial_status) -> None:
    """Update the payment-derived fields of a fee or salary row; origin fields stay untouched."""
    amount = to_money(amount)
    if amount <= ZERO:
        raise ValidationError("Payment amount must be positive")
    if amount > row.outstanding_after_payment:
        raise ValidationError("Payment exceeds outstanding amount")
    row.amount_paid_this_month = to_money(row.amount_paid_this_month + amount)
    row.outstanding_after_payment = to_money(row.total_due_this_month - row.amount_paid_this_month)
    if row.outstanding_after_payment < ZERO:
        row.outstanding_after_payment = ZERO
    row.status = paid_status if row.outstanding_after_payment == ZERO else partial_status


def record_parent_payment(db: Session, *, school_id: int, payload: ParentPaymentCreate) -> Payment:
    logger.info(
        "parent_payment_started",
        school_id=school_id,
        parent_month_fee_id=payload.parent_month_fee_id,
        amount=str(payload.amount),
    )
    try:
        fee = get_parent_fee_in_school(db, parent_month_fee_id=payload.parent_month_fee_id, school_id=school_id)
        try:
            _ensure_open_period(fee)
            _apply_payment(
                fee,
                amount=payload.amount,
                paid_status=ParentFeeStatus.paid,
                partial_status=ParentFeeStatus.partial,
            )
        except (ClosedPeriodError, ValidationError):
            logger.warning(
                "parent_payment_rejected",
                school_id=school_id,
                parent_month_fee_id=fee.id,
                amount=str(payload.amount),
                outstanding=str(fee.outstanding_after_payment),
            )
            raise
        payment = Payment(
            school_id=school_id,
            parent_id=fee.parent_id,
            billing_period_id=fee.billing_period_id,
            parent_month_fee_id=fee.id,
            amount=to_money(payload.amount),
            paid_at=payload.paid_at,
            method=payload.method,
            notes=payload.notes,
        )
        db.add(payment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("parent_payment_failed", school_id=school_id, error=str(exc), exc_info=True)
        raise PersistenceFailureError("Failed to record payment") from exc
    except (ClosedPeriodError, NotFoundError, ValidationError):
        db.rollback()
        raise

    db.refresh(payment)
    emit_ledger_events(
        school_id=school_id,
        events=[
            (LedgerEvent.period_updated, {"billing_period_id": payment.billing_period_id}),
            (LedgerEvent.reports_stale, {"billing_period_id": payment.billing_period_id}),
        ],
    )
    logger.info(
        "parent_payment_completed",
        school_id=school_id,
        payment_id=payment.id,
        parent_month_fee_id=payment.parent_month_fee_id,
        fee_status=payment.parent_month_fee.status,
    )
    return payment


def record_teacher_salary_payment(
    db: Session, *, school_id: int, payload: TeacherSalaryPaymentCreate
) -> TeacherSalaryPayment:
    logger.info(
        "teacher_salary_payment_started",
        school_id=school_id,
        teacher_salary_record_id=payload.teacher_salary_record_id,
        amount=str(payload.amount),
    )
    try:
        record = get_salary_record_in_school(
            db, teacher_salary_record_id=payload.teacher_salary_record_id, school_id=school_id
        )
        try:
            _ensure_open_period(record)
            _apply_payment(
                record,
                amount=payload.amount,
                paid_status=TeacherSalaryStatus.paid,
                partial_status=TeacherSalaryStatus.partial,
            )
        except (ClosedPeriodError, ValidationError):
            logger.warning(
                "teacher_salary_payment_rejected",
                school_id=school_id,
                teacher_salary_record_id=record.id,
                amount=str(payload.amount),
                outstanding=str(record.outstanding_after_payment),
            )
            raise
        payment = TeacherSalaryPayment(
            school_id=school_id,
            teacher_id=record.teacher_id,
            billing_period_id=record.billing_period_id,
            teacher_salary_record_id=record.id,
            amount=to_money(payload.amount),
            paid_at=payload.paid_at,
            method=payload.method,
            notes=payload.notes,
        )
        db.add(payment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("teacher_salary_payment_failed", school_id=school_id, error=str(exc), exc_info=True)
        raise PersistenceFailureError("Failed to record salary payment") from exc
    except (ClosedPeriodError, NotFoundError, ValidationError):
        db.rollback()
        raise

    db.refresh(payment)
    emit_ledger_events(
        school_id=school_id,
        events=[
            (LedgerEvent.period_updated, {"billing_period_id": payment.billing_period_id}),
            (LedgerEvent.reports_stale, {"billing_period_id": payment.billing_period_id}),
        ],
    )
    logger.info(
        "teacher_salary_payment_completed",
        school_id=school_id,
        payment_id=payment.id,
        teacher_salary_record_id=payment.teacher_salary_record_id,
        salary_status=payment.salary_record.status,
    )
    return payment


def list_parent_payments_query(*, school_id: int, parent_id: int):
    return (
        select(Payment)
        .where(Payment.school_id == school_id, Payment.parent_id == parent_id)
        .order_by(Payment.paid_at.desc(), Payment.id.desc())
    )
