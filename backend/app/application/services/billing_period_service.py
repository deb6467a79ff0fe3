from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import Select

from app.application.errors import (
    ActivePeriodProtectedError,
    ApplicationError,
    DuplicatePeriodError,
    MissingFieldsError,
    NotFoundError,
    PersistenceFailureError,
    ValidationError,
)
from app.application.services.ledger_lock_service import billing_period_lock
from app.application.services.notification_service import emit_ledger_events
from app.application.services.rollover_service import find_prior_billing_period, materialize_period_ledger
from app.domain.billing_period_status import BillingPeriodStatus
from app.domain.ledger_events import LedgerEvent
from app.domain.ledger_status import ParentFeeStatus, TeacherSalaryStatus
from app.domain.rollover_rules import is_valid_period, period_label
from app.infrastructure.db.models import (
    BillingPeriod,
    Parent,
    ParentMonthFee,
    Payment,
    School,
    Teacher,
    TeacherSalaryPayment,
    TeacherSalaryRecord,
)
from app.infrastructure.logging import bound_log_context, get_logger

logger = get_logger(__name__)

PERIOD_UNIQUE_CONSTRAINTS = frozenset(
    {"uq_billing_period_school_year_month", "uq_billing_periods_one_active_per_school"}
)


def serialize_billing_period_response(billing_period: BillingPeriod) -> dict:
    return {
        "id": billing_period.id,
        "school_id": billing_period.school_id,
        "year": billing_period.year,
        "month": billing_period.month,
        "label": period_label(billing_period.year, billing_period.month),
        "status": billing_period.status,
        "is_active": billing_period.is_active,
        "created_at": billing_period.created_at,
        "updated_at": billing_period.updated_at,
    }


def serialize_parent_fee_response(fee: ParentMonthFee) -> dict:
    return {
        "id": fee.id,
        "parent_id": fee.parent_id,
        "billing_period_id": fee.billing_period_id,
        "parent_name": fee.parent.parent_name,
        "student_name": fee.parent.student_name,
        "phone_number": fee.parent.phone_number,
        "class_section": fee.parent.class_section,
        "monthly_fee": fee.monthly_fee,
        "carried_forward_amount": fee.carried_forward_amount,
        "total_due_this_month": fee.total_due_this_month,
        "amount_paid_this_month": fee.amount_paid_this_month,
        "outstanding_after_payment": fee.outstanding_after_payment,
        "status": fee.status,
        "advance_months_remaining": fee.advance_months_remaining,
    }


def serialize_teacher_salary_response(record: TeacherSalaryRecord) -> dict:
    return {
        "id": record.id,
        "teacher_id": record.teacher_id,
        "billing_period_id": record.billing_period_id,
        "teacher_name": record.teacher.teacher_name,
        "department": record.teacher.department,
        "monthly_salary": record.monthly_salary,
        "carried_forward_amount": record.carried_forward_amount,
        "advance_balance_used": record.advance_balance_used,
        "total_due_this_month": record.total_due_this_month,
        "amount_paid_this_month": record.amount_paid_this_month,
        "outstanding_after_payment": record.outstanding_after_payment,
        "status": record.status,
        "advance_months_remaining": record.advance_months_remaining,
    }


def _validate_period_input(year: int | None, month: int | None) -> None:
    if year is None or month is None:
        raise MissingFieldsError("Year and month are required")
    if not is_valid_period(year, month):
        raise ValidationError("Year must be between 2000 and 2100 and month between 1 and 12")


def violates_period_uniqueness(exc: IntegrityError) -> bool:
    """True when the violated constraint is one of the billing period uniqueness rules."""
    diag = getattr(exc.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        return constraint_name in PERIOD_UNIQUE_CONSTRAINTS
    # sqlite names the table and columns instead of the constraint
    return str(exc.orig).startswith("UNIQUE constraint failed: billing_periods.")


def _lock_school(db: Session, *, school_id: int) -> School:
    school = db.execute(
        select(School).where(School.id == school_id, School.deleted_at.is_(None)).with_for_update()
    ).scalar_one_or_none()
    if school is None:
        raise NotFoundError("School not found")
    return school


def _find_period_id(db: Session, *, school_id: int, year: int, month: int) -> int | None:
    return db.execute(
        select(BillingPeriod.id).where(
            BillingPeriod.school_id == school_id,
            BillingPeriod.year == year,
            BillingPeriod.month == month,
        )
    ).scalar_one_or_none()


def _deactivate_active_periods(db: Session, *, school_id: int) -> int:
    active_ids = list(
        db.execute(
            select(BillingPeriod.id).where(
                BillingPeriod.school_id == school_id,
                BillingPeriod.status == BillingPeriodStatus.active,
            )
        )
        .scalars()
        .all()
    )
    if active_ids:
        db.execute(
            update(BillingPeriod)
            .where(BillingPeriod.id.in_(active_ids))
            .values(status=BillingPeriodStatus.inactive)
            .execution_options(synchronize_session="fetch")
        )
    return len(active_ids)


def create_billing_period(db: Session, *, school_id: int, year: int | None, month: int | None) -> dict:
    """Close the school's current period and open ``year``/``month`` in one transaction.

    Returns the new period with the number of deactivated periods and generated
    ledger rows. Notifications go out only after the commit succeeded.
    """
    _validate_period_input(year, month)
    with bound_log_context(school_id=school_id), billing_period_lock(school_id=school_id):
        logger.info("billing_period_setup_started", year=year, month=month)
        try:
            _lock_school(db, school_id=school_id)
            if _find_period_id(db, school_id=school_id, year=year, month=month) is not None:
                raise DuplicatePeriodError("This billing period already exists")

            deactivated_count = _deactivate_active_periods(db, school_id=school_id)
            billing_period = BillingPeriod(
                school_id=school_id,
                year=year,
                month=month,
                status=BillingPeriodStatus.active,
            )
            db.add(billing_period)
            db.flush()

            prior_period = find_prior_billing_period(db, school_id=school_id, year=year, month=month)
            counts = materialize_period_ledger(
                db, school_id=school_id, billing_period=billing_period, prior_period=prior_period
            )
            db.commit()
        except DuplicatePeriodError:
            db.rollback()
            logger.warning("billing_period_setup_rejected_duplicate", year=year, month=month)
            raise
        except IntegrityError as exc:
            db.rollback()
            if not violates_period_uniqueness(exc):
                logger.error("billing_period_setup_failed", year=year, month=month, error=str(exc), exc_info=True)
                raise PersistenceFailureError("Failed to set up billing period") from exc
            logger.warning("billing_period_setup_rejected_duplicate", year=year, month=month, error=str(exc.orig))
            raise DuplicatePeriodError("This billing period already exists") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("billing_period_setup_failed", year=year, month=month, error=str(exc), exc_info=True)
            raise PersistenceFailureError("Failed to set up billing period") from exc
        except ApplicationError:
            db.rollback()
            raise

        db.refresh(billing_period)
        emit_ledger_events(
            school_id=school_id,
            events=[
                (LedgerEvent.period_created, {"billing_period": serialize_billing_period_response(billing_period)}),
                (LedgerEvent.period_updated, {"billing_period_id": billing_period.id}),
                (LedgerEvent.reports_stale, {"billing_period_id": billing_period.id}),
            ],
        )
        logger.info(
            "billing_period_setup_completed",
            billing_period_id=billing_period.id,
            year=year,
            month=month,
            deactivated_count=deactivated_count,
            parent_fee_count=counts.parent_fee_count,
            teacher_salary_count=counts.teacher_salary_count,
        )
    return {
        "billing_period": billing_period,
        "deactivated_count": deactivated_count,
        "parent_fee_count": counts.parent_fee_count,
        "teacher_salary_count": counts.teacher_salary_count,
    }


def _count_rows(db: Session, model: type, *, school_id: int, billing_period_id: int) -> int:
    return db.execute(
        select(func.count())
        .select_from(model)
        .where(model.school_id == school_id, model.billing_period_id == billing_period_id)
    ).scalar_one()


def delete_billing_period(db: Session, *, school_id: int, billing_period_id: int) -> dict:
    with bound_log_context(school_id=school_id), billing_period_lock(school_id=school_id):
        try:
            _lock_school(db, school_id=school_id)
            billing_period = get_billing_period(db, school_id=school_id, billing_period_id=billing_period_id)
            if billing_period.is_active:
                raise ActivePeriodProtectedError(
                    "Cannot delete the active billing period. Set up a newer period first."
                )
            summary = {
                "billing_period_id": billing_period.id,
                "deleted_payments": _count_rows(
                    db, Payment, school_id=school_id, billing_period_id=billing_period.id
                ),
                "deleted_salary_payments": _count_rows(
                    db, TeacherSalaryPayment, school_id=school_id, billing_period_id=billing_period.id
                ),
                "deleted_parent_fees": _count_rows(
                    db, ParentMonthFee, school_id=school_id, billing_period_id=billing_period.id
                ),
                "deleted_teacher_salaries": _count_rows(
                    db, TeacherSalaryRecord, school_id=school_id, billing_period_id=billing_period.id
                ),
            }
            db.delete(billing_period)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "billing_period_delete_failed", billing_period_id=billing_period_id, error=str(exc), exc_info=True
            )
            raise PersistenceFailureError("Failed to delete billing period") from exc
        except ApplicationError:
            db.rollback()
            raise

        emit_ledger_events(
            school_id=school_id,
            events=[
                (LedgerEvent.period_deleted, {"billing_period_id": billing_period_id}),
                (LedgerEvent.reports_stale, {"billing_period_id": billing_period_id}),
            ],
        )
        logger.info("billing_period_deleted", **summary)
    return summary


def get_billing_period(db: Session, *, school_id: int, billing_period_id: int) -> BillingPeriod:
    billing_period = db.execute(
        select(BillingPeriod).where(BillingPeriod.id == billing_period_id, BillingPeriod.school_id == school_id)
    ).scalar_one_or_none()
    if billing_period is None:
        raise NotFoundError("Billing period not found")
    return billing_period


def get_active_billing_period(db: Session, *, school_id: int) -> BillingPeriod | None:
    return db.execute(
        select(BillingPeriod)
        .where(BillingPeriod.school_id == school_id, BillingPeriod.status == BillingPeriodStatus.active)
        .order_by(BillingPeriod.year.desc(), BillingPeriod.month.desc())
        .limit(1)
    ).scalar_one_or_none()


def list_billing_periods_query(*, school_id: int) -> Select:
    return (
        select(BillingPeriod)
        .where(BillingPeriod.school_id == school_id)
        .order_by(BillingPeriod.year.desc(), BillingPeriod.month.desc())
    )


def _parse_status_filter(status_enum: type, status: str | None):
    if status is None or status == "all":
        return None
    try:
        return status_enum(status)
    except ValueError as exc:
        raise ValidationError(f"Unknown status filter: {status}") from exc


def list_parent_fees_query(*, school_id: int, billing_period_id: int, status: str | None = None) -> Select:
    query = (
        select(ParentMonthFee)
        .join(Parent, Parent.id == ParentMonthFee.parent_id)
        .where(
            ParentMonthFee.school_id == school_id,
            ParentMonthFee.billing_period_id == billing_period_id,
            Parent.school_id == school_id,
        )
        .options(selectinload(ParentMonthFee.parent))
        .order_by(Parent.parent_name, Parent.id)
    )
    fee_status = _parse_status_filter(ParentFeeStatus, status)
    if fee_status is not None:
        query = query.where(ParentMonthFee.status == fee_status)
    return query


def list_teacher_salaries_query(*, school_id: int, billing_period_id: int, status: str | None = None) -> Select:
    query = (
        select(TeacherSalaryRecord)
        .join(Teacher, Teacher.id == TeacherSalaryRecord.teacher_id)
        .where(
            TeacherSalaryRecord.school_id == school_id,
            TeacherSalaryRecord.billing_period_id == billing_period_id,
            Teacher.school_id == school_id,
        )
        .options(selectinload(TeacherSalaryRecord.teacher))
        .order_by(Teacher.teacher_name, Teacher.id)
    )
    salary_status = _parse_status_filter(TeacherSalaryStatus, status)
    if salary_status is not None:
        query = query.where(TeacherSalaryRecord.status == salary_status)
    return query
