"""Stages that materialise a billing period's fee and salary rows.

Every function here runs inside the caller's transaction and never commits;
``billing_period_service.create_billing_period`` owns commit and rollback.
"""

from dataclasses import dataclass

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from app.application.errors import ConflictError
from app.config import settings
from app.domain.rollover_rules import (
    AdvanceCandidate,
    PriorLedgerSnapshot,
    compute_parent_fee,
    compute_teacher_salary,
    first_advance_per_subject,
)
from app.infrastructure.db.models import (
    AdvancePayment,
    BillingPeriod,
    Parent,
    ParentMonthFee,
    Teacher,
    TeacherAdvancePayment,
    TeacherSalaryRecord,
)
from app.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RolloverCounts:
    parent_fee_count: int
    teacher_salary_count: int
    consumed_parent_advances: int
    consumed_teacher_advances: int


def find_prior_billing_period(db: Session, *, school_id: int, year: int, month: int) -> BillingPeriod | None:
    return db.execute(
        select(BillingPeriod)
        .where(
            BillingPeriod.school_id == school_id,
            or_(
                BillingPeriod.year < year,
                and_(BillingPeriod.year == year, BillingPeriod.month < month),
            ),
        )
        .order_by(BillingPeriod.year.desc(), BillingPeriod.month.desc())
        .limit(1)
    ).scalar_one_or_none()


def load_prior_parent_snapshots(
    db: Session, *, school_id: int, prior_period: BillingPeriod | None
) -> dict[int, PriorLedgerSnapshot]:
    if prior_period is None:
        return {}
    rows = db.execute(
        select(
            ParentMonthFee.parent_id,
            ParentMonthFee.outstanding_after_payment,
            ParentMonthFee.amount_paid_this_month,
            ParentMonthFee.advance_months_remaining,
        ).where(
            ParentMonthFee.school_id == school_id,
            ParentMonthFee.billing_period_id == prior_period.id,
        )
    ).all()
    return {
        row.parent_id: PriorLedgerSnapshot(
            outstanding_after_payment=row.outstanding_after_payment,
            amount_paid_this_month=row.amount_paid_this_month,
            advance_months_remaining=row.advance_months_remaining or 0,
        )
        for row in rows
    }


def load_prior_teacher_snapshots(
    db: Session, *, school_id: int, prior_period: BillingPeriod | None
) -> dict[int, PriorLedgerSnapshot]:
    if prior_period is None:
        return {}
    rows = db.execute(
        select(
            TeacherSalaryRecord.teacher_id,
            TeacherSalaryRecord.outstanding_after_payment,
            TeacherSalaryRecord.amount_paid_this_month,
            TeacherSalaryRecord.advance_months_remaining,
        ).where(
            TeacherSalaryRecord.school_id == school_id,
            TeacherSalaryRecord.billing_period_id == prior_period.id,
        )
    ).all()
    return {
        row.teacher_id: PriorLedgerSnapshot(
            outstanding_after_payment=row.outstanding_after_payment,
            amount_paid_this_month=row.amount_paid_this_month,
            advance_months_remaining=row.advance_months_remaining or 0,
        )
        for row in rows
    }


def load_active_parent_advances(db: Session, *, school_id: int, parent_ids: list[int]) -> dict[int, AdvanceCandidate]:
    if not parent_ids:
        return {}
    advances = db.execute(
        select(AdvancePayment).where(
            AdvancePayment.school_id == school_id,
            AdvancePayment.parent_id.in_(parent_ids),
            AdvancePayment.months_remaining > 0,
        )
    ).scalars()
    return first_advance_per_subject(
        AdvanceCandidate(
            id=advance.id,
            subject_id=advance.parent_id,
            amount_per_month=advance.amount_per_month,
            months_remaining=advance.months_remaining,
            created_at=advance.created_at,
        )
        for advance in advances
    )


def load_active_teacher_advances(
    db: Session, *, school_id: int, teacher_ids: list[int]
) -> dict[int, AdvanceCandidate]:
    if not teacher_ids:
        return {}
    advances = db.execute(
        select(TeacherAdvancePayment).where(
            TeacherAdvancePayment.school_id == school_id,
            TeacherAdvancePayment.teacher_id.in_(teacher_ids),
            TeacherAdvancePayment.months_remaining > 0,
        )
    ).scalars()
    return first_advance_per_subject(
        AdvanceCandidate(
            id=advance.id,
            subject_id=advance.teacher_id,
            amount_per_month=advance.amount_per_month,
            months_remaining=advance.months_remaining,
            created_at=advance.created_at,
        )
        for advance in advances
    )


def build_parent_fee_rows(
    db: Session,
    *,
    school_id: int,
    billing_period: BillingPeriod,
    prior_period: BillingPeriod | None,
) -> tuple[list[ParentMonthFee], list[int]]:
    parents = list(
        db.execute(select(Parent).where(Parent.school_id == school_id).order_by(Parent.id)).scalars().all()
    )
    prior_snapshots = load_prior_parent_snapshots(db, school_id=school_id, prior_period=prior_period)
    advances = load_active_parent_advances(db, school_id=school_id, parent_ids=[parent.id for parent in parents])

    rows: list[ParentMonthFee] = []
    consumed_advance_ids: list[int] = []
    for parent in parents:
        computed = compute_parent_fee(
            monthly_fee_amount=parent.monthly_fee_amount,
            prior=prior_snapshots.get(parent.id),
            advance=advances.get(parent.id),
            drop_carry_forward_on_advance=settings.advance_drops_carry_forward,
        )
        if computed.consumed_advance_id is not None:
            consumed_advance_ids.append(computed.consumed_advance_id)
        rows.append(
            ParentMonthFee(
                school_id=school_id,
                parent_id=parent.id,
                billing_period_id=billing_period.id,
                monthly_fee=computed.monthly_fee,
                carried_forward_amount=computed.carried_forward_amount,
                total_due_this_month=computed.total_due_this_month,
                amount_paid_this_month=computed.amount_paid_this_month,
                outstanding_after_payment=computed.outstanding_after_payment,
                status=computed.status,
                advance_months_remaining=computed.advance_months_remaining,
            )
        )
    return rows, consumed_advance_ids


def build_teacher_salary_rows(
    db: Session,
    *,
    school_id: int,
    billing_period: BillingPeriod,
    prior_period: BillingPeriod | None,
) -> tuple[list[TeacherSalaryRecord], list[int]]:
    teachers = list(
        db.execute(
            select(Teacher).where(Teacher.school_id == school_id, Teacher.is_active.is_(True)).order_by(Teacher.id)
        )
        .scalars()
        .all()
    )
    prior_snapshots = load_prior_teacher_snapshots(db, school_id=school_id, prior_period=prior_period)
    advances = load_active_teacher_advances(
        db, school_id=school_id, teacher_ids=[teacher.id for teacher in teachers]
    )

    rows: list[TeacherSalaryRecord] = []
    consumed_advance_ids: list[int] = []
    for teacher in teachers:
        computed = compute_teacher_salary(
            monthly_salary=teacher.monthly_salary,
            prior=prior_snapshots.get(teacher.id),
            advance=advances.get(teacher.id),
        )
        if computed.consumed_advance_id is not None:
            consumed_advance_ids.append(computed.consumed_advance_id)
        rows.append(
            TeacherSalaryRecord(
                school_id=school_id,
                teacher_id=teacher.id,
                billing_period_id=billing_period.id,
                monthly_salary=computed.monthly_salary,
                carried_forward_amount=computed.carried_forward_amount,
                advance_balance_used=computed.advance_balance_used,
                total_due_this_month=computed.total_due_this_month,
                amount_paid_this_month=computed.amount_paid_this_month,
                outstanding_after_payment=computed.outstanding_after_payment,
                status=computed.status,
                advance_months_remaining=computed.advance_months_remaining,
            )
        )
    return rows, consumed_advance_ids


def consume_advances(db: Session, *, model: type, school_id: int, advance_ids: list[int]) -> int:
    """Take one month off each consumed pool; a pool already at zero aborts the rollover."""
    if not advance_ids:
        return 0
    result = db.execute(
        update(model)
        .where(model.school_id == school_id, model.id.in_(advance_ids), model.months_remaining > 0)
        .values(months_remaining=model.months_remaining - 1)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != len(advance_ids):
        raise ConflictError("Advance payment balances changed during billing period setup")
    return len(advance_ids)


def materialize_period_ledger(
    db: Session,
    *,
    school_id: int,
    billing_period: BillingPeriod,
    prior_period: BillingPeriod | None,
) -> RolloverCounts:
    fee_rows, parent_advance_ids = build_parent_fee_rows(
        db, school_id=school_id, billing_period=billing_period, prior_period=prior_period
    )
    db.add_all(fee_rows)
    db.flush()

    salary_rows, teacher_advance_ids = build_teacher_salary_rows(
        db, school_id=school_id, billing_period=billing_period, prior_period=prior_period
    )
    db.add_all(salary_rows)
    db.flush()

    consumed_parent = consume_advances(db, model=AdvancePayment, school_id=school_id, advance_ids=parent_advance_ids)
    consumed_teacher = consume_advances(
        db, model=TeacherAdvancePayment, school_id=school_id, advance_ids=teacher_advance_ids
    )
    logger.info(
        "billing_period_ledger_materialized",
        billing_period_id=billing_period.id,
        prior_period_id=prior_period.id if prior_period is not None else None,
        parent_fee_count=len(fee_rows),
        teacher_salary_count=len(salary_rows),
        consumed_parent_advances=consumed_parent,
        consumed_teacher_advances=consumed_teacher,
    )
    return RolloverCounts(
        parent_fee_count=len(fee_rows),
        teacher_salary_count=len(salary_rows),
        consumed_parent_advances=consumed_parent,
        consumed_teacher_advances=consumed_teacher,
    )
