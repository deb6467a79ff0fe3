from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from app.application.errors import NotFoundError
from app.domain.rollover_rules import period_label, to_money
from app.infrastructure.db.models import BillingPeriod, Teacher, TeacherSalaryRecord
from app.infrastructure.logging import get_logger
from app.interfaces.api.v1.schemas.teacher import TeacherCreate, TeacherUpdate

logger = get_logger(__name__)

TEACHER_SEARCH_COLUMNS = [Teacher.teacher_name, Teacher.department, Teacher.phone_number]


def serialize_teacher_response(teacher: Teacher) -> dict:
    return {
        "id": teacher.id,
        "school_id": teacher.school_id,
        "teacher_name": teacher.teacher_name,
        "department": teacher.department,
        "monthly_salary": teacher.monthly_salary,
        "phone_number": teacher.phone_number,
        "date_of_joining": teacher.date_of_joining,
        "is_active": teacher.is_active,
        "created_at": teacher.created_at,
        "updated_at": teacher.updated_at,
    }


def list_teachers_query(*, school_id: int, include_inactive: bool = True) -> Select:
    query = select(Teacher).where(Teacher.school_id == school_id)
    if not include_inactive:
        query = query.where(Teacher.is_active.is_(True))
    return query.order_by(Teacher.teacher_name, Teacher.id)


def get_teacher(db: Session, *, school_id: int, teacher_id: int) -> Teacher:
    teacher = db.execute(
        select(Teacher).where(Teacher.id == teacher_id, Teacher.school_id == school_id)
    ).scalar_one_or_none()
    if teacher is None:
        raise NotFoundError("Teacher not found")
    return teacher


def create_teacher(db: Session, *, school_id: int, payload: TeacherCreate) -> Teacher:
    teacher = Teacher(
        school_id=school_id,
        teacher_name=payload.teacher_name,
        department=payload.department,
        monthly_salary=to_money(payload.monthly_salary),
        phone_number=payload.phone_number,
        date_of_joining=payload.date_of_joining,
        is_active=payload.is_active,
    )
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    logger.info("teacher_created", school_id=school_id, teacher_id=teacher.id)
    return teacher


def update_teacher(db: Session, teacher: Teacher, payload: TeacherUpdate) -> Teacher:
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field in {"teacher_name", "monthly_salary", "is_active"} and value is None:
            continue
        if field == "monthly_salary":
            value = to_money(value)
        setattr(teacher, field, value)
    db.commit()
    db.refresh(teacher)
    logger.info("teacher_updated", school_id=teacher.school_id, teacher_id=teacher.id, fields=sorted(changes))
    return teacher


def get_teacher_salary_history(db: Session, *, school_id: int, teacher_id: int) -> dict:
    """Salary records of one teacher, newest period first."""
    teacher = get_teacher(db, school_id=school_id, teacher_id=teacher_id)
    rows = db.execute(
        select(TeacherSalaryRecord, BillingPeriod)
        .join(BillingPeriod, BillingPeriod.id == TeacherSalaryRecord.billing_period_id)
        .where(TeacherSalaryRecord.school_id == school_id, TeacherSalaryRecord.teacher_id == teacher.id)
        .order_by(BillingPeriod.year.desc(), BillingPeriod.month.desc())
    ).all()
    return {
        "teacher_id": teacher.id,
        "items": [
            {
                "id": record.id,
                "billing_period_id": billing_period.id,
                "period": period_label(billing_period.year, billing_period.month),
                "monthly_salary": record.monthly_salary,
                "carried_forward_amount": record.carried_forward_amount,
                "advance_balance_used": record.advance_balance_used,
                "total_due_this_month": record.total_due_this_month,
                "amount_paid_this_month": record.amount_paid_this_month,
                "outstanding_after_payment": record.outstanding_after_payment,
                "status": record.status,
                "advance_months_remaining": record.advance_months_remaining,
            }
            for record, billing_period in rows
        ],
    }
