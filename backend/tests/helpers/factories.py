from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.application.services.security_service import hash_password
from app.domain.billing_period_status import BillingPeriodStatus
from app.domain.ledger_status import ParentFeeStatus, TeacherSalaryStatus
from app.domain.roles import UserRole
from app.infrastructure.db.models import (
    AdvancePayment,
    BillingPeriod,
    Parent,
    ParentMonthFee,
    School,
    Teacher,
    TeacherAdvancePayment,
    TeacherSalaryRecord,
    User,
    UserProfile,
    UserSchoolRole,
)


def create_user(db: Session, email: str, password: str = "pass123", is_active: bool = True) -> User:
    user = User(email=email, hashed_password=hash_password(password), is_active=is_active)
    user.profile = UserProfile(first_name="Test", last_name="User")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_school(db: Session, name: str, slug: str, is_active: bool = True) -> School:
    school = School(name=name, slug=slug, is_active=is_active)
    db.add(school)
    db.commit()
    db.refresh(school)
    return school


def add_membership(db: Session, user_id: int, school_id: int, role: UserRole) -> UserSchoolRole:
    membership = UserSchoolRole(user_id=user_id, school_id=school_id, role=role.value)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def create_parent(
    db: Session,
    *,
    school_id: int,
    parent_name: str,
    monthly_fee_amount: Decimal,
    student_name: str | None = None,
    phone_number: str | None = None,
    class_section: str | None = None,
) -> Parent:
    parent = Parent(
        school_id=school_id,
        parent_name=parent_name,
        student_name=student_name,
        phone_number=phone_number,
        class_section=class_section,
        monthly_fee_amount=monthly_fee_amount,
    )
    db.add(parent)
    db.commit()
    db.refresh(parent)
    return parent


def create_teacher(
    db: Session,
    *,
    school_id: int,
    teacher_name: str,
    monthly_salary: Decimal,
    department: str | None = None,
    is_active: bool = True,
) -> Teacher:
    teacher = Teacher(
        school_id=school_id,
        teacher_name=teacher_name,
        department=department,
        monthly_salary=monthly_salary,
        is_active=is_active,
    )
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


def create_period_row(
    db: Session,
    *,
    school_id: int,
    year: int,
    month: int,
    status: BillingPeriodStatus = BillingPeriodStatus.inactive,
) -> BillingPeriod:
    """Insert a period directly, without running the rollover."""
    billing_period = BillingPeriod(school_id=school_id, year=year, month=month, status=status)
    db.add(billing_period)
    db.commit()
    db.refresh(billing_period)
    return billing_period


def create_parent_fee(
    db: Session,
    *,
    school_id: int,
    parent_id: int,
    billing_period_id: int,
    monthly_fee: Decimal,
    total_due: Decimal,
    amount_paid: Decimal = Decimal("0.00"),
    outstanding: Decimal | None = None,
    status: ParentFeeStatus = ParentFeeStatus.unpaid,
    advance_months_remaining: int = 0,
    carried_forward: Decimal = Decimal("0.00"),
) -> ParentMonthFee:
    fee = ParentMonthFee(
        school_id=school_id,
        parent_id=parent_id,
        billing_period_id=billing_period_id,
        monthly_fee=monthly_fee,
        carried_forward_amount=carried_forward,
        total_due_this_month=total_due,
        amount_paid_this_month=amount_paid,
        outstanding_after_payment=outstanding if outstanding is not None else total_due - amount_paid,
        status=status,
        advance_months_remaining=advance_months_remaining,
    )
    db.add(fee)
    db.commit()
    db.refresh(fee)
    return fee


def create_salary_record(
    db: Session,
    *,
    school_id: int,
    teacher_id: int,
    billing_period_id: int,
    monthly_salary: Decimal,
    total_due: Decimal,
    amount_paid: Decimal = Decimal("0.00"),
    outstanding: Decimal | None = None,
    status: TeacherSalaryStatus = TeacherSalaryStatus.unpaid,
    advance_months_remaining: int = 0,
) -> TeacherSalaryRecord:
    record = TeacherSalaryRecord(
        school_id=school_id,
        teacher_id=teacher_id,
        billing_period_id=billing_period_id,
        monthly_salary=monthly_salary,
        total_due_this_month=total_due,
        amount_paid_this_month=amount_paid,
        outstanding_after_payment=outstanding if outstanding is not None else total_due - amount_paid,
        status=status,
        advance_months_remaining=advance_months_remaining,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def create_parent_advance(
    db: Session,
    *,
    school_id: int,
    parent_id: int,
    amount_per_month: Decimal,
    months_remaining: int,
    months_paid: int | None = None,
    created_at: datetime | None = None,
) -> AdvancePayment:
    advance = AdvancePayment(
        school_id=school_id,
        parent_id=parent_id,
        amount_per_month=amount_per_month,
        months_paid=months_paid if months_paid is not None else months_remaining,
        months_remaining=months_remaining,
    )
    if created_at is not None:
        advance.created_at = created_at
    db.add(advance)
    db.commit()
    db.refresh(advance)
    return advance


def create_teacher_advance(
    db: Session,
    *,
    school_id: int,
    teacher_id: int,
    amount_per_month: Decimal,
    months_remaining: int,
    months_paid: int | None = None,
) -> TeacherAdvancePayment:
    advance = TeacherAdvancePayment(
        school_id=school_id,
        teacher_id=teacher_id,
        amount_per_month=amount_per_month,
        months_paid=months_paid if months_paid is not None else months_remaining,
        months_remaining=months_remaining,
    )
    db.add(advance)
    db.commit()
    db.refresh(advance)
    return advance


def get_entity_by_id(db: Session, model: type, entity_id: int):
    return db.get(model, entity_id)


def list_from_query(db: Session, query: Select):
    return list(db.execute(query).scalars().all())


def list_periods_for_school(db: Session, *, school_id: int) -> list[BillingPeriod]:
    return list_from_query(
        db,
        select(BillingPeriod)
        .where(BillingPeriod.school_id == school_id)
        .order_by(BillingPeriod.year, BillingPeriod.month),
    )


def list_parent_fees_for_period(db: Session, *, billing_period_id: int) -> list[ParentMonthFee]:
    return list_from_query(
        db,
        select(ParentMonthFee)
        .where(ParentMonthFee.billing_period_id == billing_period_id)
        .order_by(ParentMonthFee.parent_id),
    )


def list_salary_records_for_period(db: Session, *, billing_period_id: int) -> list[TeacherSalaryRecord]:
    return list_from_query(
        db,
        select(TeacherSalaryRecord)
        .where(TeacherSalaryRecord.billing_period_id == billing_period_id)
        .order_by(TeacherSalaryRecord.teacher_id),
    )


def get_parent_fee_for(db: Session, *, parent_id: int, billing_period_id: int) -> ParentMonthFee:
    return db.execute(
        select(ParentMonthFee).where(
            ParentMonthFee.parent_id == parent_id,
            ParentMonthFee.billing_period_id == billing_period_id,
        )
    ).scalar_one()


def get_salary_record_for(db: Session, *, teacher_id: int, billing_period_id: int) -> TeacherSalaryRecord:
    return db.execute(
        select(TeacherSalaryRecord).where(
            TeacherSalaryRecord.teacher_id == teacher_id,
            TeacherSalaryRecord.billing_period_id == billing_period_id,
        )
    ).scalar_one()


def count_rows(db: Session, model: type, **filters) -> int:
    query = select(func.count()).select_from(model)
    for column, value in filters.items():
        query = query.where(getattr(model, column) == value)
    return db.execute(query).scalar_one()
