from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.application.services.billing_period_service import create_billing_period
from app.application.services.payment_service import record_parent_payment
from app.application.services.security_service import hash_password
from app.domain.roles import UserRole
from app.infrastructure.db.models import (
    BillingPeriod,
    Parent,
    ParentMonthFee,
    School,
    Teacher,
    User,
    UserProfile,
    UserSchoolRole,
)
from app.infrastructure.db.session import SessionLocal
from app.infrastructure.logging import configure_logging, get_logger
from app.interfaces.api.v1.schemas.payment import ParentPaymentCreate

logger = get_logger(__name__)

OPENING_PERIODS = [(2026, 9), (2026, 10)]

PARENTS = [
    ("Amina Yusuf", "Zara Yusuf", "0300-1111111", "Grade 3-A", 1, Decimal("3500.00")),
    ("Bilal Khan", "Omar Khan", "0300-2222222", "Grade 5-B", 2, Decimal("6000.00")),
    ("Carla Mendes", "Luis Mendes", "0300-3333333", "Grade 1-A", 1, Decimal("3000.00")),
    ("Daniel Okafor", "Ada Okafor", "0300-4444444", "Grade 7-C", 1, Decimal("4200.00")),
]

TEACHERS = [
    ("Farah Siddiqui", "Mathematics", Decimal("45000.00"), date(2021, 8, 1)),
    ("George Allen", "Science", Decimal("42000.00"), date(2022, 3, 15)),
    ("Hina Malik", "English", Decimal("40000.00"), date(2023, 9, 1)),
]


def create_user_if_missing(db: Session, email: str, password: str, profile: tuple[str, str]) -> User:
    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing is not None:
        return existing

    user = User(email=email, hashed_password=hash_password(password), is_active=True)
    user.profile = UserProfile(first_name=profile[0], last_name=profile[1])
    db.add(user)
    db.flush()
    return user


def create_school_if_missing(db: Session, name: str, slug: str) -> School:
    school = db.execute(select(School).where(School.slug == slug)).scalar_one_or_none()
    if school is not None:
        return school

    school = School(name=name, slug=slug, is_active=True)
    db.add(school)
    db.flush()
    return school


def create_membership_if_missing(db: Session, user_id: int, school_id: int, role: UserRole) -> None:
    existing = db.execute(
        select(UserSchoolRole).where(
            UserSchoolRole.user_id == user_id,
            UserSchoolRole.school_id == school_id,
            UserSchoolRole.role == role.value,
        )
    ).scalar_one_or_none()
    if existing is not None:
        return
    db.add(UserSchoolRole(user_id=user_id, school_id=school_id, role=role.value))


def create_parents_if_missing(db: Session, school_id: int) -> None:
    for parent_name, student_name, phone_number, class_section, children, fee in PARENTS:
        existing = db.execute(
            select(Parent).where(Parent.school_id == school_id, Parent.parent_name == parent_name)
        ).scalar_one_or_none()
        if existing is not None:
            continue
        db.add(
            Parent(
                school_id=school_id,
                parent_name=parent_name,
                student_name=student_name,
                phone_number=phone_number,
                class_section=class_section,
                number_of_children=children,
                monthly_fee_amount=fee,
            )
        )


def create_teachers_if_missing(db: Session, school_id: int) -> None:
    for teacher_name, department, salary, joined in TEACHERS:
        existing = db.execute(
            select(Teacher).where(Teacher.school_id == school_id, Teacher.teacher_name == teacher_name)
        ).scalar_one_or_none()
        if existing is not None:
            continue
        db.add(
            Teacher(
                school_id=school_id,
                teacher_name=teacher_name,
                department=department,
                monthly_salary=salary,
                date_of_joining=joined,
                is_active=True,
            )
        )


def open_period_if_missing(db: Session, school_id: int, year: int, month: int) -> BillingPeriod:
    existing = db.execute(
        select(BillingPeriod).where(
            BillingPeriod.school_id == school_id,
            BillingPeriod.year == year,
            BillingPeriod.month == month,
        )
    ).scalar_one_or_none()
    if existing is not None:
        return existing
    return create_billing_period(db, school_id=school_id, year=year, month=month)["billing_period"]


def settle_first_fees(db: Session, school_id: int, billing_period: BillingPeriod) -> None:
    """Pay two fee rows, one in full and one partly, so the next rollover has something to carry."""
    fees = list(
        db.execute(
            select(ParentMonthFee)
            .where(ParentMonthFee.billing_period_id == billing_period.id, ParentMonthFee.amount_paid_this_month == 0)
            .order_by(ParentMonthFee.id)
            .limit(2)
        )
        .scalars()
        .all()
    )
    paid_at = datetime.now(timezone.utc)
    for fee, share in zip(fees, (Decimal("1"), Decimal("0.5"))):
        record_parent_payment(
            db,
            school_id=school_id,
            payload=ParentPaymentCreate(
                parent_month_fee_id=fee.id,
                amount=(fee.total_due_this_month * share).quantize(Decimal("0.01")),
                paid_at=paid_at,
                method="cash",
            ),
        )


def main() -> None:
    configure_logging()
    db = SessionLocal()
    try:
        north_school = create_school_if_missing(db=db, name="North Grammar School", slug="north-grammar")
        south_school = create_school_if_missing(db=db, name="South Grammar School", slug="south-grammar")

        admin = create_user_if_missing(db=db, email="admin@example.com", password="admin123", profile=("Admin", "User"))
        accountant = create_user_if_missing(
            db=db,
            email="accountant@example.com",
            password="accountant123",
            profile=("Accountant", "User"),
        )

        for school in (north_school, south_school):
            create_membership_if_missing(db=db, user_id=admin.id, school_id=school.id, role=UserRole.admin)
            create_membership_if_missing(db=db, user_id=accountant.id, school_id=school.id, role=UserRole.accountant)
            create_parents_if_missing(db=db, school_id=school.id)
            create_teachers_if_missing(db=db, school_id=school.id)
        db.commit()

        for school in (north_school, south_school):
            first_year, first_month = OPENING_PERIODS[0]
            first_period = open_period_if_missing(db=db, school_id=school.id, year=first_year, month=first_month)
            if first_period.is_active:
                settle_first_fees(db=db, school_id=school.id, billing_period=first_period)
            for year, month in OPENING_PERIODS[1:]:
                open_period_if_missing(db=db, school_id=school.id, year=year, month=month)
        logger.info("seed_data_completed", schools=[north_school.slug, south_school.slug])
    finally:
        db.close()


if __name__ == "__main__":
    main()
