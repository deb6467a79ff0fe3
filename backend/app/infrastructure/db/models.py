from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.domain.billing_period_status import BillingPeriodStatus
from app.domain.ledger_status import ParentFeeStatus, TeacherSalaryStatus
from app.infrastructure.db.session import Base

MONEY = Numeric(12, 2)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, index=True
    )


class TenantScopedMixin:
    school_id: Mapped[int] = mapped_column(ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)


class User(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    profile: Mapped["UserProfile"] = relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all,delete"
    )
    school_memberships: Mapped[list["UserSchoolRole"]] = relationship(
        "UserSchoolRole",
        back_populates="user",
        cascade="all, delete-orphan",
    )


class School(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "schools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    members: Mapped[list["UserSchoolRole"]] = relationship(
        "UserSchoolRole",
        back_populates="school",
        cascade="all, delete-orphan",
    )
    parents: Mapped[list["Parent"]] = relationship("Parent", back_populates="school", cascade="all, delete-orphan")
    teachers: Mapped[list["Teacher"]] = relationship("Teacher", back_populates="school", cascade="all, delete-orphan")
    billing_periods: Mapped[list["BillingPeriod"]] = relationship(
        "BillingPeriod",
        back_populates="school",
        cascade="all, delete-orphan",
    )


class UserSchoolRole(TimestampMixin, Base):
    __tablename__ = "user_school_roles"
    __table_args__ = (UniqueConstraint("user_id", "school_id", "role", name="uq_user_school_role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id: Mapped[int] = mapped_column(ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    user: Mapped[User] = relationship("User", back_populates="school_memberships")
    school: Mapped[School] = relationship("School", back_populates="members")


class UserProfile(TimestampMixin, Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="profile")


class Parent(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "parents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    parent_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    student_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    class_section: Mapped[str | None] = mapped_column(String(50), nullable=True)
    number_of_children: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    monthly_fee_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    school: Mapped[School] = relationship("School", back_populates="parents")
    month_fees: Mapped[list["ParentMonthFee"]] = relationship(
        "ParentMonthFee",
        back_populates="parent",
        cascade="all, delete-orphan",
    )
    advance_payments: Mapped[list["AdvancePayment"]] = relationship(
        "AdvancePayment",
        back_populates="parent",
        cascade="all, delete-orphan",
    )


class Teacher(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "teachers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    monthly_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    date_of_joining: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    school: Mapped[School] = relationship("School", back_populates="teachers")
    salary_records: Mapped[list["TeacherSalaryRecord"]] = relationship(
        "TeacherSalaryRecord",
        back_populates="teacher",
        cascade="all, delete-orphan",
    )
    advance_payments: Mapped[list["TeacherAdvancePayment"]] = relationship(
        "TeacherAdvancePayment",
        back_populates="teacher",
        cascade="all, delete-orphan",
    )


class BillingPeriod(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "billing_periods"
    __table_args__ = (
        UniqueConstraint("school_id", "year", "month", name="uq_billing_period_school_year_month"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_billing_periods_month_range"),
        Index(
            "uq_billing_periods_one_active_per_school",
            "school_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BillingPeriodStatus] = mapped_column(
        Enum(BillingPeriodStatus, name="billing_period_status"),
        nullable=False,
        default=BillingPeriodStatus.inactive,
        index=True,
    )

    school: Mapped[School] = relationship("School", back_populates="billing_periods")
    parent_fees: Mapped[list["ParentMonthFee"]] = relationship(
        "ParentMonthFee",
        back_populates="billing_period",
        cascade="all, delete-orphan",
    )
    teacher_salaries: Mapped[list["TeacherSalaryRecord"]] = relationship(
        "TeacherSalaryRecord",
        back_populates="billing_period",
        cascade="all, delete-orphan",
    )
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="billing_period",
        cascade="all, delete-orphan",
    )
    salary_payments: Mapped[list["TeacherSalaryPayment"]] = relationship(
        "TeacherSalaryPayment",
        back_populates="billing_period",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.status == BillingPeriodStatus.active


class ParentMonthFee(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "parent_month_fees"
    __table_args__ = (UniqueConstraint("parent_id", "billing_period_id", name="uq_parent_month_fee_period"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    parent_id: Mapped[int] = mapped_column(ForeignKey("parents.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_period_id: Mapped[int] = mapped_column(
        ForeignKey("billing_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    monthly_fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    carried_forward_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    total_due_this_month: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    amount_paid_this_month: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    outstanding_after_payment: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[ParentFeeStatus] = mapped_column(
        Enum(ParentFeeStatus, name="parent_fee_status"), nullable=False, index=True
    )
    advance_months_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    parent: Mapped[Parent] = relationship("Parent", back_populates="month_fees")
    billing_period: Mapped[BillingPeriod] = relationship("BillingPeriod", back_populates="parent_fees")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="parent_month_fee",
        cascade="all, delete-orphan",
    )


class TeacherSalaryRecord(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "teacher_salary_records"
    __table_args__ = (UniqueConstraint("teacher_id", "billing_period_id", name="uq_teacher_salary_record_period"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_period_id: Mapped[int] = mapped_column(
        ForeignKey("billing_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    monthly_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    carried_forward_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    advance_balance_used: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    total_due_this_month: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    amount_paid_this_month: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0.00"))
    outstanding_after_payment: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[TeacherSalaryStatus] = mapped_column(
        Enum(TeacherSalaryStatus, name="teacher_salary_status"), nullable=False, index=True
    )
    advance_months_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    teacher: Mapped[Teacher] = relationship("Teacher", back_populates="salary_records")
    billing_period: Mapped[BillingPeriod] = relationship("BillingPeriod", back_populates="teacher_salaries")
    payments: Mapped[list["TeacherSalaryPayment"]] = relationship(
        "TeacherSalaryPayment",
        back_populates="salary_record",
        cascade="all, delete-orphan",
    )


class AdvancePayment(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "advance_payments"
    __table_args__ = (CheckConstraint("months_remaining >= 0", name="ck_advance_payments_months_remaining"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    parent_id: Mapped[int] = mapped_column(ForeignKey("parents.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_per_month: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    months_paid: Mapped[int] = mapped_column(Integer, nullable=False)
    months_remaining: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    parent: Mapped[Parent] = relationship("Parent", back_populates="advance_payments")


class TeacherAdvancePayment(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "teacher_advance_payments"
    __table_args__ = (CheckConstraint("months_remaining >= 0", name="ck_teacher_advance_payments_months_remaining"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_per_month: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    months_paid: Mapped[int] = mapped_column(Integer, nullable=False)
    months_remaining: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    teacher: Mapped[Teacher] = relationship("Teacher", back_populates="advance_payments")


class Payment(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    parent_id: Mapped[int] = mapped_column(ForeignKey("parents.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_period_id: Mapped[int] = mapped_column(
        ForeignKey("billing_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_month_fee_id: Mapped[int] = mapped_column(
        ForeignKey("parent_month_fees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    method: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)

    billing_period: Mapped[BillingPeriod] = relationship("BillingPeriod", back_populates="payments")
    parent_month_fee: Mapped[ParentMonthFee] = relationship("ParentMonthFee", back_populates="payments")


class TeacherSalaryPayment(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "teacher_salary_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_period_id: Mapped[int] = mapped_column(
        ForeignKey("billing_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    teacher_salary_record_id: Mapped[int] = mapped_column(
        ForeignKey("teacher_salary_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    method: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)

    billing_period: Mapped[BillingPeriod] = relationship("BillingPeriod", back_populates="salary_payments")
    salary_record: Mapped[TeacherSalaryRecord] = relationship("TeacherSalaryRecord", back_populates="payments")
