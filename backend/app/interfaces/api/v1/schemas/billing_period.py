from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.domain.billing_period_status import BillingPeriodStatus
from app.domain.ledger_status import ParentFeeStatus, TeacherSalaryStatus
from app.interfaces.api.v1.schemas.pagination import PaginationMeta


class BillingPeriodCreate(BaseModel):
    year: int | None = None
    month: int | None = None


class BillingPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    year: int
    month: int
    label: str
    status: BillingPeriodStatus
    is_active: bool
    created_at: datetime
    updated_at: datetime


class BillingPeriodSetupResponse(BaseModel):
    billing_period: BillingPeriodResponse
    deactivated_count: int
    parent_fee_count: int
    teacher_salary_count: int


class BillingPeriodListResponse(BaseModel):
    items: list[BillingPeriodResponse]
    pagination: PaginationMeta


class BillingPeriodDeleteResponse(BaseModel):
    billing_period_id: int
    deleted_payments: int
    deleted_salary_payments: int
    deleted_parent_fees: int
    deleted_teacher_salaries: int


class ParentFeeResponse(BaseModel):
    id: int
    parent_id: int
    billing_period_id: int
    parent_name: str
    student_name: str | None = None
    phone_number: str | None = None
    class_section: str | None = None
    monthly_fee: Decimal
    carried_forward_amount: Decimal
    total_due_this_month: Decimal
    amount_paid_this_month: Decimal
    outstanding_after_payment: Decimal
    status: ParentFeeStatus
    advance_months_remaining: int


class ParentFeeListResponse(BaseModel):
    items: list[ParentFeeResponse]
    pagination: PaginationMeta


class TeacherSalaryResponse(BaseModel):
    id: int
    teacher_id: int
    billing_period_id: int
    teacher_name: str
    department: str | None = None
    monthly_salary: Decimal
    carried_forward_amount: Decimal
    advance_balance_used: Decimal
    total_due_this_month: Decimal
    amount_paid_this_month: Decimal
    outstanding_after_payment: Decimal
    status: TeacherSalaryStatus
    advance_months_remaining: int


class TeacherSalaryListResponse(BaseModel):
    items: list[TeacherSalaryResponse]
    pagination: PaginationMeta
