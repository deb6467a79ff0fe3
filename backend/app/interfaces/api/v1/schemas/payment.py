from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.ledger_status import ParentFeeStatus, TeacherSalaryStatus


class LedgerPaymentBase(BaseModel):
    amount: Decimal = Field(gt=0)
    paid_at: datetime
    method: str = "cash"
    notes: str | None = None


class ParentPaymentCreate(LedgerPaymentBase):
    parent_month_fee_id: int


class TeacherSalaryPaymentCreate(LedgerPaymentBase):
    teacher_salary_record_id: int


class ParentPaymentResponse(ParentPaymentCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    parent_id: int
    billing_period_id: int
    fee_status: ParentFeeStatus
    outstanding_after_payment: Decimal
    created_at: datetime


class TeacherSalaryPaymentResponse(TeacherSalaryPaymentCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    teacher_id: int
    billing_period_id: int
    salary_status: TeacherSalaryStatus
    outstanding_after_payment: Decimal
    created_at: datetime


class AdvancePaymentCreate(BaseModel):
    amount_per_month: Decimal = Field(gt=0)
    months: int = Field(ge=1, le=24)


class AdvancePaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    subject_id: int
    amount_per_month: Decimal
    months_paid: int
    months_remaining: int
    armed_billing_period_id: int | None = None
    created_at: datetime
