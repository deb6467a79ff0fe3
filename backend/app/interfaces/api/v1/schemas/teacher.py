from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.ledger_status import TeacherSalaryStatus
from app.interfaces.api.v1.schemas.pagination import PaginationMeta


class TeacherBase(BaseModel):
    teacher_name: str = Field(min_length=1, max_length=255)
    department: str | None = None
    monthly_salary: Decimal = Field(ge=0)
    phone_number: str | None = None
    date_of_joining: date | None = None


class TeacherCreate(TeacherBase):
    is_active: bool = True


class TeacherUpdate(BaseModel):
    teacher_name: str | None = Field(default=None, min_length=1, max_length=255)
    department: str | None = None
    monthly_salary: Decimal | None = Field(default=None, ge=0)
    phone_number: str | None = None
    date_of_joining: date | None = None
    is_active: bool | None = None


class TeacherResponse(TeacherBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TeacherListResponse(BaseModel):
    items: list[TeacherResponse]
    pagination: PaginationMeta


class TeacherSalaryHistoryItem(BaseModel):
    id: int
    billing_period_id: int
    period: str
    monthly_salary: Decimal
    carried_forward_amount: Decimal
    advance_balance_used: Decimal
    total_due_this_month: Decimal
    amount_paid_this_month: Decimal
    outstanding_after_payment: Decimal
    status: TeacherSalaryStatus
    advance_months_remaining: int


class TeacherSalaryHistoryResponse(BaseModel):
    teacher_id: int
    items: list[TeacherSalaryHistoryItem]
