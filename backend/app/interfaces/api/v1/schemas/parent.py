from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.ledger_status import ParentFeeStatus
from app.interfaces.api.v1.schemas.pagination import PaginationMeta
from app.interfaces.api.v1.schemas.payment import AdvancePaymentResponse, ParentPaymentResponse


class ParentBase(BaseModel):
    parent_name: str = Field(min_length=1, max_length=255)
    student_name: str | None = None
    phone_number: str | None = None
    class_section: str | None = None
    number_of_children: int = Field(default=1, ge=1)
    monthly_fee_amount: Decimal = Field(ge=0)


class ParentCreate(ParentBase):
    pass


class ParentUpdate(BaseModel):
    parent_name: str | None = Field(default=None, min_length=1, max_length=255)
    student_name: str | None = None
    phone_number: str | None = None
    class_section: str | None = None
    number_of_children: int | None = Field(default=None, ge=1)
    monthly_fee_amount: Decimal | None = Field(default=None, ge=0)


class ParentResponse(ParentBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    created_at: datetime
    updated_at: datetime


class ParentListResponse(BaseModel):
    items: list[ParentResponse]
    pagination: PaginationMeta


class ParentFeeHistoryItem(BaseModel):
    id: int
    billing_period_id: int
    period: str
    monthly_fee: Decimal
    carried_forward_amount: Decimal
    total_due_this_month: Decimal
    amount_paid_this_month: Decimal
    outstanding_after_payment: Decimal
    status: ParentFeeStatus
    advance_months_remaining: int


class ParentFeeHistoryResponse(BaseModel):
    parent_id: int
    items: list[ParentFeeHistoryItem]


class ParentPaymentListResponse(BaseModel):
    items: list[ParentPaymentResponse]
    pagination: PaginationMeta


class AdvancePaymentListResponse(BaseModel):
    items: list[AdvancePaymentResponse]
    pagination: PaginationMeta
