from decimal import Decimal

from pydantic import BaseModel

from app.domain.ledger_status import ParentFeeStatus


class CollectionTrendPoint(BaseModel):
    billing_period_id: int
    period: str
    collected: Decimal


class StatusCount(BaseModel):
    status: ParentFeeStatus
    count: int


class PeriodSummaryResponse(BaseModel):
    billing_period_id: int
    period: str
    total_parents: int
    paid_count: int
    unpaid_count: int
    partial_count: int
    advanced_count: int
    total_collected: Decimal
    total_outstanding: Decimal
    total_partial: Decimal
    total_advance_value: Decimal
    total_salary_required: Decimal
    total_salary_paid: Decimal
    total_salary_outstanding: Decimal
    net_balance: Decimal
    trend: list[CollectionTrendPoint]
    distribution: list[StatusCount]
