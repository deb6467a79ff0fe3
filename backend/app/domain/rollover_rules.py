"""Pure rules for opening a billing period.

Nothing in this module touches the database: the rollover service loads
snapshots of the previous period and of the advance pools, feeds them through
these functions and persists whatever comes back.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from app.domain.ledger_status import ParentFeeStatus, TeacherSalaryStatus

ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str | None) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriorLedgerSnapshot:
    """The previous period's row for one parent or teacher."""

    outstanding_after_payment: Decimal = ZERO
    amount_paid_this_month: Decimal = ZERO
    advance_months_remaining: int = 0


@dataclass(frozen=True)
class AdvanceCandidate:
    id: int
    subject_id: int
    amount_per_month: Decimal
    months_remaining: int
    created_at: datetime


@dataclass(frozen=True)
class ParentFeeComputation:
    monthly_fee: Decimal
    carried_forward_amount: Decimal
    total_due_this_month: Decimal
    amount_paid_this_month: Decimal
    outstanding_after_payment: Decimal
    status: ParentFeeStatus
    advance_months_remaining: int
    consumed_advance_id: int | None = None


@dataclass(frozen=True)
class TeacherSalaryComputation:
    monthly_salary: Decimal
    carried_forward_amount: Decimal
    advance_balance_used: Decimal
    total_due_this_month: Decimal
    amount_paid_this_month: Decimal
    outstanding_after_payment: Decimal
    status: TeacherSalaryStatus
    advance_months_remaining: int
    consumed_advance_id: int | None = None


def first_advance_per_subject(advances: Iterable[AdvanceCandidate]) -> dict[int, AdvanceCandidate]:
    """Pick the oldest pool with months left for each parent or teacher."""
    ordered = sorted(
        (advance for advance in advances if advance.months_remaining > 0),
        key=lambda advance: (advance.created_at, advance.id),
    )
    selected: dict[int, AdvanceCandidate] = {}
    for advance in ordered:
        selected.setdefault(advance.subject_id, advance)
    return selected


def _remaining_after(prior_remaining: int, consumed: bool) -> int:
    return max(prior_remaining - (1 if consumed else 0), 0)


def compute_parent_fee(
    *,
    monthly_fee_amount: Decimal,
    prior: PriorLedgerSnapshot | None,
    advance: AdvanceCandidate | None,
    drop_carry_forward_on_advance: bool = True,
) -> ParentFeeComputation:
    prior = prior or PriorLedgerSnapshot()
    monthly_fee = to_money(monthly_fee_amount)
    carried_forward = to_money(prior.outstanding_after_payment)
    prior_remaining = prior.advance_months_remaining

    consumed_advance_id = None
    if advance is not None and prior_remaining > 0:
        # Observed behaviour: the carry forward is not billed in an advanced month.
        total_due = ZERO if drop_carry_forward_on_advance else carried_forward
        status = ParentFeeStatus.advanced
        consumed_advance_id = advance.id
    else:
        total_due = to_money(monthly_fee + carried_forward)
        status = ParentFeeStatus.unpaid

    return ParentFeeComputation(
        monthly_fee=monthly_fee,
        carried_forward_amount=carried_forward,
        total_due_this_month=total_due,
        amount_paid_this_month=ZERO,
        outstanding_after_payment=total_due,
        status=status,
        advance_months_remaining=_remaining_after(prior_remaining, consumed_advance_id is not None),
        consumed_advance_id=consumed_advance_id,
    )


def compute_teacher_salary(
    *,
    monthly_salary: Decimal,
    prior: PriorLedgerSnapshot | None,
    advance: AdvanceCandidate | None,
) -> TeacherSalaryComputation:
    prior = prior or PriorLedgerSnapshot()
    salary = to_money(monthly_salary)
    previous_outstanding = to_money(prior.outstanding_after_payment)
    previous_paid = to_money(prior.amount_paid_this_month)
    prior_remaining = prior.advance_months_remaining

    total_due = salary
    status = TeacherSalaryStatus.unpaid
    advance_balance_used = ZERO

    if previous_paid > ZERO and previous_outstanding == ZERO:
        status = TeacherSalaryStatus.paid
    elif previous_outstanding > ZERO:
        status = TeacherSalaryStatus.outstanding
        total_due = to_money(salary + previous_outstanding)

    consumed_advance_id = None
    if advance is not None and prior_remaining > 0:
        per_month = to_money(advance.amount_per_month)
        if per_month >= salary:
            advance_balance_used = salary
            total_due = previous_outstanding
            status = TeacherSalaryStatus.advance_covered
        else:
            advance_balance_used = per_month
            total_due = to_money(salary - per_month + previous_outstanding)
            status = TeacherSalaryStatus.advance_covered if total_due == ZERO else TeacherSalaryStatus.partial
        consumed_advance_id = advance.id

    return TeacherSalaryComputation(
        monthly_salary=salary,
        carried_forward_amount=previous_outstanding,
        advance_balance_used=advance_balance_used,
        total_due_this_month=total_due,
        amount_paid_this_month=ZERO,
        outstanding_after_payment=total_due,
        status=status,
        advance_months_remaining=_remaining_after(prior_remaining, consumed_advance_id is not None),
        consumed_advance_id=consumed_advance_id,
    )


def is_valid_period(year: int, month: int) -> bool:
    return 2000 <= year <= 2100 and 1 <= month <= 12


def period_label(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"
