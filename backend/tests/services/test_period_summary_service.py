from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.application.errors import NotFoundError
from app.application.services.billing_period_service import create_billing_period
from app.application.services.payment_service import record_parent_payment, record_teacher_salary_payment
from app.application.services.period_summary_service import get_period_summary, period_summary_cache_key
from app.domain.billing_period_status import BillingPeriodStatus
from app.domain.ledger_status import ParentFeeStatus
from app.interfaces.api.v1.schemas.payment import ParentPaymentCreate, TeacherSalaryPaymentCreate
from tests.helpers.factories import (
    create_parent,
    create_parent_fee,
    create_period_row,
    create_school,
    create_teacher,
    get_parent_fee_for,
    get_salary_record_for,
)

PAID_AT = datetime(2026, 1, 10, tzinfo=timezone.utc)


def _seed_january(db_session):
    school = create_school(db_session, "Summary North", "summary-north")
    ana = create_parent(db_session, school_id=school.id, parent_name="Ana", monthly_fee_amount=Decimal("500"))
    ben = create_parent(db_session, school_id=school.id, parent_name="Ben", monthly_fee_amount=Decimal("300"))
    create_parent(db_session, school_id=school.id, parent_name="Cleo", monthly_fee_amount=Decimal("200"))
    teacher = create_teacher(db_session, school_id=school.id, teacher_name="Dina", monthly_salary=Decimal("1000"))
    january = create_billing_period(db_session, school_id=school.id, year=2026, month=1)["billing_period"]
    return school, ana, ben, teacher, january


def test_period_summary_aggregates_active_period(db_session):
    """
    Validate the summary totals for the active period.

    1. Seed three parents and one teacher and open January.
    2. Settle one fee, part-pay another and pay 400 of the salary.
    3. Build the summary without a period id.
    4. Validate counts, collected and outstanding totals and the net balance.
    """
    school, ana, ben, teacher, january = _seed_january(db_session)
    record_parent_payment(
        db_session,
        school_id=school.id,
        payload=ParentPaymentCreate(
            parent_month_fee_id=get_parent_fee_for(db_session, parent_id=ana.id, billing_period_id=january.id).id,
            amount=Decimal("500"),
            paid_at=PAID_AT,
        ),
    )
    record_parent_payment(
        db_session,
        school_id=school.id,
        payload=ParentPaymentCreate(
            parent_month_fee_id=get_parent_fee_for(db_session, parent_id=ben.id, billing_period_id=january.id).id,
            amount=Decimal("100"),
            paid_at=PAID_AT,
        ),
    )
    record_teacher_salary_payment(
        db_session,
        school_id=school.id,
        payload=TeacherSalaryPaymentCreate(
            teacher_salary_record_id=get_salary_record_for(
                db_session, teacher_id=teacher.id, billing_period_id=january.id
            ).id,
            amount=Decimal("400"),
            paid_at=PAID_AT,
        ),
    )

    summary = get_period_summary(db_session, school_id=school.id)

    assert summary["billing_period_id"] == january.id
    assert summary["period"] == "2026-01"
    assert summary["total_parents"] == 3
    assert (summary["paid_count"], summary["partial_count"], summary["unpaid_count"]) == (1, 1, 1)
    assert summary["advanced_count"] == 0
    assert summary["total_collected"] == Decimal("600.00")
    assert summary["total_outstanding"] == Decimal("400.00")
    assert summary["total_partial"] == Decimal("200.00")
    assert summary["total_salary_required"] == Decimal("1000.00")
    assert summary["total_salary_paid"] == Decimal("400.00")
    assert summary["total_salary_outstanding"] == Decimal("600.00")
    assert summary["net_balance"] == Decimal("200.00")


def test_period_summary_is_cached_and_invalidated_by_payments(db_session, fake_redis):
    """
    Validate the summary cache lifecycle.

    1. Seed January and build the summary once.
    2. Validate the cache entry exists and a second read returns the same totals.
    3. Record a payment, which publishes reports-stale.
    4. Validate the cache entry was dropped and the next summary reflects the payment.
    """
    school, ana, _, _, january = _seed_january(db_session)
    first = get_period_summary(db_session, school_id=school.id)
    assert period_summary_cache_key(school_id=school.id) in fake_redis.store
    assert get_period_summary(db_session, school_id=school.id) == first

    record_parent_payment(
        db_session,
        school_id=school.id,
        payload=ParentPaymentCreate(
            parent_month_fee_id=get_parent_fee_for(db_session, parent_id=ana.id, billing_period_id=january.id).id,
            amount=Decimal("250"),
            paid_at=PAID_AT,
        ),
    )
    assert period_summary_cache_key(school_id=school.id) not in fake_redis.store

    refreshed = get_period_summary(db_session, school_id=school.id)
    assert refreshed["total_collected"] == first["total_collected"] + Decimal("250.00")


def test_period_summary_counts_advance_value(db_session):
    """
    Validate advanced rows and remaining advance value.

    1. Seed one period directly with an advanced fee carrying two remaining months.
    2. Build the summary for that period id.
    3. Validate the advanced count.
    4. Validate the advance value equals months left times the monthly fee.
    """
    school = create_school(db_session, "Summary Advance", "summary-advance")
    parent = create_parent(db_session, school_id=school.id, parent_name="Ana", monthly_fee_amount=Decimal("450"))
    period = create_period_row(db_session, school_id=school.id, year=2026, month=5, status=BillingPeriodStatus.active)
    create_parent_fee(
        db_session,
        school_id=school.id,
        parent_id=parent.id,
        billing_period_id=period.id,
        monthly_fee=Decimal("450.00"),
        total_due=Decimal("0.00"),
        status=ParentFeeStatus.advanced,
        advance_months_remaining=2,
    )

    summary = get_period_summary(db_session, school_id=school.id, billing_period_id=period.id)

    assert summary["advanced_count"] == 1
    assert summary["total_advance_value"] == Decimal("900.00")


def test_period_summary_without_active_period_raises_not_found(db_session):
    """
    Validate the summary for a school with no periods.

    1. Seed one school without periods.
    2. Build the summary without a period id.
    3. Validate NotFoundError is raised.
    4. Validate the message names the billing period.
    """
    school = create_school(db_session, "Summary Empty", "summary-empty")

    with pytest.raises(NotFoundError) as exc:
        get_period_summary(db_session, school_id=school.id)
    assert str(exc.value) == "Billing period not found"


def test_period_summary_reports_trend_and_distribution(db_session):
    """
    Validate the collection trend and the fee status distribution.

    1. Seed three parents, open January and pay Ana's fee and part of Ben's.
    2. Open February, which leaves every February row unpaid.
    3. Build the January summary and the February summary.
    4. Validate the trend lists both periods oldest first with January's collected total.
    5. Validate each distribution counts the fee rows of its own period only.
    """
    school, ana, ben, _, january = _seed_january(db_session)
    for parent, amount in ((ana, Decimal("500")), (ben, Decimal("100"))):
        record_parent_payment(
            db_session,
            school_id=school.id,
            payload=ParentPaymentCreate(
                parent_month_fee_id=get_parent_fee_for(
                    db_session, parent_id=parent.id, billing_period_id=january.id
                ).id,
                amount=amount,
                paid_at=PAID_AT,
            ),
        )
    february = create_billing_period(db_session, school_id=school.id, year=2026, month=2)["billing_period"]

    january_summary = get_period_summary(db_session, school_id=school.id, billing_period_id=january.id)
    february_summary = get_period_summary(db_session, school_id=school.id)

    assert february_summary["trend"] == [
        {"billing_period_id": january.id, "period": "2026-01", "collected": Decimal("600.00")},
        {"billing_period_id": february.id, "period": "2026-02", "collected": Decimal("0.00")},
    ]
    assert january_summary["distribution"] == [
        {"status": "unpaid", "count": 1},
        {"status": "partial", "count": 1},
        {"status": "paid", "count": 1},
    ]
    assert february_summary["distribution"] == [{"status": "unpaid", "count": 3}]


def test_period_summary_trend_keeps_latest_twelve_periods(db_session):
    """
    Validate the trend window.

    1. Seed one school with fourteen inactive periods and an active one.
    2. Build the summary for the active period.
    3. Validate the trend holds twelve points.
    4. Validate it ends at the newest period and starts eleven periods earlier.
    """
    school = create_school(db_session, "Summary Trend", "summary-trend")
    for month in range(1, 13):
        create_period_row(db_session, school_id=school.id, year=2025, month=month, status=BillingPeriodStatus.inactive)
    create_period_row(db_session, school_id=school.id, year=2026, month=1, status=BillingPeriodStatus.inactive)
    create_period_row(db_session, school_id=school.id, year=2026, month=2, status=BillingPeriodStatus.inactive)
    create_period_row(db_session, school_id=school.id, year=2026, month=3, status=BillingPeriodStatus.active)

    summary = get_period_summary(db_session, school_id=school.id)

    assert len(summary["trend"]) == 12
    assert summary["trend"][0]["period"] == "2025-04"
    assert summary["trend"][-1]["period"] == "2026-03"
    assert summary["distribution"] == []
