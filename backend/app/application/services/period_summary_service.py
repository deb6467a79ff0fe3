from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from app.application.errors import NotFoundError
from app.config import settings
from app.domain.billing_period_status import BillingPeriodStatus
from app.domain.ledger_status import ParentFeeStatus
from app.domain.rollover_rules import period_label, to_money
from app.infrastructure.cache.cache_service import delete_key, get_json, set_json
from app.infrastructure.db.models import BillingPeriod, Parent, ParentMonthFee, TeacherSalaryRecord

MONEY_FIELDS = (
    "total_collected",
    "total_outstanding",
    "total_partial",
    "total_advance_value",
    "total_salary_required",
    "total_salary_paid",
    "total_salary_outstanding",
    "net_balance",
)
TREND_PERIODS = 12
STATUS_ORDER = {status.value: position for position, status in enumerate(ParentFeeStatus)}


def period_summary_cache_key(*, school_id: int) -> str:
    return f"period_summary:{school_id}"


def invalidate_period_summary_cache(*, school_id: int) -> None:
    delete_key(period_summary_cache_key(school_id=school_id))


def _resolve_period(db: Session, *, school_id: int, billing_period_id: int | None) -> BillingPeriod:
    query = select(BillingPeriod).where(BillingPeriod.school_id == school_id)
    if billing_period_id is None:
        query = query.where(BillingPeriod.status == BillingPeriodStatus.active)
    else:
        query = query.where(BillingPeriod.id == billing_period_id)
    billing_period = db.execute(query).scalar_one_or_none()
    if billing_period is None:
        raise NotFoundError("Billing period not found")
    return billing_period


def _status_count(status: ParentFeeStatus):
    return func.coalesce(func.sum(case((ParentMonthFee.status == status, 1), else_=0)), 0)


def _collection_trend(db: Session, *, school_id: int) -> list[dict]:
    """Collected parent fees for the school's most recent periods, oldest first."""
    rows = db.execute(
        select(
            BillingPeriod.id,
            BillingPeriod.year,
            BillingPeriod.month,
            func.coalesce(func.sum(ParentMonthFee.amount_paid_this_month), 0).label("collected"),
        )
        .outerjoin(ParentMonthFee, ParentMonthFee.billing_period_id == BillingPeriod.id)
        .where(BillingPeriod.school_id == school_id)
        .group_by(BillingPeriod.id, BillingPeriod.year, BillingPeriod.month)
        .order_by(BillingPeriod.year.desc(), BillingPeriod.month.desc())
        .limit(TREND_PERIODS)
    ).all()
    return [
        {
            "billing_period_id": row.id,
            "period": period_label(row.year, row.month),
            "collected": to_money(row.collected),
        }
        for row in reversed(rows)
    ]


def _status_distribution(db: Session, *, school_id: int, billing_period_id: int) -> list[dict]:
    rows = db.execute(
        select(ParentMonthFee.status, func.count(ParentMonthFee.id).label("fee_count"))
        .where(ParentMonthFee.school_id == school_id, ParentMonthFee.billing_period_id == billing_period_id)
        .group_by(ParentMonthFee.status)
    ).all()
    distribution = [{"status": ParentFeeStatus(row.status).value, "count": int(row.fee_count)} for row in rows]
    return sorted(distribution, key=lambda entry: STATUS_ORDER[entry["status"]])


def _compute_summary(db: Session, *, school_id: int, billing_period: BillingPeriod) -> dict:
    parents = db.execute(
        select(
            func.count(ParentMonthFee.id).label("total_parents"),
            _status_count(ParentFeeStatus.paid).label("paid_count"),
            _status_count(ParentFeeStatus.unpaid).label("unpaid_count"),
            _status_count(ParentFeeStatus.partial).label("partial_count"),
            _status_count(ParentFeeStatus.advanced).label("advanced_count"),
            func.coalesce(func.sum(ParentMonthFee.amount_paid_this_month), 0).label("total_collected"),
            func.coalesce(func.sum(ParentMonthFee.outstanding_after_payment), 0).label("total_outstanding"),
            func.coalesce(
                func.sum(
                    case(
                        (ParentMonthFee.status == ParentFeeStatus.partial, ParentMonthFee.outstanding_after_payment),
                        else_=0,
                    )
                ),
                0,
            ).label("total_partial"),
            func.coalesce(
                func.sum(ParentMonthFee.advance_months_remaining * Parent.monthly_fee_amount), 0
            ).label("total_advance_value"),
        )
        .select_from(ParentMonthFee)
        .join(Parent, Parent.id == ParentMonthFee.parent_id)
        .where(ParentMonthFee.school_id == school_id, ParentMonthFee.billing_period_id == billing_period.id)
    ).one()
    salaries = db.execute(
        select(
            func.coalesce(func.sum(TeacherSalaryRecord.total_due_this_month), 0).label("total_salary_required"),
            func.coalesce(func.sum(TeacherSalaryRecord.amount_paid_this_month), 0).label("total_salary_paid"),
            func.coalesce(func.sum(TeacherSalaryRecord.outstanding_after_payment), 0).label(
                "total_salary_outstanding"
            ),
        ).where(
            TeacherSalaryRecord.school_id == school_id,
            TeacherSalaryRecord.billing_period_id == billing_period.id,
        )
    ).one()

    total_collected = to_money(parents.total_collected)
    total_salary_paid = to_money(salaries.total_salary_paid)
    return {
        "billing_period_id": billing_period.id,
        "period": period_label(billing_period.year, billing_period.month),
        "total_parents": int(parents.total_parents),
        "paid_count": int(parents.paid_count),
        "unpaid_count": int(parents.unpaid_count),
        "partial_count": int(parents.partial_count),
        "advanced_count": int(parents.advanced_count),
        "total_collected": total_collected,
        "total_outstanding": to_money(parents.total_outstanding),
        "total_partial": to_money(parents.total_partial),
        "total_advance_value": to_money(parents.total_advance_value),
        "total_salary_required": to_money(salaries.total_salary_required),
        "total_salary_paid": total_salary_paid,
        "total_salary_outstanding": to_money(salaries.total_salary_outstanding),
        "net_balance": to_money(total_collected - total_salary_paid),
        "trend": _collection_trend(db, school_id=school_id),
        "distribution": _status_distribution(db, school_id=school_id, billing_period_id=billing_period.id),
    }


def _from_cached(cached: dict) -> dict:
    summary = {
        key: Decimal(value).quantize(Decimal("0.01")) if key in MONEY_FIELDS else value
        for key, value in cached.items()
    }
    summary["trend"] = [
        {**point, "collected": Decimal(point["collected"]).quantize(Decimal("0.01"))}
        for point in summary.get("trend", [])
    ]
    return summary


def get_period_summary(db: Session, *, school_id: int, billing_period_id: int | None = None) -> dict:
    billing_period = _resolve_period(db, school_id=school_id, billing_period_id=billing_period_id)
    cache_key = period_summary_cache_key(school_id=school_id)
    cached_periods = get_json(cache_key) or {}
    cached = cached_periods.get(str(billing_period.id))
    if isinstance(cached, dict):
        return _from_cached(cached)

    summary = _compute_summary(db, school_id=school_id, billing_period=billing_period)
    cached_periods[str(billing_period.id)] = {
        key: str(value) if key in MONEY_FIELDS else value for key, value in summary.items()
    }
    set_json(cache_key, cached_periods, settings.period_summary_cache_ttl_seconds)
    return summary
