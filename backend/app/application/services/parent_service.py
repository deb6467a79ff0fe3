from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from app.application.errors import NotFoundError
from app.domain.rollover_rules import period_label, to_money
from app.infrastructure.db.models import BillingPeriod, Parent, ParentMonthFee
from app.infrastructure.logging import get_logger
from app.interfaces.api.v1.schemas.parent import ParentCreate, ParentUpdate

logger = get_logger(__name__)

PARENT_SEARCH_COLUMNS = [Parent.parent_name, Parent.student_name, Parent.phone_number, Parent.class_section]


def serialize_parent_response(parent: Parent) -> dict:
    return {
        "id": parent.id,
        "school_id": parent.school_id,
        "parent_name": parent.parent_name,
        "student_name": parent.student_name,
        "phone_number": parent.phone_number,
        "class_section": parent.class_section,
        "number_of_children": parent.number_of_children,
        "monthly_fee_amount": parent.monthly_fee_amount,
        "created_at": parent.created_at,
        "updated_at": parent.updated_at,
    }


def list_parents_query(*, school_id: int) -> Select:
    return select(Parent).where(Parent.school_id == school_id).order_by(Parent.parent_name, Parent.id)


def get_parent(db: Session, *, school_id: int, parent_id: int) -> Parent:
    parent = db.execute(
        select(Parent).where(Parent.id == parent_id, Parent.school_id == school_id)
    ).scalar_one_or_none()
    if parent is None:
        raise NotFoundError("Parent not found")
    return parent


def create_parent(db: Session, *, school_id: int, payload: ParentCreate) -> Parent:
    parent = Parent(
        school_id=school_id,
        parent_name=payload.parent_name,
        student_name=payload.student_name,
        phone_number=payload.phone_number,
        class_section=payload.class_section,
        number_of_children=payload.number_of_children,
        monthly_fee_amount=to_money(payload.monthly_fee_amount),
    )
    db.add(parent)
    db.commit()
    db.refresh(parent)
    logger.info("parent_created", school_id=school_id, parent_id=parent.id)
    return parent


def update_parent(db: Session, parent: Parent, payload: ParentUpdate) -> Parent:
    """Apply the fields sent by the caller; a new monthly fee applies from the next rollover on."""
    changes = payload.model_dump(exclude_unset=True)
    if "monthly_fee_amount" in changes and changes["monthly_fee_amount"] is not None:
        changes["monthly_fee_amount"] = to_money(changes["monthly_fee_amount"])
    for field, value in changes.items():
        if field == "parent_name" and value is None:
            continue
        setattr(parent, field, value)
    db.commit()
    db.refresh(parent)
    logger.info("parent_updated", school_id=parent.school_id, parent_id=parent.id, fields=sorted(changes))
    return parent


def get_parent_fee_history(db: Session, *, school_id: int, parent_id: int) -> dict:
    parent = get_parent(db, school_id=school_id, parent_id=parent_id)
    rows = db.execute(
        select(ParentMonthFee, BillingPeriod)
        .join(BillingPeriod, BillingPeriod.id == ParentMonthFee.billing_period_id)
        .where(ParentMonthFee.school_id == school_id, ParentMonthFee.parent_id == parent.id)
        .order_by(BillingPeriod.year.desc(), BillingPeriod.month.desc())
    ).all()
    return {
        "parent_id": parent.id,
        "items": [
            {
                "id": fee.id,
                "billing_period_id": billing_period.id,
                "period": period_label(billing_period.year, billing_period.month),
                "monthly_fee": fee.monthly_fee,
                "carried_forward_amount": fee.carried_forward_amount,
                "total_due_this_month": fee.total_due_this_month,
                "amount_paid_this_month": fee.amount_paid_this_month,
                "outstanding_after_payment": fee.outstanding_after_payment,
                "status": fee.status,
                "advance_months_remaining": fee.advance_months_remaining,
            }
            for fee, billing_period in rows
        ],
    }
