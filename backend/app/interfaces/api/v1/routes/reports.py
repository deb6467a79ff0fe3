from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.application.services.period_summary_service import get_period_summary
from app.infrastructure.db.session import get_db
from app.interfaces.api.v1.dependencies.auth import get_current_school_id, require_school_member
from app.interfaces.api.v1.schemas.report import PeriodSummaryResponse

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get(
    "/summary",
    response_model=PeriodSummaryResponse,
    dependencies=[Depends(require_school_member)],
    summary="Period summary",
    description=(
        "Fee collection and payroll totals for one billing period (the active one when "
        "`billing_period_id` is omitted). Results are cached per school until the ledger changes."
    ),
    responses={401: {"description": "Unauthorized"}, 404: {"description": "Billing period not found"}},
)
def get_summary(
    billing_period_id: int | None = Query(default=None),
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    return get_period_summary(db, school_id=school_id, billing_period_id=billing_period_id)
