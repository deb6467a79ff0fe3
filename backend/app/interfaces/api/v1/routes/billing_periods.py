from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.application.services.billing_period_service import (
    create_billing_period,
    delete_billing_period,
    get_active_billing_period,
    get_billing_period,
    list_billing_periods_query,
    list_parent_fees_query,
    list_teacher_salaries_query,
    serialize_billing_period_response,
    serialize_parent_fee_response,
    serialize_teacher_salary_response,
)
from app.application.services.pagination_service import paginate_scalars
from app.infrastructure.db.models import Parent, Teacher
from app.infrastructure.db.session import get_db
from app.interfaces.api.v1.dependencies.auth import get_current_school_id, require_school_admin, require_school_member
from app.interfaces.api.v1.dependencies.pagination import get_ledger_list_params, get_pagination_params
from app.interfaces.api.v1.schemas.billing_period import (
    BillingPeriodCreate,
    BillingPeriodDeleteResponse,
    BillingPeriodListResponse,
    BillingPeriodResponse,
    BillingPeriodSetupResponse,
    ParentFeeListResponse,
    TeacherSalaryListResponse,
)
from app.interfaces.api.v1.schemas.error import ErrorResponse
from app.interfaces.api.v1.schemas.pagination import LedgerListParams, PaginationParams

router = APIRouter(prefix="/billing-periods", tags=["billing-periods"])


@router.get(
    "",
    response_model=BillingPeriodListResponse,
    dependencies=[Depends(require_school_member)],
    summary="List billing periods",
    description="List the billing periods of the active school (`X-School-Id`), newest first.",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "No access to this school"}},
)
def get_billing_periods(
    school_id: int = Depends(get_current_school_id),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    items, meta = paginate_scalars(
        db=db,
        base_query=list_billing_periods_query(school_id=school_id),
        offset=pagination.offset,
        limit=pagination.limit,
        search=None,
        search_columns=[],
    )
    return {"items": [serialize_billing_period_response(item) for item in items], "pagination": meta}


@router.get(
    "/active",
    response_model=BillingPeriodResponse | None,
    dependencies=[Depends(require_school_member)],
    summary="Get active billing period",
    description="Return the school's active billing period, or `null` when no period has been set up yet.",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "No access to this school"}},
)
def get_active_billing_period_endpoint(
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    billing_period = get_active_billing_period(db, school_id=school_id)
    if billing_period is None:
        return None
    return serialize_billing_period_response(billing_period)


@router.post(
    "/setup",
    response_model=BillingPeriodSetupResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_school_admin)],
    summary="Set up billing period",
    description=(
        "Close the current period and open `year`/`month` as the school's active period. "
        "Fee rows are generated for every parent and salary rows for every active teacher, "
        "carrying forward outstanding balances and consuming advance payments. "
        "The whole rollover commits or fails as one unit."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid year/month"},
        401: {"description": "Unauthorized"},
        403: {"description": "Insufficient school permissions"},
        409: {
            "model": ErrorResponse,
            "description": "Billing period already exists or a rollover is already running",
        },
        500: {"model": ErrorResponse, "description": "Rollover failed and was rolled back"},
    },
)
def setup_billing_period(
    payload: BillingPeriodCreate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    result = create_billing_period(db, school_id=school_id, year=payload.year, month=payload.month)
    return {**result, "billing_period": serialize_billing_period_response(result["billing_period"])}


@router.get(
    "/{billing_period_id}",
    response_model=BillingPeriodResponse,
    dependencies=[Depends(require_school_member)],
    summary="Get billing period",
    responses={401: {"description": "Unauthorized"}, 404: {"description": "Billing period not found"}},
)
def get_billing_period_endpoint(
    billing_period_id: int,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    billing_period = get_billing_period(db, school_id=school_id, billing_period_id=billing_period_id)
    return serialize_billing_period_response(billing_period)


@router.delete(
    "/{billing_period_id}",
    response_model=BillingPeriodDeleteResponse,
    dependencies=[Depends(require_school_admin)],
    summary="Delete billing period",
    description="Delete an inactive period together with its fee, salary and payment rows.",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Insufficient school permissions"},
        404: {"description": "Billing period not found"},
        409: {"model": ErrorResponse, "description": "The active period cannot be deleted"},
    },
)
def delete_billing_period_endpoint(
    billing_period_id: int,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    return delete_billing_period(db, school_id=school_id, billing_period_id=billing_period_id)


@router.get(
    "/{billing_period_id}/fees",
    response_model=ParentFeeListResponse,
    dependencies=[Depends(require_school_member)],
    summary="List parent fees of a period",
    description="Fee rows of one period joined with parent data. `status=all` disables the status filter.",
    responses={
        400: {"description": "Unknown status filter"},
        401: {"description": "Unauthorized"},
        404: {"description": "Billing period not found"},
    },
)
def get_period_fees(
    billing_period_id: int,
    school_id: int = Depends(get_current_school_id),
    pagination: LedgerListParams = Depends(get_ledger_list_params),
    db: Session = Depends(get_db),
):
    get_billing_period(db, school_id=school_id, billing_period_id=billing_period_id)
    items, meta = paginate_scalars(
        db=db,
        base_query=list_parent_fees_query(
            school_id=school_id, billing_period_id=billing_period_id, status=pagination.status
        ),
        offset=pagination.offset,
        limit=pagination.limit,
        search=pagination.search,
        search_columns=[Parent.parent_name, Parent.student_name, Parent.phone_number],
    )
    return {"items": [serialize_parent_fee_response(item) for item in items], "pagination": meta}


@router.get(
    "/{billing_period_id}/salaries",
    response_model=TeacherSalaryListResponse,
    dependencies=[Depends(require_school_member)],
    summary="List teacher salaries of a period",
    responses={
        400: {"description": "Unknown status filter"},
        401: {"description": "Unauthorized"},
        404: {"description": "Billing period not found"},
    },
)
def get_period_salaries(
    billing_period_id: int,
    school_id: int = Depends(get_current_school_id),
    pagination: LedgerListParams = Depends(get_ledger_list_params),
    db: Session = Depends(get_db),
):
    get_billing_period(db, school_id=school_id, billing_period_id=billing_period_id)
    items, meta = paginate_scalars(
        db=db,
        base_query=list_teacher_salaries_query(
            school_id=school_id, billing_period_id=billing_period_id, status=pagination.status
        ),
        offset=pagination.offset,
        limit=pagination.limit,
        search=pagination.search,
        search_columns=[Teacher.teacher_name, Teacher.department],
    )
    return {"items": [serialize_teacher_salary_response(item) for item in items], "pagination": meta}
