from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.application.services.advance_payment_service import (
    create_parent_advance_payment,
    list_parent_advances_query,
    serialize_parent_advance_response,
)
from app.application.services.pagination_service import paginate_scalars
from app.application.services.parent_service import (
    PARENT_SEARCH_COLUMNS,
    create_parent,
    get_parent,
    get_parent_fee_history,
    list_parents_query,
    serialize_parent_response,
    update_parent,
)
from app.application.services.payment_service import list_parent_payments_query, serialize_parent_payment_response
from app.domain.roles import PAYMENT_RECORDING_ROLES
from app.infrastructure.db.session import get_db
from app.interfaces.api.v1.dependencies.auth import (
    get_current_school_id,
    require_school_admin,
    require_school_member,
    require_school_roles,
)
from app.interfaces.api.v1.dependencies.pagination import get_pagination_params
from app.interfaces.api.v1.schemas.pagination import PaginationParams
from app.interfaces.api.v1.schemas.parent import (
    AdvancePaymentListResponse,
    ParentCreate,
    ParentFeeHistoryResponse,
    ParentListResponse,
    ParentPaymentListResponse,
    ParentResponse,
    ParentUpdate,
)
from app.interfaces.api.v1.schemas.payment import AdvancePaymentCreate, AdvancePaymentResponse

router = APIRouter(prefix="/parents", tags=["parents"])


@router.get(
    "",
    response_model=ParentListResponse,
    dependencies=[Depends(require_school_member)],
    summary="List parents",
    description="List parents of the active school. `search` matches parent name, student name, phone and class.",
)
def get_parents(
    school_id: int = Depends(get_current_school_id),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    items, meta = paginate_scalars(
        db=db,
        base_query=list_parents_query(school_id=school_id),
        offset=pagination.offset,
        limit=pagination.limit,
        search=pagination.search,
        search_columns=PARENT_SEARCH_COLUMNS,
    )
    return {"items": [serialize_parent_response(item) for item in items], "pagination": meta}


@router.post(
    "",
    response_model=ParentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_school_admin)],
    summary="Create parent",
    description="Register a fee-paying parent. Fee rows start with the next billing period setup.",
)
def create_parent_endpoint(
    payload: ParentCreate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    return serialize_parent_response(create_parent(db, school_id=school_id, payload=payload))


@router.get(
    "/{parent_id}",
    response_model=ParentResponse,
    dependencies=[Depends(require_school_member)],
    summary="Get parent",
    responses={404: {"description": "Parent not found"}},
)
def get_parent_endpoint(parent_id: int, school_id: int = Depends(get_current_school_id), db: Session = Depends(get_db)):
    return serialize_parent_response(get_parent(db, school_id=school_id, parent_id=parent_id))


@router.patch(
    "/{parent_id}",
    response_model=ParentResponse,
    dependencies=[Depends(require_school_admin)],
    summary="Update parent",
    responses={404: {"description": "Parent not found"}},
)
def update_parent_endpoint(
    parent_id: int,
    payload: ParentUpdate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    parent = get_parent(db, school_id=school_id, parent_id=parent_id)
    return serialize_parent_response(update_parent(db, parent, payload))


@router.get(
    "/{parent_id}/fees",
    response_model=ParentFeeHistoryResponse,
    dependencies=[Depends(require_school_member)],
    summary="Parent fee history",
    description="Fee rows of one parent across billing periods, newest period first.",
    responses={404: {"description": "Parent not found"}},
)
def get_parent_fees(parent_id: int, school_id: int = Depends(get_current_school_id), db: Session = Depends(get_db)):
    return get_parent_fee_history(db, school_id=school_id, parent_id=parent_id)


@router.get(
    "/{parent_id}/payments",
    response_model=ParentPaymentListResponse,
    dependencies=[Depends(require_school_member)],
    summary="List parent payments",
    responses={404: {"description": "Parent not found"}},
)
def get_parent_payments(
    parent_id: int,
    school_id: int = Depends(get_current_school_id),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    get_parent(db, school_id=school_id, parent_id=parent_id)
    items, meta = paginate_scalars(
        db=db,
        base_query=list_parent_payments_query(school_id=school_id, parent_id=parent_id),
        offset=pagination.offset,
        limit=pagination.limit,
        search=None,
        search_columns=[],
    )
    return {"items": [serialize_parent_payment_response(item) for item in items], "pagination": meta}


@router.post(
    "/{parent_id}/advance-payments",
    response_model=AdvancePaymentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_school_roles(PAYMENT_RECORDING_ROLES))],
    summary="Record parent advance payment",
    description=(
        "Record fees paid `months` ahead. The parent's row in the active period is armed so the "
        "following billing period setups mark the parent as advanced while the pool lasts."
    ),
    responses={404: {"description": "Parent not found"}},
)
def create_parent_advance(
    parent_id: int,
    payload: AdvancePaymentCreate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    return create_parent_advance_payment(db, school_id=school_id, parent_id=parent_id, payload=payload)


@router.get(
    "/{parent_id}/advance-payments",
    response_model=AdvancePaymentListResponse,
    dependencies=[Depends(require_school_member)],
    summary="List parent advance payments",
    responses={404: {"description": "Parent not found"}},
)
def get_parent_advances(
    parent_id: int,
    school_id: int = Depends(get_current_school_id),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    get_parent(db, school_id=school_id, parent_id=parent_id)
    items, meta = paginate_scalars(
        db=db,
        base_query=list_parent_advances_query(school_id=school_id, parent_id=parent_id),
        offset=pagination.offset,
        limit=pagination.limit,
        search=None,
        search_columns=[],
    )
    return {"items": [serialize_parent_advance_response(item) for item in items], "pagination": meta}
