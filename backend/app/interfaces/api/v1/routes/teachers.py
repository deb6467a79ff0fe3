from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.application.services.advance_payment_service import create_teacher_advance_payment
from app.application.services.pagination_service import paginate_scalars
from app.application.services.teacher_service import (
    TEACHER_SEARCH_COLUMNS,
    create_teacher,
    get_teacher,
    get_teacher_salary_history,
    list_teachers_query,
    serialize_teacher_response,
    update_teacher,
)
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
from app.interfaces.api.v1.schemas.payment import AdvancePaymentCreate, AdvancePaymentResponse
from app.interfaces.api.v1.schemas.teacher import (
    TeacherCreate,
    TeacherListResponse,
    TeacherResponse,
    TeacherSalaryHistoryResponse,
    TeacherUpdate,
)

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.get(
    "",
    response_model=TeacherListResponse,
    dependencies=[Depends(require_school_member)],
    summary="List teachers",
    description="List teachers of the active school. `search` matches name, department and phone.",
)
def get_teachers(
    include_inactive: bool = Query(default=True),
    school_id: int = Depends(get_current_school_id),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    items, meta = paginate_scalars(
        db=db,
        base_query=list_teachers_query(school_id=school_id, include_inactive=include_inactive),
        offset=pagination.offset,
        limit=pagination.limit,
        search=pagination.search,
        search_columns=TEACHER_SEARCH_COLUMNS,
    )
    return {"items": [serialize_teacher_response(item) for item in items], "pagination": meta}


@router.post(
    "",
    response_model=TeacherResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_school_admin)],
    summary="Create teacher",
)
def create_teacher_endpoint(
    payload: TeacherCreate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    return serialize_teacher_response(create_teacher(db, school_id=school_id, payload=payload))


@router.get(
    "/{teacher_id}",
    response_model=TeacherResponse,
    dependencies=[Depends(require_school_member)],
    summary="Get teacher",
    responses={404: {"description": "Teacher not found"}},
)
def get_teacher_endpoint(
    teacher_id: int,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    return serialize_teacher_response(get_teacher(db, school_id=school_id, teacher_id=teacher_id))


@router.patch(
    "/{teacher_id}",
    response_model=TeacherResponse,
    dependencies=[Depends(require_school_admin)],
    summary="Update teacher",
    description="Update teacher data. Setting `is_active` to false excludes the teacher from later payroll runs.",
    responses={404: {"description": "Teacher not found"}},
)
def update_teacher_endpoint(
    teacher_id: int,
    payload: TeacherUpdate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    teacher = get_teacher(db, school_id=school_id, teacher_id=teacher_id)
    return serialize_teacher_response(update_teacher(db, teacher, payload))


@router.get(
    "/{teacher_id}/salary-history",
    response_model=TeacherSalaryHistoryResponse,
    dependencies=[Depends(require_school_member)],
    summary="Teacher salary history",
    description="Salary records of one teacher across billing periods, newest period first.",
    responses={404: {"description": "Teacher not found"}},
)
def get_salary_history(teacher_id: int, school_id: int = Depends(get_current_school_id), db: Session = Depends(get_db)):
    return get_teacher_salary_history(db, school_id=school_id, teacher_id=teacher_id)


@router.post(
    "/{teacher_id}/advance-payments",
    response_model=AdvancePaymentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_school_roles(PAYMENT_RECORDING_ROLES))],
    summary="Record teacher salary advance",
    description="Record salary paid ahead; following payroll runs draw `amount_per_month` from the pool.",
    responses={404: {"description": "Teacher not found"}},
)
def create_teacher_advance(
    teacher_id: int,
    payload: AdvancePaymentCreate,
    school_id: int = Depends(get_current_school_id),
    db: Session = Depends(get_db),
):
    return create_teacher_advance_payment(db, school_id=school_id, teacher_id=teacher_id, payload=payload)
