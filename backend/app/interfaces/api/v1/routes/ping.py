from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.application.services.health_service import get_service_status
from app.infrastructure.cache.redis_client import get_redis_client
from app.infrastructure.db.session import get_db
from app.interfaces.api.v1.schemas.health import ServiceStatusResponse

router = APIRouter(tags=["health"])


@router.get(
    "/ping",
    response_model=ServiceStatusResponse,
    summary="Health check",
    description=(
        "Report database and Redis connectivity. Redis backs the ledger locks, the summary cache "
        "and event delivery; the API keeps serving ledger writes while it is down."
    ),
)
def ping(db: Session = Depends(get_db)):
    return get_service_status(db=db, redis_client=get_redis_client())
