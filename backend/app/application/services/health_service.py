from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.infrastructure.cache.redis_client import redis_is_available
from app.infrastructure.logging import get_logger

logger = get_logger(__name__)


def get_service_status(db: Session, redis_client) -> dict:
    db_connected = False
    try:
        db.execute(text("SELECT 1"))
        db_connected = True
    except SQLAlchemyError as exc:
        logger.warning("health_db_unreachable", error=str(exc))

    return {
        "message": f"{settings.app_name} is running",
        "db_connected": db_connected,
        "redis_connected": redis_is_available(redis_client),
    }
