import json
from datetime import datetime, timezone

from redis.exceptions import RedisError

from app.config import settings
from app.domain.ledger_events import LedgerEvent
from app.infrastructure.cache.redis_client import get_redis_client
from app.infrastructure.logging import get_logger

logger = get_logger(__name__)


def build_event_message(event: LedgerEvent, *, school_id: int, payload: dict | None = None) -> str:
    return json.dumps(
        {
            "event": event.value,
            "school_id": school_id,
            "payload": payload or {},
            "emitted_at": datetime.now(timezone.utc).isoformat(),
        },
        default=str,
    )


def publish_event(event: LedgerEvent, *, school_id: int, payload: dict | None = None) -> bool:
    try:
        message = build_event_message(event, school_id=school_id, payload=payload)
        get_redis_client().publish(settings.notification_channel, message)
    except (RedisError, TypeError, ValueError) as exc:
        logger.warning("notification_delivery_failed", ledger_event=event.value, school_id=school_id, error=str(exc))
        return False
    logger.debug("notification_published", ledger_event=event.value, school_id=school_id)
    return True
