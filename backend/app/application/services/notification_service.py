from app.application.services.period_summary_service import invalidate_period_summary_cache
from app.domain.ledger_events import LedgerEvent
from app.infrastructure.events.publisher import publish_event


def emit_ledger_events(*, school_id: int, events: list[tuple[LedgerEvent, dict]]) -> None:
    """Deliver post-commit events. Must only be called after the transaction committed."""
    for event, payload in events:
        if event == LedgerEvent.reports_stale:
            invalidate_period_summary_cache(school_id=school_id)
        publish_event(event, school_id=school_id, payload=payload)
