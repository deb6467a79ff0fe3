from enum import Enum


class LedgerEvent(str, Enum):
    period_created = "period-created"
    period_updated = "period-updated"
    period_deleted = "period-deleted"
    reports_stale = "reports-stale"
