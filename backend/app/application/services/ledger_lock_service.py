from contextlib import contextmanager
from collections.abc import Iterator

from app.application.errors import ConflictError
from app.config import settings
from app.infrastructure.cache.cache_service import acquire_lock, release_lock


def billing_period_lock_key(*, school_id: int) -> str:
    return f"billing_period_lock:{school_id}"


def ledger_row_lock_key(*, school_id: int, table: str, row_id: int) -> str:
    return f"ledger_row_lock:{school_id}:{table}:{row_id}"


@contextmanager
def _held_lock(lock_key: str, ttl_seconds: int, conflict_message: str) -> Iterator[None]:
    lock_token = acquire_lock(lock_key, ttl_seconds)
    if lock_token is None:
        raise ConflictError(conflict_message)
    try:
        yield
    finally:
        release_lock(lock_key, lock_token)


@contextmanager
def billing_period_lock(*, school_id: int) -> Iterator[None]:
    with _held_lock(
        billing_period_lock_key(school_id=school_id),
        settings.billing_period_lock_ttl_seconds,
        "A billing period change is already running for this school",
    ):
        yield


@contextmanager
def ledger_row_lock(*, school_id: int, table: str, row_id: int) -> Iterator[None]:
    with _held_lock(
        ledger_row_lock_key(school_id=school_id, table=table, row_id=row_id),
        settings.fee_payment_lock_ttl_seconds,
        "A payment is already being recorded for this ledger row",
    ):
        yield
