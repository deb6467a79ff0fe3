import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.application.errors import ConflictError
from app.application.services.ledger_lock_service import (
    billing_period_lock,
    billing_period_lock_key,
    ledger_row_lock,
    ledger_row_lock_key,
)


class UnavailableRedis:
    def set(self, *_args, **_kwargs):
        raise RedisConnectionError("redis down")

    def eval(self, *_args, **_kwargs):
        raise RedisConnectionError("redis down")


def test_billing_period_lock_is_released_after_block(fake_redis):
    """
    Validate the school lock lifecycle.

    1. Enter the billing period lock for one school.
    2. Validate the lock key is stored while inside the block.
    3. Leave the block.
    4. Validate the key is gone so the next rollover can start.
    """
    key = billing_period_lock_key(school_id=7)

    with billing_period_lock(school_id=7):
        assert key in fake_redis.store

    assert key not in fake_redis.store


def test_billing_period_lock_is_released_when_block_raises(fake_redis):
    """
    Validate the lock is released on errors.

    1. Enter the billing period lock for one school.
    2. Raise inside the block.
    3. Validate the error propagates.
    4. Validate the lock key was removed.
    """
    with pytest.raises(RuntimeError):
        with billing_period_lock(school_id=8):
            raise RuntimeError("rollover failed")

    assert billing_period_lock_key(school_id=8) not in fake_redis.store


def test_nested_lock_for_same_row_raises_conflict(fake_redis):
    """
    Validate a second holder is rejected.

    1. Enter the ledger row lock for one fee row.
    2. Try to enter the same lock again.
    3. Validate ConflictError is raised.
    4. Validate a different row can still be locked.
    """
    with ledger_row_lock(school_id=1, table="parent_month_fees", row_id=10):
        with pytest.raises(ConflictError):
            with ledger_row_lock(school_id=1, table="parent_month_fees", row_id=10):
                pass
        with ledger_row_lock(school_id=1, table="parent_month_fees", row_id=11):
            assert ledger_row_lock_key(school_id=1, table="parent_month_fees", row_id=11) in fake_redis.store


def test_lock_fails_open_when_redis_is_unreachable(monkeypatch):
    """
    Validate Redis outages do not block ledger writes.

    1. Point the cache layer at a Redis client that always errors.
    2. Enter the billing period lock.
    3. Run the guarded block.
    4. Validate the block executed without raising.
    """
    monkeypatch.setattr(
        "app.infrastructure.cache.cache_service.get_redis_client", lambda: UnavailableRedis()
    )
    executed = []

    with billing_period_lock(school_id=9):
        executed.append(True)

    assert executed == [True]
