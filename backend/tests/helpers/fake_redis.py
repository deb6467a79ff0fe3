import json


class FakeRedisClient:
    """In-memory stand-in for the handful of Redis commands the app issues."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.published: list[tuple[str, str]] = []

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        return self.store.get(key)

    def setex(self, key: str, _ttl_seconds: int, value: str) -> bool:
        self.store[key] = value
        return True

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    def eval(self, _script: str, _numkeys: int, key: str, token: str) -> int:
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    def published_events(self) -> list[str]:
        return [json.loads(message)["event"] for _, message in self.published]
