"""
Query cache keyed by ``(resource, id)`` tuples with invalidate-on-mutation semantics.

Lists fetched from the bank API (accounts, UPI ids, cards, beneficiaries,
transfers) are cached per key; mutations drop the keys they affect so the
next read refetches.
"""

from typing import Any, Awaitable, Callable, Dict, Hashable, Tuple

from paydesk.logging_config import get_logger

logger = get_logger("paydesk.app.query_cache")

QueryKey = Tuple[str, Hashable]


class QueryCache:
    def __init__(self) -> None:
        self._entries: Dict[QueryKey, Any] = {}

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def get(self, key: QueryKey, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: QueryKey, value: Any) -> None:
        self._entries[key] = value

    async def get_or_fetch(self, key: QueryKey, fetch: Callable[[], Awaitable[Any]]) -> Any:
        if key in self._entries:
            return self._entries[key]
        value = await fetch()
        self._entries[key] = value
        logger.debug("Cached %s", key)
        return value

    def invalidate(self, key: QueryKey) -> bool:
        """
        Drop one key. Returns True if it was cached.
        """
        logger.debug("Invalidating %s", key)
        return self._entries.pop(key, None) is not None

    def invalidate_resource(self, resource: str) -> int:
        keys = [k for k in self._entries if k[0] == resource]
        for k in keys:
            del self._entries[k]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
