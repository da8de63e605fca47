"""Session-scoped key/value store shared between workflow steps.

Steps write response payloads with saveToContext and read them back with
fromContext. A store belongs to whoever creates it (one per session or per
run); it is passed into the engine explicitly. Retention is governed by an
optional eviction policy; without one, entries live as long as the store.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from typing import Any, Protocol


class EvictionPolicy(Protocol):
    def on_set(self, store: ContextStore, key: str) -> None: ...

    def is_expired(self, store: ContextStore, key: str) -> bool: ...


class MaxEntries:
    """Keep at most `limit` entries, dropping the least recently written."""

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit

    def on_set(self, store: ContextStore, key: str) -> None:
        while len(store._data) > self.limit:
            store._evict_oldest()

    def is_expired(self, store: ContextStore, key: str) -> bool:
        return False


class TimeToLive:
    """Expire entries `seconds` after they were last written."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.seconds = seconds
        self.clock = clock

    def on_set(self, store: ContextStore, key: str) -> None:
        pass

    def is_expired(self, store: ContextStore, key: str) -> bool:
        return self.clock() - store._written[key] >= self.seconds


class ContextStore:
    """Mutable store for sharing data between tool calls."""

    def __init__(
        self,
        eviction: EvictionPolicy | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.eviction = eviction
        self._clock = clock or getattr(eviction, "clock", time.monotonic)
        self._data: OrderedDict[str, Any] = OrderedDict()
        self._written: dict[str, float] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a value, overwriting any previous one."""
        self._data.pop(key, None)
        self._data[key] = value
        self._written[key] = self._clock()
        if self.eviction is not None:
            self.eviction.on_set(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value from the store."""
        if not self.has(key):
            return default
        return self._data[key]

    def has(self, key: str) -> bool:
        if key not in self._data:
            return False
        if self.eviction is not None and self.eviction.is_expired(self, key):
            self.delete(key)
            return False
        return True

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
        self._written.pop(key, None)

    def clear(self) -> None:
        self._data.clear()
        self._written.clear()

    def keys(self) -> list[str]:
        return [key for key in list(self._data) if self.has(key)]

    def _evict_oldest(self) -> None:
        key, _ = self._data.popitem(last=False)
        self._written.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        return len(self.keys())

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of the live entries."""
        return {key: self._data[key] for key in self.keys()}
