import asyncio
import logging
import time
from collections import OrderedDict
from typing import Awaitable, Callable, Hashable, NamedTuple

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    """
    Composite key for the per-backend request cache: an operation name plus
    the canonical string of its arguments, e.g.
    CacheKey("twitter.script", "https://abs.twimg.com/.../main.abc.js").
    """
    operation: str
    argument: str

    @classmethod
    def of(cls, operation: str, *parts) -> "CacheKey":
        return cls(operation, "\n".join(str(p) for p in parts))


class _Entry:
    __slots__ = ("future", "created", "last_access")

    def __init__(self, future: asyncio.Future, now: float):
        self.future = future
        self.created = now
        self.last_access = now


class AsyncTTLCache:
    """
    In-memory async cache with single-flight loading.

    What this implementation does:
    - At most one `compute()` runs per key; concurrent callers for the same
      key await the same outcome, value or exception
    - A failed computation is dropped once it settles, so only callers that
      joined while it was in flight see the failure; the next caller retries
    - Completed entries expire after `time_to_idle` without reads or
      `time_to_live` after they were stored, whichever comes first
    - Beyond `max_capacity` the least recently used completed entries go

    No lock is held across an await; keys never wait on each other.
    """

    def __init__(
        self,
        time_to_idle: float | None = None,
        time_to_live: float | None = None,
        max_capacity: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        self.time_to_idle = time_to_idle
        self.time_to_live = time_to_live
        self.max_capacity = max_capacity
        self.clock = clock
        self.name = name
        self._entries: OrderedDict[Hashable, _Entry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry, self.clock())

    async def get_or_fetch(self, key: Hashable, compute: Callable[[], Awaitable]):
        """
        Return the cached value for `key`, or run `compute()` once to produce it.
        """
        now = self.clock()
        entry = self._entries.get(key)
        if entry is not None and self._expired(entry, now):
            logger.debug("%s: expired %r", self.name, key)
            del self._entries[key]
            entry = None

        if entry is None:
            logger.debug("%s: miss %r", self.name, key)
            future = asyncio.ensure_future(compute())
            entry = _Entry(future, now)
            self._entries[key] = entry
            future.add_done_callback(lambda f, key=key, entry=entry: self._settle(key, entry, f))
            self._evict(now)
        else:
            logger.debug("%s: hit %r", self.name, key)
            entry.last_access = now
            self._entries.move_to_end(key)

        # shield: a caller going away must not cancel the shared computation
        return await asyncio.shield(entry.future)

    def _settle(self, key, entry: _Entry, future: asyncio.Future) -> None:
        failed = future.cancelled() or future.exception() is not None
        if failed:
            if self._entries.get(key) is entry:
                del self._entries[key]
            logger.debug("%s: computation for %r failed, not kept", self.name, key)
            return
        now = self.clock()
        entry.created = now
        entry.last_access = now

    def _expired(self, entry: _Entry, now: float) -> bool:
        if not entry.future.done():
            return False
        if self.time_to_live is not None and now - entry.created >= self.time_to_live:
            return True
        if self.time_to_idle is not None and now - entry.last_access >= self.time_to_idle:
            return True
        return False

    def _evict(self, now: float) -> None:
        for key in [k for k, e in self._entries.items() if self._expired(e, now)]:
            del self._entries[key]
        if self.max_capacity is None:
            return
        overflow = len(self._entries) - self.max_capacity
        if overflow <= 0:
            return
        for key in [k for k, e in self._entries.items() if e.future.done()][:overflow]:
            del self._entries[key]
