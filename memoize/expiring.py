# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Time-to-live handling for cache entries.

Each entry stores the monotonic time at which it expires, and that's checked
whenever the entry is read. Entries with a finite max age are also scheduled
for eviction on the shared `EvictionScheduler` thread, which deletes them once
they expire so they don't take memory until the next read. Max ages are in
seconds.
'''

from __future__ import annotations

import math
import heapq
import numbers
import logging
import threading
import itertools
import datetime as datetime_module
import time as time_module
from typing import Any, Callable, Optional, Union

from .exceptions import InvalidMaxAge

logger = logging.getLogger(__name__)


NEVER = math.inf

# The longest timeout `threading.Condition.wait` accepts.
MAX_AGE_LIMIT = threading.TIMEOUT_MAX

MaxAge = Union[numbers.Real, datetime_module.timedelta, None]


def normalize_max_age(max_age: MaxAge, *, computed: bool = False) -> float:
    if max_age is None:
        return NEVER
    if isinstance(max_age, datetime_module.timedelta):
        max_age = max_age.total_seconds()
    if isinstance(max_age, bool) or not isinstance(max_age, numbers.Real):
        raise InvalidMaxAge(max_age, 'should be a number of seconds', computed=computed)
    max_age = float(max_age)
    if math.isnan(max_age):
        raise InvalidMaxAge(max_age, 'should not be NaN', computed=computed)
    if max_age == NEVER:
        return NEVER
    if max_age < 0:
        raise InvalidMaxAge(max_age, 'should not be a negative number', computed=computed)
    if max_age > MAX_AGE_LIMIT:
        raise InvalidMaxAge(max_age, f'cannot exceed {MAX_AGE_LIMIT}', computed=computed)
    return max_age


def get_expires_at(max_age: float, now: Optional[float] = None) -> float:
    if max_age == NEVER:
        return NEVER
    if now is None:
        now = time_module.monotonic()
    return now + max_age


class Eviction:
    '''A pending call to `evict(eviction)` at the monotonic time `expires_at`.'''
    def __init__(self, scheduler: EvictionScheduler, expires_at: float,
                 evict: Callable[[Eviction], Any]) -> None:
        self.scheduler = scheduler
        self.expires_at = expires_at
        self.evict = evict
        self.pending = True
        self.cancelled = False

    def cancel(self) -> None:
        self.scheduler.cancel(self)

    def __repr__(self) -> str:
        return f'<{type(self).__name__} expires_at={self.expires_at}>'


class EvictionScheduler(threading.Thread):
    '''
    One daemon thread that runs the evictions of all memoized functions.

    Evictions are kept in a heap ordered by expiry time. The thread waits on
    `condition` until the earliest one is due, or until a new one is scheduled.
    '''
    def __init__(self) -> None:
        threading.Thread.__init__(self, name='memoize-eviction-scheduler', daemon=True)
        self.condition = threading.Condition()
        self._heap = []
        self._serial_numbers = itertools.count()
        self._n_cancelled = 0

    def schedule(self, max_age: float, evict: Callable[[Eviction], Any]) -> Eviction:
        eviction = Eviction(self, get_expires_at(max_age), evict)
        with self.condition:
            heapq.heappush(self._heap,
                           (eviction.expires_at, next(self._serial_numbers), eviction))
            self.condition.notify()
        return eviction

    def cancel(self, eviction: Eviction) -> None:
        with self.condition:
            if eviction.cancelled or not eviction.pending:
                return
            eviction.cancelled = True
            eviction.evict = None
            self._n_cancelled += 1
            if self._n_cancelled * 2 > len(self._heap):
                self._heap = [item for item in self._heap if not item[2].cancelled]
                heapq.heapify(self._heap)
                self._n_cancelled = 0

    def __len__(self) -> int:
        with self.condition:
            return len(self._heap) - self._n_cancelled

    def _pop_due_eviction(self) -> Eviction:
        with self.condition:
            while True:
                while self._heap and self._heap[0][2].cancelled:
                    heapq.heappop(self._heap)
                    self._n_cancelled -= 1
                if not self._heap:
                    self.condition.wait()
                    continue
                timeout = self._heap[0][0] - time_module.monotonic()
                if timeout > 0:
                    self.condition.wait(timeout)
                    continue
                _, _, eviction = heapq.heappop(self._heap)
                eviction.pending = False
                return eviction

    def run(self) -> None:
        while True:
            eviction = self._pop_due_eviction()
            evict, eviction.evict = eviction.evict, None
            try:
                evict(eviction)
            except Exception:
                logger.exception(f'Eviction {eviction!r} failed.')


_scheduler: Optional[EvictionScheduler] = None
_scheduler_lock = threading.Lock()

def get_scheduler() -> EvictionScheduler:
    '''Get the shared `EvictionScheduler`, starting it on first use.'''
    global _scheduler
    with _scheduler_lock:
        # After a fork, the scheduler object is inherited without its thread.
        if _scheduler is None or not _scheduler.is_alive():
            _scheduler = EvictionScheduler()
            _scheduler.start()
        return _scheduler


def schedule_eviction(max_age: float,
                      evict: Callable[[Eviction], Any]) -> Optional[Eviction]:
    if not (0 < max_age < NEVER):
        return None
    return get_scheduler().schedule(max_age, evict)
