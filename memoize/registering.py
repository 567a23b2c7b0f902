# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
The registry that ties each memoized function to its cache.

The registry holds memoized functions weakly, so once a memoized function is
no longer referenced, its cache and statistics go away with it, once its pending
evictions have run.
'''

from __future__ import annotations

import logging
import threading
import dataclasses
from typing import Any, Callable, Hashable, Mapping, Optional, Set, Tuple

from . import keying
from . import expiring
from . import storing
from .storing import CacheEntry, CacheStore
from .exceptions import NotMemoized, UnclearableCache
from .utils import WeakKeyIdentityDict

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Statistics:
    hits: int = 0
    misses: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        return (self.hits / self.total) if self.total else 0.0


class MemoizedState:
    '''
    The bookkeeping of one memoized function.

    Store operations are done under `lock`, because the eviction scheduler and
    `concurrent.futures` callbacks may touch the store from other threads. The
    wrapped function itself is never called under the lock.
    '''
    def __init__(self, store: CacheStore, cache_key: keying.CacheKeyFunction, *,
                 name: str = '<memoized>') -> None:
        self.store = store
        self.cache_key = cache_key
        self.name = name
        self.evictions: Set[expiring.Eviction] = set()
        self.statistics = Statistics()
        self.lock = threading.RLock()

    def get_key(self, args: Tuple[Any, ...], kwargs: Mapping[str, Any]) -> Hashable:
        return self.cache_key(keying.get_arguments(args, kwargs))

    def get_live_entry(self, key: Hashable) -> Optional[CacheEntry]:
        with self.lock:
            entry = self.store.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                self.store.delete(key)
                return None
            return entry

    def is_cached(self, key: Hashable) -> bool:
        with self.lock:
            if not self.store.has(key):
                return False
            return self.get_live_entry(key) is not None

    def set_entry(self, key: Hashable, entry: CacheEntry, max_age: float) -> None:
        with self.lock:
            self.store.set(key, entry)

            def evict(eviction: expiring.Eviction) -> None:
                with self.lock:
                    self.evictions.discard(eviction)
                    if self.forget_entry(key, entry):
                        logger.debug(f'Evicted expired entry of {self.name} for key {key!r}.')

            eviction = expiring.schedule_eviction(max_age, evict)
            if eviction is not None:
                self.evictions.add(eviction)

    def forget_entry(self, key: Hashable, entry: CacheEntry) -> bool:
        '''Delete the entry at `key`, but only if it's still `entry`.'''
        with self.lock:
            if self.store.get(key) is not entry:
                return False
            self.store.delete(key)
            return True

    def clear(self) -> None:
        if not storing.is_clearable(self.store):
            raise UnclearableCache(self.store)
        with self.lock:
            self.store.clear()
            evictions = tuple(self.evictions)
            self.evictions.clear()
        for eviction in evictions:
            eviction.cancel()
        logger.debug(f'Cleared the cache of {self.name}, cancelled {len(evictions)} '
                     f'pending evictions.')


class Registry:
    def __init__(self) -> None:
        self._function_to_state = WeakKeyIdentityDict()

    def register(self, function: Callable, state: MemoizedState) -> None:
        self._function_to_state[function] = state

    def get_state(self, function: Any) -> Optional[MemoizedState]:
        return self._function_to_state.get(function)

    def __contains__(self, function: Any) -> bool:
        return function in self._function_to_state

    def __len__(self) -> int:
        return len(self._function_to_state)


registry = Registry()


def _get_state_or_raise(function: Any) -> MemoizedState:
    state = registry.get_state(function)
    if state is None:
        raise NotMemoized(function)
    return state


def memoize_clear(function: Callable) -> None:
    '''
    Clear all the cached results of a memoized function.

    Pending evictions are cancelled. Results that are still being
    computed are not cancelled, callers who already got them can still use
    them.
    '''
    _get_state_or_raise(function).clear()


def memoize_is_cached(function: Callable, *args: Any, **kwargs: Any) -> bool:
    '''
    Check whether calling `function(*args, **kwargs)` would hit the cache.

    The cache key is derived the same way a call would derive it. Returns
    `False` for a function that wasn't memoized.
    '''
    state = registry.get_state(function)
    if state is None:
        return False
    return state.is_cached(state.get_key(args, kwargs))


def memoize_statistics(function: Callable) -> Statistics:
    state = _get_state_or_raise(function)
    with state.lock:
        return dataclasses.replace(state.statistics)
