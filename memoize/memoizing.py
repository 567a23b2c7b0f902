# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Defines `memoize`, which wraps a function with a cache of its results.

Example:

    index = 0

    @memoize
    def counter(x):
        global index
        index += 1
        return index

    counter('foo') == 1
    counter('foo') == 1 # Cached, it's the same argument
    counter('bar') == 2 # Not cached, the argument changed

Only the first argument is used as the cache key, unless you pass a
`cache_key` function. See `memoize.keying` for the ones that come built in.

If the function returns a coroutine, it's wrapped in a task and the task is
cached, so concurrent calls with the same key share one computation. Futures
are cached the same way. A future that fails is evicted once it fails, so the
next call tries again, unless you pass `cache_rejection=True`.
'''

from __future__ import annotations

import asyncio
import logging
import functools
import concurrent.futures
from typing import Any, Callable, Optional, TypeVar, Union

from . import keying
from . import expiring
from . import storing
from .storing import CacheEntry
from .registering import registry, MemoizedState

logger = logging.getLogger(__name__)

_Function = TypeVar('_Function', bound=Callable)

_future_types = (asyncio.Future, concurrent.futures.Future)


def _get_name(function: Callable) -> str:
    return getattr(function, '__qualname__', None) or getattr(function, '__name__', None) or \
                                                                                repr(function)


def memoize(function: Optional[_Function] = None, /, *,
            max_age: Union[expiring.MaxAge, Callable[..., expiring.MaxAge]] = None,
            cache_key: Optional[keying.CacheKeyFunction] = None,
            cache: Any = None,
            cache_rejection: bool = False) -> _Function:
    '''
    Memoize a function, caching its results by the call's arguments.

    Can be used directly, `memoize(f)`, or as a decorator, with or without
    arguments.

    `max_age` is the number of seconds (or a `timedelta`) until a result
    expires, default is never. It can also be a function, which gets the same
    arguments as the memoized function after each call that wasn't cached, and
    returns the max age for that result. A max age of 0 means don't cache.

    `cache_key` gets the tuple of arguments and returns the key to cache the
    result under. The default key is the first argument.

    `cache` is where results are stored. It can be any `CacheStore` or a
    mutable mapping, default is a new `dict`.

    `cache_rejection` controls whether a failed coroutine or future stays in
    the cache. Default is to evict it.
    '''
    if function is None:
        return functools.partial(memoize, max_age=max_age, cache_key=cache_key, cache=cache,
                                 cache_rejection=cache_rejection)
    if not callable(function):
        raise TypeError(f'Expected a callable to memoize, got {function!r}.')

    computes_max_age = callable(max_age)
    fixed_max_age = None if computes_max_age else expiring.normalize_max_age(max_age)
    name = _get_name(function)
    state = MemoizedState(storing.as_store(cache), cache_key or keying.default_cache_key,
                          name=name)

    def get_max_age(args: tuple, kwargs: dict) -> float:
        if computes_max_age:
            return expiring.normalize_max_age(max_age(*args, **kwargs), computed=True)
        return fixed_max_age

    def watch_for_failure(key: Any, entry: CacheEntry) -> None:
        def on_done(future: Union[asyncio.Future, concurrent.futures.Future]) -> None:
            if future.cancelled() or future.exception() is not None:
                if state.forget_entry(key, entry):
                    logger.debug(f'Evicted failed result of {name} for key {key!r}.')

        entry.data.add_done_callback(on_done)

    @functools.wraps(function)
    def memoized(*args: Any, **kwargs: Any) -> Any:
        if fixed_max_age == 0:
            return function(*args, **kwargs)

        key = state.get_key(args, kwargs)
        with state.lock:
            entry = state.get_live_entry(key)
            if entry is not None:
                state.statistics.hits += 1
            else:
                state.statistics.misses += 1
        if entry is not None:
            return entry.data

        result = function(*args, **kwargs)

        try:
            effective_max_age = get_max_age(args, kwargs)
        except BaseException:
            if asyncio.iscoroutine(result):
                result.close()
            raise
        if effective_max_age == 0:
            return result

        if asyncio.iscoroutine(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug(f"{name} returned a coroutine outside of an event loop, it "
                             f"can't be cached.")
                return result
            result = loop.create_task(result)

        entry = CacheEntry(data=result, expires_at=expiring.get_expires_at(effective_max_age))
        state.set_entry(key, entry, effective_max_age)
        if isinstance(result, _future_types) and not cache_rejection:
            watch_for_failure(key, entry)
        return result

    registry.register(memoized, state)
    return memoized
