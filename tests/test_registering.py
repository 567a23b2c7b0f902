# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

import gc
import itertools
import threading

import pytest

from memoize import (memoize, memoize_clear, memoize_is_cached, memoize_statistics,
                     json_cache_key, WeakKeyIdentityStore, NotMemoized, UnclearableCache,
                     MemoizeException)
from memoize.registering import registry


def make_counter():
    counter = itertools.count()
    def count(*args, **kwargs):
        return next(counter)
    return count


def test_clear():
    memoized = memoize(make_counter())
    assert memoized() == 0
    assert memoized() == 0
    memoize_clear(memoized)
    assert memoized() == 1
    assert memoized() == 1


def test_clear_cancels_evictions():
    memoized = memoize(make_counter(), max_age=60)
    memoized(1)
    memoized(2)
    state = registry.get_state(memoized)
    evictions = tuple(state.evictions)
    assert len(evictions) == 2
    memoize_clear(memoized)
    assert not state.evictions
    for eviction in evictions:
        assert eviction.cancelled
        assert eviction.evict is None
    assert memoized(1) == 2


def test_clear_plain_function():
    with pytest.raises(NotMemoized, match="Can't clear a function that was not memoized!"):
        memoize_clear(lambda: None)
    with pytest.raises(TypeError):
        memoize_clear(make_counter())
    with pytest.raises(MemoizeException):
        memoize_clear(len)


def test_clear_unclearable_cache():
    memoized = memoize(lambda x: 1, cache=WeakKeyIdentityStore())
    with pytest.raises(UnclearableCache, match="The cache can't be cleared!"):
        memoize_clear(memoized)


def test_clear_zero_max_age():
    memoized = memoize(make_counter(), max_age=0)
    memoize_clear(memoized)
    assert memoized() == 0


def test_is_cached():
    memoized = memoize(lambda a, b: a + b, cache_key=json_cache_key)
    assert memoized(1, 2) == 3
    assert memoize_is_cached(memoized, 1, 2)
    assert not memoize_is_cached(memoized, 3, 4)
    assert not memoize_is_cached(memoized, 2, 1)


def test_is_cached_default_key():
    calls = []
    def f(*args):
        calls.append(args)
    memoized = memoize(f)
    memoized('foo', 'bar')
    assert memoize_is_cached(memoized, 'foo')
    assert memoize_is_cached(memoized, 'foo', 'baz')
    assert not memoize_is_cached(memoized, 'bar')
    assert calls == [('foo', 'bar')]


def test_is_cached_plain_function():
    assert memoize_is_cached(lambda x: x, 1) is False
    assert memoize_is_cached(len, 1) is False


def test_is_cached_after_clear():
    memoized = memoize(make_counter())
    memoized(1)
    memoize_clear(memoized)
    assert not memoize_is_cached(memoized, 1)


def test_statistics():
    memoized = memoize(make_counter())
    statistics = memoize_statistics(memoized)
    assert (statistics.hits, statistics.misses, statistics.total) == (0, 0, 0)
    assert statistics.hit_ratio == 0.0

    memoized(1)
    memoized(1)
    memoized(1)
    memoized(2)
    statistics = memoize_statistics(memoized)
    assert (statistics.hits, statistics.misses, statistics.total) == (2, 2, 4)
    assert statistics.hit_ratio == 0.5

    # It's a snapshot:
    memoized(1)
    assert statistics.hits == 2

    memoize_is_cached(memoized, 1)
    assert memoize_statistics(memoized).total == 5

    with pytest.raises(NotMemoized):
        memoize_statistics(make_counter())


def test_registry_doesnt_keep_functions_alive():
    gc.collect()
    n_registered = len(registry)
    memoized = memoize(make_counter())
    memoized(1)
    assert memoized in registry
    assert len(registry) == n_registered + 1
    del memoized
    gc.collect()
    assert len(registry) == n_registered


def test_statistics_from_many_threads():
    memoized = memoize(make_counter())
    memoized('x')
    barrier = threading.Barrier(8)
    def call_many_times():
        barrier.wait()
        for _ in range(1000):
            memoized('x')

    threads = [threading.Thread(target=call_many_times) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    statistics = memoize_statistics(memoized)
    assert (statistics.hits, statistics.misses) == (8000, 1)
