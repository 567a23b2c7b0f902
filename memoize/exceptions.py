# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

from __future__ import annotations

from typing import Any, Optional


class MemoizeException(Exception):
    pass


class InvalidMaxAge(MemoizeException, ValueError):
    def __init__(self, max_age: Any, reason: str, *, computed: bool = False) -> None:
        self.max_age = max_age
        self.computed = computed
        source = ('The value returned by the `max_age` function' if computed
                  else 'The `max_age` option')
        MemoizeException.__init__(self, f'{source} {reason}, got {max_age!r}.')


class NotMemoized(MemoizeException, TypeError):
    '''You tried to clear or inspect a function that `memoize` didn't produce.'''
    def __init__(self, function: Optional[Any] = None) -> None:
        self.function = function
        MemoizeException.__init__(self, "Can't clear a function that was not memoized!")


class UnclearableCache(MemoizeException, TypeError):
    '''The memoized function's cache store has no `clear` method.'''
    def __init__(self, cache: Optional[Any] = None) -> None:
        self.cache = cache
        MemoizeException.__init__(self, "The cache can't be cleared!")
