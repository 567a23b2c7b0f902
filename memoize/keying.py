# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Turning the arguments of a call into a cache key.

A cache key function takes one argument, the argument list of the call, and
returns the key under which the result is stored. The argument list is a tuple
of the positional arguments, followed by an `ImmutableDict` of the keyword
arguments if there are any.

By default only the first argument is considered:

    default_cache_key((1, 2, 3)) == 1

Use `json_cache_key` or `tuple_cache_key` to have all the arguments take part
in the key.
'''

from __future__ import annotations

import json
import collections.abc
from typing import Any, Callable, Hashable, Mapping, Tuple

import more_itertools
from immutabledict import immutabledict as ImmutableDict


CacheKeyFunction = Callable[[Tuple[Any, ...]], Hashable]


def get_arguments(args: Tuple[Any, ...], kwargs: Mapping[str, Any]) -> Tuple[Any, ...]:
    if kwargs:
        return (*args, ImmutableDict(kwargs))
    return tuple(args)


def default_cache_key(arguments: Tuple[Any, ...]) -> Hashable:
    return more_itertools.first(arguments, None)


def _json_default(thing: Any) -> Any:
    if isinstance(thing, collections.abc.Mapping):
        return dict(thing)
    if isinstance(thing, (set, frozenset)):
        return sorted(thing, key=repr)
    raise TypeError(f'Object of type {type(thing).__name__} is not JSON serializable')


def json_cache_key(arguments: Tuple[Any, ...]) -> str:
    '''
    Key on all the arguments, serialized as JSON.

    Equal arguments give equal keys even if they're distinct objects, e.g. two
    dicts with the same contents. Arguments must be JSON-serializable.
    '''
    return json.dumps(arguments, sort_keys=True, default=_json_default)


def tuple_cache_key(arguments: Tuple[Any, ...]) -> Tuple[Any, ...]:
    '''Key on all the arguments, which must all be hashable.'''
    return arguments
