# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Cache stores: where a memoized function keeps its entries.

A store needs `has`, `get`, `set` and `delete` methods, and optionally a
`clear` method. Any object that has these works, it doesn't need to inherit
from `CacheStore`. A plain `MutableMapping` like a `dict` is wrapped in a
`MappingStore` automatically.
'''

from __future__ import annotations

import abc
import math
import dataclasses
import collections
import collections.abc
import time as time_module
from typing import Any, Hashable, Optional, MutableMapping

from .utils import WeakKeyIdentityDict


@dataclasses.dataclass
class CacheEntry:
    data: Any
    expires_at: float = math.inf

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at == math.inf:
            return False
        if now is None:
            now = time_module.monotonic()
        return now >= self.expires_at


class IdentityKey:
    '''
    Stands in for a key whose type is unhashable, like a list or a dict.

    It's hashed and compared by the identity of the object it holds, and holds
    it strongly, like a `dict` holds its keys.
    '''
    __slots__ = ('thing',)

    def __init__(self, thing: Any) -> None:
        self.thing = thing

    def __hash__(self) -> int:
        return id(self.thing)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, IdentityKey) and other.thing is self.thing

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.thing!r})'


def as_hashable_key(key: Any) -> Hashable:
    '''
    Get `key` itself, or an `IdentityKey` for it if its type is unhashable.

    A hashable type whose instance can't be hashed, like a tuple containing a
    list, still raises `TypeError`.
    '''
    if type(key).__hash__ is None:
        return IdentityKey(key)
    return key



class CacheStore(abc.ABC):

    @abc.abstractmethod
    def has(self, key: Hashable) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, key: Hashable) -> Optional[CacheEntry]:
        raise NotImplementedError

    @abc.abstractmethod
    def set(self, key: Hashable, entry: CacheEntry) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, key: Hashable) -> None:
        raise NotImplementedError

    @classmethod
    def __subclasshook__(cls, subclass: type) -> bool:
        if cls is CacheStore:
            if all(callable(getattr(subclass, name, None))
                   for name in ('has', 'get', 'set', 'delete')):
                return True
        return NotImplemented


def is_clearable(store: Any) -> bool:
    return callable(getattr(store, 'clear', None))


class MappingStore(CacheStore):
    '''
    A store on top of any mutable mapping, like a `dict`.

    Keys of unhashable types, like lists, are compared by identity.
    '''

    def __init__(self, mapping: Optional[MutableMapping] = None) -> None:
        self.mapping = {} if mapping is None else mapping

    def has(self, key: Any) -> bool:
        return as_hashable_key(key) in self.mapping

    def get(self, key: Any) -> Optional[CacheEntry]:
        return self.mapping.get(as_hashable_key(key))

    def set(self, key: Any, entry: CacheEntry) -> None:
        self.mapping[as_hashable_key(key)] = entry

    def delete(self, key: Any) -> None:
        self.mapping.pop(as_hashable_key(key), None)

    def clear(self) -> None:
        self.mapping.clear()

    def __len__(self) -> int:
        return len(self.mapping)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.mapping!r})'


class WeakKeyIdentityStore(CacheStore):
    '''
    A store whose keys are objects, held weakly and compared by identity.

    When a key object is garbage-collected, its entry goes away with it. Two
    distinct objects are always two different keys, even if they're equal.
    Keys must support weak references, so ints, strings and tuples can't be
    used.

    This store can't be cleared.
    '''

    def __init__(self) -> None:
        self._weak_key_identity_dict = WeakKeyIdentityDict()

    def has(self, key: Any) -> bool:
        return key in self._weak_key_identity_dict

    def get(self, key: Any) -> Optional[CacheEntry]:
        return self._weak_key_identity_dict.get(key)

    def set(self, key: Any, entry: CacheEntry) -> None:
        self._weak_key_identity_dict[key] = entry

    def delete(self, key: Any) -> None:
        try:
            self._weak_key_identity_dict.pop(key, None)
        except TypeError: # Not weak-referenceable, so it can't be in here.
            pass

    def __len__(self) -> int:
        return len(self._weak_key_identity_dict)


class LruStore(CacheStore):
    '''
    A store with a maximum size, discarding the least recently used entry.

    Both `get` and `set` count as using an entry. Keys of unhashable types are
    compared by identity.
    '''

    def __init__(self, max_size: int) -> None:
        if max_size <= 0:
            raise ValueError(f'`max_size` must be positive, got {max_size!r}.')
        self.max_size = max_size
        self._ordered_dict = collections.OrderedDict()

    def has(self, key: Any) -> bool:
        return as_hashable_key(key) in self._ordered_dict

    def get(self, key: Any) -> Optional[CacheEntry]:
        key = as_hashable_key(key)
        try:
            entry = self._ordered_dict[key]
        except KeyError:
            return None
        self._ordered_dict.move_to_end(key)
        return entry

    def set(self, key: Any, entry: CacheEntry) -> None:
        key = as_hashable_key(key)
        self._ordered_dict[key] = entry
        self._ordered_dict.move_to_end(key)
        while len(self._ordered_dict) > self.max_size:
            self._ordered_dict.popitem(last=False)

    def delete(self, key: Any) -> None:
        self._ordered_dict.pop(as_hashable_key(key), None)

    def clear(self) -> None:
        self._ordered_dict.clear()

    def __len__(self) -> int:
        return len(self._ordered_dict)

    def __repr__(self) -> str:
        return f'{type(self).__name__}(max_size={self.max_size})'


def as_store(cache: Any) -> CacheStore:
    if cache is None:
        return MappingStore()
    elif isinstance(cache, CacheStore):
        return cache
    elif isinstance(cache, collections.abc.MutableMapping):
        return MappingStore(cache)
    else:
        raise TypeError(
            f"Can't use {cache!r} as a cache. It should either have `has`, `get`, `set` and "
            f"`delete` methods, or be a mutable mapping like a `dict`."
        )
