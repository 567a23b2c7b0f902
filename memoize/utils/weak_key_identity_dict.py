# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Defines the `WeakKeyIdentityDict` class.

See its documentation for more details.
'''

from __future__ import annotations

import weakref
import collections.abc
from typing import Any, Iterator, Optional, Mapping, List


__all__ = ['WeakKeyIdentityDict']


class IdentityRef(weakref.ref):
    '''A weak reference to an object, hashed by identity and not contents.'''

    def __init__(self, thing: Any, callback=None) -> None:
        weakref.ref.__init__(self, thing, callback)
        self._hash = id(thing)


    def __hash__(self) -> int:
        return self._hash


    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, IdentityRef):
            return NotImplemented
        if self is other:
            return True
        thing = self()
        return (thing is not None) and (thing is other())


class WeakKeyIdentityDict(collections.abc.MutableMapping):
    '''
    A weak key dictionary which cares about the keys' identities.

    Like in `weakref.WeakKeyDictionary`, the keys are referenced weakly, so once
    there are no more references to a key, its item disappears from the dict.

    The difference is that `WeakKeyIdentityDict` cares about the keys'
    identities and not their contents, so two equal but distinct objects are
    two different keys, and even unhashable objects like lists can be used as
    keys, as long as they support weak references.
    '''

    def __init__(self, dict_: Optional[Mapping] = None) -> None:
        self.data = {}
        def remove(identity_ref: IdentityRef, selfref=weakref.ref(self)) -> None:
            self = selfref()
            if self is not None:
                self.data.pop(identity_ref, None)
        self._remove = remove
        if dict_ is not None:
            self.update(dict_)


    def __getitem__(self, key: Any) -> Any:
        return self.data[IdentityRef(key)]


    def __setitem__(self, key: Any, value: Any) -> None:
        self.data[IdentityRef(key, self._remove)] = value


    def __delitem__(self, key: Any) -> None:
        del self.data[IdentityRef(key)]


    def __contains__(self, key: Any) -> bool:
        try:
            identity_ref = IdentityRef(key)
        except TypeError:
            return False
        return identity_ref in self.data


    def get(self, key: Any, default: Any = None) -> Any:
        try:
            identity_ref = IdentityRef(key)
        except TypeError:
            return default
        return self.data.get(identity_ref, default)


    def pop(self, key: Any, *args: Any) -> Any:
        return self.data.pop(IdentityRef(key), *args)


    def clear(self) -> None:
        self.data.clear()


    def keyrefs(self) -> List[IdentityRef]:
        '''
        Return a list of weak references to the keys.

        The references are not guaranteed to be live at the time they're used,
        so the result of calling them needs to be checked before use.
        '''
        return list(self.data)


    def __iter__(self) -> Iterator[Any]:
        for identity_ref in list(self.data):
            thing = identity_ref()
            if thing is not None:
                yield thing


    def __len__(self) -> int:
        return len(self.data)


    def __repr__(self) -> str:
        return f'<{type(self).__name__} at {id(self):#x}>'
