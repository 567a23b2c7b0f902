# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Memoizing methods with one cache per instance.

Example:

    class Counter:
        def __init__(self) -> None:
            self.index = 0

        @memoize_method()
        def count(self) -> int:
            self.index += 1
            return self.index

    alpha = Counter()
    alpha.count() == 1
    alpha.count() == 1 # Memoized
    Counter().count() == 1 # Not shared between instances
'''

from __future__ import annotations

import weakref
from typing import Any, Callable, Dict, Optional, Type

from . import expiring
from .memoizing import memoize


class MemoizedMethod:
    '''
    Descriptor that memoizes a method separately for each instance.

    On the first access through an instance, the method bound to that instance
    is memoized and the memoized function is saved in the instance's
    `__dict__`, so later accesses get it directly. Accessing through the class
    memoizes once per class, which is what you get for static and class
    methods.
    '''
    def __init__(self, function: Any, options: Dict[str, Any]) -> None:
        if not (callable(function) or isinstance(function, (staticmethod, classmethod))):
            raise TypeError('The decorated value must be a function')
        if not callable(options.get('max_age')):
            expiring.normalize_max_age(options.get('max_age'))
        self.function = function
        self.options = options
        self.name: Optional[str] = getattr(function, '__name__', None)
        self.__doc__ = getattr(function, '__doc__', None)
        self._owner_to_memoized: weakref.WeakKeyDictionary[type, Callable] = \
                                                                   weakref.WeakKeyDictionary()

    def __set_name__(self, owner: Type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Optional[Any], owner: Optional[Type] = None) -> Callable:
        if owner is None:
            owner = type(instance)
        if instance is None:
            try:
                return self._owner_to_memoized[owner]
            except KeyError:
                memoized = self._owner_to_memoized[owner] = \
                                           memoize(self.function.__get__(None, owner), **self.options)
                return memoized

        memoized = memoize(self.function.__get__(instance, owner), **self.options)
        try:
            instance.__dict__[self.name] = memoized
        except AttributeError as attribute_error:
            raise TypeError(f"Can't memoize {self.name} on {instance!r}, because it has no "
                            f"`__dict__` to keep the memoized method in.") from attribute_error
        return memoized

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.function!r})'


def memoize_method(**options: Any) -> Callable[[Any], MemoizedMethod]:
    '''
    Decorator for memoizing a method, separately for each instance.

    Takes the same keyword arguments as `memoize`.
    '''
    def decorator(function: Any) -> MemoizedMethod:
        return MemoizedMethod(function, options)
    return decorator
