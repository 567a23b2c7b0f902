# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Memoize functions: cache the results of calls so identical calls don't
recompute them.

See `memoize.memoizing` for the details.
'''

import collections

from . import utils
from . import exceptions
from .exceptions import MemoizeException, InvalidMaxAge, NotMemoized, UnclearableCache
from .keying import default_cache_key, json_cache_key, tuple_cache_key
from .storing import CacheEntry, CacheStore, MappingStore, WeakKeyIdentityStore, LruStore
from .expiring import NEVER
from .registering import memoize_clear, memoize_is_cached, memoize_statistics, Statistics
from .memoizing import memoize
from .method_memoizing import memoize_method, MemoizedMethod

__VersionInfo = collections.namedtuple('VersionInfo',
                                       ('major', 'minor', 'micro'))

__version__ = '0.1.0'
__version_info__ = __VersionInfo(*(map(int, __version__.split('.'))))


del collections, __VersionInfo # Avoid polluting the namespace
