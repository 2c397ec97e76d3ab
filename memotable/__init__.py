# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

import collections

from .tabling import MemoTable, Recurse
from .locking import LockingMemoTable

__VersionInfo = collections.namedtuple('VersionInfo',
                                       ('major', 'minor', 'micro'))

__version__ = '0.1.0'
__version_info__ = __VersionInfo(*(map(int, __version__.split('.'))))


del collections, __VersionInfo # Avoid polluting the namespace
