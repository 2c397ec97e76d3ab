# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Defines the `MemoTable` class.

A `MemoTable` wraps a recursive computation and makes sure that each key is computed at most
once during the table's lifetime. The computation gets a `Recurse` handle as its first
argument, and sub-keys requested through that handle go through the same cache:

    @MemoTable.create
    def fibonacci(recurse: Recurse, n: int) -> int:
        return n if n < 2 else recurse(n - 1) + recurse(n - 2)

    fibonacci.get(100) # Computes each of the keys 0..100 exactly once.

'''

from __future__ import annotations

from typing import (Iterable, Union, Optional, Tuple, Any, Iterator, Type,
                    Sequence, Callable, Hashable, Mapping, TypeVar, Dict, Generic)
import logging

import more_itertools
from immutabledict import immutabledict as ImmutableDict

logger = logging.getLogger(__name__)


Key = TypeVar('Key', bound=Hashable)
Value = TypeVar('Value')

_missing = object()


class Recurse(Generic[Key, Value]):
    '''
    The handle that a computation uses to ask its table for sub-keys.

    Calling it is the same as calling `get` on the owning table, so the answer is either cached
    or computed (and cached) on the spot, even while an outer computation is still running.
    '''
    def __init__(self, memo_table: MemoTable[Key, Value]) -> None:
        self.memo_table = memo_table

    def get(self, key: Key) -> Value:
        return self.memo_table.get(key)

    __call__ = get

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.memo_table!r})'


Computation = Callable[[Recurse, Any], Any]


class MemoTable(Generic[Key, Value]):
    '''
    A cache that computes each key at most once.

    The table is owned by whoever created it; it has no global state, so two tables built on the
    same computation don't share entries. Entries are only ever added. Not thread-safe, see
    `LockingMemoTable` for that.

    If the computation raises, the exception propagates out of `get` and nothing is stored for
    that key, so asking for it again retries the computation. A key that depends on itself
    recurses until Python gives up with `RecursionError`.
    '''
    def __init__(self, computation: Computation, precompute_key: Any = _missing) -> None:
        self.computation = computation
        self._storage: Dict[Key, Value] = {}
        if precompute_key is not _missing:
            self.warm((precompute_key,))

    @classmethod
    def create(cls, computation: Computation, precompute_key: Any = _missing) -> MemoTable:
        return cls(computation, precompute_key)

    def get(self, key: Key) -> Value:
        try:
            return self._storage[key]
        except KeyError:
            pass
        return self._compute_and_store(key)

    def _compute_and_store(self, key: Key) -> Value:
        logger.debug(f'Computing value for {key!r} in {self!r}')
        try:
            value = self.computation(Recurse(self), key)
        except BaseException:
            logger.debug(f'Computation for {key!r} failed, nothing was cached.')
            raise
        return self._storage.setdefault(key, value)

    def warm(self, keys: Iterable[Key]) -> None:
        '''Compute and cache the values for `keys`, discarding them.'''
        more_itertools.consume(map(self.get, keys))

    def snapshot(self) -> ImmutableDict:
        return ImmutableDict(self._storage)

    def __contains__(self, key: Key) -> bool:
        return key in self._storage

    def __len__(self) -> int:
        return len(self._storage)

    def __repr__(self) -> str:
        computation_name = getattr(self.computation, '__qualname__', repr(self.computation))
        return f'<{type(self).__name__}: {computation_name}, {len(self)} entries>'
