# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

from __future__ import annotations

from typing import (Iterable, Union, Optional, Tuple, Any, Iterator, Type,
                    Sequence, Callable, Hashable, Mapping, TypeVar, Dict)
import threading
import logging

from immutabledict import immutabledict as ImmutableDict

from .tabling import MemoTable, Computation, Key, Value, _missing

logger = logging.getLogger(__name__)


class LockingMemoTable(MemoTable):
    '''
    A `MemoTable` that can be shared between threads.

    The lock is held for the whole miss path, computation included, so each key is computed at
    most once even when several threads ask for it together. It's reentrant, because the
    computation recurses into `get` while holding it. Hits don't touch the lock.
    '''
    def __init__(self, computation: Computation, precompute_key: Any = _missing) -> None:
        self.lock = threading.RLock()
        MemoTable.__init__(self, computation, precompute_key)

    def _compute_and_store(self, key: Key) -> Value:
        with self.lock:
            # Another thread might have stored it while we were waiting for the lock:
            try:
                value = self._storage[key]
            except KeyError:
                pass
            else:
                logger.debug(f'{key!r} was stored by another thread while we were waiting.')
                return value
            return MemoTable._compute_and_store(self, key)

    def warm(self, keys: Iterable[Key]) -> None:
        with self.lock:
            MemoTable.warm(self, keys)

    def snapshot(self) -> ImmutableDict:
        with self.lock:
            return MemoTable.snapshot(self)
