# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

from __future__ import annotations

import collections
import concurrent.futures
import threading
import time
import itertools
import logging
from typing import (Iterable, Union, Optional, Tuple, Any, Iterator, Type,
                    Sequence, Callable, Hashable, Mapping, TypeVar, Dict)

import pytest

from memotable import MemoTable, LockingMemoTable, Recurse


class SlowCountingFibonacci:
    def __init__(self, sleep_seconds: float = 0.001) -> None:
        self.sleep_seconds = sleep_seconds
        self.key_to_n_calls = collections.Counter()
        self.counter_lock = threading.Lock()

    def __call__(self, recurse: Recurse, n: int) -> int:
        with self.counter_lock:
            self.key_to_n_calls[n] += 1
        time.sleep(self.sleep_seconds)
        return n if n < 2 else recurse(n - 1) + recurse(n - 2)


def test_single_thread():
    slow_counting_fibonacci = SlowCountingFibonacci(sleep_seconds=0)
    locking_memo_table = LockingMemoTable.create(slow_counting_fibonacci, 10)
    assert isinstance(locking_memo_table, MemoTable)
    assert set(locking_memo_table.snapshot()) == set(range(11))
    assert locking_memo_table.get(30) == 832040
    assert sum(slow_counting_fibonacci.key_to_n_calls.values()) == 31


@pytest.mark.parametrize('n_threads', (2, 8))
def test_concurrent_gets_compute_each_key_once(n_threads: int):
    slow_counting_fibonacci = SlowCountingFibonacci()
    locking_memo_table = LockingMemoTable(slow_counting_fibonacci)
    keys = tuple(itertools.islice(itertools.cycle(range(25, 5, -1)), 100))
    with concurrent.futures.ThreadPoolExecutor(max_workers=n_threads) as executor:
        results = tuple(executor.map(locking_memo_table.get, keys))

    assert results == tuple(locking_memo_table.get(key) for key in keys)
    assert results[0] == 75025
    assert set(slow_counting_fibonacci.key_to_n_calls) == set(range(26))
    assert set(slow_counting_fibonacci.key_to_n_calls.values()) == {1}


def test_concurrent_gets_of_one_key():
    n_calls = collections.Counter()
    barrier = threading.Barrier(4)

    def computation(recurse: Recurse, key: str) -> str:
        n_calls[key] += 1
        time.sleep(0.05)
        return key.upper()

    def get_after_barrier(key: str) -> str:
        barrier.wait()
        return locking_memo_table.get(key)

    locking_memo_table = LockingMemoTable(computation)
    with concurrent.futures.ThreadPoolExecutor(max_workers=4) as executor:
        results = tuple(executor.map(get_after_barrier, ('meow',) * 4))
    assert results == ('MEOW',) * 4
    assert n_calls == {'meow': 1}


def test_failure_releases_lock():
    is_broken = True

    def computation(recurse: Recurse, n: int) -> int:
        if is_broken:
            raise ValueError(n)
        return n

    locking_memo_table = LockingMemoTable(computation)
    with pytest.raises(ValueError):
        locking_memo_table.get(7)
    assert 7 not in locking_memo_table

    # The lock must be free for other threads now:
    assert locking_memo_table.lock.acquire(blocking=False)
    locking_memo_table.lock.release()
    is_broken = False
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        assert executor.submit(locking_memo_table.get, 7).result(timeout=10) == 7


@pytest.mark.parametrize('memo_table_type', (MemoTable, LockingMemoTable))
def test_failure_propagates_unchanged(memo_table_type: Type[MemoTable]):
    def computation(recurse: Recurse, key: int) -> int:
        raise ValueError(key)

    memo_table = memo_table_type(computation)
    with pytest.raises(ValueError) as exception_info:
        memo_table.get(1)
    assert exception_info.value.args == (1,)
    assert exception_info.value.__context__ is None
    assert exception_info.value.__cause__ is None


def test_waiting_thread_uses_stored_value(caplog):
    n_calls = collections.Counter()
    started_computing = threading.Event()

    def computation(recurse: Recurse, key: str) -> str:
        n_calls[key] += 1
        started_computing.set()
        time.sleep(0.1)
        return key * 2

    locking_memo_table = LockingMemoTable(computation)
    with caplog.at_level(logging.DEBUG, logger='memotable'):
        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
            first_future = executor.submit(locking_memo_table.get, 'ab')
            assert started_computing.wait(timeout=10)
            second_future = executor.submit(locking_memo_table.get, 'ab')
            assert first_future.result(timeout=10) == second_future.result(timeout=10) == 'abab'
    assert n_calls == {'ab': 1}
    assert ("'ab' was stored by another thread while we were waiting." in
            [record.getMessage() for record in caplog.records])
