# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

'''
Opt-in logging setup for programs that use `memotable`.

The library itself only emits records through `logging.getLogger(__name__)` loggers; nothing is
printed or written until the embedding program calls `setup`.
'''

import pathlib
import logging.config
import datetime as datetime_module
import re
import shlex
from typing import (Iterable, Union, Optional, Tuple, Any, Iterator, Type,
                    Sequence, Callable, Hashable, Mapping, TypeVar, Dict)


from . import constants


MAX_LOG_FILES_TO_KEEP = 100

VERBOSE_FORMAT = '{levelname} {asctime} {name} t{thread:d} | {message}'


def clean_logs_folder(logs_folder: pathlib.Path) -> None:
    '''Delete the oldest log files, making room for one more.'''
    logs = sorted(logs_folder.iterdir(), key=lambda path: path.stat().st_ctime)
    n_logs_to_delete = len(logs) - (MAX_LOG_FILES_TO_KEEP - 1)
    for log_to_delete in logs[:max(n_logs_to_delete, 0)]:
        log_to_delete.unlink()


def create_log_file_path(logs_folder: pathlib.Path) -> pathlib.Path:
    logs_folder.mkdir(parents=True, exist_ok=True)
    clean_logs_folder(logs_folder)
    now = datetime_module.datetime.now()
    log_file_stem = re.sub('[^0-9]+', '-', now.isoformat(timespec='milliseconds'))
    assert re.fullmatch('[0-9-]+', log_file_stem)
    path = logs_folder / f'{log_file_stem}.log'
    assert not path.exists()
    return path


log_file_path: Optional[pathlib.Path] = None
did_logging_setup: bool = False
is_verbose: Optional[bool] = None

def setup(*, verbose: bool = False, log_to_file: bool = True,
          existing_log_file_path: Optional[pathlib.Path] = None) -> None:
    '''
    Send log records to the console, and to a log file unless `log_to_file` is false.

    The console shows INFO and up, or everything when `verbose`. The file always gets
    everything. Only the first call does anything; use `get_logging_kwargs` to repeat the same
    setup somewhere else, e.g. in a worker process that should append to the same file.
    '''
    global log_file_path, did_logging_setup, is_verbose
    if did_logging_setup:
        return
    is_verbose = verbose
    handlers = {
        'console': {
            'class': 'logging.StreamHandler',
            'level': 'DEBUG' if verbose else 'INFO',
            'formatter': 'simple',
        },
    }
    if log_to_file:
        assert log_file_path is None
        log_file_path = (existing_log_file_path if existing_log_file_path is not None
                         else create_log_file_path(constants.logs_folder))
        handlers['file'] = {
            'level': 'DEBUG',
            'class': 'logging.FileHandler',
            'filename': log_file_path,
            'mode': 'a',
            'formatter': 'verbose',
        }
    else:
        assert existing_log_file_path is None

    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'verbose': {'format': VERBOSE_FORMAT, 'style': '{'},
                'simple': {'format': '{message}', 'style': '{'},
            },
            'handlers': handlers,
            'root': {
                'handlers': tuple(handlers),
                'level': 'DEBUG',
            },
        }
    )

    logger = logging.getLogger(__name__)
    if log_to_file and not existing_log_file_path:
        logger.info(f'Log file: {shlex.quote(str(log_file_path))}')
    did_logging_setup = True


def get_logging_kwargs() -> dict:
    assert did_logging_setup
    return {
        'verbose': is_verbose,
        'log_to_file': (log_file_path is not None),
        'existing_log_file_path': log_file_path
    }
