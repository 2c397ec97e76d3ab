# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

import pathlib
import functools
import json

@functools.cache
def read_config() -> dict:
    try:
        content = config_path.read_text()
    except FileNotFoundError:
        return {}
    return json.loads(content)



memotable_folder: pathlib.Path = pathlib.Path.home() / '.memotable'
config_path: pathlib.Path = memotable_folder / 'config.json'
config = read_config()

if 'logs_path' in config:
    logs_folder = pathlib.Path(config['logs_path'])
else:
    logs_folder: pathlib.Path = memotable_folder / 'logs'
