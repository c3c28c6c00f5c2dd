# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Logging setup for the command line interface.
"""
import logging
import os
import sys
from typing import Dict, Optional

import colorlog

LOG_LEVELS_ENV = "FBEMU_LOG_LEVELS"

CONSOLE_FORMAT = '%(log_color)s[%(levelname).4s]%(reset)s %(cyan)s%(name)s%(reset)s: %(message)s'
PLAIN_FORMAT = '[%(levelname).4s] %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s [%(levelname).4s] %(name)s: %(message)s'


def setup_logger(debug: bool = False,
                 module_levels: Optional[Dict[str, str]] = None,
                 log_file: Optional[str] = None):
    """
    Configures the root logger, colouring console output when stderr is a terminal.

    :param debug: Enable the DEBUG level.
    :param module_levels: Per-module levels, e.g. {"fbemu.BUILDERS": "DEBUG"}.
    :param log_file: Optional file that receives a copy of every record.
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Calling twice only adjusts levels
    if logger.handlers:
        _apply_module_levels(module_levels)
        return

    use_colors = sys.stderr.isatty() and not os.environ.get("NO_COLOR")

    console_handler = logging.StreamHandler(sys.stderr)
    if use_colors:
        console_handler.setFormatter(colorlog.ColoredFormatter(
            CONSOLE_FORMAT,
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            },
            reset=True,
        ))
    else:
        console_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)
        logging.getLogger(__name__).info("Logging to file: %s", log_file)

    _apply_module_levels(module_levels)


def parse_module_levels(value: str) -> Dict[str, str]:
    """
    Parses "name=LEVEL,name=LEVEL" into a mapping; malformed pairs are skipped.
    """
    levels = {}
    for pair in value.split(','):
        pair = pair.strip()
        if '=' not in pair:
            continue
        name, level = pair.split('=', 1)
        levels[name.strip()] = level.strip().upper()
    return levels


def _apply_module_levels(module_levels: Optional[Dict[str, str]]):
    if module_levels is None:
        module_levels = parse_module_levels(os.environ.get(LOG_LEVELS_ENV, ""))

    for name, level_name in module_levels.items():
        level = logging.getLevelName(level_name.upper())
        if not isinstance(level, int):
            logging.getLogger(__name__).warning("Ignoring unknown log level %r for %s", level_name, name)
            continue
        if not name.startswith("fbemu"):
            name = f"fbemu.{name}"
        logging.getLogger(name).setLevel(level)
