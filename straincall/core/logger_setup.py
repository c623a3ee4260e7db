#!/usr/bin/env python

"""Logger for straincall to STDERR or to a LOGFILE.

Levels
------
DEBUG: caller commands, indexing calls, and engine messages.
INFO: strategy, stage headers, partition counts and final files. (DEFAULT)
WARNING: settings that were replaced, e.g., an invalid worker count.
ERROR: the failed stage and the log file to inspect.

Records logged by a stage are prefixed by its phase name, e.g.
`call_1`, when the logger is bound with `phase=...`.

Examples
--------
>>> import straincall as sc
>>> sc.set_log_level("DEBUG")
>>> sc.set_log_level("INFO", log_file="out/straincall.log")
"""

from typing import Optional
import sys
from pathlib import Path
from loguru import logger
import IPython

LOGGER_NAME = "straincall"
LOGGERS = [0]


def formatter(record):
    """Custom formatter allowing an open line end and a phase prefix."""
    end = record["extra"].get("end", "\n")
    phase = record["extra"].get("phase")
    fmessage = (
        "{time:hh:mm:ss} | "
        "<level>{level:<8}</level> <white>|</white> "
        "<magenta>{file:<16}</magenta> <white>|</white> "
    )
    if phase:
        fmessage += "<cyan>[{extra[phase]}]</cyan> "
    return fmessage + "{message}" + end


def color_support():
    """Check for color support in stderr as a notebook or terminal/tty."""
    in_notebook = bool(IPython.get_ipython())
    return in_notebook or sys.stderr.isatty()


def _is_straincall(record) -> bool:
    return record["extra"].get("name") == LOGGER_NAME


def set_log_level(log_level: str = "DEBUG", log_file: Optional[Path] = None):
    """Replace the straincall log sink with one at log_level.

    Only records bound with `name="straincall"` are written, so every
    module starts with `logger = logger.bind(name="straincall")`. A
    log_file replaces STDERR as the sink; it is never written in color.
    """
    for idx in LOGGERS:
        try:
            logger.remove(idx)
        except ValueError:
            pass

    kwargs = dict(level=log_level, format=formatter, filter=_is_straincall, enqueue=True)
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        idx = logger.add(sink=log_file, colorize=False, rotation="50 MB", **kwargs)
    else:
        idx = logger.add(sink=sys.stderr, colorize=color_support(), **kwargs)
    LOGGERS.append(idx)

    logger.enable(LOGGER_NAME)
    get_logger().debug(f"straincall logging enabled: {log_level}")


def get_logger(phase: Optional[str] = None):
    """Return the bound straincall logger, optionally for one phase."""
    if phase:
        return logger.bind(name=LOGGER_NAME, phase=phase)
    return logger.bind(name=LOGGER_NAME)
