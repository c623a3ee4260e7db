#!/usr/bin/env python

"""Exceptions raised by straincall stages and the CLI.

StrainCallExit is used for user mistakes (exit code 1, no traceback).
StageError and its subclasses are raised when a pipeline phase fails
and always carry the phase name and the log file to inspect (exit 2).
"""

from typing import Optional
from pathlib import Path


class StrainCallError(Exception):
    """Raise a custom exception that will report with traceback.

    This is used to catch and report internal errors in the code,
    and the traceback will include the source error and error type
    for debugging.
    """
    def __init__(self, *args, **kwargs):
        Exception.__init__(self, *args, **kwargs)


class StrainCallExit(SystemExit):
    """Return code 1 to exit with an error message but NO TRACEBACK.

    This is used to catch and report common user mistakes to return
    an error message but not burden them with an ugly traceback.
    """
    def __init__(self, message: str):
        super().__init__(1)
        self.message = message

    def __str__(self):
        return self.message


class StageError(StrainCallError):
    """A pipeline phase failed. Reported with its phase and log path."""
    def __init__(self, phase: str, message: str, log: Optional[Path] = None):
        super().__init__(message)
        self.phase = phase
        self.message = message
        self.log = log

    def __str__(self):
        msg = f"[{self.phase}] {self.message}"
        if self.log:
            msg += f"\nsee log: {self.log}"
        return msg


class ToolFailure(StageError):
    """An external invocation (caller, compression, indexing) exited non-zero."""


class MissingArtifactError(StageError):
    """A file expected from an upstream stage does not exist."""


class MalformedRecordError(StageError):
    """A variant record is unparseable or lies outside its contig."""
