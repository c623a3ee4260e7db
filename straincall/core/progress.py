#!/usr/bin/env python

"""Report messages and progress of jobs running on remote engines.

Messages are sent to the logger from remote functions by calling
`print("@@LOGLEVEL: message")` on the engine. These are replayed on
the main process by `progress` when a job finishes. A ProgressBar
prints the fraction of finished jobs for a dispatched phase.
"""

import sys
import time
import datetime
from loguru import logger

logger = logger.bind(name="straincall")


def progress(remote_messages: str) -> None:
    """Send '@@LEVEL: msg' lines printed on an engine to the logger."""
    if not remote_messages:
        return
    for msg in remote_messages.split("@@")[1:]:
        log_level, log_msg = msg.split(":", 1)
        logger.log(log_level.strip(), log_msg.strip())


class ProgressBar:
    """Print pretty progress bar for a dispatched phase."""
    def __init__(self, njobs: int, message: str, quiet: bool = False):
        self.njobs = njobs
        self.message = message
        self.quiet = quiet
        self.start = time.time()
        self.finished = 0

    @property
    def progress(self) -> float:
        """returns the percent progress as a float"""
        if not self.njobs:
            return 100
        return 100 * (self.finished / float(self.njobs))

    @property
    def elapsed(self):
        """returns the elapsed time in nice format"""
        return datetime.timedelta(seconds=int(time.time() - self.start))

    def update(self, finished: int, final: bool = False):
        """flushes progress bar at current state to STDOUT"""
        if self.quiet:
            return
        # only print again if changed, or if this is the last print.
        if finished == self.finished and not final:
            return
        self.finished = finished
        hashes = '#' * int(self.progress / 5.)
        nohash = ' ' * int(20 - len(hashes))
        message = (
            f"\r[{hashes + nohash}] "
            f"{int(self.progress):>3}% {self.elapsed} | "
            f"{self.message.ljust(20)}"
        )
        print(message, end="\n" if final else "")
        sys.stdout.flush()
