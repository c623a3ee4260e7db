#!/usr/bin/env python

"""Engines that run caller jobs, started and stopped w/ ipyparallel.

Each engine runs one external caller at a time, so the number of
engines (workers) bounds how many callers run concurrently. The
Cluster is a context manager around the ipyparallel (v.>7.0) cluster
API: it starts the engines, hands back a connected Client, and on exit
aborts jobs that were never started, interrupts running ones, and
stops the controller, even if a stage failed.

Examples
--------
>>> with Cluster(workers=4) as ipyclient:
>>>     lbview = ipyclient.load_balanced_view()
>>>     ...
"""

import re
import time
import traceback
from datetime import timedelta
from loguru import logger
import ipyparallel
from straincall.core.exceptions import StageError
from straincall.core.logger_setup import color_support

# pylint: disable=invalid-name, abstract-method

logger = logger.bind(name="straincall")
ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')


class Cluster(ipyparallel.cluster.cluster.Cluster):
    """ipyparallel Cluster sized by the number of pipeline workers.

    The ipyparallel log is limited to warnings; engine start and stop
    are reported on the straincall logger instead.
    """
    log_level = 30

    def __init__(self, workers: int = 1, **kwargs):
        # .n is the engine count used by the parent class.
        self.workers = self.n = max(1, int(workers))
        super().__init__(**kwargs)
        self._start = None
        self._client = None

    @property
    def elapsed(self) -> str:
        if self._start is None:
            return str(timedelta(0))
        return str(timedelta(seconds=int(time.time() - self._start)))

    def __enter__(self):
        """Start the engines and return a connected Client."""
        logger.bind(end="").info(f"starting {self.workers} caller engines: ")
        self.start_cluster_sync(n=self.n)
        client = self.connect_client_sync()
        client.wait_for_engines(n=self.n, block=True, interactive=False)
        logger.opt(raw=True).info(f"{len(client)} ready\n")
        self._client = client
        self._start = time.time()
        return client

    def __exit__(self, exc_type, exc_value, exc_traceback):
        """Stop all engines and log the exception that ended the run."""
        if self._client is not None:
            self._client.abort()
            self._client.close()
            self._client = None

        # SIGINT to callers still running, then stop the controller.
        self.signal_engines_sync(signum=2)
        self.stop_cluster_sync()
        logger.info(f"caller engines stopped. Elapsed time: {self.elapsed}")
        log_traceback(exc_type, exc_value, exc_traceback)


def log_traceback(exc_type, exc_value, exc_traceback):
    """Log the exception that stopped the cluster (it is not suppressed)."""
    if exc_value is None:
        return

    if exc_type == KeyboardInterrupt:
        logger.error("keyboard interrupt by user, cleaning up.")

    # reported by the CLI together with the phase log.
    elif isinstance(exc_value, StageError):
        logger.debug(f"engines stopped after failed stage: {exc_value.phase}")

    # engine tracebacks are ansi colored by IPython.
    elif exc_type == ipyparallel.error.RemoteError:
        trace = "\n".join(exc_value.render_traceback())
        if not color_support():
            trace = ANSI_ESCAPE.sub('', trace)
        logger.error(f"An error occurred on a caller engine, see below:\n{trace}")

    else:
        trace = "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))
        logger.error(f"An error occurred, see below:\n{trace}")
