#!/usr/bin/env python

"""Fan out one caller invocation per partition over the ipcluster.

Jobs are sent to a load-balanced view, so the number of engines in
the cluster bounds how many callers run at once. `dispatch` blocks
until every job has finished: merging must never see a partial set
of partitions. The first job that exits non-zero aborts all jobs not
yet started; jobs already running are allowed to finish. Nothing is
retried. A job that raises on its engine, or whose engine dies, is
recorded as a failure with exit -1 and its traceback. The stderr of every job is written to one log per phase, in
partition order, and the failure is raised as a ToolFailure that
points to this log.

Example Usage
-------------
>>> calls = [longshot_call(ctg, ref, bam, outdir) for ctg in index.names]
>>> with Cluster(workers=4) as ipyclient:
>>>     lbview = ipyclient.load_balanced_view()
>>>     results = dispatch(calls, lbview, "call_1", logfile)
"""

from typing import Callable, Dict, Sequence
import time
import traceback
from pathlib import Path
from concurrent.futures import CancelledError
import ipyparallel
from loguru import logger
from straincall.core.exceptions import ToolFailure, MissingArtifactError
from straincall.core.progress import ProgressBar, progress
from straincall.core.cluster import ANSI_ESCAPE
from straincall.calling.tools import ToolCall, ToolResult, run_tool

logger = logger.bind(name="straincall")


def dispatch(
    calls: Sequence[ToolCall],
    lbview,
    phase: str,
    log: Path,
    invoker: Callable[[ToolCall], ToolResult] = run_tool,
    quiet: bool = False,
    interval: float = 0.5,
) -> Dict[str, ToolResult]:
    """Run all calls on lbview and return {partition: ToolResult}.

    Raises ToolFailure if any call exits non-zero, and
    MissingArtifactError if a successful call did not write one of
    its declared outputs.
    """
    partitions = [i.partition for i in calls]
    if len(set(partitions)) != len(partitions):
        raise ValueError(f"{phase}: partition ids must be unique")

    # submit all jobs; the view schedules them as engines free up.
    bycall = {i.partition: i for i in calls}
    rasyncs = {}
    for call in calls:
        rasyncs[call.partition] = lbview.apply(invoker, call)
    logger.info(f"{phase}: dispatched {len(rasyncs)} jobs")

    # block until all jobs are finished, checking every interval.
    results: Dict[str, ToolResult] = {}
    failed = None
    pbar = ProgressBar(len(rasyncs), phase, quiet)
    pending = dict(rasyncs)
    try:
        while pending:
            for key in [i for i, j in pending.items() if j.done()]:
                rasync = pending.pop(key)
                try:
                    result = rasync.result()
                except (ipyparallel.error.TaskAborted, CancelledError):
                    continue
                # a job that raised (or lost its engine) is a failed job.
                except Exception as inst:  # pylint: disable=broad-except
                    result = engine_error_result(bycall[key], inst)
                progress(getattr(rasync, "stdout", ""))
                results[key] = result
                if not result.ok and failed is None:
                    failed = result
                    logger.error(
                        f"{phase}: partition '{key}' failed (exit {result.returncode}), "
                        "aborting jobs that have not started.")
                    lbview.abort()
            pbar.update(len(rasyncs) - len(pending))
            if pending:
                time.sleep(interval)
        pbar.update(len(rasyncs), final=True)

    except KeyboardInterrupt:
        logger.error("KeyboardInterrupt by user.")
        lbview.abort()
        raise

    finally:
        write_phase_log(calls, results, log)

    if failed is not None:
        if failed.returncode == -1:
            reason = "raised an error on its engine"
        else:
            reason = f"exited with code {failed.returncode}"
        raise ToolFailure(phase, f"partition '{failed.partition}' {reason}", log)

    # a clean exit must leave the declared outputs behind.
    for call in calls:
        for path in call.outputs:
            if not Path(path).exists():
                raise MissingArtifactError(
                    phase, f"partition '{call.partition}' did not write {path}", log)
    return results


def write_phase_log(calls: Sequence[ToolCall], results: Dict[str, ToolResult], log: Path) -> None:
    """Write the stderr of all jobs of a phase to one log file."""
    with open(log, 'w', encoding="utf-8") as out:
        for call in calls:
            result = results.get(call.partition)
            if result is None:
                out.write(f"### {call.partition}: not run\n")
                continue
            result.log = log
            out.write(f"### {call.partition}: exit {result.returncode}\n")
            out.write(f"$ {' '.join(result.command)}\n")
            if result.stderr:
                out.write(result.stderr.rstrip("\n") + "\n")


def engine_error_result(call: ToolCall, inst: Exception) -> ToolResult:
    """Return a failed ToolResult (returncode -1) for a job that raised.

    The traceback rendered on the engine is kept as its stderr.
    """
    if isinstance(inst, ipyparallel.error.RemoteError):
        trace = "\n".join(inst.render_traceback())
        trace = ANSI_ESCAPE.sub("", trace)
    else:
        trace = "".join(traceback.format_exception(type(inst), inst, inst.__traceback__))
    return ToolResult(call.partition, call.command, -1, f"{type(inst).__name__}: {inst}\n{trace}")
