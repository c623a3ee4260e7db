#!/usr/bin/env python

"""Unittests for dispatching caller jobs and building their commands.

The load-balanced view is replaced by a thread pool with the same
`apply`/`abort` interface, and jobs by plain python functions.

Tests
-----
1. All jobs succeed: one result per partition and a phase log.
2. One job fails: ToolFailure names the partition and log, and
   jobs not yet started are not run.
3. A job that raises is a failure: jobs are aborted and it is logged.
4. A job that exits 0 without its output raises MissingArtifactError.
5. Partition ids must be unique.
6. run_tool returns the exit code, stderr, and 127 for a missing binary.
7. longshot and freebayes commands contain the expected args.
"""

import shutil
import tempfile
import time
import threading
import unittest
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor
from straincall.core.exceptions import ToolFailure, MissingArtifactError
from straincall.calling.tools import (
    ToolCall, ToolResult, run_tool, longshot_call, freebayes_call,
)
from straincall.calling.dispatch import dispatch


class FakeView:
    def __init__(self, workers=1):
        self.pool = ThreadPoolExecutor(max_workers=workers)
        self.futures = []
        self.aborted = False

    def apply(self, func, *args):
        future = self.pool.submit(func, *args)
        self.futures.append(future)
        return future

    def abort(self):
        self.aborted = True
        for future in self.futures:
            future.cancel()


class TestDispatch(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(prefix="straincall-tests-"))
        self.log = self.tmpdir / "call_1.log"
        self.calls = [
            ToolCall(f"part{i}", ["caller", f"part{i}"], outputs=[self.tmpdir / f"part{i}.vcf"])
            for i in range(6)
        ]
        self.started = []
        self.lock = threading.Lock()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def _writer(self, call):
        with self.lock:
            self.started.append(call.partition)
        time.sleep(0.05)
        call.outputs[0].write_text("##fileformat=VCFv4.2\n")
        return ToolResult(call.partition, call.command, 0, f"{call.partition} done\n")

    def _fail_first(self, call):
        if call.partition == "part0":
            with self.lock:
                self.started.append(call.partition)
            return ToolResult(call.partition, call.command, 3, "out of memory\n")
        return self._writer(call)

    def test_all_succeed(self):
        results = dispatch(
            self.calls, FakeView(3), "call_1", self.log,
            invoker=self._writer, quiet=True, interval=0.01)
        self.assertEqual(sorted(results), [i.partition for i in self.calls])
        self.assertTrue(all(i.ok for i in results.values()))
        self.assertTrue(all(i.log == self.log for i in results.values()))

        # the log lists partitions in call order.
        text = self.log.read_text()
        heads = [i for i in text.splitlines() if i.startswith("###")]
        self.assertEqual(heads, [f"### part{i}: exit 0" for i in range(6)])
        self.assertIn("$ caller part3", text)
        self.assertIn("part3 done", text)

    def test_fail_fast(self):
        view = FakeView(1)
        with self.assertRaises(ToolFailure) as ctx:
            dispatch(
                self.calls, view, "call_1", self.log,
                invoker=self._fail_first, quiet=True, interval=0.01)
        self.assertTrue(view.aborted)
        self.assertEqual(ctx.exception.phase, "call_1")
        self.assertEqual(ctx.exception.log, self.log)
        self.assertIn("part0", ctx.exception.message)
        self.assertIn("exit 3", self.log.read_text())
        self.assertIn("out of memory", self.log.read_text())

        # with one worker the jobs queued behind the failure never start.
        self.assertLess(len(self.started), len(self.calls))
        self.assertIn("not run", self.log.read_text())

    def test_job_raises(self):
        def raises(call):
            if call.partition == "part0":
                raise RuntimeError("engine lost the caller")
            return self._writer(call)
        view = FakeView(1)
        with self.assertRaises(ToolFailure) as ctx:
            dispatch(
                self.calls, view, "call_1", self.log,
                invoker=raises, quiet=True, interval=0.01)
        self.assertTrue(view.aborted)
        self.assertEqual(ctx.exception.phase, "call_1")
        self.assertEqual(ctx.exception.log, self.log)
        self.assertIn("part0", ctx.exception.message)
        text = self.log.read_text()
        self.assertIn("### part0: exit -1", text)
        self.assertIn("RuntimeError: engine lost the caller", text)
        self.assertIn("not run", text)

    def test_missing_output(self):
        def silent(call):
            return ToolResult(call.partition, call.command, 0, "")
        with self.assertRaises(MissingArtifactError) as ctx:
            dispatch(
                self.calls, FakeView(2), "call_2", self.log,
                invoker=silent, quiet=True, interval=0.01)
        self.assertEqual(ctx.exception.phase, "call_2")

    def test_unique_partitions(self):
        calls = self.calls + [self.calls[0]]
        with self.assertRaises(ValueError):
            dispatch(calls, FakeView(1), "call_1", self.log, invoker=self._writer, quiet=True)


class TestTools(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(prefix="straincall-tests-"))

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_run_tool_stdout(self):
        out = self.tmpdir / "echo.txt"
        result = run_tool(ToolCall("p", ["echo", "hello"], stdout=out, outputs=[out]))
        self.assertTrue(result.ok)
        self.assertEqual(out.read_text(), "hello\n")

    def test_run_tool_failure(self):
        result = run_tool(ToolCall("p", ["sh", "-c", "echo bad input >&2; exit 4"]))
        self.assertFalse(result.ok)
        self.assertEqual(result.returncode, 4)
        self.assertIn("bad input", result.stderr)

    def test_run_tool_missing_binary(self):
        result = run_tool(ToolCall("p", [str(self.tmpdir / "no-such-caller")]))
        self.assertEqual(result.returncode, 127)

    def test_longshot_call(self):
        call = longshot_call("tig1", Path("ref.fa"), Path("aln.bam"), self.tmpdir)
        self.assertIn("--no_haps", call.command)
        self.assertNotIn("--out_bam", call.command)
        self.assertEqual(call.outputs, [self.tmpdir / "tig1.vcf"])
        self.assertIsNone(call.stdout)

        call = longshot_call(
            "tig1", Path("ref.fa"), Path("aln.bam"), self.tmpdir, haplotag_dir=Path("sep"))
        idx = call.command.index("--out_bam")
        self.assertEqual(call.command[idx + 1], str(Path("sep") / "tig1.bam"))
        self.assertEqual(call.outputs, [self.tmpdir / "tig1.vcf", Path("sep") / "tig1.bam"])
        self.assertNotIn("--no_haps", call.command)

    def test_freebayes_call(self):
        call = freebayes_call(
            "tig1_0_50", "tig1:0-50", Path("ref.fa"), Path("aln.bam"), self.tmpdir, 4)
        self.assertEqual(call.command[call.command.index("--ploidy") + 1], "4")
        self.assertEqual(call.command[call.command.index("--region") + 1], "tig1:0-50")
        self.assertEqual(call.command[-1], "aln.bam")
        self.assertNotIn("--variant-input", call.command)
        self.assertEqual(call.stdout, self.tmpdir / "tig1_0_50.vcf")

        call = freebayes_call(
            "tig1_0_50", "tig1:0-50", Path("ref.fa"), Path("aln.bam"), self.tmpdir, 4,
            prior=Path("filtered_1.vcf.gz"))
        self.assertEqual(
            call.command[call.command.index("--variant-input") + 1], "filtered_1.vcf.gz")
        self.assertIn("--only-use-input-alleles", call.command)


if __name__ == "__main__":
    unittest.main()
