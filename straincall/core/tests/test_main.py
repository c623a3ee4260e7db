#!/usr/bin/env python

"""Unittests for the exit codes of the command line interface.

Tests
-----
1. Missing required args exit with code 1.
2. A reference file that does not exist exits with code 1.
3. A failed stage exits with code 2.
4. A successful run exits with code 0.
5. An existing outdir without --force exits with code 1.
"""

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock
from straincall.__main__ import main
from straincall.core.exceptions import ToolFailure, StrainCallExit


class TestMain(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(prefix="straincall-tests-"))
        self.ref = self.tmpdir / "ref.fa"
        self.bam = self.tmpdir / "reads.bam"
        self.ref.write_text(">tig\nACGT\n")
        self.bam.write_bytes(b"")
        self.argv = ["-r", str(self.ref), "-b", str(self.bam), "-o", str(self.tmpdir / "out")]

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def _exit_code(self, argv) -> int:
        with self.assertRaises(SystemExit) as ctx:
            main(argv)
        return ctx.exception.code

    def test_missing_args(self):
        with mock.patch("sys.stderr"):
            self.assertEqual(self._exit_code(["-r", str(self.ref)]), 1)

    def test_missing_reference(self):
        argv = ["-r", str(self.tmpdir / "nope.fa")] + self.argv[2:]
        self.assertEqual(self._exit_code(argv), 1)

    def test_stage_failure(self):
        def fail(self, ipyclient=None):
            raise ToolFailure("call_1", "partition 'tig' exited with code 1", Path("call_1.log"))
        with mock.patch("straincall.Pipeline.run", fail):
            self.assertEqual(self._exit_code(self.argv), 2)

    def test_success(self):
        def succeed(self, ipyclient=None):
            self.outfiles["variants"] = Path("variants.vcf.gz")
            return self.outfiles
        with mock.patch("straincall.Pipeline.run", succeed):
            self.assertEqual(self._exit_code(self.argv + ["-c", "0"]), 0)

    def test_existing_outdir(self):
        def exists(self, ipyclient=None):
            raise StrainCallExit("Error: Directory out exists.")
        with mock.patch("straincall.Pipeline.run", exists):
            self.assertEqual(self._exit_code(self.argv), 1)


if __name__ == "__main__":
    unittest.main()
