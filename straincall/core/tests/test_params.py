#!/usr/bin/env python

"""Unittests for Params validation.

Tests
-----
1. Defaults are set for optional params.
2. Invalid worker counts are replaced by 1 (0, negative, non-numeric).
3. Valid worker counts entered as text are converted to int.
4. Missing input files raise a ValidationError.
5. Params cannot be modified after creation.
6. nstrains < 1 and min_qual < 0 raise a ValidationError.
"""

import shutil
import tempfile
import unittest
from pathlib import Path
from pydantic import ValidationError
from straincall.core.params import Params


class TestParams(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(prefix="straincall-tests-"))
        self.ref = self.tmpdir / "ref.fa"
        self.bam = self.tmpdir / "reads.bam"
        self.ref.write_text(">tig\nACGT\n")
        self.bam.write_bytes(b"")
        self.kwargs = dict(reference=self.ref, alignment=self.bam, outdir=self.tmpdir / "out")

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_defaults(self):
        params = Params(**self.kwargs)
        self.assertEqual(params.nstrains, 2)
        self.assertEqual(params.min_qual, 50)
        self.assertEqual(params.workers, 1)
        self.assertEqual(params.region_size, 50_000)
        self.assertFalse(params.freebayes_only)
        self.assertTrue(params.reference.is_absolute())

    def test_invalid_workers_use_one(self):
        for value in (0, -4, "abc", "", None, "2.5x"):
            params = Params(workers=value, **self.kwargs)
            self.assertEqual(params.workers, 1, msg=f"workers={value!r}")

    def test_valid_workers_text(self):
        params = Params(workers="8", **self.kwargs)
        self.assertEqual(params.workers, 8)

    def test_missing_reference(self):
        kwargs = dict(self.kwargs, reference=self.tmpdir / "nope.fa")
        with self.assertRaises(ValidationError):
            Params(**kwargs)

    def test_missing_alignment(self):
        kwargs = dict(self.kwargs, alignment=self.tmpdir / "nope.bam")
        with self.assertRaises(ValidationError):
            Params(**kwargs)

    def test_frozen(self):
        params = Params(**self.kwargs)
        with self.assertRaises(ValidationError):
            params.min_qual = 10

    def test_bad_nstrains_and_qual(self):
        with self.assertRaises(ValidationError):
            Params(nstrains=0, **self.kwargs)
        with self.assertRaises(ValidationError):
            Params(min_qual=-1, **self.kwargs)


if __name__ == "__main__":
    unittest.main()
