#!/usr/bin/env python

"""Streaming QUAL filter for VCF records.

`quality_filter` is a pure generator: header lines pass through
unchanged and data lines pass through if their QUAL >= min_qual,
keeping their relative order. It never holds more than one record
in memory, so it can be applied to arbitrarily large VCF files.

Examples
--------
>>> with open_vcf("merged.vcf.gz") as indata:
>>>     kept = list(quality_filter(indata, 50))
"""

from typing import Iterable, Iterator
from pathlib import Path
from loguru import logger
from straincall.variants.records import VariantRecord, is_header, open_vcf
from straincall.variants.finalize import compress_and_index
from straincall.core.exceptions import MissingArtifactError, MalformedRecordError

logger = logger.bind(name="straincall")


def quality_filter(lines: Iterable[str], min_qual: float, phase: str = "filter") -> Iterator[str]:
    """Yield header lines and records with QUAL >= min_qual."""
    for line in lines:
        if is_header(line):
            yield line
        elif line.strip():
            record = VariantRecord.from_line(line, phase)
            if record.qual >= min_qual:
                yield record.line


def filter_vcf(inpath: Path, outpath: Path, min_qual: float, phase: str, log: Path) -> Path:
    """Filter a (b)gzipped or plain VCF to a bgzipped and indexed VCF.

    outpath is the plain .vcf name; the returned path is outpath.gz.
    """
    if not inpath.exists():
        raise MissingArtifactError(phase, f"missing VCF to filter: {inpath}", log)

    nkept = 0
    try:
        with open_vcf(inpath) as indata, open(outpath, 'w', encoding="utf-8") as out:
            for line in quality_filter(indata, min_qual, phase):
                if not is_header(line):
                    nkept += 1
                out.write(line)
    except MalformedRecordError as inst:
        with open(log, 'a', encoding="utf-8") as out:
            out.write(f"{inpath}\n{inst.message}\n")
        inst.log = inst.log or log
        raise
    logger.info(f"{phase}: kept {nkept} variants with QUAL >= {min_qual}")
    return compress_and_index(outpath, phase, log)
