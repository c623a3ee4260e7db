#!/usr/bin/env python

"""Compress VCF files with bgzip and index them with tabix (pysam/htslib).

A compressed and indexed VCF supports random access by region, which
is required to use a variant set as a prior in a second calling pass
and by downstream tools.
"""

import shutil
from pathlib import Path
import pysam
from loguru import logger
from straincall.core.exceptions import ToolFailure, MissingArtifactError

logger = logger.bind(name="straincall")


def compress_and_index(vcf: Path, phase: str, log: Path) -> Path:
    """bgzip a sorted VCF (the plain file is removed) and build a .tbi.

    Returns the path to the .vcf.gz file.
    """
    if not vcf.exists():
        raise MissingArtifactError(phase, f"missing VCF to compress: {vcf}", log)
    logger.debug(f"bgzip/tabix {vcf}")
    try:
        gzfile = pysam.tabix_index(str(vcf), preset="vcf", force=True)
    except (OSError, ValueError) as inst:
        with open(log, 'a', encoding="utf-8") as out:
            out.write(f"tabix_index {vcf}\n{inst}\n")
        raise ToolFailure(phase, f"failed to compress/index {vcf}", log) from inst
    return Path(gzfile)


def promote(vcfgz: Path, dest: Path, phase: str, log: Path) -> Path:
    """Copy an indexed .vcf.gz and its .tbi to a final location."""
    tbi = Path(f"{vcfgz}.tbi")
    for path in (vcfgz, tbi):
        if not path.exists():
            raise MissingArtifactError(phase, f"missing artifact to finalize: {path}", log)
    shutil.copyfile(vcfgz, dest)
    shutil.copyfile(tbi, f"{dest}.tbi")
    return dest


def index_bam(bam: Path, phase: str, log: Path) -> Path:
    """samtools index a bam written by a caller."""
    try:
        pysam.index(str(bam))
    except pysam.utils.SamtoolsError as inst:
        with open(log, 'a', encoding="utf-8") as out:
            out.write(f"samtools index {bam}\n{inst}\n")
        raise ToolFailure(phase, f"failed to index {bam}", log) from inst
    return Path(f"{bam}.bai")
