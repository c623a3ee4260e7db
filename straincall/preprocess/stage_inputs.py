#!/usr/bin/env python

"""Link the reference and alignment into the preprocess dir and index them.

The reference is faidx indexed and the alignment is bai indexed with
pysam (htslib/samtools) so that every caller job can access a region
or contig at random. The reference index is then partitioned into
the region list used by the joint caller.

# i: params.reference, params.alignment
# o: 00-preprocess/reference.fa{,.fai}
# o: 00-preprocess/alignment.bam{,.bai}
# o: 00-preprocess/regions.bed
"""

from typing import List
from pathlib import Path
from dataclasses import dataclass
import pysam
from loguru import logger
from straincall.core.exceptions import ToolFailure, MissingArtifactError
from straincall.preprocess.reference import ReferenceIndex
from straincall.preprocess.regions import (
    Region, generate_regions, write_regions, read_regions,
)

logger = logger.bind(name="straincall")
PHASE = "preprocess"


@dataclass
class StagedInputs:
    """Normalized inputs shared read-only by all caller jobs."""
    reference: Path
    """: Link to the reference fasta, with .fai beside it."""
    alignment: Path
    """: Link to the alignment bam, with .bai beside it."""
    index: ReferenceIndex
    """: Contig names, lengths and order of the reference."""
    regions: List[Region]
    """: Fixed-size regions covering the reference."""
    regions_file: Path
    """: The regions written as (contig, start, end) lines."""

    @classmethod
    def load(cls, stagedir: Path) -> "StagedInputs":
        """Reload the staged inputs written by a finished preprocess stage."""
        reference = stagedir / "reference.fa"
        alignment = stagedir / "alignment.bam"
        regions_file = stagedir / "regions.bed"
        for path in (Path(f"{reference}.fai"), Path(f"{alignment}.bai"), regions_file):
            if not path.exists():
                raise MissingArtifactError(PHASE, f"missing staged input: {path}")
        return cls(
            reference=reference,
            alignment=alignment,
            index=ReferenceIndex.from_fai(Path(f"{reference}.fai")),
            regions=read_regions(regions_file),
            regions_file=regions_file,
        )


def link_input(source: Path, dest: Path) -> Path:
    """Symlink an input file into the stage dir (replaces a stale link)."""
    if dest.is_symlink() or dest.exists():
        dest.unlink()
    dest.symlink_to(Path(source).resolve())
    return dest


def index_reference(reference: Path, log: Path) -> ReferenceIndex:
    """Build a .fai with samtools faidx (pysam) and parse it."""
    if str(Path(reference).resolve()).endswith(".gz"):
        raise ToolFailure(PHASE, "reference must be an uncompressed fasta file.", log)
    logger.debug(f"indexing {reference} with pysam/samtools faidx")
    try:
        pysam.faidx(str(reference))
    except pysam.utils.SamtoolsError as inst:
        _append_log(log, f"samtools faidx {reference}\n{inst}\n")
        raise ToolFailure(PHASE, f"failed to index reference: {reference}", log) from inst
    return ReferenceIndex.from_fai(Path(f"{reference}.fai"))


def index_alignment(alignment: Path, log: Path) -> Path:
    """Build a .bai with samtools index (pysam)."""
    logger.debug(f"indexing {alignment} with pysam/samtools index")
    try:
        pysam.index(str(alignment))
    except pysam.utils.SamtoolsError as inst:
        _append_log(log, f"samtools index {alignment}\n{inst}\n")
        raise ToolFailure(
            PHASE, f"failed to index alignment (is it coordinate sorted?): {alignment}", log,
        ) from inst
    return Path(f"{alignment}.bai")


def stage_inputs(
    reference: Path,
    alignment: Path,
    stagedir: Path,
    region_size: int,
    log: Path,
) -> StagedInputs:
    """Link, index and partition the inputs into stagedir."""
    stagedir.mkdir(parents=True, exist_ok=True)
    ref = link_input(reference, stagedir / "reference.fa")
    bam = link_input(alignment, stagedir / "alignment.bam")

    index = index_reference(ref, log)
    index_alignment(bam, log)
    logger.info(f"reference contains {len(index)} contigs")

    regions = list(generate_regions(index, region_size))
    regions_file = write_regions(regions, stagedir / "regions.bed")
    logger.info(f"reference partitioned into {len(regions)} regions of <= {region_size} bp")
    return StagedInputs(ref, bam, index, regions, regions_file)


def _append_log(log: Path, text: str) -> None:
    with open(log, 'a', encoding="utf-8") as out:
        out.write(text)
