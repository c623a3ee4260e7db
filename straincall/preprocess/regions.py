#!/usr/bin/env python

"""Partition a reference into fixed-size regions for parallel calling.

Regions are 0-based half-open intervals, which is the coordinate
system expected by `freebayes -r contig:start-end`. Long running
callers are sent one region per job to bound the runtime of a job.

Examples
--------
>>> index = ReferenceIndex.from_fai("ref.fa.fai")
>>> regions = list(generate_regions(index, size=50_000))
>>> write_regions(regions, "regions.bed")
"""

from typing import Iterator, List, Iterable
from pathlib import Path
from dataclasses import dataclass
from straincall.preprocess.reference import ReferenceIndex

DEFAULT_REGION_SIZE = 50_000


@dataclass(frozen=True)
class Region:
    contig: str
    start: int
    end: int

    @property
    def spec(self) -> str:
        """Region string as entered to a caller, e.g., 'ctg1:0-50000'."""
        return f"{self.contig}:{self.start}-{self.end}"

    @property
    def name(self) -> str:
        """Partition id safe for use in file names."""
        return f"{self.contig}_{self.start}_{self.end}"


def generate_regions(index: ReferenceIndex, size: int = DEFAULT_REGION_SIZE) -> Iterator[Region]:
    """Yield regions covering every contig in reference order."""
    if size < 1:
        raise ValueError("region size must be >= 1")
    for contig in index:
        for start in range(0, contig.length, size):
            yield Region(contig.name, start, min(start + size, contig.length))


def write_regions(regions: Iterable[Region], path: Path) -> Path:
    """Write regions as tab separated (contig, start, end) lines."""
    with open(path, 'w', encoding="utf-8") as out:
        for region in regions:
            out.write(f"{region.contig}\t{region.start}\t{region.end}\n")
    return Path(path)


def read_regions(path: Path) -> List[Region]:
    regions = []
    with open(path, 'r', encoding="utf-8") as indata:
        for line in indata:
            if line.strip():
                contig, start, end = line.rstrip("\n").split("\t")
                regions.append(Region(contig, int(start), int(end)))
    return regions
