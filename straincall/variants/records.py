#!/usr/bin/env python

"""Minimal streaming reader for VCF text written by the callers.

Records keep their original text line so that writing a record back
out is byte-identical to what the caller produced. Only the fields
used for ordering, bounds checks and filtering are parsed.

VCF columns
-----------
CHROM POS ID REF ALT QUAL FILTER INFO [FORMAT SAMPLE ...]
"""

from typing import Iterable, Iterator, List, Tuple, Optional, TextIO
import gzip
import itertools
from pathlib import Path
from dataclasses import dataclass
from straincall.core.exceptions import MalformedRecordError


@dataclass(frozen=True)
class VariantRecord:
    contig: str
    pos: int
    ref: str
    alt: str
    qual: float
    genotype: Optional[str]
    """: GT of the first sample, e.g., '0|1' when phased, or None."""
    line: str
    """: The original line, including its newline."""

    @property
    def is_phased(self) -> bool:
        return bool(self.genotype) and "|" in self.genotype

    @classmethod
    def from_line(cls, line: str, phase: str = "parse") -> "VariantRecord":
        """Parse a VCF data line. Raises MalformedRecordError."""
        fields = line.rstrip("\n").split("\t")
        if len(fields) < 8:
            raise MalformedRecordError(phase, f"truncated VCF record: {line.strip()!r}")
        try:
            pos = int(fields[1])
            qual = 0.0 if fields[5] == "." else float(fields[5])
        except ValueError as inst:
            raise MalformedRecordError(phase, f"bad POS or QUAL in: {line.strip()!r}") from inst
        if qual < 0:
            raise MalformedRecordError(phase, f"negative QUAL in: {line.strip()!r}")

        # GT, if present, is always the first FORMAT key.
        genotype = None
        if len(fields) > 9 and fields[8].split(":")[0] == "GT":
            genotype = fields[9].split(":")[0]
        if not line.endswith("\n"):
            line += "\n"
        return cls(fields[0], pos, fields[3], fields[4], qual, genotype, line)


def is_header(line: str) -> bool:
    return line.startswith("#")


def open_vcf(path: Path) -> TextIO:
    """Open plain or (b)gzipped VCF text for reading."""
    xopen = gzip.open if str(path).endswith(".gz") else open
    return xopen(path, 'rt', encoding="utf-8")


def parse_vcf(lines: Iterable[str], phase: str = "parse") -> Tuple[List[str], Iterator[VariantRecord]]:
    """Split VCF lines into the header block and a lazy record stream.

    The header is consumed eagerly; records are parsed only as the
    returned iterator is advanced.
    """
    lines = iter(lines)
    header = []
    for line in lines:
        if is_header(line):
            header.append(line if line.endswith("\n") else line + "\n")
            continue
        first = line
        break
    else:
        return header, iter(())
    records = (
        VariantRecord.from_line(i, phase)
        for i in itertools.chain([first], lines) if i.strip()
    )
    return header, records
