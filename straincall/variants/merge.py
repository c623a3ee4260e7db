#!/usr/bin/env python

"""Merge per-partition VCFs into one reference-ordered VCF.

Partition VCFs are produced independently by caller jobs, so they are
only globally consistent after this step. The header block of the
first partition is kept, and all records are stably sorted by
(rank of contig in the reference .fai, POS). The rank is the order of
the contig in the reference, not the lexicographic order of its name.
Every record is checked to lie on a reference contig within its bounds.

# i: 10-variants/call_N/{partition}.vcf
# o: 10-variants/merged_N.vcf.gz{,.tbi}
"""

from typing import List, Sequence, Tuple
from pathlib import Path
from loguru import logger
from straincall.core.exceptions import MissingArtifactError, MalformedRecordError
from straincall.preprocess.reference import ReferenceIndex
from straincall.variants.records import VariantRecord, open_vcf, parse_vcf
from straincall.variants.finalize import compress_and_index

logger = logger.bind(name="straincall")


def check_bounds(record: VariantRecord, index: ReferenceIndex, phase: str, source: Path) -> None:
    """Raise MalformedRecordError if record is not on the reference."""
    if record.contig not in index:
        raise MalformedRecordError(
            phase, f"{source}: contig '{record.contig}' is not in the reference")
    if not 1 <= record.pos <= index.length(record.contig):
        raise MalformedRecordError(
            phase, f"{source}: position {record.contig}:{record.pos} is outside "
            f"the contig (length={index.length(record.contig)})")


def read_partitions(
    partitions: Sequence[Path],
    index: ReferenceIndex,
    phase: str,
    log: Path,
) -> Tuple[List[str], List[VariantRecord]]:
    """Return (header of first partition, all records in input order)."""
    header = None
    records = []
    for path in partitions:
        if not path.exists():
            raise MissingArtifactError(
                phase, f"missing output of partition '{path.stem}': {path}", log)
        try:
            with open_vcf(path) as indata:
                part_header, part_records = parse_vcf(indata, phase)
                for record in part_records:
                    check_bounds(record, index, phase, path)
                    records.append(record)
        except MalformedRecordError as inst:
            inst.log = inst.log or log
            raise
        except (OSError, UnicodeDecodeError) as inst:
            raise MissingArtifactError(phase, f"unreadable partition output: {path}", log) from inst
        if not header:
            header = part_header
    return header or [], records


def merge_sort(
    partitions: Sequence[Path],
    index: ReferenceIndex,
    outpath: Path,
    phase: str,
    log: Path,
) -> Path:
    """Write the merged, sorted VCF to outpath and bgzip/tabix it.

    Partitions should be entered in reference order. Returns the path
    of the compressed .vcf.gz file.
    """
    header, records = read_partitions(partitions, index, phase, log)
    if not header:
        raise MalformedRecordError(phase, "partition outputs contain no VCF header", log)

    # python's sort is stable: ties keep their partition order.
    records.sort(key=lambda x: (index.rank(x.contig), x.pos))

    with open(outpath, 'w', encoding="utf-8") as out:
        out.writelines(header)
        out.writelines(i.line for i in records)
    logger.info(f"{phase}: merged {len(records)} variants from {len(partitions)} partitions")
    return compress_and_index(outpath, phase, log)
