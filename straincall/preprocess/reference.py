#!/usr/bin/env python

"""Reference contig index parsed from a samtools .fai file.

The order of contigs in the .fai defines the contig rank used to
sort merged variants, and their lengths bound valid positions.
"""

from typing import Dict, List, Iterator
from pathlib import Path
from dataclasses import dataclass, field
from straincall.core.exceptions import StrainCallError


@dataclass(frozen=True)
class Contig:
    name: str
    """: Name of the sequence in the fasta header."""
    length: int
    """: Number of bases in the sequence."""
    offset: int
    """: Byte offset of the first base in the fasta file."""


@dataclass
class ReferenceIndex:
    """Ordered contigs of a faidx-indexed reference."""
    contigs: List[Contig]
    _ranks: Dict[str, int] = field(init=False, repr=False)

    def __post_init__(self):
        self._ranks = {ctg.name: idx for idx, ctg in enumerate(self.contigs)}
        if len(self._ranks) != len(self.contigs):
            raise StrainCallError("reference contains duplicate contig names.")

    def __iter__(self) -> Iterator[Contig]:
        return iter(self.contigs)

    def __len__(self) -> int:
        return len(self.contigs)

    def __contains__(self, name: str) -> bool:
        return name in self._ranks

    @property
    def names(self) -> List[str]:
        return [i.name for i in self.contigs]

    def rank(self, name: str) -> int:
        """Return the position of a contig in the reference order."""
        return self._ranks[name]

    def length(self, name: str) -> int:
        return self.contigs[self._ranks[name]].length

    @classmethod
    def from_fai(cls, fai: Path) -> "ReferenceIndex":
        """Parse a .fai file: (name, length, offset, linebases, linewidth)."""
        contigs = []
        with open(fai, 'r', encoding="utf-8") as indata:
            for line in indata:
                if not line.strip():
                    continue
                name, length, offset = line.split("\t")[:3]
                contigs.append(Contig(name, int(length), int(offset)))
        if not contigs:
            raise StrainCallError(f"reference index is empty: {fai}")
        return cls(contigs)
