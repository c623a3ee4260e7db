#!/usr/bin/env python

"""Commands for the external variant callers and a function to run them.

A ToolCall describes one invocation for one partition (a contig or a
region): its command, where its stdout goes, and which files it must
leave behind. `run_tool` executes it on an engine and returns a
ToolResult instead of raising, so that the dispatcher decides how a
failure is handled. Messages printed as '@@LEVEL: msg' on the engine
are sent to the logger on the main process.

Callers
-------
longshot: phasing-capable caller, optionally writes a haplotype
    tagged bam (HP tag) per contig; used for 1 or 2 strains and for
    the first pass with >2 strains.
freebayes: joint caller with ploidy set to the number of strains;
    optionally restricted to the alleles of a prior VCF.
"""

from typing import List, Optional
import sys
from pathlib import Path
from dataclasses import dataclass, field
from subprocess import Popen, PIPE, DEVNULL

BIN_LONGSHOT = Path(sys.prefix) / "bin" / "longshot"
BIN_FREEBAYES = Path(sys.prefix) / "bin" / "freebayes"


@dataclass
class ToolCall:
    partition: str
    """: Partition id (contig name or region name), used in file names."""
    command: List[str]
    """: Command as a list of str args."""
    stdout: Optional[Path] = None
    """: File to write stdout to, if the tool writes results to stdout."""
    outputs: List[Path] = field(default_factory=list)
    """: Files that must exist after a successful run."""


@dataclass
class ToolResult:
    partition: str
    command: List[str]
    returncode: int
    stderr: str = ""
    log: Optional[Path] = None
    """: The aggregated phase log this result was written to."""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_tool(call: ToolCall) -> ToolResult:
    """Run a ToolCall in a subprocess and return its ToolResult.

    A binary that cannot be started is reported as returncode 127,
    the same code a shell uses for a command that is not found.
    """
    print(f"@@DEBUG: cmd: {' '.join(call.command)}", flush=True)
    try:
        if call.stdout:
            with open(call.stdout, 'w', encoding="utf-8") as out:
                with Popen(call.command, stdout=out, stderr=PIPE) as proc:
                    stderr = proc.communicate()[1]
        else:
            with Popen(call.command, stdout=DEVNULL, stderr=PIPE) as proc:
                stderr = proc.communicate()[1]
    except OSError as inst:
        return ToolResult(call.partition, call.command, 127, str(inst))

    stderr = stderr.decode(errors="replace")
    if proc.returncode:
        print(f"@@ERROR: {call.partition} exited with code {proc.returncode}", flush=True)
    return ToolResult(call.partition, call.command, proc.returncode, stderr)


def longshot_call(
    contig: str,
    reference: Path,
    alignment: Path,
    outdir: Path,
    haplotag_dir: Optional[Path] = None,
) -> ToolCall:
    """Call variants on one contig with longshot.

    If haplotag_dir is entered the variants are phased and a bam of
    reads tagged by haplotype is written there, else phasing is off.
    """
    vcf = outdir / f"{contig}.vcf"
    cmd = [
        str(BIN_LONGSHOT),
        "--force_overwrite",
        "--auto_max_cov",
        "--region", contig,
        "--bam", str(alignment),
        "--ref", str(reference),
        "--out", str(vcf),
    ]
    outputs = [vcf]
    if haplotag_dir is not None:
        outputs.append(haplotag_dir / f"{contig}.bam")
        cmd.extend(["--out_bam", str(outputs[-1])])
    else:
        cmd.append("--no_haps")
    return ToolCall(partition=contig, command=cmd, outputs=outputs)


def freebayes_call(
    partition: str,
    region: str,
    reference: Path,
    alignment: Path,
    outdir: Path,
    ploidy: int,
    prior: Optional[Path] = None,
) -> ToolCall:
    """Jointly call variants in one region with freebayes at ploidy.

    If a prior VCF (bgzipped and indexed) is entered then only the
    alleles in the prior are considered.
    """
    vcf = outdir / f"{partition}.vcf"
    cmd = [
        str(BIN_FREEBAYES),
        "--fasta-reference", str(reference),
        "--ploidy", str(ploidy),
        "--region", region,
    ]
    if prior is not None:
        cmd.extend([
            "--variant-input", str(prior),
            "--only-use-input-alleles",
        ])
    cmd.append(str(alignment))
    return ToolCall(partition=partition, command=cmd, stdout=vcf, outputs=[vcf])
