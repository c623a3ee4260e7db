#!/usr/bin/env python

"""Command line interface.

Examples
--------
>>> straincall -r REF.fa -b READS.bam -o ./out
>>> straincall -r REF.fa -b READS.bam -o ./out -n 3 -c 8
>>> straincall -r REF.fa -b READS.bam -o ./out -n 4 --freebayes-only -f

Exit codes
----------
0: success
1: invalid or missing arguments
2: an external tool or stage failed (the log path is reported)
"""

from typing import List, Optional
import sys
import argparse
from pathlib import Path
from pydantic import ValidationError
import straincall as sc
from straincall.core.exceptions import StageError, StrainCallExit
from straincall.core.logger_setup import get_logger

logger = get_logger()

VERSION = str(sc.__version__)
HEADER = f"""
-------------------------------------------------------------
 straincall [v.{VERSION}]
 Strain-aware variant calling, phasing and joint genotyping
-------------------------------------------------------------\
"""

EPILOG = """\
Strategy
--------
--freebayes-only     joint calling on regions (ploidy = nstrains)
nstrains < 3         longshot phasing + haplotype tagged bams
nstrains >= 3        longshot, filter, then joint calling w/ prior

Examples
--------
>>> straincall -r REF.fa -b READS.bam -o ./out
>>> straincall -r REF.fa -b READS.bam -o ./out -n 3 -c 8 -q 30
>>> straincall -r REF.fa -b READS.bam -o ./out --freebayes-only -f
>>> straincall -r REF.fa -b READS.bam -o ./out --logger DEBUG run.log
"""


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with code 1 on invalid arguments."""
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def setup_parser() -> argparse.ArgumentParser:
    """Setup and return an ArgumentParser."""
    parser = ArgumentParser(
        prog="straincall",
        description=HEADER,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action='version', version=f"straincall {VERSION}")
    parser.add_argument(
        "-r", "--reference", metavar="fasta", type=Path, required=True,
        help="Reference assembly in (uncompressed) fasta format.",
    )
    parser.add_argument(
        "-b", "--bam", metavar="bam", type=Path, required=True,
        help="Read alignment to the reference, coordinate sorted.",
    )
    parser.add_argument(
        "-o", "--outdir", metavar="outdir", type=Path, required=True,
        help="Output directory. Error if a previous run exists, unless --force.",
    )
    parser.add_argument(
        "-n", "--nstrains", metavar="nstrains", type=int, default=2,
        help="Number of strains to separate (Default=2).",
    )
    parser.add_argument(
        "-q", "--min-qual", metavar="qual", type=float, default=50.,
        help="Minimum QUAL of variants kept by filtering (Default=50).",
    )
    parser.add_argument(
        "-c", "--workers", metavar="workers", type=str, default="1",
        help="Number of caller jobs to run in parallel. Invalid values use 1.",
    )
    parser.add_argument(
        "--freebayes-only", action="store_true",
        help="Use joint calling with freebayes only (no phasing).",
    )
    parser.add_argument(
        "--region-size", metavar="bp", type=int, default=50_000,
        help="Region length for parallel joint calling (Default=50000).",
    )
    parser.add_argument(
        "--force", "-f", action="store_true",
        help="Force overwrite existing results in outdir.",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress progress bars and stage headers.",
    )
    parser.add_argument(
        "--logger", type=str, nargs="*",
        help=(
            "Logging info entered as one value for LOGLEVEL, or two values "
            "for LOGLEVEL LOGFILE; e.g., 'DEBUG' or 'DEBUG straincall.txt'.")
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Parse user CLI args and run the pipeline. Exits w/ code 0, 1 or 2."""
    parser = setup_parser()
    args = parser.parse_args(argv)

    # set logging ---------------------------------------------------
    if args.logger:
        if len(args.logger) > 1:
            sc.set_log_level(args.logger[0], args.logger[1])
        else:
            sc.set_log_level(args.logger[0])

    # argument errors -----------------------------------------------
    try:
        params = sc.Params(
            reference=args.reference,
            alignment=args.bam,
            outdir=args.outdir,
            nstrains=args.nstrains,
            min_qual=args.min_qual,
            workers=args.workers,
            freebayes_only=args.freebayes_only,
            region_size=args.region_size,
            force=args.force,
            quiet=args.quiet,
        )
    except ValidationError as inst:
        for err in inst.errors():
            loc = ".".join(str(i) for i in err["loc"])
            logger.error(f"invalid argument '{loc}': {err['msg']}")
        raise SystemExit(1) from inst

    # run pipeline --------------------------------------------------
    pipe = sc.Pipeline(params)
    try:
        pipe.run()
    except StrainCallExit as inst:
        logger.error(str(inst))
        raise
    except StageError as inst:
        logger.error(f"stage '{inst.phase}' failed: {inst.message}")
        if inst.log:
            logger.error(f"see log file: {inst.log}")
        raise SystemExit(2) from inst
    logger.info(f"finished: {pipe.outfiles['variants']}")
    raise SystemExit(0)


if __name__ == "__main__":
    main()
