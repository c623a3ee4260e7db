#!/usr/bin/env python

"""The stages from which each calling strategy is assembled.

# PreprocessStage: 00-preprocess/{reference.fa,alignment.bam,regions.bed}
# CallStage:       10-variants/call_N/{partition}.vcf
# MergeSortStage:  10-variants/merged_N.vcf.gz
# FilterStage:     10-variants/filtered_N.vcf.gz
# FinalizeStage:   10-variants/variants.vcf.gz [, 20-separation/{phased.vcf.gz,<contig>.bam}]
"""

from typing import Callable, List, Optional, Sequence
import shutil
from pathlib import Path
from straincall.core.base_stage import BaseStage, PipelineState, Pipeline
from straincall.calling.dispatch import dispatch
from straincall.calling.tools import ToolCall
from straincall.preprocess.stage_inputs import StagedInputs, stage_inputs
from straincall.variants.merge import merge_sort
from straincall.variants.qfilter import filter_vcf
from straincall.variants.finalize import promote, index_bam

CallBuilder = Callable[[StagedInputs, Path], List[ToolCall]]


def _with_index(vcfgz: Path) -> List[Path]:
    return [vcfgz, Path(f"{vcfgz}.tbi")]


class PreprocessStage(BaseStage):
    """Link inputs, index them, and write the region list."""
    state = PipelineState.PREPROCESS

    def inputs(self):
        return [self.params.reference, self.params.alignment]

    def outputs(self):
        return [
            self.pipe.prepdir / "reference.fa.fai",
            self.pipe.prepdir / "alignment.bam.bai",
            self.pipe.prepdir / "regions.bed",
        ]

    def _run(self):
        self.pipe.staged = stage_inputs(
            reference=self.params.reference,
            alignment=self.params.alignment,
            stagedir=self.pipe.prepdir,
            region_size=self.params.region_size,
            log=self.log,
        )


class CallStage(BaseStage):
    """Run one caller job per partition on the cluster."""
    def __init__(
        self,
        pipe: Pipeline,
        state: PipelineState,
        builder: CallBuilder,
        requires: Sequence[BaseStage],
        prior: Optional[Path] = None,
    ):
        super().__init__(pipe, requires)
        self.state = state
        self.builder = builder
        self.prior = prior
        self.outdir = self.pipe.vardir / self.name
        self.calls: List[ToolCall] = []

    def inputs(self):
        paths = self.pipe.prepdir_outputs()
        if self.prior is not None:
            paths.extend(_with_index(self.prior))
        return paths

    def outputs(self):
        return [path for call in self.calls for path in call.outputs]

    def _run(self):
        self.outdir.mkdir(exist_ok=True)
        self.calls = self.builder(self.pipe.staged, self.outdir)
        dispatch(
            self.calls,
            self.pipe.lbview,
            phase=self.name,
            log=self.log,
            invoker=self.pipe.invoker,
            quiet=self.params.quiet,
        )


class MergeSortStage(BaseStage):
    """Merge the partition VCFs of a CallStage in reference order."""
    def __init__(self, pipe: Pipeline, state: PipelineState, call_stage: CallStage, npass: int):
        super().__init__(pipe, [call_stage])
        self.state = state
        self.call_stage = call_stage
        self.outfile = self.pipe.vardir / f"merged_{npass}.vcf.gz"

    def inputs(self):
        return self.call_stage.outputs()

    def outputs(self):
        return _with_index(self.outfile)

    def _run(self):
        merge_sort(
            partitions=[i.outputs[0] for i in self.call_stage.calls],
            index=self.pipe.staged.index,
            outpath=self.outfile.with_suffix(""),
            phase=self.name,
            log=self.log,
        )


class FilterStage(BaseStage):
    """Keep merged variants with QUAL >= params.min_qual."""
    def __init__(self, pipe: Pipeline, state: PipelineState, merge_stage: MergeSortStage, npass: int):
        super().__init__(pipe, [merge_stage])
        self.state = state
        self.merge_stage = merge_stage
        self.outfile = self.pipe.vardir / f"filtered_{npass}.vcf.gz"

    def inputs(self):
        return _with_index(self.merge_stage.outfile)

    def outputs(self):
        return _with_index(self.outfile)

    def _run(self):
        filter_vcf(
            inpath=self.merge_stage.outfile,
            outpath=self.outfile.with_suffix(""),
            min_qual=self.params.min_qual,
            phase=self.name,
            log=self.log,
        )


class FinalizeStage(BaseStage):
    """Promote the last filtered set (and the phased set) to final files.

    Files are copied, so the artifacts of earlier stages are unchanged.
    The separation dir is only created here, once every stage before
    it has succeeded.
    """
    state = PipelineState.FINALIZE

    def __init__(
        self,
        pipe: Pipeline,
        filter_stage: FilterStage,
        phased_stage: Optional[MergeSortStage] = None,
    ):
        requires = [filter_stage] + ([phased_stage] if phased_stage else [])
        super().__init__(pipe, requires)
        self.filter_stage = filter_stage
        self.phased_stage = phased_stage
        self.outfile = self.pipe.vardir / "variants.vcf.gz"

    @property
    def haplotagged(self) -> List[Path]:
        """Haplotag bams written by the phased calling stage."""
        if not self.phased_stage:
            return []
        return [path for call in self.phased_stage.call_stage.calls for path in call.outputs[1:]]

    def inputs(self):
        paths = _with_index(self.filter_stage.outfile)
        if self.phased_stage:
            paths.extend(_with_index(self.phased_stage.outfile))
            paths.extend(self.haplotagged)
        return paths

    def outputs(self):
        paths = _with_index(self.outfile)
        if self.phased_stage:
            paths.extend(_with_index(self.pipe.sepdir / "phased.vcf.gz"))
            for bam in self.haplotagged:
                paths.extend([self.pipe.sepdir / bam.name, self.pipe.sepdir / f"{bam.name}.bai"])
        return paths

    def _run(self):
        promote(self.filter_stage.outfile, self.outfile, self.name, self.log)
        self.pipe.outfiles["variants"] = self.outfile
        self.logger.info(f"final variants: {self.outfile}")

        if self.phased_stage:
            self.pipe.sepdir.mkdir(exist_ok=True)
            phased = promote(
                self.phased_stage.outfile, self.pipe.sepdir / "phased.vcf.gz",
                self.name, self.log)
            bams = []
            for bam in self.haplotagged:
                bams.append(shutil.copyfile(bam, self.pipe.sepdir / bam.name))
                index_bam(bams[-1], self.name, self.log)
            self.pipe.outfiles["phased"] = phased
            self.pipe.outfiles["haplotagged"] = bams
            self.logger.info(f"phased variants: {phased} ({len(bams)} haplotagged bams)")
