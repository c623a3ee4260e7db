#!/usr/bin/env python

"""The three calling strategies and the function that selects one.

| freebayes_only | nstrains | Strategy      |
|----------------|----------|---------------|
| True           | any      | JointOnly     |
| False          | < 3      | PhasedDiploid |
| False          | >= 3     | TwoPassJoint  |

Phasing separates at most two haplotypes, so with more strains a
joint caller with ploidy=nstrains is used instead, seeded by the
quality-filtered variants of a first (unphased) pass.

Each Strategy builds the ordered list of stages it runs. The stages
are connected by their `requires` and by the artifacts they declare.
"""

from typing import List
from abc import ABC, abstractmethod
from straincall.core.base_stage import BaseStage, PipelineState, Pipeline
from straincall.core.stages import (
    PreprocessStage, CallStage, MergeSortStage, FilterStage, FinalizeStage,
)
from straincall.calling.tools import longshot_call, freebayes_call


class Strategy(ABC):
    """A fixed sequence of pipeline stages."""
    name: str = None

    def __str__(self):
        return self.name

    def __eq__(self, other):
        return type(self) is type(other)

    def __hash__(self):
        return hash(type(self))

    @abstractmethod
    def stages(self, pipe: Pipeline) -> List[BaseStage]:
        """Return the stages of this strategy, in the order they run."""


class JointOnly(Strategy):
    """freebayes on regions at ploidy=nstrains; no phasing."""
    name = "joint-only"

    def stages(self, pipe):
        nstrains = pipe.params.nstrains
        prep = PreprocessStage(pipe)
        call = CallStage(
            pipe, PipelineState.CALL_1,
            builder=lambda staged, outdir: [
                freebayes_call(
                    i.name, i.spec, staged.reference, staged.alignment, outdir, nstrains)
                for i in staged.regions
            ],
            requires=[prep],
        )
        merge = MergeSortStage(pipe, PipelineState.MERGE_SORT_1, call, 1)
        qfilter = FilterStage(pipe, PipelineState.FILTER_1, merge, 1)
        return [prep, call, merge, qfilter, FinalizeStage(pipe, qfilter)]


class PhasedDiploid(Strategy):
    """longshot per contig with phasing and haplotype-tagged bams."""
    name = "phased-diploid"

    def stages(self, pipe):
        prep = PreprocessStage(pipe)

        # haplotag bams stay in call_1/ until finalize copies them.
        call = CallStage(
            pipe, PipelineState.CALL_1,
            builder=lambda staged, outdir: [
                longshot_call(i, staged.reference, staged.alignment, outdir, haplotag_dir=outdir)
                for i in staged.index.names
            ],
            requires=[prep],
        )
        merge = MergeSortStage(pipe, PipelineState.MERGE_SORT_1, call, 1)
        qfilter = FilterStage(pipe, PipelineState.FILTER_1, merge, 1)
        final = FinalizeStage(pipe, qfilter, phased_stage=merge)
        return [prep, call, merge, qfilter, final]


class TwoPassJoint(Strategy):
    """Unphased longshot, filter, then freebayes restricted to that prior."""
    name = "two-pass-joint"

    def stages(self, pipe):
        nstrains = pipe.params.nstrains
        prep = PreprocessStage(pipe)
        call1 = CallStage(
            pipe, PipelineState.CALL_1,
            builder=lambda staged, outdir: [
                longshot_call(i, staged.reference, staged.alignment, outdir)
                for i in staged.index.names
            ],
            requires=[prep],
        )
        merge1 = MergeSortStage(pipe, PipelineState.MERGE_SORT_1, call1, 1)
        filter1 = FilterStage(pipe, PipelineState.FILTER_1, merge1, 1)

        # the prior is the *filtered* first pass set, not its raw calls.
        prior = filter1.outfile
        call2 = CallStage(
            pipe, PipelineState.CALL_2,
            builder=lambda staged, outdir: [
                freebayes_call(
                    i.name, i.spec, staged.reference, staged.alignment, outdir,
                    nstrains, prior=prior)
                for i in staged.regions
            ],
            requires=[filter1],
            prior=prior,
        )
        merge2 = MergeSortStage(pipe, PipelineState.MERGE_SORT_2, call2, 2)
        filter2 = FilterStage(pipe, PipelineState.FILTER_2, merge2, 2)
        final = FinalizeStage(pipe, filter2)
        return [prep, call1, merge1, filter1, call2, merge2, filter2, final]


def select_strategy(nstrains: int, freebayes_only: bool) -> Strategy:
    """Return the calling strategy for a number of strains and mode."""
    if freebayes_only:
        return JointOnly()
    if nstrains < 3:
        return PhasedDiploid()
    return TwoPassJoint()
