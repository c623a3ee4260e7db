#!/usr/bin/env python

"""Pipeline class that runs a strategy's stages on an ipcluster.

Examples
--------
>>> import straincall as sc
>>> params = sc.Params(reference="ref.fa", alignment="aln.bam", outdir="out", nstrains=3)
>>> pipe = sc.Pipeline(params)
>>> pipe.run()
>>> pipe.outfiles["variants"]
"""

from typing import Callable, Dict, List, Optional
import shutil
from pathlib import Path
from loguru import logger
from straincall.core.params import Params
from straincall.core.cluster import Cluster
from straincall.core.exceptions import StrainCallExit
from straincall.core.base_stage import BaseStage, PipelineState
from straincall.core.strategy import Strategy, select_strategy
from straincall.calling.tools import ToolCall, ToolResult, run_tool
from straincall.preprocess.stage_inputs import StagedInputs

logger = logger.bind(name="straincall")


class Pipeline:
    """Run the stages of the strategy selected by params.

    Stages run strictly in order. The first failure of any stage sets
    the state to FAILED and is raised; the files written so far are
    left on disk and nothing is promoted to the final output.
    """
    def __init__(
        self,
        params: Params,
        invoker: Callable[[ToolCall], ToolResult] = run_tool,
    ):
        self.params = params
        self.invoker = invoker
        """: Function sent to engines to run each caller job."""
        self.strategy: Strategy = select_strategy(params.nstrains, params.freebayes_only)
        self.state: Optional[PipelineState] = None
        self.stages: List[BaseStage] = []
        self.outfiles: Dict[str, Path] = {}
        self.lbview = None

        self.prepdir = params.outdir / "00-preprocess"
        self.vardir = params.outdir / "10-variants"
        self.sepdir = params.outdir / "20-separation"
        self._staged: Optional[StagedInputs] = None

    @property
    def staged(self) -> StagedInputs:
        """Inputs written by the preprocess stage (reloaded if needed)."""
        if self._staged is None:
            self._staged = StagedInputs.load(self.prepdir)
        return self._staged

    @staged.setter
    def staged(self, value: StagedInputs):
        self._staged = value

    def prepdir_outputs(self) -> List[Path]:
        """Staged inputs that caller jobs read."""
        return [
            self.prepdir / "reference.fa",
            self.prepdir / "reference.fa.fai",
            self.prepdir / "alignment.bam",
            self.prepdir / "alignment.bam.bai",
        ]

    def run(self, ipyclient=None) -> Dict[str, Path]:
        """Run all stages and return the final output files.

        Parameters
        ----------
        ipyclient: None or ipyparallel.Client
            Optional client connected to running engines. If None
            a cluster with params.workers engines is started and
            stopped when the run finishes.
        """
        self._setup_dirs()
        self.stages = self.strategy.stages(self)
        logger.info(
            f"strategy: {self.strategy} (nstrains={self.params.nstrains}, "
            f"workers={self.params.workers})")

        if ipyclient is not None:
            self._run_stages(ipyclient)
        else:
            with Cluster(workers=self.params.workers) as client:
                self._run_stages(client)
        return self.outfiles

    def _run_stages(self, ipyclient) -> None:
        self.lbview = ipyclient.load_balanced_view()
        try:
            for stage in self.stages:
                self.state = stage.state
                stage.run()
        except (Exception, KeyboardInterrupt):
            logger.error(f"pipeline failed during stage: {self.state.value}")
            self.state = PipelineState.FAILED
            raise
        self.state = PipelineState.SUCCESS

    def _setup_dirs(self) -> None:
        """Create the stage dirs, or raise if a previous run exists."""
        existing = [i for i in (self.prepdir, self.vardir, self.sepdir) if i.exists()]
        if existing:
            if not self.params.force:
                raise StrainCallExit(
                    f"Error: Directory {existing[0]} exists.\n"
                    "Use force (-f) to overwrite.")
            for path in existing:
                logger.info(f"removing previous dir: {path}")
                shutil.rmtree(path)
        self.params.outdir.mkdir(parents=True, exist_ok=True)
        self.prepdir.mkdir()
        self.vardir.mkdir()

    def summary(self) -> Dict[str, object]:
        """Return the strategy, state of each stage, and output files."""
        return {
            "strategy": str(self.strategy),
            "state": self.state.value if self.state else None,
            "stages": {i.name: i.done for i in self.stages},
            "outfiles": {i: str(j) for i, j in self.outfiles.items()},
        }
