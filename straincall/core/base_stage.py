#!/usr/bin/env python

"""Abstract Base class for Stage class objects run by Pipeline.run().

Each phase of the pipeline is a subclass of BaseStage which declares
the artifacts (files) it requires and the artifacts it produces. A
stage refuses to start unless the stages it depends on have finished
and its input artifacts exist, and it fails if it finishes without
writing its outputs. This makes the order of phases a checked
precondition rather than only the order of a list.
"""

from typing import List, TypeVar, Optional, Sequence
from enum import Enum
from pathlib import Path
from abc import ABC, abstractmethod
from straincall.core.exceptions import MissingArtifactError
from straincall.core.logger_setup import get_logger

Pipeline = TypeVar("Pipeline")


class PipelineState(str, Enum):
    PREPROCESS = "preprocess"
    CALL_1 = "call_1"
    MERGE_SORT_1 = "merge_1"
    FILTER_1 = "filter_1"
    CALL_2 = "call_2"
    MERGE_SORT_2 = "merge_2"
    FILTER_2 = "filter_2"
    FINALIZE = "finalize"
    SUCCESS = "success"
    FAILED = "failed"


HEADERS = {
    PipelineState.PREPROCESS: "Staging and indexing reference and alignment",
    PipelineState.CALL_1: "Calling variants per partition (pass 1)",
    PipelineState.MERGE_SORT_1: "Merging and sorting partition variants (pass 1)",
    PipelineState.FILTER_1: "Filtering variants by quality (pass 1)",
    PipelineState.CALL_2: "Joint calling variants per region using prior (pass 2)",
    PipelineState.MERGE_SORT_2: "Merging and sorting partition variants (pass 2)",
    PipelineState.FILTER_2: "Filtering variants by quality (pass 2)",
    PipelineState.FINALIZE: "Writing final indexed variant files",
}


class BaseStage(ABC):
    """Abstract Base Class for Stage class objects.

    Subclasses set `state` and implement `inputs`, `outputs` and
    `_run`. `inputs` and `outputs` are evaluated when the stage runs,
    so they may depend on results of earlier stages.
    """
    state: PipelineState = None

    def __init__(self, pipe: Pipeline, requires: Optional[Sequence["BaseStage"]] = None):
        self.pipe = pipe
        self.params = pipe.params
        self.requires: List[BaseStage] = list(requires or [])
        """: Stages that must be done before this one can start."""
        self.done = False

    def __repr__(self):
        return f"{type(self).__name__}({self.state.value})"

    @property
    def name(self) -> str:
        return self.state.value

    @property
    def logger(self):
        """Logger that prefixes records with the phase name."""
        return get_logger(self.name)

    @property
    def log(self) -> Path:
        """Phase log file. Preprocess logs to its own dir."""
        if self.state == PipelineState.PREPROCESS:
            return self.pipe.prepdir / f"{self.name}.log"
        return self.pipe.vardir / f"{self.name}.log"

    @abstractmethod
    def inputs(self) -> List[Path]:
        """Artifacts that must exist before the stage starts."""

    @abstractmethod
    def outputs(self) -> List[Path]:
        """Artifacts that must exist after the stage finishes."""

    @abstractmethod
    def _run(self) -> None:
        """Do the work of the stage."""

    def run(self) -> None:
        """Check preconditions, run the stage, and check its outputs."""
        self._print_header()
        for stage in self.requires:
            if not stage.done:
                raise MissingArtifactError(
                    self.name, f"upstream stage '{stage.name}' has not completed", self.log)
        for path in self.inputs():
            if not Path(path).exists():
                raise MissingArtifactError(self.name, f"missing input: {path}", self.log)

        self._run()

        for path in self.outputs():
            if not Path(path).exists():
                raise MissingArtifactError(self.name, f"missing output: {path}", self.log)
        self.done = True

    def _print_header(self) -> None:
        if self.params.quiet:
            self.logger.debug(HEADERS[self.state])
        else:
            self.logger.info(HEADERS[self.state])
