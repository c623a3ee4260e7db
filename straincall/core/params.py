#!/usr/bin/env python

"""Params schema for type checking and validation of a pipeline run.

Pydantic Models are similar to dataclases but they also include
*type validation*, meaning that if you try to set an attribute to
the wrong type it will raise an error. The Params object is built
once (from the CLI or the API) and passed to every stage. It is
frozen, so stages cannot change settings under each other's feet.

Invalid entries for required paths raise a ValidationError, which the
CLI reports as an argument error. An invalid worker count is not an
error: it is replaced by 1 and a warning is logged.
"""

# pylint: disable=no-self-argument, no-name-in-module

from pathlib import Path
from typing import Any
from pydantic import BaseModel, Field, field_validator
from loguru import logger

logger = logger.bind(name="straincall")


class Params(BaseModel):
    """Settings for one straincall pipeline run."""
    reference: Path
    alignment: Path
    outdir: Path
    nstrains: int = 2
    min_qual: float = 50.0
    workers: int = 1
    freebayes_only: bool = False
    region_size: int = Field(50_000, description="length of regions for joint calling.")
    force: bool = False
    quiet: bool = False

    class Config:
        """Params cannot be modified once a run has been configured."""
        frozen = True

    def __str__(self):
        return self.model_dump_json(indent=2)

    @field_validator('reference', 'alignment')
    @classmethod
    def _infile_validator(cls, value: Path) -> Path:
        """Input files must exist, and are stored as full paths."""
        value = Path(value).expanduser().resolve()
        if not value.is_file():
            raise ValueError(f"file not found: {value}")
        return value

    @field_validator('outdir')
    @classmethod
    def _outdir_validator(cls, value: Path) -> Path:
        """Outdir is expanded but not created until the run starts."""
        if not str(value).strip():
            raise ValueError("an output directory must be entered")
        return Path(value).expanduser().resolve()

    @field_validator('nstrains')
    @classmethod
    def _nstrains_validator(cls, value: int) -> int:
        if value < 1:
            raise ValueError("nstrains must be a positive integer")
        return value

    @field_validator('min_qual')
    @classmethod
    def _qual_validator(cls, value: float) -> float:
        if value < 0:
            raise ValueError("min_qual must be >= 0")
        return value

    @field_validator('region_size')
    @classmethod
    def _region_size_validator(cls, value: int) -> int:
        if value < 1:
            raise ValueError("region_size must be >= 1")
        return value

    @field_validator('workers', mode="before")
    @classmethod
    def _workers_validator(cls, value: Any) -> int:
        """Workers < 1 or non-integers are replaced by 1 with a warning."""
        try:
            workers = int(value)
        except (TypeError, ValueError):
            workers = 0
        if workers < 1:
            logger.warning(f"invalid number of workers ({value!r}), using 1.")
            workers = 1
        return workers
