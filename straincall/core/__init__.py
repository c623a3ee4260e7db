#!/usr/bin/env python

from straincall.core.exceptions import (
    StrainCallError, StrainCallExit, StageError,
    ToolFailure, MissingArtifactError, MalformedRecordError,
)
from straincall.core.params import Params
