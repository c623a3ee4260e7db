#!/usr/bin/env python

from straincall.preprocess.reference import ReferenceIndex, Contig
from straincall.preprocess.regions import Region, generate_regions
from straincall.preprocess.stage_inputs import StagedInputs, stage_inputs
