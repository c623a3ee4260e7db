#!/usr/bin/env python

"""API level classes for straincall.

Examples
--------
>>> import straincall as sc
>>> params = sc.Params(
>>>     reference="ref.fa", alignment="reads.bam", outdir="./out",
>>>     nstrains=2, min_qual=50, workers=4,
>>> )
>>> pipe = sc.Pipeline(params)
>>> pipe.run()
>>> print(pipe.summary())
"""

# bring nested functions to top for API access
from straincall.core.logger_setup import set_log_level
from straincall.core.params import Params
from straincall.core.pipeline import Pipeline
from straincall.core.strategy import select_strategy
from straincall.core.cluster import Cluster

__version__ = "0.3.0"
__author__ = "straincall developers"

# configure the logger
set_log_level("INFO")
