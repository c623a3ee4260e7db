#!/usr/bin/env python

from straincall.variants.records import VariantRecord, parse_vcf
from straincall.variants.qfilter import quality_filter
from straincall.variants.merge import merge_sort
