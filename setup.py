#!/usr/bin/env python

"""
Install straincall with:
 `conda install longshot freebayes -c conda-forge -c bioconda`
 `pip install .`

Or, for developers, install the callers and then straincall w/ pip local:
 `cd straincall/`
 `pip install -e .[test]`
"""

import re
from setuptools import setup, find_packages


# Fetch version from the package __init__.py
INITFILE = "straincall/__init__.py"
CUR_VERSION = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                        open(INITFILE, "r").read(),
                        re.M).group(1)

setup(
    name="straincall",
    version=CUR_VERSION,
    author="straincall developers",
    description="Strain-aware variant calling, phasing and joint genotyping",
    long_description=open('README.rst').read(),
    long_description_content_type='text/x-rst',
    packages=find_packages(),
    python_requires=">=3.10",
    install_requires=[
        "ipyparallel",
        "ipython",
        "pysam",
        "pydantic>=2",
        "loguru",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={'console_scripts': ['straincall = straincall.__main__:main']},
    license='GPL',
    classifiers=[
        'Programming Language :: Python',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
)
