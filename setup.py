#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""setup for mads package distribution.

To prepare a distribution::

    python setup.py check
    python -m build
    twine check dist/*

Testing after ``pip install -e .[test]``::

    python -m mads.test
    pytest --doctest-modules mads

"""
from setuptools import setup
from mads import __version__  # assumes that the right module is visible first in path, i.e., mads folder is in current folder
from mads import __doc__ as long_description

try:
    with open('README.txt') as file:
        long_description = file.read()  # now assign long_description=long_description below
except IOError:  # file not found
    pass

setup(name="pymads",
      long_description=long_description,
      long_description_content_type='text/x-rst',
      version=__version__.split()[0],
      description="MADS, Mesh Adaptive Direct Search for derivative-free " +
                  "constrained and mixed variable optimization in Python",
      license="BSD",
      classifiers=[
          "Intended Audience :: Science/Research",
          "Intended Audience :: Education",
          "Topic :: Scientific/Engineering",
          "Topic :: Scientific/Engineering :: Mathematics",
          "Operating System :: OS Independent",
          "Programming Language :: Python :: 3",
          "Development Status :: 4 - Beta",
          "Environment :: Console",
          "License :: OSI Approved :: BSD License",
      ],
      keywords=["optimization", "MADS", "direct search", "derivative-free"],
      packages=["mads", "mads.utilities"],
      python_requires=">=3.8",
      install_requires=["numpy"],
      extras_require={
            "test": ["pytest"],
      },
      )
