"""
The :py:mod:`vpx_conformance.transforms` package contains the 32x32 2D
transform test harness along with the transforms it tests.

:py:mod:`vpx_conformance.transforms.reference`
    Double precision reference transform used as ground truth.

:py:mod:`vpx_conformance.transforms.fixed_point`
    Canonical fixed-point forward and inverse kernels.

:py:mod:`vpx_conformance.transforms.registry`
    The table of candidate transform implementations to be tested.

:py:mod:`vpx_conformance.transforms.harness`
    The checks run against every candidate.
"""
