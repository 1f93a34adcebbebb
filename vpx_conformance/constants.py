"""
The :py:mod:`vpx_conformance.constants` module defines the enumerations and
numerical constants shared by the encode/decode conformance driver and the
transform test harness.

Codec interface enumerations
----------------------------

.. autoclass:: CodecStatus
    :members:
    :undoc-members:

.. autoclass:: PacketKinds
    :members:
    :undoc-members:

.. autoclass:: Passes
    :members:
    :undoc-members:

.. autoclass:: Deadlines
    :members:
    :undoc-members:

.. autoclass:: TestModes
    :members:
    :undoc-members:

.. autoclass:: PixelFormats
    :members:
    :undoc-members:

Transform harness constants
---------------------------

.. autoclass:: PrecisionModes
    :members:
    :undoc-members:

.. autodata:: BIT_DEPTHS

.. autodata:: TRANSFORM_SIZE

.. autodata:: DCT_MAX_VALUE

.. autodata:: APPROXIMATE_MAX_ERROR_DIVISOR

.. autodata:: APPROXIMATE_TOTAL_ERROR_DIVISOR

.. autodata:: APPROXIMATE_COEFF_TOLERANCE

"""

from enum import IntEnum, IntFlag


__all__ = [
    "CodecStatus",
    "PacketKinds",
    "Passes",
    "Deadlines",
    "TestModes",
    "EncodeFlags",
    "InitFlags",
    "PixelFormats",
    "PrecisionModes",
    "BIT_DEPTHS",
    "TRANSFORM_SIZE",
    "NUM_COEFFS",
    "DCT_MAX_VALUE",
    "APPROXIMATE_MAX_ERROR_DIVISOR",
    "APPROXIMATE_TOTAL_ERROR_DIVISOR",
    "APPROXIMATE_COEFF_TOLERANCE",
    "DETERMINISTIC_SEED",
]


class CodecStatus(IntEnum):
    """
    Status codes returned by the codec capability interfaces.
    """

    ok = 0
    error = 1
    mem_error = 2
    abi_mismatch = 3
    incapable = 4
    unsup_bitstream = 5
    unsup_feature = 6
    corrupt_frame = 7
    invalid_param = 8


class PacketKinds(IntEnum):
    """
    The kinds of packet an encoder may emit.
    """

    compressed_frame = 0
    pass_statistics = 1
    quality_metric = 2
    other = 3


class Passes(IntEnum):
    """
    Rate control pass indicator given to the encoder.
    """

    one_pass = 0
    first_pass = 1
    last_pass = 2


class Deadlines(IntEnum):
    """
    Encoder speed/quality trade-off (the encode deadline in microseconds,
    where zero means 'no deadline').
    """

    realtime = 1
    good = 1000000
    best = 0


class TestModes(IntEnum):
    """
    Combined deadline and rate-control pass count used to configure a
    :py:class:`~vpx_conformance.driver.ConformanceDriver`.
    """

    __test__ = False

    realtime = 0
    one_pass_good = 1
    one_pass_best = 2
    two_pass_good = 3
    two_pass_best = 4


class EncodeFlags(IntFlag):
    """
    Per-frame flags passed to the encoder.
    """

    none = 0
    force_keyframe = 1


class InitFlags(IntFlag):
    """
    Flags passed when initialising a codec instance.
    """

    none = 0
    psnr = 0x10000


class PixelFormats(IntEnum):
    """
    Supported 4:2:0 planar pixel formats. High bit depth formats hold samples
    in 16-bit containers.
    """

    i420 = 0x102
    i42016 = 0x902


class PrecisionModes(IntEnum):
    """
    Transform candidate precision. Exact candidates must match the canonical
    fixed-point kernel bit-for-bit, approximate ('rate-distortion loop')
    candidates only within a tolerance.
    """

    exact = 0
    approximate = 1


BIT_DEPTHS = (8, 10, 12)
"""Sample bit depths exercised by the transform harness."""

TRANSFORM_SIZE = 32
"""The transform length (blocks are ``TRANSFORM_SIZE`` squared)."""

NUM_COEFFS = TRANSFORM_SIZE * TRANSFORM_SIZE

DCT_MAX_VALUE = 16384
"""
Nominal maximum 8-bit transform coefficient magnitude. Forward transform
outputs must never exceed ``4 * DCT_MAX_VALUE << (bit_depth - 8)``.
"""

APPROXIMATE_MAX_ERROR_DIVISOR = 2
"""
Divisor applied to the maximum round-trip squared error of approximate
candidates before comparison with the bound. Empirically chosen.
"""

APPROXIMATE_TOTAL_ERROR_DIVISOR = 45
"""
Divisor applied to the total round-trip squared error of approximate
candidates before comparison with the bound. Empirically chosen.
"""

APPROXIMATE_COEFF_TOLERANCE = 6
"""
Largest permitted per-coefficient difference between an approximate forward
transform and the canonical fixed-point kernel.
"""

DETERMINISTIC_SEED = 0xBABA
"""Seed used for all pseudo-random test data."""
