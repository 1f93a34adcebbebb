"""
Canonical fixed-point implementations of the 32x32 forward and inverse
transforms.

All kernels multiply by a matrix of 14-bit integer cosine constants::

    COSINE_MATRIX[k][n] = round(2**14 * cos(pi * (2n + 1) * k / 64))

(the DC row therefore holds ``round(2**14 * cos(pi / 4))``) and round
intermediate results with :py:func:`round_shift`. All arithmetic is
performed on int64 numpy arrays and is therefore exact and deterministic:
the row-by-row ("generic") and whole-block ("vectorized") variants of each
kernel produce bit-identical results.

Forward transforms
------------------

Forward kernels take a (32, 32) block of signed residual samples and return
a (32, 32) int64 array of coefficients in raster order (row index being the
vertical frequency). Coefficients have the same scale as
:py:func:`~vpx_conformance.transforms.reference.reference_dct_2d`.

.. autofunction:: fdct32x32

.. autofunction:: fdct32x32_rd

Inverse transform
-----------------

.. autofunction:: idct32x32_add

Vectorized variants
-------------------

.. autofunction:: fdct32x32_vectorized

.. autofunction:: fdct32x32_rd_vectorized

.. autofunction:: idct32x32_add_vectorized

"""

import numpy as np

from vpx_conformance.constants import TRANSFORM_SIZE


__all__ = [
    "COSINE_BITS",
    "COSINE_MATRIX",
    "round_shift",
    "fdct32x32",
    "fdct32x32_rd",
    "idct32x32_add",
    "fdct32x32_vectorized",
    "fdct32x32_rd_vectorized",
    "idct32x32_add_vectorized",
]


COSINE_BITS = 14
"""Number of fractional bits in the cosine constants."""


def cosine_matrix(size=TRANSFORM_SIZE, bits=COSINE_BITS):
    k = np.arange(size)[:, np.newaxis]
    n = np.arange(size)[np.newaxis, :]
    matrix = (1 << bits) * np.cos(np.pi * (2 * n + 1) * k / (2.0 * size))
    matrix[0, :] = (1 << bits) * np.cos(np.pi / 4)
    return np.round(matrix).astype(np.int64)


COSINE_MATRIX = cosine_matrix()

FORWARD_INPUT_SHIFT = 2
"""Extra precision given to the input of the exact forward transform."""

INVERSE_ROW_SHIFT = 12
INVERSE_COLUMN_SHIFT = COSINE_BITS
INVERSE_OUTPUT_SHIFT = 8


def round_shift(values, shift):
    """
    Divide by ``2**shift``, rounding to nearest (halves rounded up).
    """
    return (values + (1 << (shift - 1))) >> shift


def _as_block(block):
    block = np.asarray(block, dtype=np.int64)
    if block.shape != (TRANSFORM_SIZE, TRANSFORM_SIZE):
        raise ValueError(
            "Expected a {0}x{0} block, got shape {1}".format(
                TRANSFORM_SIZE, block.shape
            )
        )
    return block


def _forward_generic(block, input_shift, output_shift):
    block = _as_block(block)
    columns = np.empty_like(block)
    for i in range(TRANSFORM_SIZE):
        columns[:, i] = round_shift(
            COSINE_MATRIX.dot(block[:, i] << input_shift), COSINE_BITS
        )

    out = np.empty_like(block)
    for i in range(TRANSFORM_SIZE):
        out[i, :] = round_shift(COSINE_MATRIX.dot(columns[i, :]), output_shift)
    return out


def _forward_vectorized(block, input_shift, output_shift):
    block = _as_block(block)
    columns = round_shift(COSINE_MATRIX.dot(block << input_shift), COSINE_BITS)
    return round_shift(columns.dot(COSINE_MATRIX.T), output_shift)


def fdct32x32(block):
    """
    Full precision forward transform. Used as the reference kernel against
    which candidate forward transforms are compared.
    """
    return _forward_generic(
        block, FORWARD_INPUT_SHIFT, COSINE_BITS + 2 * FORWARD_INPUT_SHIFT
    )


def fdct32x32_rd(block):
    """
    Reduced precision forward transform (as used in rate-distortion search).
    Coefficients are within
    :py:data:`~vpx_conformance.constants.APPROXIMATE_COEFF_TOLERANCE` of
    :py:func:`fdct32x32`.
    """
    return _forward_generic(block, 0, COSINE_BITS + 2)


def fdct32x32_vectorized(block):
    return _forward_vectorized(
        block, FORWARD_INPUT_SHIFT, COSINE_BITS + 2 * FORWARD_INPUT_SHIFT
    )


def fdct32x32_rd_vectorized(block):
    return _forward_vectorized(block, 0, COSINE_BITS + 2)


def _add_and_clip(residual, dest, bit_depth):
    dest = _as_block(dest)
    residual = round_shift(residual, INVERSE_OUTPUT_SHIFT)
    return np.clip(dest + residual, 0, (1 << bit_depth) - 1)


def idct32x32_add(coeffs, dest, bit_depth=8):
    """
    Inverse transform a (32, 32) block of coefficients and add the result to
    a prediction block.

    Parameters
    ==========
    coeffs : (32, 32) array
    dest : (32, 32) array
        Prediction samples.
    bit_depth : int
        The output is clipped to ``[0, 2**bit_depth - 1]``.

    Returns
    =======
    recon : (32, 32) int64 array
    """
    coeffs = _as_block(coeffs)

    rows = np.empty_like(coeffs)
    for i in range(TRANSFORM_SIZE):
        rows[i, :] = round_shift(coeffs[i, :].dot(COSINE_MATRIX), INVERSE_ROW_SHIFT)

    residual = np.empty_like(coeffs)
    for j in range(TRANSFORM_SIZE):
        residual[:, j] = round_shift(
            COSINE_MATRIX.T.dot(rows[:, j]), INVERSE_COLUMN_SHIFT
        )

    return _add_and_clip(residual, dest, bit_depth)


def idct32x32_add_vectorized(coeffs, dest, bit_depth=8):
    coeffs = _as_block(coeffs)
    rows = round_shift(coeffs.dot(COSINE_MATRIX), INVERSE_ROW_SHIFT)
    residual = round_shift(COSINE_MATRIX.T.dot(rows), INVERSE_COLUMN_SHIFT)
    return _add_and_clip(residual, dest, bit_depth)
