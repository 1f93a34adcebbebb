"""
Double precision reference implementation of the 32-point 2D DCT used as the
ground truth for transform accuracy checks.

The 1D transform is the unnormalised DCT-II::

    out[k] = sum(in[n] * cos(pi * (2n + 1) * k / 64) for n in range(32))

with ``out[0]`` additionally scaled by ``1/sqrt(2)``. The 2D transform
applies this to every column and then to every row, dividing the result of
the row transforms by four. This yields coefficients four times larger than
those of an orthonormal 2D DCT, matching the scale of the fixed-point
kernels in :py:mod:`vpx_conformance.transforms.fixed_point`.

.. autofunction:: reference_dct_1d

.. autofunction:: reference_dct_2d

.. autofunction:: round_half_away_from_zero

.. autoclass:: ErrorAccumulator
    :members:

"""

import numpy as np

from vpx_conformance.constants import TRANSFORM_SIZE


__all__ = [
    "basis_matrix",
    "reference_dct_1d",
    "reference_dct_2d",
    "round_half_away_from_zero",
    "ErrorAccumulator",
]


def basis_matrix(size=TRANSFORM_SIZE):
    """
    Return the (size, size) float64 matrix ``B`` such that ``B @ x`` computes
    the 1D reference transform of ``x``.
    """
    k = np.arange(size)[:, np.newaxis]
    n = np.arange(size)[np.newaxis, :]
    basis = np.cos(np.pi * (2 * n + 1) * k / (2.0 * size))
    basis[0, :] *= 1.0 / np.sqrt(2.0)
    return basis


BASIS = basis_matrix()


def reference_dct_1d(values):
    """Reference 1D transform of a length-32 sequence (float64 result)."""
    return BASIS.dot(np.asarray(values, dtype=np.float64))


def reference_dct_2d(block):
    """
    Reference 2D transform of a (32, 32) block. Columns are transformed
    first, then rows.
    """
    block = np.asarray(block, dtype=np.float64)
    columns = BASIS.dot(block)
    return columns.dot(BASIS.T) / 4.0


def round_half_away_from_zero(values):
    """
    Round to the nearest integer, with halves rounded away from zero (unlike
    :py:func:`numpy.round` which rounds halves to even). Returns int64.
    """
    values = np.asarray(values, dtype=np.float64)
    return (np.sign(values) * np.floor(np.abs(values) + 0.5)).astype(np.int64)


class ErrorAccumulator(object):
    """
    Accumulates squared error statistics over many trials of a transform
    check.

    The location (trial and sample index) of the first occurrence of the
    largest error is recorded to aid diagnosis.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.max_error = 0
        self.total_error = 0
        self.count = 0
        self.max_trial = None
        self.max_index = None

    def add(self, trial, actual, expected):
        """
        Accumulate the squared differences between two equally shaped
        integer arrays for one trial.
        """
        diff = np.asarray(actual, dtype=np.int64) - np.asarray(expected, dtype=np.int64)
        error = (diff * diff).ravel()

        self.total_error += int(np.sum(error))
        self.count += error.size

        index = int(np.argmax(error))
        if error[index] > self.max_error:
            self.max_error = int(error[index])
            self.max_trial = trial
            self.max_index = index

    def metrics(self):
        return {
            "max_error": self.max_error,
            "total_error": self.total_error,
            "count": self.count,
        }
