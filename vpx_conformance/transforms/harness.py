"""
The :py:mod:`vpx_conformance.transforms.harness` module implements the
checks run against every candidate transform pair (see
:py:mod:`vpx_conformance.transforms.registry`).

Checks
------

Four checks are run for each
:py:class:`~vpx_conformance.transforms.registry.TransformTestCase`. Every
check draws its test data from its own :py:class:`numpy.random.RandomState`
seeded with :py:data:`~vpx_conformance.constants.DETERMINISTIC_SEED` and so
is independent of which other checks have been run.

``accuracy_check``
    Random residual blocks (``src - dst`` with ``src`` and ``dst`` random
    samples of the bit depth under test) are forward and inverse
    transformed, the reconstruction being added back onto ``dst``. The
    squared error between the reconstruction and ``src`` must not exceed
    ``4**(bit_depth - 8)`` for any sample nor ``trials * 4**(bit_depth - 8)``
    in total. For approximate candidates the maximum and total are first
    divided by
    :py:data:`~vpx_conformance.constants.APPROXIMATE_MAX_ERROR_DIVISOR` and
    :py:data:`~vpx_conformance.constants.APPROXIMATE_TOTAL_ERROR_DIVISOR`.

``coeff_check``
    The candidate forward transform must match the canonical fixed-point
    kernel exactly (or to within
    :py:data:`~vpx_conformance.constants.APPROXIMATE_COEFF_TOLERANCE` for
    approximate candidates).

``mem_check``
    As ``coeff_check`` but additionally using blocks of saturated
    (``+mask`` or ``-mask``) samples, the first two trials being entirely
    ``+mask`` and ``-mask`` respectively. No coefficient produced by either
    transform may exceed ``4 * DCT_MAX_VALUE << (bit_depth - 8)`` in
    magnitude.

``inverse_accuracy``
    Coefficients computed by the double precision reference transform (and
    rounded to the nearest integer) are inverse transformed by the candidate.
    No reconstructed sample may have a squared error greater than one.

Failures are reported by raising
:py:exc:`~vpx_conformance.exceptions.ConformanceError` subclasses.
Coefficient mismatches are passed to
:py:meth:`TransformHarness.coefficient_mismatch` first which may be
overridden to tolerate (e.g. log) them.

Running the matrix
------------------

:py:func:`run_test_matrix` runs every check on every test case, collecting
the outcome of each into a :py:class:`TransformCheckResult`. A failure in one
case never prevents the remaining cases from being run.

.. autoclass:: TransformHarness
    :members:

.. autoclass:: TransformCheckResult

.. autofunction:: run_test_matrix

"""

import logging

from collections import namedtuple, OrderedDict

import numpy as np

from vpx_conformance.constants import (
    PrecisionModes,
    TRANSFORM_SIZE,
    DCT_MAX_VALUE,
    APPROXIMATE_MAX_ERROR_DIVISOR,
    APPROXIMATE_TOTAL_ERROR_DIVISOR,
    APPROXIMATE_COEFF_TOLERANCE,
    DETERMINISTIC_SEED,
)

from vpx_conformance.exceptions import (
    ConformanceError,
    CoefficientMismatchError,
    CoefficientRangeError,
    RoundTripErrorBound,
    InverseAccuracyError,
)

from vpx_conformance.transforms.reference import (
    reference_dct_2d,
    round_half_away_from_zero,
    ErrorAccumulator,
)

from vpx_conformance.transforms import fixed_point


__all__ = [
    "CHECK_NAMES",
    "DEFAULT_TRIALS",
    "TransformHarness",
    "TransformCheckResult",
    "run_test_matrix",
]


CHECK_NAMES = ("accuracy_check", "coeff_check", "mem_check", "inverse_accuracy")

DEFAULT_TRIALS = {
    "accuracy_check": 1000,
    "coeff_check": 1000,
    "mem_check": 2000,
    "inverse_accuracy": 1000,
}
"""The number of random trials run by each check."""


TransformCheckResult = namedtuple(
    "TransformCheckResult", "test_case,check_name,error,metrics"
)
"""
The outcome of running one check on one test case.

Parameters
==========
test_case : :py:class:`~vpx_conformance.transforms.registry.TransformTestCase`
check_name : str
error : :py:exc:`~vpx_conformance.exceptions.ConformanceError` or None
    None if the check passed.
metrics : dict or None
    Check-specific statistics (e.g. accumulated squared errors). None if the
    check failed.
"""


def coefficient_limit(bit_depth):
    """The largest coefficient magnitude permitted at a given bit depth."""
    return (4 * DCT_MAX_VALUE) << (bit_depth - 8)


def coefficient_tolerance(precision):
    if precision == PrecisionModes.exact:
        return 0
    else:
        return APPROXIMATE_COEFF_TOLERANCE


class TransformHarness(object):
    """
    Runs checks on transform test cases.

    Parameters
    ==========
    trials : {check_name: int, ...} or None
        Overrides for the number of trials run by each check (see
        :py:data:`DEFAULT_TRIALS`).
    seed : int
        The pseudo-random seed used by every check.
    """

    def __init__(self, trials=None, seed=DETERMINISTIC_SEED):
        self.trials = dict(DEFAULT_TRIALS)
        if trials is not None:
            self.trials.update(trials)
        self.seed = seed

    def _random_samples(self, rand, bit_depth):
        mask = (1 << bit_depth) - 1
        # NB: int is only 32 bits on some platforms, hence forced 64 bit width
        return rand.randint(
            0, mask + 1, (TRANSFORM_SIZE, TRANSFORM_SIZE), dtype=np.int64
        )

    def coefficient_mismatch(self, check, trial, index, actual, expected, tolerance):
        """
        Called when a candidate forward transform coefficient differs from the
        reference kernel's by more than ``tolerance``. Raises
        :py:exc:`~vpx_conformance.exceptions.CoefficientMismatchError` by
        default.
        """
        raise CoefficientMismatchError(check, trial, index, actual, expected, tolerance)

    def _compare_coefficients(self, check, trial, actual, expected, tolerance):
        actual = np.asarray(actual).ravel()
        expected = np.asarray(expected).ravel()
        difference = np.abs(actual.astype(np.int64) - expected.astype(np.int64))
        for index in np.flatnonzero(difference > tolerance):
            self.coefficient_mismatch(
                check,
                trial,
                int(index),
                int(actual[index]),
                int(expected[index]),
                tolerance,
            )
        return int(np.max(difference))

    def accuracy_check(self, test_case):
        """Forward/inverse round trip error check."""
        rand = np.random.RandomState(self.seed)
        bit_depth = test_case.bit_depth

        errors = ErrorAccumulator()
        for trial in range(self.trials["accuracy_check"]):
            src = self._random_samples(rand, bit_depth)
            dst = self._random_samples(rand, bit_depth)

            coeffs = test_case.forward(src - dst)
            recon = test_case.inverse(coeffs, dst, bit_depth)
            errors.add(trial, recon, src)

        max_error = errors.max_error
        total_error = errors.total_error
        if test_case.precision == PrecisionModes.approximate:
            max_error //= APPROXIMATE_MAX_ERROR_DIVISOR
            total_error //= APPROXIMATE_TOTAL_ERROR_DIVISOR

        max_limit = 1 << (2 * (bit_depth - 8))
        if max_error > max_limit:
            raise RoundTripErrorBound(
                "max", max_error, max_limit, errors.max_trial, errors.max_index
            )
        total_limit = self.trials["accuracy_check"] << (2 * (bit_depth - 8))
        if total_error > total_limit:
            raise RoundTripErrorBound("total", total_error, total_limit)

        return errors.metrics()

    def coeff_check(self, test_case):
        """Candidate forward transform versus canonical kernel."""
        rand = np.random.RandomState(self.seed)
        bit_depth = test_case.bit_depth
        tolerance = coefficient_tolerance(test_case.precision)

        max_difference = 0
        for trial in range(self.trials["coeff_check"]):
            block = self._random_samples(rand, bit_depth) - self._random_samples(
                rand, bit_depth
            )
            expected = fixed_point.fdct32x32(block)
            actual = test_case.forward(block)
            max_difference = max(
                max_difference,
                self._compare_coefficients(
                    "coeff_check", trial, actual, expected, tolerance
                ),
            )

        return {"max_difference": max_difference}

    def _check_range(self, implementation, trial, coeffs, limit):
        coeffs = np.asarray(coeffs).ravel()
        over = np.flatnonzero(np.abs(coeffs) > limit)
        if over.size:
            index = int(over[0])
            raise CoefficientRangeError(
                implementation, trial, index, int(coeffs[index]), limit
            )

    def mem_check(self, test_case):
        """Saturated input coefficient agreement and range check."""
        rand = np.random.RandomState(self.seed)
        bit_depth = test_case.bit_depth
        mask = (1 << bit_depth) - 1
        tolerance = coefficient_tolerance(test_case.precision)
        limit = coefficient_limit(bit_depth)

        max_difference = 0
        max_magnitude = 0
        for trial in range(self.trials["mem_check"]):
            block = self._random_samples(rand, bit_depth) - self._random_samples(
                rand, bit_depth
            )
            signs = rand.randint(0, 2, (TRANSFORM_SIZE, TRANSFORM_SIZE))
            extreme = np.where(signs == 1, mask, -mask).astype(np.int64)
            if trial == 0:
                extreme[:] = mask
            elif trial == 1:
                extreme[:] = -mask

            max_difference = max(
                max_difference,
                self._compare_coefficients(
                    "mem_check",
                    trial,
                    test_case.forward(block),
                    fixed_point.fdct32x32(block),
                    tolerance,
                ),
            )

            expected = fixed_point.fdct32x32(extreme)
            actual = test_case.forward(extreme)
            max_difference = max(
                max_difference,
                self._compare_coefficients(
                    "mem_check", trial, actual, expected, tolerance
                ),
            )

            self._check_range("reference", trial, expected, limit)
            self._check_range("candidate", trial, actual, limit)
            max_magnitude = max(max_magnitude, int(np.max(np.abs(actual))))

        return {"max_difference": max_difference, "max_magnitude": max_magnitude}

    def inverse_accuracy(self, test_case):
        """Candidate inverse transform of reference coefficients."""
        rand = np.random.RandomState(self.seed)
        bit_depth = test_case.bit_depth

        errors = ErrorAccumulator()
        for trial in range(self.trials["inverse_accuracy"]):
            src = self._random_samples(rand, bit_depth)
            dst = self._random_samples(rand, bit_depth)

            coeffs = round_half_away_from_zero(reference_dct_2d(src - dst))
            recon = test_case.inverse(coeffs, dst, bit_depth)

            diff = np.asarray(recon, dtype=np.int64).ravel() - src.ravel()
            error = diff * diff
            worst = int(np.argmax(error))
            if error[worst] > 1:
                raise InverseAccuracyError(trial, worst, int(error[worst]), 1)
            errors.add(trial, recon, src)

        return errors.metrics()

    def run_check(self, test_case, check_name):
        """
        Run a single named check on a test case, returning a
        :py:class:`TransformCheckResult`.
        """
        if check_name not in CHECK_NAMES:
            raise ValueError("Unknown check {!r}".format(check_name))

        logging.info("Running %s on %s", check_name, test_case.name)
        try:
            metrics = getattr(self, check_name)(test_case)
        except ConformanceError as e:
            logging.info("%s failed on %s: %s", check_name, test_case.name, e)
            return TransformCheckResult(test_case, check_name, e, None)

        logging.debug("%s metrics for %s: %r", check_name, test_case.name, metrics)
        return TransformCheckResult(test_case, check_name, None, metrics)


def run_test_matrix(test_cases, checks=CHECK_NAMES, harness=None):
    """
    Run every check in ``checks`` on every test case in ``test_cases``.

    Parameters
    ==========
    test_cases : iterable of test cases
        :py:class:`~vpx_conformance.transforms.registry.TransformTestCase`
        objects to check.
    checks : iterable of str
        Check names (see :py:data:`CHECK_NAMES`).
    harness : :py:class:`TransformHarness` or None
        The harness to use (a default harness if None).

    Returns
    =======
    results : [:py:class:`TransformCheckResult`, ...]
        One result per test case and check, in order.
    """
    if harness is None:
        harness = TransformHarness()

    checks = list(checks)
    results = []
    for test_case in test_cases:
        case_results = OrderedDict(
            (check_name, harness.run_check(test_case, check_name))
            for check_name in checks
        )
        failed = [
            name for name, result in case_results.items() if result.error is not None
        ]
        if failed:
            logging.warning("%s: FAILED (%s)", test_case.name, ", ".join(failed))
        else:
            logging.info("%s: passed", test_case.name)
        results.extend(case_results.values())

    return results
