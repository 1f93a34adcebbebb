import pytest

import numpy as np

from vpx_conformance.constants import PrecisionModes, APPROXIMATE_COEFF_TOLERANCE

from vpx_conformance.exceptions import (
    CoefficientMismatchError,
    CoefficientRangeError,
    RoundTripErrorBound,
    InverseAccuracyError,
)

from vpx_conformance.transforms import fixed_point

from vpx_conformance.transforms.registry import (
    KNOWN_CAPABILITIES,
    TransformTestCase,
    TRANSFORM_REGISTRY,
)

from vpx_conformance.transforms.harness import (
    CHECK_NAMES,
    DEFAULT_TRIALS,
    TransformHarness,
    coefficient_limit,
    coefficient_tolerance,
    run_test_matrix,
)


FEW_TRIALS = {name: 8 for name in CHECK_NAMES}


def make_test_case(
    forward=fixed_point.fdct32x32_vectorized,
    inverse=fixed_point.idct32x32_add_vectorized,
    precision=PrecisionModes.exact,
    bit_depth=8,
):
    return TransformTestCase(forward, inverse, precision, bit_depth, "test")


def offset_forward(block):
    out = fixed_point.fdct32x32_vectorized(block)
    out[0, 5] += APPROXIMATE_COEFF_TOLERANCE + 1
    return out


def offset_inverse(coeffs, dest, bit_depth):
    return fixed_point.idct32x32_add_vectorized(coeffs, dest, bit_depth) + 3


def test_coefficient_limit():
    assert coefficient_limit(8) == 65536
    assert coefficient_limit(10) == 65536 * 4
    assert coefficient_limit(12) == 65536 * 16


def test_coefficient_tolerance():
    assert coefficient_tolerance(PrecisionModes.exact) == 0
    assert coefficient_tolerance(PrecisionModes.approximate) == (
        APPROXIMATE_COEFF_TOLERANCE
    )


def test_default_trials():
    assert DEFAULT_TRIALS == {
        "accuracy_check": 1000,
        "coeff_check": 1000,
        "mem_check": 2000,
        "inverse_accuracy": 1000,
    }


def test_trial_overrides():
    harness = TransformHarness(trials={"mem_check": 3})
    assert harness.trials["mem_check"] == 3
    assert harness.trials["coeff_check"] == DEFAULT_TRIALS["coeff_check"]


@pytest.mark.parametrize(
    "test_case",
    list(TRANSFORM_REGISTRY.test_cases(KNOWN_CAPABILITIES)),
    ids=lambda tc: tc.name,
)
@pytest.mark.parametrize("check_name", CHECK_NAMES)
def test_builtin_kernels_pass(test_case, check_name):
    result = TransformHarness(FEW_TRIALS).run_check(test_case, check_name)
    assert result.error is None
    assert result.metrics is not None


@pytest.mark.parametrize("check_name", CHECK_NAMES)
def test_exact_8_bit_full_trial_count(check_name):
    result = TransformHarness().run_check(make_test_case(), check_name)
    assert result.error is None


class TestChecks(object):

    @pytest.fixture
    def harness(self):
        return TransformHarness(FEW_TRIALS)

    def test_deterministic(self, harness):
        test_case = make_test_case(
            fixed_point.fdct32x32_rd_vectorized, precision=PrecisionModes.approximate
        )
        assert harness.accuracy_check(test_case) == harness.accuracy_check(test_case)

    def test_accuracy_metrics(self, harness):
        metrics = harness.accuracy_check(make_test_case())
        assert metrics["count"] == 8 * 32 * 32
        assert metrics["max_error"] <= 1

    def test_coeff_check_exact_has_no_difference(self, harness):
        assert harness.coeff_check(make_test_case()) == {"max_difference": 0}

    def test_coeff_mismatch(self, harness):
        with pytest.raises(CoefficientMismatchError) as exc_info:
            harness.coeff_check(make_test_case(offset_forward))
        assert exc_info.value.check == "coeff_check"
        assert exc_info.value.trial == 0
        assert exc_info.value.index == 5
        assert exc_info.value.tolerance == 0

    def test_coeff_mismatch_beyond_approximate_tolerance(self, harness):
        test_case = make_test_case(offset_forward, precision=PrecisionModes.approximate)
        with pytest.raises(CoefficientMismatchError) as exc_info:
            harness.coeff_check(test_case)
        assert exc_info.value.tolerance == APPROXIMATE_COEFF_TOLERANCE

    def test_coefficient_mismatch_hook(self):
        mismatches = []

        class TolerantHarness(TransformHarness):
            def coefficient_mismatch(
                self, check, trial, index, actual, expected, tolerance
            ):
                mismatches.append((check, trial, index, actual - expected))

        harness = TolerantHarness(FEW_TRIALS)
        metrics = harness.coeff_check(make_test_case(offset_forward))
        assert metrics == {"max_difference": APPROXIMATE_COEFF_TOLERANCE + 1}
        assert mismatches == [
            ("coeff_check", trial, 5, APPROXIMATE_COEFF_TOLERANCE + 1)
            for trial in range(8)
        ]

    def test_mem_check_metrics(self, harness):
        metrics = harness.mem_check(make_test_case())
        assert metrics["max_difference"] == 0
        # The all-saturated blocks produce large DC coefficients
        assert 30000 < metrics["max_magnitude"] <= coefficient_limit(8)

    def test_mem_check_range(self):
        def huge_forward(block):
            out = fixed_point.fdct32x32_vectorized(block)
            out[1, 1] = 10 ** 6
            return out

        class TolerantHarness(TransformHarness):
            def coefficient_mismatch(self, *args):
                pass

        with pytest.raises(CoefficientRangeError) as exc_info:
            TolerantHarness(FEW_TRIALS).mem_check(make_test_case(huge_forward))
        assert exc_info.value.implementation == "candidate"
        assert exc_info.value.index == 33
        assert exc_info.value.value == 10 ** 6
        assert exc_info.value.limit == coefficient_limit(8)

    @pytest.mark.parametrize("precision", list(PrecisionModes))
    def test_accuracy_failure(self, harness, precision):
        test_case = make_test_case(inverse=offset_inverse, precision=precision)
        with pytest.raises(RoundTripErrorBound) as exc_info:
            harness.accuracy_check(test_case)
        assert exc_info.value.metric == "max"
        assert exc_info.value.observed > exc_info.value.limit

    def test_inverse_accuracy_failure(self, harness):
        with pytest.raises(InverseAccuracyError) as exc_info:
            harness.inverse_accuracy(make_test_case(inverse=offset_inverse))
        assert exc_info.value.trial == 0
        assert exc_info.value.error >= 4
        assert exc_info.value.limit == 1

    def test_run_check_unknown(self, harness):
        with pytest.raises(ValueError):
            harness.run_check(make_test_case(), "frobnicate")

    def test_run_check_captures_failure(self, harness):
        result = harness.run_check(make_test_case(offset_forward), "coeff_check")
        assert result.check_name == "coeff_check"
        assert isinstance(result.error, CoefficientMismatchError)
        assert result.metrics is None


def test_run_test_matrix():
    good = make_test_case()
    bad = make_test_case(inverse=offset_inverse)
    results = run_test_matrix(
        [good, bad],
        checks=["accuracy_check", "inverse_accuracy"],
        harness=TransformHarness(FEW_TRIALS),
    )
    assert [(r.test_case, r.check_name) for r in results] == [
        (good, "accuracy_check"),
        (good, "inverse_accuracy"),
        (bad, "accuracy_check"),
        (bad, "inverse_accuracy"),
    ]
    assert [r.error is None for r in results] == [True, True, False, False]
