r"""
.. _vpx-transform-check:

``vpx-transform-check``
=======================

Runs the 32x32 transform checks (see
:py:mod:`vpx_conformance.transforms.harness`) against every registered
candidate transform implementation and prints a summary.

Usage
-----

::

    $ vpx-transform-check
    generic/exact/8-bit: passed
    generic/approximate/8-bit: passed
    vectorized/exact/8-bit: passed
    ...
    Summary: 12 passed, 0 failed

The set of test cases may be restricted by bit depth (``--bit-depth``),
precision mode (``--precision``) and capability tag (``--capability``), and
the checks run restricted with ``--check``. Each of these arguments may be
given more than once.

The checks are exhaustive and so may take a while. The ``--trial-scale``
argument scales the number of random trials run by every check (e.g. 0.1
runs one tenth as many).

The ``VPX_CONFORMANCE_CAPABILITIES`` environment variable may be used to
restrict the capabilities considered available (see
:py:mod:`vpx_conformance.transforms.registry`).

Exit status
-----------

0 when every check passed, 1 when one or more checks failed and 2 when no
test cases matched the filters given.

Arguments
---------

The complete set of arguments can be listed using ``--help``

.. program-output:: vpx-transform-check --help

"""

import sys

import logging

from argparse import ArgumentParser

from collections import OrderedDict

from vpx_conformance import __version__

from vpx_conformance.constants import BIT_DEPTHS, PrecisionModes

from vpx_conformance.string_utils import indent, wrap_paragraphs

from vpx_conformance.transforms.registry import (
    TRANSFORM_REGISTRY,
    available_capabilities,
)

from vpx_conformance.transforms.harness import (
    CHECK_NAMES,
    DEFAULT_TRIALS,
    TransformHarness,
    run_test_matrix,
)


def parse_args(*args, **kwargs):
    parser = ArgumentParser(
        description="""
        Check the accuracy of the 32x32 forward and inverse transform
        implementations.
    """
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )

    parser.add_argument(
        "--bit-depth",
        "-b",
        type=int,
        choices=BIT_DEPTHS,
        action="append",
        help="""
            Only test this bit depth. May be given multiple times.
        """,
    )

    parser.add_argument(
        "--precision",
        "-p",
        choices=[p.name for p in PrecisionModes],
        action="append",
        help="""
            Only test this precision mode. May be given multiple times.
        """,
    )

    parser.add_argument(
        "--capability",
        "-c",
        action="append",
        help="""
            Only test implementations with this capability tag. May be given
            multiple times.
        """,
    )

    parser.add_argument(
        "--check",
        "-C",
        choices=CHECK_NAMES,
        action="append",
        help="""
            Only run this check. May be given multiple times.
        """,
    )

    parser.add_argument(
        "--trial-scale",
        "-s",
        type=float,
        default=1.0,
        help="""
            Scale the number of random trials run by each check by this
            factor (default: %(default)s).
        """,
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="""
            Show additional status information during execution.
        """,
    )

    args = parser.parse_args(*args, **kwargs)

    if args.trial_scale <= 0:
        parser.error("--trial-scale must be positive")

    return args


def select_test_cases(bit_depths=None, precisions=None, capabilities=None):
    """
    Return the list of registered test cases matching the supplied filters
    (None meaning 'any').
    """
    available = available_capabilities()
    if capabilities is not None:
        available = available & set(capabilities)

    return [
        test_case
        for test_case in TRANSFORM_REGISTRY.test_cases(available)
        if (bit_depths is None or test_case.bit_depth in bit_depths)
        and (precisions is None or test_case.precision in precisions)
    ]


def scaled_trials(scale):
    return {
        name: max(1, int(round(trials * scale)))
        for name, trials in DEFAULT_TRIALS.items()
    }


def summarise_results(results):
    """
    Produce a textual summary of a list of
    :py:class:`~vpx_conformance.transforms.harness.TransformCheckResult`
    objects. Returns (summary, num_passed, num_failed) where the counts are of
    test cases (not checks).
    """
    # {test_case: [result, ...], ...}
    by_case = OrderedDict()
    for result in results:
        by_case.setdefault(result.test_case, []).append(result)

    out = []
    num_passed = 0
    num_failed = 0
    for test_case, case_results in by_case.items():
        failures = [r for r in case_results if r.error is not None]
        if not failures:
            num_passed += 1
            out.append("{}: passed".format(test_case.name))
        else:
            num_failed += 1
            out.append("{}: FAILED".format(test_case.name))
            for result in failures:
                out.append(indent("{}:".format(result.check_name)))
                out.append(indent(wrap_paragraphs(result.error.explain()), "    "))

    return ("\n".join(out), num_passed, num_failed)


def main(*args, **kwargs):
    args = parse_args(*args, **kwargs)

    log_level = logging.WARNING
    if args.verbose >= 2:
        log_level = logging.DEBUG
    elif args.verbose >= 1:
        log_level = logging.INFO
    logging.basicConfig(level=log_level)

    precisions = None
    if args.precision is not None:
        precisions = [PrecisionModes[name] for name in args.precision]

    test_cases = select_test_cases(args.bit_depth, precisions, args.capability)
    if not test_cases:
        sys.stderr.write("Error: No transform test cases match.\n")
        return 2

    harness = TransformHarness(trials=scaled_trials(args.trial_scale))
    results = run_test_matrix(
        test_cases,
        checks=args.check if args.check is not None else CHECK_NAMES,
        harness=harness,
    )

    summary, num_passed, num_failed = summarise_results(results)
    print(summary)
    print("Summary: {} passed, {} failed".format(num_passed, num_failed))

    return 0 if num_failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
