r"""
The :py:mod:`vpx_conformance.transforms.registry` module maintains the table
of candidate transform implementations checked by the transform harness.

Every candidate is registered under a *capability tag* naming the
instruction set or implementation strategy it requires (e.g. ``"generic"``).
At runtime only candidates whose capability is available are tested. The
available capabilities are detected once per process and may be restricted
by setting the ``VPX_CONFORMANCE_CAPABILITIES`` environment variable to a
comma separated list of tags, e.g.::

    $ VPX_CONFORMANCE_CAPABILITIES=generic vpx-transform-check

The default registry, :py:data:`TRANSFORM_REGISTRY`, contains the fixed
point kernels from :py:mod:`vpx_conformance.transforms.fixed_point` for
every bit depth and precision mode.

.. autoclass:: TransformTestCase
    :members:

.. autoclass:: TransformRegistry
    :members:

.. autofunction:: detect_capabilities

.. autofunction:: available_capabilities

.. autodata:: TRANSFORM_REGISTRY
    :annotation:

"""

import os
import logging

from collections import namedtuple, OrderedDict

from vpx_conformance.constants import BIT_DEPTHS, PrecisionModes

from vpx_conformance.transforms import fixed_point


__all__ = [
    "CAPABILITIES_ENVIRONMENT_VARIABLE",
    "KNOWN_CAPABILITIES",
    "TransformTestCase",
    "TransformRegistry",
    "detect_capabilities",
    "available_capabilities",
    "TRANSFORM_REGISTRY",
]


CAPABILITIES_ENVIRONMENT_VARIABLE = "VPX_CONFORMANCE_CAPABILITIES"

KNOWN_CAPABILITIES = ("generic", "vectorized")
"""
The capability tags of the implementations in this package. Both are pure
numpy and therefore available on every platform.
"""


class TransformTestCase(
    namedtuple("TransformTestCase", "forward,inverse,precision,bit_depth,capability")
):
    """
    A candidate forward/inverse transform pair to be checked at a particular
    precision and bit depth.

    Parameters
    ==========
    forward : function(block) -> coeffs
    inverse : function(coeffs, dest, bit_depth) -> recon
    precision : :py:class:`~vpx_conformance.constants.PrecisionModes`
    bit_depth : int
    capability : str
        The capability tag the pair was registered under.
    """

    __slots__ = ()

    # Not a pytest test class
    __test__ = False

    @property
    def name(self):
        """
        A string of the form ``"capability/precision/8-bit"``.
        """
        return "{}/{}/{}-bit".format(
            self.capability, PrecisionModes(self.precision).name, self.bit_depth
        )

    def __repr__(self):
        return "<{} {}>".format(type(self).__name__, self.name)


class TransformRegistry(object):
    """
    A table of candidate transform implementations, keyed by bit depth and
    capability tag.
    """

    def __init__(self):
        # {(bit_depth, capability): [TransformTestCase, ...], ...}
        self._candidates = OrderedDict()

    def register(
        self, forward, inverse, precision, bit_depths=BIT_DEPTHS, capability="generic"
    ):
        """
        Register a forward/inverse pair for each of the given bit depths.
        Returns the registered :py:class:`TransformTestCase` objects.
        """
        precision = PrecisionModes(precision)
        test_cases = []
        for bit_depth in bit_depths:
            if bit_depth not in BIT_DEPTHS:
                raise ValueError("Unsupported bit depth {}".format(bit_depth))
            test_case = TransformTestCase(
                forward, inverse, precision, bit_depth, capability
            )
            self._candidates.setdefault((bit_depth, capability), []).append(test_case)
            test_cases.append(test_case)
        return test_cases

    def capabilities(self):
        """The set of capability tags with at least one registered candidate."""
        return set(capability for _, capability in self._candidates)

    def test_cases(self, capabilities=None):
        """
        Generate every registered :py:class:`TransformTestCase` whose
        capability is in ``capabilities`` (defaults to
        :py:func:`available_capabilities`). Cases are produced ordered by bit
        depth, then in registration order.
        """
        if capabilities is None:
            capabilities = available_capabilities()

        for bit_depth in BIT_DEPTHS:
            for (case_bit_depth, capability), test_cases in self._candidates.items():
                if case_bit_depth == bit_depth and capability in capabilities:
                    for test_case in test_cases:
                        yield test_case


def detect_capabilities(environ=None):
    """
    Return the frozenset of capability tags available on this platform,
    restricted to those listed in the ``VPX_CONFORMANCE_CAPABILITIES``
    environment variable when it is set (and non-empty).
    """
    if environ is None:
        environ = os.environ

    capabilities = frozenset(KNOWN_CAPABILITIES)

    mask = environ.get(CAPABILITIES_ENVIRONMENT_VARIABLE, "").strip()
    if mask:
        allowed = frozenset(tag.strip() for tag in mask.split(",") if tag.strip())
        for tag in sorted(allowed - capabilities):
            logging.warning(
                "Ignoring unknown capability %r in %s",
                tag,
                CAPABILITIES_ENVIRONMENT_VARIABLE,
            )
        capabilities = capabilities & allowed

    return capabilities


_available_capabilities = None


def available_capabilities():
    """
    Return the capabilities found by :py:func:`detect_capabilities`. Detection
    is performed on the first call only.
    """
    global _available_capabilities
    if _available_capabilities is None:
        _available_capabilities = detect_capabilities()
        logging.debug(
            "Available transform capabilities: %s",
            ", ".join(sorted(_available_capabilities)),
        )
    return _available_capabilities


def default_registry():
    """
    Return a :py:class:`TransformRegistry` populated with the fixed-point
    kernels.
    """
    registry = TransformRegistry()

    registry.register(
        fixed_point.fdct32x32,
        fixed_point.idct32x32_add,
        PrecisionModes.exact,
        capability="generic",
    )
    registry.register(
        fixed_point.fdct32x32_rd,
        fixed_point.idct32x32_add,
        PrecisionModes.approximate,
        capability="generic",
    )
    registry.register(
        fixed_point.fdct32x32_vectorized,
        fixed_point.idct32x32_add_vectorized,
        PrecisionModes.exact,
        capability="vectorized",
    )
    registry.register(
        fixed_point.fdct32x32_rd_vectorized,
        fixed_point.idct32x32_add_vectorized,
        PrecisionModes.approximate,
        capability="vectorized",
    )

    return registry


TRANSFORM_REGISTRY = default_registry()
"""
:py:class:`TransformRegistry` singleton holding the built-in candidates.
"""
