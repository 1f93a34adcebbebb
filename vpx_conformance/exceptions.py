"""
The :py:mod:`vpx_conformance.exceptions` module defines the exceptions raised
when a codec or transform implementation fails a conformance check. All are
derived from :py:exc:`ConformanceError` which provides an
:py:meth:`~ConformanceError.explain` method returning a detailed human
readable description of the failure.

.. autoexception:: ConformanceError
    :members:

Encode/decode driver failures
-----------------------------

.. autoexception:: CodecStatusError

.. autoexception:: DecodeError

.. autoexception:: TimestampOrderError

.. autoexception:: FrameMismatchError

.. autoexception:: StatisticsSealedError

Transform failures
------------------

.. autoexception:: CoefficientMismatchError

.. autoexception:: CoefficientRangeError

.. autoexception:: RoundTripErrorBound

.. autoexception:: InverseAccuracyError

"""

from vpx_conformance.string_utils import wrap_paragraphs

from vpx_conformance.constants import CodecStatus


__all__ = [
    "ConformanceError",
    "CodecStatusError",
    "DecodeError",
    "TimestampOrderError",
    "FrameMismatchError",
    "StatisticsSealedError",
    "CoefficientMismatchError",
    "CoefficientRangeError",
    "RoundTripErrorBound",
    "InverseAccuracyError",
]


def status_to_string(status):
    """
    Convert a codec status code into a string such as ``"invalid param
    (8)"``. Unknown codes are shown as a bare number.
    """
    try:
        return "{} ({:d})".format(CodecStatus(status).name.replace("_", " "), status)
    except ValueError:
        return "{:d}".format(status)


class ConformanceError(Exception):
    """
    Base class for all conformance failure exceptions.
    """

    def __str__(self):
        return wrap_paragraphs(self.explain()).partition("\n")[0]

    def explain(self):
        """
        Produce a detailed human readable explanation of the failure.

        Should return a string which can be re-linewrapped by
        :py:func:`vpx_conformance.string_utils.wrap_paragraphs`. The first
        paragraph is used as a summary when the exception is printed using
        :py:func:`str`.
        """
        raise NotImplementedError()


################################################################################
# Encode/decode driver failures
################################################################################


class CodecStatusError(ConformanceError):
    """
    A codec operation returned an unexpected status code.

    Parameters
    ==========
    operation : str
        The name of the operation (e.g. ``"encode"``).
    status : :py:class:`~vpx_conformance.constants.CodecStatus`
        The status actually returned.
    expected : :py:class:`~vpx_conformance.constants.CodecStatus`
        The status which was required.
    detail : str or None
        The diagnostic message reported by the codec, if any.
    """

    def __init__(self, operation, status, expected=CodecStatus.ok, detail=None):
        self.operation = operation
        self.status = status
        self.expected = expected
        self.detail = detail
        super(CodecStatusError, self).__init__(operation, status, expected, detail)

    def explain(self):
        return """
            Codec {} returned {} but {} was expected.

            Codec diagnostic: {}
        """.format(
            self.operation,
            status_to_string(self.status),
            status_to_string(self.expected),
            self.detail if self.detail else "(none given)",
        )


class DecodeError(ConformanceError):
    """
    The decoder failed to decode a compressed frame produced by the encoder.

    Parameters
    ==========
    status : :py:class:`~vpx_conformance.constants.CodecStatus`
    pts : int
        The presentation timestamp of the source frame being processed.
    detail : str or None
        The decoder's diagnostic message.
    """

    def __init__(self, status, pts, detail=None):
        self.status = status
        self.pts = pts
        self.detail = detail
        super(DecodeError, self).__init__(status, pts, detail)

    def explain(self):
        return """
            Decoding failed with status {} while processing source frame
            with PTS {}.

            Decoder diagnostic: {}
        """.format(
            status_to_string(self.status),
            self.pts,
            self.detail if self.detail else "(none given)",
        )


class TimestampOrderError(ConformanceError):
    """
    A compressed frame packet carried a presentation timestamp lower than
    that of the previously emitted compressed frame.

    Parameters
    ==========
    pts : int
        The offending timestamp.
    last_pts : int
        The timestamp of the previous compressed frame in this pass.
    """

    def __init__(self, pts, last_pts):
        self.pts = pts
        self.last_pts = last_pts
        super(TimestampOrderError, self).__init__(pts, last_pts)

    def explain(self):
        return """
            Compressed frame emitted with PTS {} after a frame with PTS {}.

            Presentation timestamps of compressed frames must be
            non-decreasing within a pass.
        """.format(
            self.pts, self.last_pts
        )


class FrameMismatchError(ConformanceError):
    """
    The decoder's reconstruction of a frame differs from the encoder's own
    reconstruction.

    Parameters
    ==========
    pts : int
        The presentation timestamp of the compressed frame whose
        reconstructions differ.
    differences : str or None
        Optional description of the differences found.
    """

    def __init__(self, pts, differences=None):
        self.pts = pts
        self.differences = differences
        super(FrameMismatchError, self).__init__(pts, differences)

    def explain(self):
        out = """
            Encode/decode mismatch found at frame with PTS {}.

            The frame reconstructed by the decoder is not identical to the
            encoder's reference reconstruction.
        """.format(
            self.pts
        )
        if self.differences:
            out += "\n\n{}\n".format(self.differences)
        return out


class StatisticsSealedError(ConformanceError):
    """
    First-pass statistics were appended after the first pass had completed.
    """

    def explain(self):
        return """
            First-pass statistics were emitted after the first pass completed.

            The pass statistics buffer is read-only once the second pass has
            begun.
        """


################################################################################
# Transform failures
################################################################################


class CoefficientMismatchError(ConformanceError):
    """
    A candidate forward transform produced a coefficient which differs from
    the canonical fixed-point kernel by more than permitted.

    Parameters
    ==========
    check : str
        The name of the check which failed (e.g. ``"coeff_check"``).
    trial : int
        The index of the random trial.
    index : int
        The coefficient index (in raster order).
    actual : int
        The candidate's coefficient.
    expected : int
        The reference coefficient.
    tolerance : int
        The largest absolute difference permitted (0 for exact candidates).
    """

    def __init__(self, check, trial, index, actual, expected, tolerance):
        self.check = check
        self.trial = trial
        self.index = index
        self.actual = actual
        self.expected = expected
        self.tolerance = tolerance
        super(CoefficientMismatchError, self).__init__(
            check, trial, index, actual, expected, tolerance
        )

    def explain(self):
        return """
            Forward transform coefficient {} mismatched in {} trial {}.

            Candidate produced {} but the reference kernel produced {}
            (difference {}, at most {} permitted).
        """.format(
            self.index,
            self.check,
            self.trial,
            self.actual,
            self.expected,
            abs(self.actual - self.expected),
            self.tolerance,
        )


class CoefficientRangeError(ConformanceError):
    """
    A forward transform produced a coefficient outside the permitted range
    for the bit depth in use.

    Parameters
    ==========
    implementation : str
        ``"candidate"`` or ``"reference"``.
    trial : int
    index : int
    value : int
    limit : int
        The largest permitted magnitude.
    """

    def __init__(self, implementation, trial, index, value, limit):
        self.implementation = implementation
        self.trial = trial
        self.index = index
        self.value = value
        self.limit = limit
        super(CoefficientRangeError, self).__init__(
            implementation, trial, index, value, limit
        )

    def explain(self):
        return """
            The {} forward transform produced coefficient {} = {} in trial
            {}, exceeding the magnitude limit of {}.

            This typically indicates an overflow in a fixed-point
            intermediate value.
        """.format(
            self.implementation,
            self.index,
            self.value,
            self.trial,
            self.limit,
        )


class RoundTripErrorBound(ConformanceError):
    """
    The accumulated forward/inverse round trip error exceeded its bound.

    Parameters
    ==========
    metric : str
        ``"max"`` or ``"total"``.
    observed : int
        The (possibly scaled) observed squared error.
    limit : int
        The permitted value.
    trial : int or None
        For max errors, the trial in which the worst error occurred.
    index : int or None
        For max errors, the sample index of the worst error.
    """

    def __init__(self, metric, observed, limit, trial=None, index=None):
        self.metric = metric
        self.observed = observed
        self.limit = limit
        self.trial = trial
        self.index = index
        super(RoundTripErrorBound, self).__init__(metric, observed, limit, trial, index)

    def explain(self):
        if self.metric == "max":
            summary = (
                "Forward/inverse transform round trip has an individual "
                "squared error of {} (limit {}) at sample {} of trial {}."
            ).format(self.observed, self.limit, self.index, self.trial)
        else:
            summary = (
                "Forward/inverse transform round trip has a total squared "
                "error of {} (limit {})."
            ).format(self.observed, self.limit)
        return summary


class InverseAccuracyError(ConformanceError):
    """
    An inverse transform of reference coefficients reconstructed a sample
    with too large an error.

    Parameters
    ==========
    trial : int
    index : int
        The sample index (in raster order).
    error : int
        The squared error observed.
    limit : int
        The largest permitted squared error.
    """

    def __init__(self, trial, index, error, limit=1):
        self.trial = trial
        self.index = index
        self.error = error
        self.limit = limit
        super(InverseAccuracyError, self).__init__(trial, index, error, limit)

    def explain(self):
        return """
            Inverse transform has squared error {} at index {} in trial {}
            (limit {}).

            Coefficients were derived from the double precision reference
            transform and rounded to the nearest integer.
        """.format(
            self.error,
            self.index,
            self.trial,
            self.limit,
        )
