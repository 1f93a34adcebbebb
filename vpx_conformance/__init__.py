"""
The VPx conformance software is contained within the
:py:mod:`vpx_conformance` module. It tests a block-transform video codec
treated as a black box; it does not itself implement the production codec.

Below we give a general overview of the design of the conformance software.


Main components
---------------

The conformance software consists of two independent test harnesses:

* An encode/decode conformance driver (:py:mod:`vpx_conformance.driver`)
  which pushes a video sequence through an encoder and decoder in single or
  two-pass rate control modes. It checks that compressed frames are emitted
  in timestamp order, that every frame decodes and that the decoder's
  reconstruction matches the encoder's own reconstruction bit-for-bit.
* A 32x32 transform test harness (:py:mod:`vpx_conformance.transforms`)
  which checks candidate forward and inverse transform implementations
  against a double precision reference and a canonical fixed-point kernel
  at every supported bit depth and precision mode.

The codec under test is reached through the capability interfaces in
:py:mod:`vpx_conformance.codec`. A trivial codec implementing these
interfaces is provided in :py:mod:`vpx_conformance.toy_codec` and is used
by default by the :ref:`vpx-encode-check` command.


Supporting modules
------------------

:py:mod:`vpx_conformance.frame`
    The :py:class:`~vpx_conformance.frame.Frame` type and frame comparison.

:py:mod:`vpx_conformance.video_source` and :py:mod:`vpx_conformance.frame_generators`
    Sources of frames to encode.

:py:mod:`vpx_conformance.file_format`
    Raw frame file reading and writing.

:py:mod:`vpx_conformance.sessions`
    Codec instance lifecycle management used by the driver.

:py:mod:`vpx_conformance.exceptions`
    The exceptions raised when a conformance failure is detected.


Command line tools
------------------

``vpx-encode-check``
    Run the encode/decode conformance driver
    (:py:mod:`vpx_conformance.scripts.vpx_encode_check`).

``vpx-transform-check``
    Run the transform test matrix
    (:py:mod:`vpx_conformance.scripts.vpx_transform_check`).

``vpx-frame-compare``
    Compare raw frames (:py:mod:`vpx_conformance.scripts.vpx_frame_compare`).

"""

from vpx_conformance.version import __version__
