"""
The :py:mod:`vpx_conformance.codec` module defines the interfaces through
which the conformance driver talks to the codec under test. The codec itself
is treated as a black box: a codec implementation provides an
:py:class:`EncoderInterface`, a :py:class:`DecoderInterface` and a
:py:class:`CodecFactory` which constructs them.

Codec operations report their outcome with
:py:class:`~vpx_conformance.constants.CodecStatus` codes rather than
exceptions; it is the job of the session wrappers in
:py:mod:`vpx_conformance.sessions` to decide which statuses are acceptable.

Configuration
-------------

.. autodata:: AUTO
    :annotation:

.. autoclass:: EncoderConfig

.. autoclass:: DecoderConfig

Packets
-------

Encoders emit a sequence of :py:class:`Packet` tuples after every encode call.
The payload type depends on the packet kind:

=========================================  ================================
Kind                                       Payload
=========================================  ================================
``PacketKinds.compressed_frame``           :py:class:`CompressedFrame`
``PacketKinds.pass_statistics``            :py:class:`bytes`
``PacketKinds.quality_metric``             :py:class:`QualityMetric`
``PacketKinds.other``                      anything
=========================================  ================================

Interfaces
----------

.. autoclass:: EncoderInterface
    :members:

.. autoclass:: DecoderInterface
    :members:

.. autoclass:: CodecFactory
    :members:

.. autofunction:: load_codec_factory

"""

import importlib

from collections import namedtuple

from fractions import Fraction

from sentinels import Sentinel

from vpx_conformance.constants import (
    PacketKinds,
    Passes,
    Deadlines,
)

from vpx_conformance.fixeddict import fixeddict, Entry


__all__ = [
    "AUTO",
    "EncoderConfig",
    "DecoderConfig",
    "default_encoder_config",
    "default_decoder_config",
    "Packet",
    "CompressedFrame",
    "QualityMetric",
    "frame_packet",
    "stats_packet",
    "quality_metric_packet",
    "EncoderInterface",
    "DecoderInterface",
    "CodecFactory",
    "load_codec_factory",
]


AUTO = Sentinel("AUTO")
"""
Placeholder for configuration values which are filled in from the first
frame given to the encoder (e.g. the frame dimensions).
"""


EncoderConfig = fixeddict(
    "EncoderConfig",
    Entry("width", help_type="int or AUTO"),
    Entry("height", help_type="int or AUTO"),
    Entry("timebase", help_type=":py:class:`fractions.Fraction`"),
    Entry(
        "rc_pass",
        enum=Passes,
        help_type=":py:class:`~vpx_conformance.constants.Passes`",
    ),
    Entry(
        "stats_in",
        help_type=":py:class:`~vpx_conformance.sessions.PassStatistics`",
        help="First-pass statistics (read during the last pass).",
    ),
    Entry(
        "deadline",
        enum=Deadlines,
        help_type=":py:class:`~vpx_conformance.constants.Deadlines`",
    ),
    Entry("lag_in_frames", help_type="int"),
    Entry(
        "quantizer",
        help_type="int",
        help="Codec-specific quality control (0 being the highest quality).",
    ),
    Entry("bit_depth", help_type="int"),
    help="""
        Encoder configuration passed to
        :py:meth:`EncoderInterface.init` and
        :py:meth:`EncoderInterface.reconfigure`.
    """,
)


DecoderConfig = fixeddict(
    "DecoderConfig",
    Entry("threads", help_type="int"),
    Entry("width", help_type="int or AUTO"),
    Entry("height", help_type="int or AUTO"),
    help="""
        Decoder configuration passed to :py:meth:`DecoderInterface.init`.
    """,
)


def default_encoder_config():
    """
    Return an :py:class:`EncoderConfig` with every entry populated with a
    typical default.
    """
    return EncoderConfig(
        width=AUTO,
        height=AUTO,
        timebase=Fraction(1, 30),
        rc_pass=Passes.one_pass,
        stats_in=None,
        deadline=Deadlines.good,
        lag_in_frames=0,
        quantizer=0,
        bit_depth=8,
    )


def default_decoder_config():
    return DecoderConfig(threads=1, width=AUTO, height=AUTO)


Packet = namedtuple("Packet", "kind,payload")
"""
A packet emitted by an encoder.

Parameters
==========
kind : :py:class:`~vpx_conformance.constants.PacketKinds`
payload
    Kind-specific payload (see table above).
"""

CompressedFrame = namedtuple("CompressedFrame", "data,pts,duration,flags")
"""
The payload of a compressed frame packet.

Parameters
==========
data : bytes
    The compressed bitstream for one frame.
pts : int
    Presentation timestamp in timebase units.
duration : int
flags : int
    Codec-specific frame flags (e.g. keyframe).
"""

QualityMetric = namedtuple("QualityMetric", "samples,sse,psnr")
"""
The payload of a quality metric packet. Each field is a 4-tuple: totals for
the whole frame followed by the Y, U and V planes.
"""


def frame_packet(data, pts, duration=1, flags=0):
    return Packet(
        PacketKinds.compressed_frame, CompressedFrame(data, pts, duration, flags)
    )


def stats_packet(data):
    return Packet(PacketKinds.pass_statistics, data)


def quality_metric_packet(samples, sse, psnr):
    return Packet(PacketKinds.quality_metric, QualityMetric(samples, sse, psnr))


class EncoderInterface(object):
    """
    The encoder capability of a codec under test. A newly constructed
    instance is uninitialised: :py:meth:`init` is called before the first
    frame is encoded.
    """

    @property
    def initialized(self):
        """True once :py:meth:`init` has succeeded."""
        raise NotImplementedError()

    def init(self, config, flags):
        """
        Initialise the encoder with an :py:class:`EncoderConfig` and
        :py:class:`~vpx_conformance.constants.InitFlags`. Returns a
        :py:class:`~vpx_conformance.constants.CodecStatus`.
        """
        raise NotImplementedError()

    def reconfigure(self, config):
        """Apply a changed configuration (e.g. new dimensions). Returns a status."""
        raise NotImplementedError()

    def encode(self, frame, pts, duration, flags, deadline):
        """
        Encode a frame. When ``frame`` is None the encoder is being flushed
        and should emit any frames it has delayed. On an uninitialised
        encoder this must return ``CodecStatus.error``. Returns a status.
        """
        raise NotImplementedError()

    def get_output_packets(self):
        """
        Return an iterable over the :py:class:`Packet` objects produced by
        the most recent :py:meth:`encode` call. Each call returns a new,
        independent iterable.
        """
        raise NotImplementedError()

    def get_preview_frame(self):
        """
        Return the encoder's own reconstruction of the most recently emitted
        frame, or None.
        """
        raise NotImplementedError()

    def error_detail(self):
        """Return a diagnostic message describing the last error (or None)."""
        return None

    def close(self):
        """Release any resources held by the encoder."""


class DecoderInterface(object):
    """
    The decoder capability of a codec under test.
    """

    def init(self, config, flags):
        """Initialise the decoder. Returns a status."""
        raise NotImplementedError()

    def decode(self, data):
        """Decode one compressed frame. Returns a status."""
        raise NotImplementedError()

    def get_frames(self):
        """
        Return an iterable over the frames reconstructed by the most recent
        :py:meth:`decode` call.
        """
        raise NotImplementedError()

    def error_detail(self):
        """Return a diagnostic message describing the last error (or None)."""
        return None

    def close(self):
        """Release any resources held by the decoder."""


class CodecFactory(object):
    """
    Constructs (uninitialised) encoder and decoder instances for a codec.
    """

    name = None

    def create_encoder(self):
        """Return a new :py:class:`EncoderInterface`."""
        raise NotImplementedError()

    def create_decoder(self):
        """Return a new :py:class:`DecoderInterface`."""
        raise NotImplementedError()

    def default_encoder_config(self):
        return default_encoder_config()

    def default_decoder_config(self):
        return default_decoder_config()


def load_codec_factory(name):
    """
    Load a :py:class:`CodecFactory` given a string of the form
    ``"package.module:attribute"``. If the named attribute is a class it is
    instantiated with no arguments.

    Raises :py:exc:`ValueError` if the string is malformed or the attribute
    cannot be found and :py:exc:`ImportError` if the module cannot be
    imported.
    """
    module_name, colon, attribute = name.partition(":")
    if not colon or not module_name or not attribute:
        raise ValueError(
            "Codec must be given as 'module:attribute', got {!r}".format(name)
        )

    module = importlib.import_module(module_name)
    try:
        factory = getattr(module, attribute)
    except AttributeError:
        raise ValueError("{} has no attribute {!r}".format(module_name, attribute))

    if isinstance(factory, type):
        factory = factory()
    return factory
