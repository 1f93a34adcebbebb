"""
The :py:mod:`vpx_conformance.sessions` module wraps codec instances (see
:py:mod:`vpx_conformance.codec`) with the lifecycle and status checking logic
used by the :py:class:`~vpx_conformance.driver.ConformanceDriver`.

Every pass of the driver creates a fresh :py:class:`EncoderSession` and
:py:class:`DecoderSession` and closes them at the end of the pass. Codec
status codes which indicate a protocol violation are turned into
:py:exc:`~vpx_conformance.exceptions.CodecStatusError` exceptions.

.. autoclass:: PassStatistics
    :members:

.. autoclass:: PacketStream
    :members:

.. autoclass:: EncoderSession
    :members:

.. autoclass:: DecoderSession
    :members:

"""

import logging

from vpx_conformance.constants import (
    CodecStatus,
    PacketKinds,
    EncodeFlags,
    InitFlags,
)

from vpx_conformance.exceptions import (
    CodecStatusError,
    StatisticsSealedError,
)


__all__ = [
    "PassStatistics",
    "PacketStream",
    "EncoderSession",
    "DecoderSession",
]


class PassStatistics(object):
    """
    An append-only buffer of first-pass rate control statistics.

    Fragments are appended during the first pass of a two-pass encode. The
    buffer is then sealed and handed, read-only, to the encoder for the last
    pass.
    """

    def __init__(self):
        self._fragments = []
        self._sealed = False

    def append(self, fragment):
        """
        Append a statistics fragment (bytes). Raises
        :py:exc:`~vpx_conformance.exceptions.StatisticsSealedError` if the
        buffer has been sealed.
        """
        if self._sealed:
            raise StatisticsSealedError()
        self._fragments.append(bytes(fragment))

    def seal(self):
        """Prevent further fragments from being appended."""
        self._sealed = True

    @property
    def sealed(self):
        return self._sealed

    def reset(self):
        """Discard all fragments and unseal the buffer."""
        self._fragments = []
        self._sealed = False

    def fragments(self):
        """Return a tuple of the fragments appended so far, in order."""
        return tuple(self._fragments)

    def buf(self):
        """Return the concatenation of all fragments."""
        return b"".join(self._fragments)

    def __len__(self):
        return len(self._fragments)


class PacketStream(object):
    """
    A lazy, finite, non-restartable iterator over the output (packets or
    frames) of exactly one encode or decode call.

    May be consumed either with a ``for`` loop or by repeatedly calling
    :py:meth:`next_item` (which returns None once the stream is exhausted).
    """

    def __init__(self, iterable):
        self._iterator = iter(iterable)

    def __iter__(self):
        return self

    def __next__(self):
        return next(self._iterator)

    def next_item(self):
        return next(self._iterator, None)


class EncoderSession(object):
    """
    Wraps one encoder instance for the duration of a single pass.

    The encoder is initialised lazily when the first frame with real image
    data arrives, taking the frame dimensions from that frame and the
    timebase from the video source. Later frames with different dimensions
    cause the encoder to be reconfigured (not reinitialised).

    Parameters
    ==========
    encoder : :py:class:`~vpx_conformance.codec.EncoderInterface`
        A new, uninitialised encoder.
    config : :py:class:`~vpx_conformance.codec.EncoderConfig`
        The configuration to use. A copy is taken.
    deadline : :py:class:`~vpx_conformance.constants.Deadlines`
    init_flags : :py:class:`~vpx_conformance.constants.InitFlags`
    stats : :py:class:`PassStatistics`
        First-pass statistics emitted by the encoder are appended to this
        buffer, which is also given to the encoder as ``stats_in``.
    """

    def __init__(
        self, encoder, config, deadline, init_flags=InitFlags.none, stats=None
    ):
        self._encoder = encoder
        self._config = config.copy()
        self._deadline = deadline
        self._init_flags = init_flags
        self._stats = stats if stats is not None else PassStatistics()

    @property
    def encoder(self):
        """The wrapped :py:class:`~vpx_conformance.codec.EncoderInterface`."""
        return self._encoder

    @property
    def config(self):
        return self._config

    @property
    def deadline(self):
        return self._deadline

    @deadline.setter
    def deadline(self, deadline):
        self._deadline = deadline

    @property
    def initialized(self):
        return self._encoder.initialized

    def _check(self, operation, status, expected=CodecStatus.ok):
        if status != expected:
            raise CodecStatusError(
                operation, status, expected, self._encoder.error_detail()
            )

    def encode_frame(self, video, flags=EncodeFlags.none):
        """
        Encode the current frame of a
        :py:class:`~vpx_conformance.video_source.VideoSource`, or flush the
        encoder if the source is exhausted. Any first-pass statistics packets
        produced are appended to the statistics buffer.
        """
        if video.current_frame() is not None:
            self._encode_frame_internal(video, flags)
        else:
            self.flush()

        for packet in self.get_output_packets():
            if packet.kind == PacketKinds.pass_statistics:
                self._stats.append(packet.payload)

    def _encode_frame_internal(self, video, flags):
        frame = video.current_frame()

        if not self._encoder.initialized:
            self._config["width"] = frame.width
            self._config["height"] = frame.height
            self._config["timebase"] = video.timebase()
            self._config["stats_in"] = self._stats
            logging.debug(
                "Initialising encoder for %dx%d frames (timebase %s)",
                frame.width,
                frame.height,
                video.timebase(),
            )
            self._check("init", self._encoder.init(self._config, self._init_flags))

        if (
            self._config["width"] != frame.width
            or self._config["height"] != frame.height
        ):
            logging.debug(
                "Reconfiguring encoder from %sx%s to %dx%d",
                self._config["width"],
                self._config["height"],
                frame.width,
                frame.height,
            )
            self._config["width"] = frame.width
            self._config["height"] = frame.height
            self._check("reconfigure", self._encoder.reconfigure(self._config))

        self._check(
            "encode",
            self._encoder.encode(
                frame, video.pts(), video.duration(), flags, self._deadline
            ),
        )

    def flush(self):
        """
        Signal the end of the stream to the encoder. An encoder which was
        never initialised must report ``CodecStatus.error``; an initialised
        encoder must succeed.
        """
        status = self._encoder.encode(None, 0, 0, EncodeFlags.none, self._deadline)
        if self._encoder.initialized:
            self._check("flush", status)
        else:
            self._check("flush", status, CodecStatus.error)

    def get_output_packets(self):
        """
        Return a new :py:class:`PacketStream` over the packets produced by
        the most recent encode or flush.
        """
        return PacketStream(self._encoder.get_output_packets())

    def preview_frame(self):
        """The encoder's reconstruction of its most recent output frame."""
        return self._encoder.get_preview_frame()

    def close(self):
        self._encoder.close()


class DecoderSession(object):
    """
    Wraps one decoder instance for the duration of a single pass.

    Parameters
    ==========
    decoder : :py:class:`~vpx_conformance.codec.DecoderInterface`
    config : :py:class:`~vpx_conformance.codec.DecoderConfig`
    flags : int
    """

    def __init__(self, decoder, config, flags=0):
        self._decoder = decoder
        self._config = config.copy()
        self._flags = flags
        status = self._decoder.init(self._config, self._flags)
        if status != CodecStatus.ok:
            raise CodecStatusError(
                "decoder init", status, CodecStatus.ok, self._decoder.error_detail()
            )

    @property
    def decoder(self):
        """The wrapped :py:class:`~vpx_conformance.codec.DecoderInterface`."""
        return self._decoder

    def decode_frame(self, data):
        """
        Decode one compressed frame, returning the decoder's
        :py:class:`~vpx_conformance.constants.CodecStatus`. Failures are not
        raised here: the caller decides whether a failure is fatal.
        """
        return self._decoder.decode(data)

    def get_frames(self):
        """
        Return a new :py:class:`PacketStream` over the frames produced by the
        most recent :py:meth:`decode_frame` call.
        """
        return PacketStream(self._decoder.get_frames())

    def error_detail(self):
        return self._decoder.error_detail()

    def close(self):
        self._decoder.close()
