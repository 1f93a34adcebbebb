"""
The :py:mod:`vpx_conformance.driver` module contains the
:py:class:`ConformanceDriver` which runs a codec through a complete
encode/decode round trip and checks that:

* compressed frames are emitted with non-decreasing presentation
  timestamps,
* every compressed frame can be decoded, and
* the decoder's reconstruction of every frame is identical to the encoder's
  own reconstruction.

Usage
-----

::

    >>> from vpx_conformance.driver import ConformanceDriver, DriverHooks
    >>> from vpx_conformance.constants import TestModes
    >>> from vpx_conformance.toy_codec import ToyCodecFactory
    >>> from vpx_conformance.video_source import GeneratedVideoSource
    >>> from vpx_conformance.frame_generators import moving_box

    >>> driver = ConformanceDriver(ToyCodecFactory(), mode=TestModes.two_pass_good)
    >>> driver.run(GeneratedVideoSource(moving_box, 64, 48, num_frames=10))

Hooks
-----

Test-specific behaviour is supplied by passing a :py:class:`DriverHooks`
instance (or an instance of a subclass overriding some of its methods) to the
driver. The default hooks do nothing except :py:meth:`DriverHooks.mismatch`
and :py:meth:`DriverHooks.handle_decode_result` which raise on failure.

.. autoclass:: DriverHooks
    :members:

.. autoclass:: ConformanceDriver
    :members:

.. autoclass:: DriverStates
    :members:
    :undoc-members:

.. autofunction:: mode_to_deadline_and_passes

"""

import logging

from enum import Enum

from vpx_conformance.constants import (
    CodecStatus,
    PacketKinds,
    Passes,
    Deadlines,
    TestModes,
    EncodeFlags,
    InitFlags,
)

from vpx_conformance.fixeddict import fixeddict, Entry

from vpx_conformance.exceptions import (
    DecodeError,
    FrameMismatchError,
    TimestampOrderError,
)

from vpx_conformance.frame import compare_frames

from vpx_conformance.sessions import (
    PassStatistics,
    EncoderSession,
    DecoderSession,
)


__all__ = [
    "DriverStates",
    "DriverState",
    "DriverHooks",
    "ConformanceDriver",
    "mode_to_deadline_and_passes",
]


class DriverStates(Enum):
    """
    The states of a :py:class:`ConformanceDriver` run.
    """

    init = "init"
    first_pass = "first_pass"
    main_pass = "main_pass"
    done = "done"


DriverState = fixeddict(
    "DriverState",
    Entry("pass_index", help_type="int"),
    Entry("last_pts", help_type="int"),
    Entry("decoded_pts", help_type="int"),
    Entry("frames_encoded", help_type="int"),
    Entry("frames_decoded", help_type="int"),
    Entry("mismatches", help_type="int"),
    help="""
        Per-run state of a :py:class:`ConformanceDriver`. The counters
        accumulate over every pass of a run; ``last_pts`` is reset at the
        start of each pass. ``decoded_pts`` is the PTS of the compressed frame
        most recently given to the decoder.
    """,
)


MODES = {
    TestModes.realtime: (Deadlines.realtime, 1),
    TestModes.one_pass_good: (Deadlines.good, 1),
    TestModes.one_pass_best: (Deadlines.best, 1),
    TestModes.two_pass_good: (Deadlines.good, 2),
    TestModes.two_pass_best: (Deadlines.best, 2),
}


def mode_to_deadline_and_passes(mode):
    """
    Return the (deadline, number of passes) pair for a
    :py:class:`~vpx_conformance.constants.TestModes` value. Raises
    :py:exc:`ValueError` for unknown modes.
    """
    try:
        return MODES[TestModes(mode)]
    except (KeyError, ValueError):
        raise ValueError("Unexpected mode {!r}".format(mode))


class DriverHooks(object):
    """
    Callbacks invoked by the :py:class:`ConformanceDriver` at each stage of
    a run. Override any of these methods in a subclass to customise a test.
    """

    def begin_pass(self, pass_index):
        """Called at the start of every pass (numbered from 0)."""

    def end_pass(self):
        """Called at the end of every pass, before the codec is torn down."""

    def pre_encode_frame(self, video, encoder):
        """
        Called before every encode (or flush) call. May modify the video
        source or use ``encoder`` (an
        :py:class:`~vpx_conformance.sessions.EncoderSession`) to adjust the
        encoder.
        """

    def mutate_encoder_output(self, packet):
        """
        Called with every packet emitted by the encoder. Returns the packet
        to process in its place.
        """
        return packet

    def do_decode(self):
        """Return False to skip decoding of compressed frames."""
        return True

    def handle_decode_result(self, status, video, decoder):
        """
        Called with the status of every decode. Return True to continue
        processing the packet or False to skip the rest of its processing
        (e.g. when a malformed stream is being decoded deliberately).

        By default any failure raises
        :py:exc:`~vpx_conformance.exceptions.DecodeError`.
        """
        if status != CodecStatus.ok:
            raise DecodeError(status, video.pts(), decoder.error_detail())
        return True

    def frame_packet(self, packet):
        """Called with every compressed frame packet."""

    def quality_metric_packet(self, packet):
        """Called with every quality metric packet."""

    def mismatch(self, encoded_frame, decoded_frame, pts):
        """
        Called when the decoder's reconstruction differs from the encoder's.
        ``pts`` is that of the compressed frame which was decoded. Raises
        :py:exc:`~vpx_conformance.exceptions.FrameMismatchError` by default.
        """
        raise FrameMismatchError(pts)

    def decompressed_frame(self, frame, pts):
        """
        Called with every frame reconstructed by the decoder and the PTS of
        the compressed frame it was decoded from.
        """

    def should_continue(self):
        """Return False to end the current pass (and the run) early."""
        return True


class ConformanceDriver(object):
    """
    Drives an encoder/decoder pair over a video source for one or two rate
    control passes.

    Parameters
    ==========
    codec_factory : :py:class:`~vpx_conformance.codec.CodecFactory`
    mode : :py:class:`~vpx_conformance.constants.TestModes`
    config : :py:class:`~vpx_conformance.codec.EncoderConfig` or None
        The encoder configuration. Defaults to the factory's default.
    hooks : :py:class:`DriverHooks` or None
    init_flags : :py:class:`~vpx_conformance.constants.InitFlags`
    frame_flags : :py:class:`~vpx_conformance.constants.EncodeFlags`
        Flags given to every encode call.
    """

    def __init__(
        self,
        codec_factory,
        mode=TestModes.one_pass_good,
        config=None,
        hooks=None,
        init_flags=InitFlags.none,
        frame_flags=EncodeFlags.none,
    ):
        self.codec_factory = codec_factory
        if config is None:
            config = codec_factory.default_encoder_config()
        self.config = config
        self.hooks = hooks if hooks is not None else DriverHooks()
        self.init_flags = init_flags
        self.frame_flags = frame_flags

        self.stats = PassStatistics()
        self.state = DriverStates.init
        self.run_state = self._new_run_state()

        self.set_mode(mode)

    @staticmethod
    def _new_run_state():
        return DriverState(
            pass_index=0,
            last_pts=0,
            decoded_pts=None,
            frames_encoded=0,
            frames_decoded=0,
            mismatches=0,
        )

    def set_mode(self, mode):
        """
        Set the deadline and number of passes from a
        :py:class:`~vpx_conformance.constants.TestModes` value.
        """
        self.deadline, self.passes = mode_to_deadline_and_passes(mode)

    def _pass_indicator(self, pass_index):
        if self.passes == 1:
            return Passes.one_pass
        elif pass_index == 0:
            return Passes.first_pass
        else:
            return Passes.last_pass

    def run(self, video):
        """
        Run every pass over the supplied
        :py:class:`~vpx_conformance.video_source.VideoSource`.
        """
        assert self.passes in (1, 2), "Pass count must be 1 or 2"

        self.stats.reset()
        self.run_state = self._new_run_state()

        for pass_index in range(self.passes):
            rc_pass = self._pass_indicator(pass_index)
            if rc_pass == Passes.first_pass:
                self.state = DriverStates.first_pass
            else:
                self.state = DriverStates.main_pass

            self.run_state["pass_index"] = pass_index
            self.run_state["last_pts"] = 0

            logging.info("Starting pass %d (%s)", pass_index, rc_pass.name)
            self._run_pass(video, pass_index, rc_pass)

            if rc_pass == Passes.first_pass:
                self.stats.seal()
                logging.info(
                    "First pass complete: %d statistics fragments", len(self.stats)
                )

            if not self.hooks.should_continue():
                break

        self.state = DriverStates.done

    def _run_pass(self, video, pass_index, rc_pass):
        config = self.config.copy()
        config["rc_pass"] = rc_pass
        config["deadline"] = self.deadline

        self.hooks.begin_pass(pass_index)

        encoder = EncoderSession(
            self.codec_factory.create_encoder(),
            config,
            self.deadline,
            self.init_flags,
            self.stats,
        )
        try:
            decoder = DecoderSession(
                self.codec_factory.create_decoder(),
                self.codec_factory.default_decoder_config(),
            )
            try:
                self._run_frames(video, encoder, decoder)
                self.hooks.end_pass()
            finally:
                decoder.close()
        finally:
            encoder.close()

    def _run_frames(self, video, encoder, decoder):
        video.begin()
        again = True
        while again:
            again = video.current_frame() is not None

            self.hooks.pre_encode_frame(video, encoder)
            encoder.encode_frame(video, self.frame_flags)

            has_cxdata = False
            has_dxdata = False
            for packet in encoder.get_output_packets():
                packet = self.hooks.mutate_encoder_output(packet)
                again = True

                if packet.kind == PacketKinds.compressed_frame:
                    has_cxdata = True
                    if self._process_frame_packet(packet, video, decoder):
                        has_dxdata = True
                elif packet.kind == PacketKinds.quality_metric:
                    self.hooks.quality_metric_packet(packet)
                else:
                    logging.debug("Ignoring %s packet", PacketKinds(packet.kind).name)

            if has_cxdata and has_dxdata:
                self._compare_reconstructions(encoder, decoder)

            if not self.hooks.should_continue():
                break

            video.advance()

    def _process_frame_packet(self, packet, video, decoder):
        """
        Decode (if enabled), check the timestamp of and report a compressed
        frame packet. Returns True if the packet was decoded and False if
        decoding is disabled or the decode result hook asked for the packet
        to be skipped.
        """
        frame = packet.payload
        decoded = False

        self.run_state["frames_encoded"] += 1
        if self.hooks.do_decode():
            status = decoder.decode_frame(frame.data)
            if not self.hooks.handle_decode_result(status, video, decoder):
                return False
            self.run_state["decoded_pts"] = frame.pts
            decoded = True

        logging.debug("Compressed frame: pts=%d, %d bytes", frame.pts, len(frame.data))
        if frame.pts < self.run_state["last_pts"]:
            raise TimestampOrderError(frame.pts, self.run_state["last_pts"])
        self.run_state["last_pts"] = frame.pts

        self.hooks.frame_packet(packet)
        return decoded

    def _compare_reconstructions(self, encoder, decoder):
        encoded_frame = encoder.preview_frame()
        decoded_frame = decoder.get_frames().next_item()

        if decoded_frame is None:
            return

        pts = self.run_state["decoded_pts"]
        self.run_state["frames_decoded"] += 1
        if encoded_frame is not None and not compare_frames(
            encoded_frame, decoded_frame
        ):
            self.run_state["mismatches"] += 1
            logging.warning("Encode/decode mismatch for frame with PTS %d", pts)
            self.hooks.mismatch(encoded_frame, decoded_frame, pts)

        self.hooks.decompressed_frame(decoded_frame, pts)
