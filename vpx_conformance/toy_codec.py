"""
The :py:mod:`vpx_conformance.toy_codec` module contains a very simple lossy
video codec implementing the :py:class:`~vpx_conformance.codec.EncoderInterface`
and :py:class:`~vpx_conformance.codec.DecoderInterface` capabilities.

The toy codec exists so that the conformance driver (and its tests) can be
exercised without a production codec. It is deliberately trivial:

* Every sample is quantised by discarding its ``quantizer`` least
  significant bits.
* The quantised planes are serialised, together with a small header, and
  compressed with :py:mod:`zlib`.
* The decoder reverses this, reconstructing each sample at the centre of its
  quantisation interval.

Despite its simplicity it exhibits the externally visible behaviours the
driver checks for: frames may be delayed (``lag_in_frames``), first-pass
encodes emit rate control statistics instead of frames, last-pass encodes
require those statistics and PSNR packets are produced when requested with
:py:attr:`~vpx_conformance.constants.InitFlags.psnr`.

Bitstream format
----------------

Each compressed frame is a zlib stream containing a 16 byte header followed
by the Y, U and V planes as little-endian unsigned 16-bit quantised values::

    magic       4 bytes   b"TOYV"
    width       uint16
    height      uint16
    bit_depth   uint8
    quantizer   uint8
    keyframe    uint8
    reserved    5 bytes

.. autoclass:: ToyEncoder

.. autoclass:: ToyDecoder

.. autoclass:: ToyCodecFactory

"""

import logging
import struct
import zlib

from collections import deque

import numpy as np

from vpx_conformance.constants import (
    CodecStatus,
    Passes,
    EncodeFlags,
    InitFlags,
)

from vpx_conformance.codec import (
    EncoderInterface,
    DecoderInterface,
    CodecFactory,
    frame_packet,
    stats_packet,
    quality_metric_packet,
)

from vpx_conformance.frame import (
    Frame,
    chroma_dimensions,
    frame_differences,
    psnr,
)


__all__ = [
    "ToyEncoder",
    "ToyDecoder",
    "ToyCodecFactory",
    "MAGIC",
]


MAGIC = b"TOYV"

HEADER_FORMAT = "<4sHHBBB5x"

HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

STATS_FORMAT = "<qQI"
"""
First-pass statistics record: PTS, sum of luma samples and the compressed
size of the frame in bytes.
"""

KEYFRAME_FLAG = 0x1


def quantize(plane, quantizer):
    return plane.astype(np.int64) >> quantizer


def dequantize(values, quantizer, bit_depth):
    values = values.astype(np.int64) << quantizer
    if quantizer:
        values += 1 << (quantizer - 1)
    return np.clip(values, 0, (1 << bit_depth) - 1)


def serialise_frame(frame, quantizer, keyframe):
    header = struct.pack(
        HEADER_FORMAT,
        MAGIC,
        frame.width,
        frame.height,
        frame.bit_depth,
        quantizer,
        1 if keyframe else 0,
    )
    body = b"".join(
        quantize(frame.plane(index), quantizer).astype("<u2").tobytes()
        for index in range(3)
    )
    return zlib.compress(header + body)


def deserialise_frame(data):
    """
    Decode a compressed toy codec frame. Returns a (frame, keyframe) pair.
    Raises :py:exc:`ValueError` with a description of the problem if the
    data is malformed.
    """
    try:
        raw = zlib.decompress(bytes(data))
    except zlib.error as e:
        raise ValueError("Corrupt compressed data ({})".format(e))

    if len(raw) < HEADER_SIZE:
        raise ValueError("Truncated frame header")
    magic, width, height, bit_depth, quantizer, keyframe = struct.unpack(
        HEADER_FORMAT, raw[:HEADER_SIZE]
    )
    if magic != MAGIC:
        raise ValueError("Bad magic number {!r}".format(magic))
    if bit_depth not in (8, 10, 12) or width == 0 or height == 0:
        raise ValueError("Unsupported frame format")

    chroma_width, chroma_height = chroma_dimensions(width, height)
    shapes = [
        (height, width),
        (chroma_height, chroma_width),
        (chroma_height, chroma_width),
    ]
    expected_size = HEADER_SIZE + 2 * sum(w * h for h, w in shapes)
    if len(raw) != expected_size:
        raise ValueError(
            "Expected {} bytes of frame data, got {}".format(expected_size, len(raw))
        )

    planes = []
    offset = HEADER_SIZE
    for plane_height, plane_width in shapes:
        count = plane_height * plane_width
        values = np.frombuffer(raw, dtype="<u2", count=count, offset=offset)
        offset += count * 2
        planes.append(
            dequantize(values.reshape(plane_height, plane_width), quantizer, bit_depth)
        )

    return Frame.from_arrays(*planes, bit_depth=bit_depth), bool(keyframe)


def reconstruct(frame, quantizer):
    """The decoder's reconstruction of ``frame`` at the given quantizer."""
    return Frame.from_arrays(
        *(
            dequantize(
                quantize(frame.plane(index), quantizer), quantizer, frame.bit_depth
            )
            for index in range(3)
        ),
        bit_depth=frame.bit_depth
    )


class ToyEncoder(EncoderInterface):
    """
    Toy codec encoder. See the module documentation for the format.
    """

    def __init__(self):
        self._config = None
        self._flags = InitFlags.none
        self._pending = deque()
        self._packets = []
        self._preview = None
        self._error = None
        self._frame_count = 0

    @property
    def initialized(self):
        return self._config is not None

    def init(self, config, flags=InitFlags.none):
        if config["rc_pass"] == Passes.last_pass:
            stats = config["stats_in"]
            if stats is None or len(stats) == 0:
                self._error = "Last pass requires first pass statistics"
                return CodecStatus.invalid_param
        if config["quantizer"] < 0 or config["quantizer"] >= config["bit_depth"]:
            self._error = "Quantizer {} out of range".format(config["quantizer"])
            return CodecStatus.invalid_param
        if config["lag_in_frames"] < 0:
            self._error = "Negative lag_in_frames"
            return CodecStatus.invalid_param

        self._config = config.copy()
        self._flags = InitFlags(flags)
        self._error = None
        logging.debug(
            "Toy encoder initialised (%s, lag %d, quantizer %d)",
            Passes(config["rc_pass"]).name,
            config["lag_in_frames"],
            config["quantizer"],
        )
        return CodecStatus.ok

    def reconfigure(self, config):
        if not self.initialized:
            self._error = "Encoder not initialised"
            return CodecStatus.error
        self._config = config.copy()
        return CodecStatus.ok

    def encode(self, frame, pts, duration, flags, deadline):
        self._packets = []

        if not self.initialized:
            self._error = "Encoder not initialised"
            return CodecStatus.error

        if frame is not None:
            if frame.bit_depth != self._config["bit_depth"]:
                self._error = "Frame bit depth {} does not match configured {}".format(
                    frame.bit_depth, self._config["bit_depth"]
                )
                return CodecStatus.invalid_param
            self._pending.append((frame, pts, duration, EncodeFlags(flags)))
            if len(self._pending) > self._config["lag_in_frames"]:
                self._emit(*self._pending.popleft())
        elif self._pending:
            self._emit(*self._pending.popleft())

        return CodecStatus.ok

    def _emit(self, frame, pts, duration, flags):
        keyframe = self._frame_count == 0 or bool(flags & EncodeFlags.force_keyframe)
        self._frame_count += 1

        quantizer = self._config["quantizer"]
        data = serialise_frame(frame, quantizer, keyframe)
        recon = reconstruct(frame, quantizer)

        if self._config["rc_pass"] == Passes.first_pass:
            luma_sum = int(np.sum(frame.plane(0), dtype=np.int64))
            self._packets.append(
                stats_packet(struct.pack(STATS_FORMAT, pts, luma_sum, len(data)))
            )
            return

        self._packets.append(
            frame_packet(data, pts, duration, KEYFRAME_FLAG if keyframe else 0)
        )
        self._preview = recon

        if self._flags & InitFlags.psnr:
            self._packets.append(self._psnr_packet(frame, recon))

    @staticmethod
    def _psnr_packet(source, recon):
        max_value = (1 << source.bit_depth) - 1
        deltas = list(frame_differences(source, recon).values())

        samples = [d.size for d in deltas]
        sse = [int(np.sum(d * d)) for d in deltas]
        psnrs = [psnr(d, max_value) for d in deltas]

        all_deltas = np.concatenate([d.ravel() for d in deltas])
        return quality_metric_packet(
            tuple([sum(samples)] + samples),
            tuple([sum(sse)] + sse),
            tuple([psnr(all_deltas, max_value)] + psnrs),
        )

    def get_output_packets(self):
        return iter(list(self._packets))

    def get_preview_frame(self):
        return self._preview

    def error_detail(self):
        return self._error

    def close(self):
        self._config = None
        self._pending.clear()
        self._packets = []
        self._preview = None


class ToyDecoder(DecoderInterface):
    """
    Toy codec decoder.
    """

    def __init__(self):
        self._config = None
        self._frames = []
        self._error = None

    def init(self, config, flags=0):
        self._config = config.copy()
        return CodecStatus.ok

    def decode(self, data):
        self._frames = []
        if self._config is None:
            self._error = "Decoder not initialised"
            return CodecStatus.error

        try:
            frame, _ = deserialise_frame(data)
        except ValueError as e:
            self._error = str(e)
            return CodecStatus.corrupt_frame

        self._error = None
        self._frames.append(frame)
        return CodecStatus.ok

    def get_frames(self):
        return iter(list(self._frames))

    def error_detail(self):
        return self._error

    def close(self):
        self._config = None
        self._frames = []


class ToyCodecFactory(CodecFactory):
    """
    A :py:class:`~vpx_conformance.codec.CodecFactory` for the toy codec.
    May be loaded on the command line as
    ``vpx_conformance.toy_codec:ToyCodecFactory``.
    """

    name = "toy"

    def __init__(self, quantizer=0, lag_in_frames=0, bit_depth=8):
        self.quantizer = quantizer
        self.lag_in_frames = lag_in_frames
        self.bit_depth = bit_depth

    def create_encoder(self):
        return ToyEncoder()

    def create_decoder(self):
        return ToyDecoder()

    def default_encoder_config(self):
        config = super(ToyCodecFactory, self).default_encoder_config()
        config["quantizer"] = self.quantizer
        config["lag_in_frames"] = self.lag_in_frames
        config["bit_depth"] = self.bit_depth
        return config
