r"""
.. _vpx-encode-check:

``vpx-encode-check``
====================

Runs a codec through the encode/decode conformance driver (see
:py:mod:`vpx_conformance.driver`) and reports the outcome.

Usage
-----

By default the built-in toy codec is tested on a short synthetic sequence::

    $ vpx-encode-check --mode two_pass_good
    Pass 0: 0 compressed frames (0 bytes), 10 statistics packets
    Pass 1: 10 compressed frames (1532 bytes), 0 statistics packets
    Frames encoded: 10, decoded: 10, mismatched: 0

Another codec may be tested by naming a
:py:class:`~vpx_conformance.codec.CodecFactory` with ``--codec``::

    $ vpx-encode-check --codec my_codec_bindings:Vp9Factory

Video sources
-------------

The frames encoded are chosen with one of:

* ``--source NAME``: a synthetic sequence (``mid_gray``, ``white_noise``,
  ``linear_ramps`` or ``moving_box``, the default) of ``--width`` x
  ``--height`` frames.
* ``--image FILENAME``: frames made from a still image, panned horizontally
  by ``--pan`` samples per frame.
* ``--raw-directory DIRNAME``: a directory of numbered raw frames (see
  :py:mod:`vpx_conformance.file_format`).

Decoded frames from the final pass may be written out as numbered raw files
using ``--output-directory``, for example for comparison using
:ref:`vpx-frame-compare`.

Exit status
-----------

0 on success, 1 when a conformance failure occurs, 3 when mismatches were
found with ``--keep-going`` and values 100 and above for usage errors.

Arguments
---------

The complete set of arguments can be listed using ``--help``

.. program-output:: vpx-encode-check --help

"""

import os

import sys

import logging

from argparse import ArgumentParser

from fractions import Fraction

from vpx_conformance import __version__

from vpx_conformance.constants import (
    BIT_DEPTHS,
    PacketKinds,
    TestModes,
    InitFlags,
)

from vpx_conformance.string_utils import wrap_paragraphs

from vpx_conformance.exceptions import ConformanceError

from vpx_conformance.codec import load_codec_factory

from vpx_conformance.file_format import FrameMetadata, write

from vpx_conformance.video_source import GeneratedVideoSource, RawFileVideoSource

from vpx_conformance import frame_generators

from vpx_conformance.driver import ConformanceDriver, DriverHooks


DEFAULT_CODEC = "vpx_conformance.toy_codec:ToyCodecFactory"

SYNTHETIC_SOURCES = ["mid_gray", "white_noise", "linear_ramps", "moving_box"]


def parse_args(*args, **kwargs):
    parser = ArgumentParser(
        description="""
        Encode and decode a video sequence with a codec, checking that the
        encoder's and decoder's reconstructions agree.
    """
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )

    parser.add_argument(
        "--codec",
        default=DEFAULT_CODEC,
        help="""
            The codec factory to test, given as 'module:attribute'
            (default: %(default)s).
        """,
    )

    parser.add_argument(
        "--mode",
        "-m",
        choices=[mode.name for mode in TestModes],
        default=TestModes.one_pass_good.name,
        help="""
            Deadline and rate control pass combination (default:
            %(default)s).
        """,
    )

    source_group = parser.add_argument_group("video source options")
    source_exclusive = source_group.add_mutually_exclusive_group()

    source_exclusive.add_argument(
        "--source",
        "-s",
        choices=SYNTHETIC_SOURCES,
        default="moving_box",
        help="""
            Synthetic video sequence to encode (default: %(default)s).
        """,
    )

    source_exclusive.add_argument(
        "--image",
        "-i",
        metavar="FILENAME",
        help="""
            Encode frames made from this still image.
        """,
    )

    source_exclusive.add_argument(
        "--raw-directory",
        "-r",
        metavar="DIRNAME",
        help="""
            Encode the numbered raw frames in this directory.
        """,
    )

    source_group.add_argument("--width", type=int, default=64)
    source_group.add_argument("--height", type=int, default=48)
    source_group.add_argument("--frames", "-n", type=int, default=10)
    source_group.add_argument(
        "--bit-depth", "-b", type=int, choices=BIT_DEPTHS, default=8
    )
    source_group.add_argument(
        "--pan",
        type=int,
        default=4,
        help="""
            Horizontal motion (in samples per frame) of --image sequences.
        """,
    )

    encoder_group = parser.add_argument_group("encoder options")

    encoder_group.add_argument("--quantizer", "-q", type=int)
    encoder_group.add_argument("--lag-in-frames", "-l", type=int)
    encoder_group.add_argument(
        "--psnr",
        action="store_true",
        default=False,
        help="""
            Ask the encoder to produce PSNR quality metric packets.
        """,
    )

    parser.add_argument(
        "--keep-going",
        "-k",
        action="store_true",
        default=False,
        help="""
            Log encoder/decoder mismatches as warnings rather than stopping
            at the first mismatch.
        """,
    )

    parser.add_argument(
        "--output-directory",
        "-o",
        metavar="DIRNAME",
        help="""
            Write the decoded frames of the final pass to this directory.
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

    return parser.parse_args(*args, **kwargs)


class EncodeCheckHooks(DriverHooks):
    """
    Driver hooks which gather per-pass statistics for reporting and
    (optionally) tolerate mismatches and save decoded frames.
    """

    def __init__(self, num_passes, keep_going=False, output_directory=None):
        self.num_passes = num_passes
        self.keep_going = keep_going
        self.output_directory = output_directory

        # [{"frames": int, "bytes": int, "stats": int, "psnr": [...]}, ...]
        self.passes = []
        self.mismatches = []
        self._pass_index = None
        self._frame_number = 0

    def begin_pass(self, pass_index):
        self._pass_index = pass_index
        self._frame_number = 0
        self.passes.append({"frames": 0, "bytes": 0, "stats": 0, "psnr": []})

    def mutate_encoder_output(self, packet):
        if packet.kind == PacketKinds.pass_statistics:
            self.passes[-1]["stats"] += 1
        return packet

    def frame_packet(self, packet):
        self.passes[-1]["frames"] += 1
        self.passes[-1]["bytes"] += len(packet.payload.data)

    def quality_metric_packet(self, packet):
        self.passes[-1]["psnr"].append(packet.payload.psnr[0])

    def mismatch(self, encoded_frame, decoded_frame, pts):
        if not self.keep_going:
            super(EncodeCheckHooks, self).mismatch(encoded_frame, decoded_frame, pts)
        logging.warning(
            "Encoder and decoder reconstructions differ for frame with pts %s", pts
        )
        self.mismatches.append(pts)

    def decompressed_frame(self, frame, pts):
        if self.output_directory is None or self._pass_index != self.num_passes - 1:
            return
        write(
            frame,
            FrameMetadata(
                frame.width, frame.height, frame.bit_depth, pts, 1, Fraction(1, 30)
            ),
            os.path.join(
                self.output_directory, "frame_{}.raw".format(self._frame_number)
            ),
        )
        self._frame_number += 1


def make_video_source(args):
    if args.raw_directory is not None:
        return RawFileVideoSource(args.raw_directory)
    elif args.image is not None:
        return GeneratedVideoSource(
            frame_generators.image_frames,
            args.image,
            args.width,
            args.height,
            bit_depth=args.bit_depth,
            num_frames=args.frames,
            pan=args.pan,
        )
    else:
        return GeneratedVideoSource(
            getattr(frame_generators, args.source),
            args.width,
            args.height,
            bit_depth=args.bit_depth,
            num_frames=args.frames,
        )


def format_pass_summary(pass_index, stats):
    summary = "Pass {}: {} compressed frame{} ({} bytes), {} statistics packet{}"
    summary = summary.format(
        pass_index,
        stats["frames"],
        "s" if stats["frames"] != 1 else "",
        stats["bytes"],
        stats["stats"],
        "s" if stats["stats"] != 1 else "",
    )
    psnrs = [p for p in stats["psnr"] if p is not None]
    if psnrs:
        summary += ", mean PSNR {:.1f} dB".format(sum(psnrs) / len(psnrs))
    return summary


def main(*args, **kwargs):
    args = parse_args(*args, **kwargs)

    log_level = logging.WARNING
    if args.verbose >= 2:
        log_level = logging.DEBUG
    elif args.verbose >= 1:
        log_level = logging.INFO
    logging.basicConfig(level=log_level)

    try:
        codec_factory = load_codec_factory(args.codec)
    except (ValueError, ImportError) as e:
        sys.stderr.write("Error: Could not load codec: {}\n".format(e))
        return 100

    if args.raw_directory is not None and not os.path.isdir(args.raw_directory):
        sys.stderr.write(
            "Error: {} is not a directory.\n".format(args.raw_directory)
        )
        return 101

    if args.output_directory is not None and not os.path.isdir(args.output_directory):
        os.makedirs(args.output_directory)

    config = codec_factory.default_encoder_config()
    config["bit_depth"] = args.bit_depth
    if args.quantizer is not None:
        config["quantizer"] = args.quantizer
    if args.lag_in_frames is not None:
        config["lag_in_frames"] = args.lag_in_frames

    mode = TestModes[args.mode]
    driver = ConformanceDriver(
        codec_factory,
        mode=mode,
        config=config,
        init_flags=InitFlags.psnr if args.psnr else InitFlags.none,
    )
    hooks = EncodeCheckHooks(driver.passes, args.keep_going, args.output_directory)
    driver.hooks = hooks

    logging.info("Testing codec %s in %s mode", args.codec, mode.name)

    try:
        driver.run(make_video_source(args))
    except ConformanceError as e:
        sys.stderr.write("Error: {}\n".format(wrap_paragraphs(e.explain())))
        return 1

    for pass_index, stats in enumerate(hooks.passes):
        print(format_pass_summary(pass_index, stats))
    print(
        "Frames encoded: {}, decoded: {}, mismatched: {}".format(
            driver.run_state["frames_encoded"],
            driver.run_state["frames_decoded"],
            driver.run_state["mismatches"],
        )
    )

    if hooks.mismatches:
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
