r"""
.. _vpx-frame-compare:

``vpx-frame-compare``
=====================

A command-line utility which compares pairs of raw frames (see
:py:mod:`vpx_conformance.file_format`), or pairs of directories containing a
series of raw frames, such as the decoded output of two codec builds.

Usage
-----

Given a pair of frames in raw format, these can be compared as follows::

    $ vpx-frame-compare frame_a.raw frame_b.raw
    Frames are different:
      Y: Different: PSNR = 55.6 dB, 14263 samples (56.3%) differ
      U: Identical
      V: Different: PSNR = 56.8 dB, 703 samples (11.1%) differ

Alternatively a pair of directories containing frames whose filenames end
with a number (and the extensions ``.raw`` and ``.json``) may be given::

    $ vpx-frame-compare ./directory_a/ ./directory_b/
    Comparing ./directory_a/frame_0.raw and ./directory_b/frame_0.raw:
      Frames are identical
    Comparing ./directory_a/frame_1.raw and ./directory_b/frame_1.raw:
      Frames are different:
        Y: Different: PSNR = 55.6 dB, 14263 samples (56.3%) differ
        U: Identical
        V: Identical
    Summary: 1 identical, 1 different

When the frame formats (dimensions or bit depth) differ the sample values are
not compared since the frames are incomparable. Differing timestamps are
reported as a warning only.

A difference mask frame, white wherever any plane differs, may be written
using ``--difference-mask``/``-D`` when two files are compared.

Exit status
-----------

0 when the frames are identical, 4 when their samples differ, 1 when their
formats differ and values 100 and above for usage and file errors.

Arguments
---------

The complete set of arguments can be listed using ``--help``

.. program-output:: vpx-frame-compare --help

"""

import os

import sys

from argparse import ArgumentParser

import numpy as np

from vpx_conformance import __version__

from vpx_conformance.string_utils import indent

from vpx_conformance.frame import (
    Frame,
    PLANE_NAMES,
    chroma_dimensions,
    compare_frames,
    frame_differences,
    psnr,
)

from vpx_conformance.file_format import (
    get_metadata_and_frame_filenames,
    numbered_frame_files,
    read_metadata,
    read_frame,
    write,
)


def read_frames_with_only_one_metadata_file_required(filename_a, filename_b):
    """
    Read a pair of raw frame files. If one of the two is missing its
    corresponding JSON metadata file, the metadata for the other file will be
    used.

    Returns a tuple with the following values:

    * ``(frame_a, metadata_a)``
    * ``(frame_b, metadata_b)``
    * ``byte_for_byte_identical``: True if the two raw files are
      byte-for-byte identical, including any padding bits above the bit
      depth. This may catch mistakes in formatting raw data files.
    """
    meta_fn_a, frame_fn_a = get_metadata_and_frame_filenames(filename_a)
    meta_fn_b, frame_fn_b = get_metadata_and_frame_filenames(filename_b)

    try:
        with open(meta_fn_a, "rb") as f:
            metadata_a = read_metadata(f)
    except (OSError, IOError):
        metadata_a = None

    try:
        with open(meta_fn_b, "rb") as f:
            metadata_b = read_metadata(f)
    except (OSError, IOError):
        metadata_b = None

    if metadata_a is None and metadata_b is None:
        sys.stderr.write("Error: Missing JSON metadata file for both frames.\n")
        sys.exit(100)
    elif metadata_a is None:
        metadata_a = metadata_b
        sys.stderr.write(
            "Warning: Metadata missing for first frame. "
            "Will assume it is the same as the second.\n"
        )
    elif metadata_b is None:
        metadata_b = metadata_a
        sys.stderr.write(
            "Warning: Metadata missing for second frame. "
            "Will assume it is the same as the first.\n"
        )

    frames = []
    for ordinal, frame_fn, metadata in [
        ("first", frame_fn_a, metadata_a),
        ("second", frame_fn_b, metadata_b),
    ]:
        try:
            with open(frame_fn, "rb") as f:
                frames.append(read_frame(metadata, f))
                if len(f.read(1)) != 0:
                    raise ValueError()
        except (OSError, IOError):
            sys.stderr.write("Error: Could not open {} frame.\n".format(ordinal))
            sys.exit(101)
        except ValueError:
            sys.stderr.write(
                "Error: {} frame file has incorrect size.\n".format(
                    ordinal.capitalize()
                )
            )
            sys.exit(102)

    with open(frame_fn_a, "rb") as fa:
        with open(frame_fn_b, "rb") as fb:
            byte_for_byte_identical = fa.read() == fb.read()

    return (
        (frames[0], metadata_a),
        (frames[1], metadata_b),
        byte_for_byte_identical,
    )


def parse_args(*args, **kwargs):
    parser = ArgumentParser(
        description="""
        Compare a pair of frames in the raw format used by the VPx
        conformance software.
    """
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )

    parser.add_argument(
        "filename_a",
        help="""
            The filename of a .raw or .json raw frame, or a directory
            containing a series of .raw and .json files whose names end in a
            number.
        """,
    )

    parser.add_argument(
        "filename_b",
        help="""
            The filename of a .raw or .json raw frame, or a directory
            containing a series of .raw and .json files whose names end in a
            number.
        """,
    )

    output_group = parser.add_argument_group(
        "difference image options",
    )

    output_group.add_argument(
        "--difference-mask",
        "-D",
        type=str,
        metavar="FILENAME",
        help="""
            Output a difference mask frame to the specified file. This mask
            will contain white samples wherever the input frames differ and
            black samples where they match. Only available when comparing
            files (not directories).
        """,
    )

    return parser.parse_args(*args, **kwargs)


def format_diff(metadata_a, metadata_b):
    """
    Return a diff-style string describing the format (dimensions and bit
    depth) of two frames.
    """
    out_lines = []
    for name in ["width", "height", "bit_depth"]:
        value_a = getattr(metadata_a, name)
        value_b = getattr(metadata_b, name)
        if value_a == value_b:
            out_lines.append("  {}: {}".format(name, value_a))
        else:
            out_lines.append("- {}: {}".format(name, value_a))
            out_lines.append("+ {}: {}".format(name, value_b))
    return "\n".join(out_lines)


def measure_differences(all_deltas, bit_depth):
    """
    Given an :py:class:`~collections.OrderedDict` of 2D arrays of sample
    differences for each plane, returns a string summarising the
    differences.
    """
    max_value = (1 << bit_depth) - 1
    delta_counts = {p: np.count_nonzero(d) for p, d in all_deltas.items()}
    psnrs = {plane: psnr(deltas, max_value) for plane, deltas in all_deltas.items()}

    return "\n".join(
        "{}: Identical".format(plane)
        if psnrs[plane] is None
        else "{}: Different: PSNR = {:.1f} dB, {} sample{} ({:.1f}%) differ{}".format(
            plane,
            psnrs[plane],
            delta_counts[plane],
            "s" if delta_counts[plane] != 1 else "",
            (delta_counts[plane] * 100.0) / all_deltas[plane].size,
            "s" if delta_counts[plane] == 1 else "",
        )
        for plane in PLANE_NAMES
    )


def generate_difference_mask_frame(deltas, bit_depth):
    """
    Given a set of per-plane sample deltas (as produced by
    :py:func:`~vpx_conformance.frame.frame_differences`), produce a greyscale
    difference mask :py:class:`~vpx_conformance.frame.Frame` which is white
    wherever any plane differs and black otherwise.

    Chroma differences illuminate every luma sample sharing the chroma
    sample.
    """
    height, width = deltas["Y"].shape
    mask = deltas["Y"] != 0
    for plane in ["U", "V"]:
        upsampled = np.repeat(np.repeat(deltas[plane] != 0, 2, axis=0), 2, axis=1)
        mask = mask | upsampled[:height, :width]

    max_value = (1 << bit_depth) - 1
    chroma_width, chroma_height = chroma_dimensions(width, height)
    neutral = np.full(
        (chroma_height, chroma_width), 1 << (bit_depth - 1), dtype=np.int64
    )
    return Frame.from_arrays(
        np.where(mask, max_value, 0),
        neutral,
        neutral,
        bit_depth=bit_depth,
    )


def enumerate_directories(dirname_a, dirname_b):
    """
    Given two directory names, return a list [(file_a, file_b), ...] of
    frames to compare, paired by the number at the end of each filename.

    Produces an error on stderr and calls sys.exit if either directory
    contains duplicate numbers or no numbered frames, or if a number appears
    in only one directory.
    """
    numbered = []
    for dirname in [dirname_a, dirname_b]:
        try:
            filenames = numbered_frame_files(dirname)
        except ValueError as e:
            sys.stderr.write("Error: {}\n".format(e))
            sys.exit(106)
        if not filenames:
            sys.stderr.write("Error: No frames found in directory {}\n".format(dirname))
            sys.exit(107)
        numbered.append(filenames)

    filenames_a, filenames_b = numbered
    unmatched_numbers = set(filenames_a) ^ set(filenames_b)
    if unmatched_numbers:
        sys.stderr.write(
            "Error: Frames numbered {} found in only one directory\n".format(
                ", ".join(str(n) for n in sorted(unmatched_numbers))
            )
        )
        sys.exit(108)

    return [(filenames_a[n], filenames_b[n]) for n in sorted(filenames_a)]


def compare_frame_files(filename_a, filename_b, difference_mask_filename=None):
    """
    Compare a pair of frame files.

    Returns a string describing the differences between the frames (if any)
    and an integer return code which is non-zero iff the frames differ.

    If a difference_mask filename is given, writes a difference mask to that
    file.
    """
    out = ""

    (
        (frame_a, metadata_a),
        (frame_b, metadata_b),
        byte_for_byte_identical,
    ) = read_frames_with_only_one_metadata_file_required(filename_a, filename_b)

    if (metadata_a.width, metadata_a.height, metadata_a.bit_depth) != (
        metadata_b.width,
        metadata_b.height,
        metadata_b.bit_depth,
    ):
        out += "Frame formats are different:\n"
        out += indent(format_diff(metadata_a, metadata_b))
        out += "\n"
        return (out.rstrip(), 1)

    if metadata_a.pts != metadata_b.pts:
        out += "Warning: Frame timestamps differ ({} and {})\n".format(
            metadata_a.pts, metadata_b.pts
        )

    identical = compare_frames(frame_a, frame_b)
    deltas = frame_differences(frame_a, frame_b)

    if identical:
        if not byte_for_byte_identical:
            out += (
                "Warning: Padding bits in raw frame data are different "
                "(is file endianness correct?)\n"
            )
        out += "Frames are identical\n"
    else:
        out += "Frames are different:\n"
        out += indent(measure_differences(deltas, metadata_a.bit_depth))
        out += "\n"

    if difference_mask_filename is not None:
        mask = generate_difference_mask_frame(deltas, metadata_a.bit_depth)
        write(mask, metadata_a, difference_mask_filename)

    return (out.rstrip(), 0 if identical else 4)


def main(*args, **kwargs):
    args = parse_args(*args, **kwargs)

    a_is_dir = os.path.isdir(args.filename_a)
    b_is_dir = os.path.isdir(args.filename_b)

    if a_is_dir != b_is_dir:
        sys.stderr.write(
            "Error: Arguments must both be files or both be directories.\n"
        )
        return 103

    if a_is_dir and b_is_dir:
        if args.difference_mask is not None:
            sys.stderr.write(
                "Error: --difference-mask/-D may only be used "
                "when files (not directories) are compared.\n"
            )
            return 104

        final_exitcode = 0
        num_different = 0
        num_same = 0
        for filename_a, filename_b in enumerate_directories(
            args.filename_a, args.filename_b
        ):
            print("Comparing {} and {}:".format(filename_a, filename_b))
            message, exitcode = compare_frame_files(filename_a, filename_b)
            print(indent(message))
            if exitcode != 0:
                final_exitcode = exitcode
                num_different += 1
            else:
                num_same += 1

        print("Summary: {} identical, {} different".format(num_same, num_different))
        return final_exitcode
    else:
        message, exitcode = compare_frame_files(
            args.filename_a,
            args.filename_b,
            args.difference_mask,
        )
        print(message)
        return exitcode


if __name__ == "__main__":
    sys.exit(main())
