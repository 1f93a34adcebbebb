"""
The :py:mod:`vpx_conformance.file_format` module contains functions for
reading and writing raw frames and their metadata as files.

Frame and metadata files come in pairs with the raw planar frame data file
having the extension '.raw' and the metadata file having the extension
'.json'. The raw file contains the Y, U and V planes in that order, with no
row padding. Samples are one byte each for 8-bit frames and two
(little-endian) bytes each for higher bit depths.

The metadata file contains a JSON object of the form::

    {
        "width": 352,
        "height": 288,
        "bit_depth": 8,
        "pts": 0,
        "duration": 1,
        "timebase": "1/30"
    }

The following functions may be used to read and write frame/metadata files:

.. autofunction:: read

.. autofunction:: write

.. autofunction:: read_metadata

.. autofunction:: read_frame

.. autofunction:: write_metadata

.. autofunction:: write_frame

.. autofunction:: get_metadata_and_frame_filenames

.. autofunction:: numbered_frame_files

.. autofunction:: enumerate_frame_files

"""

import os
import re
import json

from collections import namedtuple

from fractions import Fraction

import numpy as np

from vpx_conformance.frame import Frame, chroma_dimensions


__all__ = [
    "FrameMetadata",
    "read",
    "write",
    "get_metadata_and_frame_filenames",
    "numbered_frame_files",
    "enumerate_frame_files",
    "read_metadata",
    "read_frame",
    "write_metadata",
    "write_frame",
]


FrameMetadata = namedtuple(
    "FrameMetadata", "width,height,bit_depth,pts,duration,timebase"
)
"""
Metadata describing a raw frame file.

Parameters
==========
width, height : int
    Luma dimensions.
bit_depth : int
pts : int
    Presentation timestamp in timebase units.
duration : int
    Frame duration in timebase units.
timebase : :py:class:`fractions.Fraction`
"""


def get_metadata_and_frame_filenames(filename):
    """
    Given either the filename of a saved frame (.raw) or metadata file
    (.json), return a (metadata_filename, frame_filename) tuple with the names
    of the two corresponding files.
    """
    base_name = os.path.splitext(filename)[0]
    return (
        "{}.json".format(base_name),
        "{}.raw".format(base_name),
    )


def numbered_frame_files(dirname):
    """
    Return a dictionary {number: filename, ...} of the '.raw' files in a
    directory whose names end in a number (e.g. ``frame_12.raw``). Other files
    are ignored.

    Raises :py:exc:`ValueError` if two files share a number.
    """
    numbered = {}
    for name in os.listdir(dirname):
        match = re.search(r"([0-9]+)\.raw$", name)
        if match is None:
            continue
        number = int(match.group(1))
        if number in numbered:
            raise ValueError(
                "More than one frame numbered {} found in {}".format(number, dirname)
            )
        numbered[number] = os.path.join(dirname, name)
    return numbered


def enumerate_frame_files(dirname):
    """
    Return the numbered '.raw' files in a directory (see
    :py:func:`numbered_frame_files`) sorted by number.
    """
    return [filename for _, filename in sorted(numbered_frame_files(dirname).items())]


def bytes_per_sample(bit_depth):
    return 1 if bit_depth <= 8 else 2


def write(frame, metadata, filename):
    """
    Write a frame to a raw data and metadata file pair.

    Parameters
    ==========
    frame : :py:class:`~vpx_conformance.frame.Frame`
    metadata : :py:class:`FrameMetadata`
        The width, height and bit depth fields are ignored and taken from the
        frame.
    filename : str
        The filename of either the frame data file (.raw) or metadata file
        (.json). The name of the other file will be inferred automatically.
    """
    metadata_filename, frame_filename = get_metadata_and_frame_filenames(filename)

    metadata = metadata._replace(
        width=frame.width,
        height=frame.height,
        bit_depth=frame.bit_depth,
    )

    with open(metadata_filename, "wb") as f:
        write_metadata(metadata, f)

    with open(frame_filename, "wb") as f:
        write_frame(frame, f)


def read(filename):
    """
    Read a frame from a raw data and metadata file pair.

    Returns
    =======
    frame : :py:class:`~vpx_conformance.frame.Frame`
    metadata : :py:class:`FrameMetadata`
    """
    metadata_filename, frame_filename = get_metadata_and_frame_filenames(filename)

    with open(metadata_filename, "rb") as f:
        metadata = read_metadata(f)

    with open(frame_filename, "rb") as f:
        frame = read_frame(metadata, f)

    return (frame, metadata)


def write_frame(frame, file):
    """
    Write the visible samples of a frame to a file as planar data.
    """
    dtype = "<u1" if bytes_per_sample(frame.bit_depth) == 1 else "<u2"
    for plane in range(3):
        file.write(np.ascontiguousarray(frame.plane(plane), dtype=dtype).tobytes())


def write_metadata(metadata, file):
    """
    Write a :py:class:`FrameMetadata` to a file as JSON.
    """
    file.write(
        json.dumps(
            {
                "width": int(metadata.width),
                "height": int(metadata.height),
                "bit_depth": int(metadata.bit_depth),
                "pts": int(metadata.pts),
                "duration": int(metadata.duration),
                "timebase": str(Fraction(metadata.timebase)),
            }
        ).encode("utf-8")
    )


def read_metadata(file):
    """
    Read a JSON frame metadata file, returning a :py:class:`FrameMetadata`.
    """
    metadata = json.loads(file.read().decode("utf-8"))
    return FrameMetadata(
        width=int(metadata["width"]),
        height=int(metadata["height"]),
        bit_depth=int(metadata.get("bit_depth", 8)),
        pts=int(metadata.get("pts", 0)),
        duration=int(metadata.get("duration", 1)),
        timebase=Fraction(metadata.get("timebase", "1/30")),
    )


def read_frame(metadata, file):
    """
    Read a frame described by a :py:class:`FrameMetadata` from a file.

    Raises :py:exc:`ValueError` if the file is too short. Bits above the
    frame's bit depth are masked off.
    """
    dtype = "<u1" if bytes_per_sample(metadata.bit_depth) == 1 else "<u2"
    chroma_width, chroma_height = chroma_dimensions(metadata.width, metadata.height)

    planes = []
    for width, height in [
        (metadata.width, metadata.height),
        (chroma_width, chroma_height),
        (chroma_width, chroma_height),
    ]:
        length = width * height * bytes_per_sample(metadata.bit_depth)
        data = file.read(length)
        if len(data) != length:
            raise ValueError("Frame file is too short")
        plane = np.frombuffer(data, dtype=dtype).reshape(height, width)
        planes.append(plane & ((1 << metadata.bit_depth) - 1))

    return Frame.from_arrays(*planes, bit_depth=metadata.bit_depth)
