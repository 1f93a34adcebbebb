"""
The :py:mod:`vpx_conformance.frame` module defines the :py:class:`Frame`
type used to pass pictures between video sources, codecs and the conformance
driver, along with routines for comparing frames.

Frames are 4:2:0 planar pictures. Each plane is held in a read-only
one-dimensional numpy buffer with a row stride (in samples) which may exceed
the plane's width, as is typical of codec-allocated picture buffers.

.. autoclass:: Frame
    :members:

.. autofunction:: chroma_dimensions

.. autofunction:: compare_frames

.. autofunction:: frame_differences

.. autofunction:: psnr

"""

from collections import OrderedDict

import numpy as np

from vpx_conformance.constants import PixelFormats


__all__ = [
    "PLANE_NAMES",
    "Frame",
    "chroma_dimensions",
    "compare_frames",
    "frame_differences",
    "psnr",
]


PLANE_NAMES = ("Y", "U", "V")


def chroma_dimensions(width, height):
    """
    Return the (width, height) of the chroma planes of a 4:2:0 frame.
    """
    return ((width + 1) >> 1, (height + 1) >> 1)


def pixel_format_for_bit_depth(bit_depth):
    if bit_depth == 8:
        return PixelFormats.i420
    else:
        return PixelFormats.i42016


def dtype_for_pixel_format(fmt):
    return np.uint8 if fmt == PixelFormats.i420 else np.uint16


class Frame(object):
    """
    An immutable 4:2:0 planar picture.

    Parameters
    ==========
    planes : (buffer, buffer, buffer)
        One-dimensional numpy arrays holding the Y, U and V planes. Rows of
        each plane begin every ``stride`` samples.
    strides : (int, int, int)
        Row stride (in samples) of each plane.
    width, height : int
        Luma dimensions.
    fmt : :py:class:`~vpx_conformance.constants.PixelFormats`
    bit_depth : int
        Significant bits per sample.
    """

    def __init__(
        self, planes, strides, width, height, fmt=PixelFormats.i420, bit_depth=8
    ):
        self._width = width
        self._height = height
        self._fmt = PixelFormats(fmt)
        self._bit_depth = bit_depth
        self._strides = tuple(strides)

        dtype = dtype_for_pixel_format(self._fmt)
        buffers = []
        for plane, stride, (plane_width, plane_height) in zip(
            planes, self._strides, self.plane_dimensions()
        ):
            buf = np.array(plane, dtype=dtype).ravel()
            if stride < plane_width:
                raise ValueError(
                    "Stride {} smaller than plane width {}".format(stride, plane_width)
                )
            if buf.size < stride * (plane_height - 1) + plane_width:
                raise ValueError("Plane buffer too small for the frame dimensions")
            buf.flags.writeable = False
            buffers.append(buf)
        self._planes = tuple(buffers)

    @classmethod
    def from_arrays(cls, y, u, v, bit_depth=8, padding=0):
        """
        Construct a frame from three 2D arrays (Y, U and V planes). If
        ``padding`` is non-zero, each row is stored with that many extra
        (zero) samples to produce a stride larger than the plane width.
        """
        y, u, v = np.asarray(y), np.asarray(u), np.asarray(v)
        height, width = y.shape
        chroma_width, chroma_height = chroma_dimensions(width, height)
        if u.shape != (chroma_height, chroma_width) or v.shape != u.shape:
            raise ValueError("Plane dimensions are not 4:2:0 subsampled")

        fmt = pixel_format_for_bit_depth(bit_depth)
        dtype = dtype_for_pixel_format(fmt)

        planes = []
        strides = []
        for plane in (y, u, v):
            plane_height, plane_width = plane.shape
            stride = plane_width + padding
            buf = np.zeros((plane_height, stride), dtype=dtype)
            buf[:, :plane_width] = plane
            planes.append(buf.ravel())
            strides.append(stride)

        return cls(planes, strides, width, height, fmt, bit_depth)

    @classmethod
    def filled(cls, width, height, value, bit_depth=8):
        """
        Construct a frame with every sample of every plane set to ``value``.
        """
        chroma_width, chroma_height = chroma_dimensions(width, height)
        return cls.from_arrays(
            np.full((height, width), value),
            np.full((chroma_height, chroma_width), value),
            np.full((chroma_height, chroma_width), value),
            bit_depth=bit_depth,
        )

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    @property
    def fmt(self):
        return self._fmt

    @property
    def bit_depth(self):
        return self._bit_depth

    @property
    def strides(self):
        return self._strides

    @property
    def planes(self):
        """The raw (read-only) plane buffers."""
        return self._planes

    def plane_dimensions(self):
        """
        Return a list of (width, height) pairs for the three planes.
        """
        chroma = chroma_dimensions(self._width, self._height)
        return [(self._width, self._height), chroma, chroma]

    def row(self, plane, row):
        """
        Return a view of the visible samples of one row of a plane.
        """
        width, _ = self.plane_dimensions()[plane]
        offset = row * self._strides[plane]
        return self._planes[plane][offset : offset + width]

    def plane(self, plane):
        """
        Return a (height, width) view of the visible samples of a plane.
        """
        width, height = self.plane_dimensions()[plane]
        stride = self._strides[plane]
        buf = self._planes[plane]
        if buf.size < stride * height:
            buf = np.concatenate([buf, np.zeros(stride * height - buf.size, buf.dtype)])
        return buf[: stride * height].reshape(height, stride)[:, :width]

    def to_arrays(self):
        """
        Return an :py:class:`~collections.OrderedDict` mapping plane names
        ('Y', 'U', 'V') to independent 2D copies of each plane.
        """
        return OrderedDict(
            (name, np.array(self.plane(index)))
            for index, name in enumerate(PLANE_NAMES)
        )

    def __repr__(self):
        return "<{} {}x{} {} {}-bit>".format(
            type(self).__name__,
            self._width,
            self._height,
            self._fmt.name,
            self._bit_depth,
        )


def compare_frames(frame_a, frame_b):
    """
    Return True if two frames have identical format, dimensions and visible
    sample values.

    Every row of every plane is compared, even after a difference has been
    found, so the cost of the comparison is independent of where (or
    whether) the frames differ.
    """
    if (
        frame_a.fmt != frame_b.fmt
        or frame_a.width != frame_b.width
        or frame_a.height != frame_b.height
    ):
        return False

    match = True
    for plane, (_, height) in enumerate(frame_a.plane_dimensions()):
        for row in range(height):
            match = (
                np.array_equal(frame_a.row(plane, row), frame_b.row(plane, row))
                and match
            )
    return match


def frame_differences(frame_a, frame_b):
    """
    Compute the signed per-sample differences (b - a) between the visible
    samples of two frames of identical dimensions.

    Returns an :py:class:`~collections.OrderedDict` mapping plane names to 2D
    int64 arrays.
    """
    if frame_a.width != frame_b.width or frame_a.height != frame_b.height:
        raise ValueError("Frames have different dimensions")

    return OrderedDict(
        (
            name,
            frame_b.plane(index).astype(np.int64)
            - frame_a.plane(index).astype(np.int64),
        )
        for index, name in enumerate(PLANE_NAMES)
    )


def psnr(deltas, max_value):
    """
    Compute the peak signal to noise ratio (in dB) given an array of error
    values and the associated maximum signal value.

    Returns None if the deltas are all zero.
    """
    deltas = np.asarray(deltas, dtype=np.float64)
    mean_square_error = np.mean(deltas * deltas)
    if mean_square_error == 0:
        return None
    else:
        return 20 * np.log10(max_value) - 10 * np.log10(mean_square_error)
