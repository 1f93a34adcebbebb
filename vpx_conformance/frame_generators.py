"""
The :py:mod:`vpx_conformance.frame_generators` module contains routines for
generating sequences of :py:class:`~vpx_conformance.frame.Frame` objects to
feed to an encoder under test (typically via a
:py:class:`~vpx_conformance.video_source.GeneratedVideoSource`).

All generators yield 4:2:0 frames of the requested dimensions and bit depth.

.. autofunction:: mid_gray

.. autofunction:: white_noise

.. autofunction:: linear_ramps

.. autofunction:: moving_box

.. autofunction:: image_frames

.. autofunction:: repeat_frames

"""

import numpy as np

from PIL import Image

from vpx_conformance.frame import Frame, chroma_dimensions


__all__ = [
    "mid_gray",
    "white_noise",
    "linear_ramps",
    "moving_box",
    "image_frames",
    "repeat_frames",
]


def mid_gray(width, height, bit_depth=8, num_frames=1):
    """
    A sequence of frames with every sample set to the middle of the signal
    range.
    """
    frame = Frame.filled(width, height, 1 << (bit_depth - 1), bit_depth)
    for _ in range(num_frames):
        yield frame


def white_noise(width, height, bit_depth=8, num_frames=1, seed=0):
    """
    A sequence of frames containing uniformly distributed pseudo-random
    full-range sample values. A fixed seed is used by default.
    """
    rand = np.random.RandomState(seed)
    chroma_width, chroma_height = chroma_dimensions(width, height)

    chroma_shape = (chroma_height, chroma_width)
    for _ in range(num_frames):
        # NB: int is only 32 bits on some platforms, hence forced 64 bit width
        yield Frame.from_arrays(
            rand.randint(0, 1 << bit_depth, (height, width), dtype=np.int64),
            rand.randint(0, 1 << bit_depth, chroma_shape, dtype=np.int64),
            rand.randint(0, 1 << bit_depth, chroma_shape, dtype=np.int64),
            bit_depth=bit_depth,
        )


def linear_ramps(width, height, bit_depth=8, num_frames=1):
    """
    A sequence of frames containing a black-to-white horizontal luma ramp
    with chroma planes holding vertical ramps.
    """
    max_value = (1 << bit_depth) - 1
    chroma_width, chroma_height = chroma_dimensions(width, height)

    y = np.repeat(
        np.round(np.linspace(0, max_value, width)).astype(np.int64)[np.newaxis, :],
        height,
        axis=0,
    )
    u = np.repeat(
        np.round(np.linspace(0, max_value, chroma_height)).astype(np.int64)[
            :, np.newaxis
        ],
        chroma_width,
        axis=1,
    )
    v = u[::-1, :]

    frame = Frame.from_arrays(y, u, v, bit_depth=bit_depth)
    for _ in range(num_frames):
        yield frame


def moving_box(width, height, bit_depth=8, num_frames=10, box_size=16, step=4):
    """
    A sequence of frames containing a white square on a black background
    which moves ``step`` luma samples to the right every frame, wrapping
    around at the right edge.

    Motion between frames exercises inter-frame prediction in the codec
    under test.
    """
    max_value = (1 << bit_depth) - 1
    mid = 1 << (bit_depth - 1)
    chroma_width, chroma_height = chroma_dimensions(width, height)

    box_size = min(box_size, width, height)
    for index in range(num_frames):
        px = (index * step) % max(1, width - box_size + 1)

        y = np.zeros((height, width), dtype=np.int64)
        y[:box_size, px : px + box_size] = max_value

        u = np.full((chroma_height, chroma_width), mid, dtype=np.int64)
        v = np.full((chroma_height, chroma_width), mid, dtype=np.int64)
        u[: box_size // 2, px // 2 : (px + box_size) // 2] = max_value // 4

        yield Frame.from_arrays(y, u, v, bit_depth=bit_depth)


def resize_to_fill(im, width, height):
    """
    Resize a PIL image to cover a width x height area (preserving the aspect
    ratio) and crop the excess from the centre.
    """
    im_width, im_height = im.size
    scale = max(float(width) / im_width, float(height) / im_height)
    scaled_width = max(width, int(round(im_width * scale)))
    scaled_height = max(height, int(round(im_height * scale)))

    im = im.resize((scaled_width, scaled_height), Image.LANCZOS)

    x_excess = scaled_width - width
    y_excess = scaled_height - height
    return im.crop(
        (
            x_excess // 2,
            y_excess // 2,
            (x_excess // 2) + width,
            (y_excess // 2) + height,
        )
    )


def image_frames(filename, width, height, bit_depth=8, num_frames=1, pan=0):
    """
    A sequence of frames produced from a still image (in any format Pillow
    can read).

    The image is scaled to fill the frame and converted to YCbCr. Chroma
    planes are box-filtered down to 4:2:0. When ``pan`` is non-zero,
    successive frames are shifted horizontally by that many samples (with
    wrap-around) to produce motion.
    """
    im = resize_to_fill(Image.open(filename).convert("RGB"), width, height)
    chroma_width, chroma_height = chroma_dimensions(width, height)

    y_im, cb_im, cr_im = im.convert("YCbCr").split()
    y = np.asarray(y_im, dtype=np.int64)
    chroma_size = (chroma_width, chroma_height)
    u = np.asarray(cb_im.resize(chroma_size, Image.BOX), dtype=np.int64)
    v = np.asarray(cr_im.resize(chroma_size, Image.BOX), dtype=np.int64)

    shift = bit_depth - 8
    for index in range(num_frames):
        offset = index * pan
        yield Frame.from_arrays(
            np.roll(y, offset, axis=1) << shift,
            np.roll(u, offset // 2, axis=1) << shift,
            np.roll(v, offset // 2, axis=1) << shift,
            bit_depth=bit_depth,
        )


def repeat_frames(frames, count):
    """
    Repeat a sequence of frames produced by a frame generator to produce a
    longer sequence.
    """
    frames = list(frames)
    for _ in range(count):
        for frame in frames:
            yield frame
