import pytest

import numpy as np

from vpx_conformance.constants import PixelFormats

from vpx_conformance.frame import (
    Frame,
    chroma_dimensions,
    compare_frames,
    frame_differences,
    psnr,
)


def make_frame(width=8, height=4, value=0, bit_depth=8, padding=0):
    cw, ch = chroma_dimensions(width, height)
    return Frame.from_arrays(
        np.full((height, width), value),
        np.full((ch, cw), value),
        np.full((ch, cw), value),
        bit_depth=bit_depth,
        padding=padding,
    )


@pytest.mark.parametrize("width,height,expected", [
    (8, 4, (4, 2)),
    (7, 5, (4, 3)),
    (1, 1, (1, 1)),
])
def test_chroma_dimensions(width, height, expected):
    assert chroma_dimensions(width, height) == expected


class TestFrame(object):

    def test_from_arrays(self):
        y = np.arange(8 * 4).reshape(4, 8)
        u = np.arange(4 * 2).reshape(2, 4)
        v = u + 100
        frame = Frame.from_arrays(y, u, v)

        assert frame.width == 8
        assert frame.height == 4
        assert frame.bit_depth == 8
        assert frame.fmt == PixelFormats.i420
        assert frame.strides == (8, 4, 4)
        assert frame.plane_dimensions() == [(8, 4), (4, 2), (4, 2)]

        assert np.array_equal(frame.plane(0), y)
        assert np.array_equal(frame.plane(1), u)
        assert np.array_equal(frame.plane(2), v)
        assert np.array_equal(frame.row(0, 2), y[2])

    def test_high_bit_depth_format(self):
        frame = make_frame(value=1000, bit_depth=10)
        assert frame.fmt == PixelFormats.i42016
        assert frame.planes[0].dtype == np.uint16
        assert frame.plane(0)[0, 0] == 1000

    def test_padding(self):
        frame = make_frame(value=5, padding=3)
        assert frame.strides == (11, 7, 7)
        assert frame.plane(0).shape == (4, 8)
        assert np.all(frame.plane(0) == 5)

    def test_planes_read_only(self):
        frame = make_frame()
        with pytest.raises(ValueError):
            frame.planes[0][0] = 1

    def test_source_arrays_copied(self):
        y = np.zeros((2, 2), dtype=np.int64)
        frame = Frame.from_arrays(y, np.zeros((1, 1)), np.zeros((1, 1)))
        y[0, 0] = 99
        assert frame.plane(0)[0, 0] == 0

    def test_bad_chroma_dimensions(self):
        with pytest.raises(ValueError):
            Frame.from_arrays(np.zeros((4, 8)), np.zeros((4, 8)), np.zeros((4, 8)))

    def test_bad_stride(self):
        with pytest.raises(ValueError):
            Frame(
                [np.zeros(32), np.zeros(8), np.zeros(8)],
                [4, 4, 4],
                8,
                4,
            )

    def test_buffer_too_small(self):
        with pytest.raises(ValueError):
            Frame(
                [np.zeros(31), np.zeros(8), np.zeros(8)],
                [8, 4, 4],
                8,
                4,
            )

    def test_filled(self):
        frame = Frame.filled(6, 6, 128)
        for plane in range(3):
            assert np.all(frame.plane(plane) == 128)

    def test_to_arrays(self):
        frame = make_frame(value=3)
        arrays = frame.to_arrays()
        assert list(arrays) == ["Y", "U", "V"]
        arrays["Y"][0, 0] = 100
        assert frame.plane(0)[0, 0] == 3

    def test_repr(self):
        assert repr(make_frame(bit_depth=12)) == "<Frame 8x4 i42016 12-bit>"


class TestCompareFrames(object):

    def test_identical(self):
        assert compare_frames(make_frame(value=1), make_frame(value=1))

    def test_identical_with_different_strides(self):
        assert compare_frames(make_frame(value=1), make_frame(value=1, padding=5))

    @pytest.mark.parametrize("plane,row,col", [
        (0, 0, 0),
        (0, 3, 7),
        (1, 1, 3),
        (2, 0, 2),
    ])
    def test_single_sample_difference(self, plane, row, col):
        a = make_frame(value=10)
        arrays = list(a.to_arrays().values())
        arrays[plane][row, col] = 11
        b = Frame.from_arrays(*arrays)
        assert not compare_frames(a, b)
        assert not compare_frames(b, a)

    def test_padding_ignored(self):
        a = make_frame(value=1, padding=2)
        planes = [np.array(p) for p in a.planes]
        # Write into the padding of the first luma row
        planes[0][8] = 200
        b = Frame(planes, a.strides, a.width, a.height, a.fmt, a.bit_depth)
        assert compare_frames(a, b)

    def test_format_mismatch(self):
        assert not compare_frames(make_frame(bit_depth=8), make_frame(bit_depth=10))

    def test_dimension_mismatch(self):
        assert not compare_frames(make_frame(8, 4), make_frame(8, 6))
        assert not compare_frames(make_frame(8, 4), make_frame(6, 4))


def test_frame_differences():
    a = make_frame(value=10)
    b = make_frame(value=12)
    deltas = frame_differences(a, b)
    assert list(deltas) == ["Y", "U", "V"]
    assert np.all(deltas["Y"] == 2)
    assert deltas["U"].shape == (2, 4)

    deltas = frame_differences(b, a)
    assert np.all(deltas["V"] == -2)


def test_frame_differences_mismatched_dimensions():
    with pytest.raises(ValueError):
        frame_differences(make_frame(8, 4), make_frame(4, 4))


@pytest.mark.parametrize("deltas,max_value,expected", [
    (np.zeros(10), 255, None),
    # MSE of 1
    (np.ones(10), 255, 20 * np.log10(255)),
    (-np.ones(10), 1023, 20 * np.log10(1023)),
    # MSE of 4
    (np.full(4, 2), 255, 20 * np.log10(255) - 10 * np.log10(4)),
])
def test_psnr(deltas, max_value, expected):
    if expected is None:
        assert psnr(deltas, max_value) is None
    else:
        assert np.isclose(psnr(deltas, max_value), expected)
