import pytest

import numpy as np

from PIL import Image

from vpx_conformance.frame import compare_frames

from vpx_conformance.frame_generators import (
    mid_gray,
    white_noise,
    linear_ramps,
    moving_box,
    image_frames,
    repeat_frames,
)


@pytest.mark.parametrize("bit_depth", [8, 10, 12])
def test_mid_gray(bit_depth):
    frames = list(mid_gray(6, 4, bit_depth, num_frames=3))
    assert len(frames) == 3
    for frame in frames:
        assert frame.width == 6
        assert frame.height == 4
        assert frame.bit_depth == bit_depth
        for plane in range(3):
            assert np.all(frame.plane(plane) == 1 << (bit_depth - 1))


class TestWhiteNoise(object):

    @pytest.mark.parametrize("bit_depth", [8, 10])
    def test_range(self, bit_depth):
        frames = list(white_noise(32, 16, bit_depth, num_frames=2))
        assert len(frames) == 2
        for frame in frames:
            for plane in range(3):
                assert np.all(frame.plane(plane) < 1 << bit_depth)
        # Frames differ from one another
        assert not compare_frames(frames[0], frames[1])

    def test_deterministic(self):
        a = next(white_noise(16, 16))
        b = next(white_noise(16, 16))
        c = next(white_noise(16, 16, seed=1))
        assert compare_frames(a, b)
        assert not compare_frames(a, c)


def test_linear_ramps():
    frame = next(linear_ramps(9, 6, bit_depth=10))
    y = frame.plane(0)
    assert list(y[0]) == list(y[-1])
    assert y[0, 0] == 0
    assert y[0, -1] == 1023
    assert np.all(np.diff(y[0].astype(np.int64)) >= 0)

    u = frame.plane(1)
    v = frame.plane(2)
    assert u[0, 0] == 0
    assert u[-1, 0] == 1023
    assert np.array_equal(u[::-1], v)


class TestMovingBox(object):

    def test_box_moves(self):
        frames = list(moving_box(32, 24, num_frames=3, box_size=8, step=4))
        assert len(frames) == 3
        for index, frame in enumerate(frames):
            y = frame.plane(0)
            assert np.count_nonzero(y) == 8 * 8
            assert y[0, index * 4] == 255
            if index > 0:
                assert y[0, index * 4 - 1] == 0

    def test_wraps_around(self):
        frames = list(moving_box(16, 16, num_frames=4, box_size=8, step=4))
        # Positions 0, 4, 8 then wrap back to 3 (12 % 9)
        assert frames[3].plane(0)[0, 3] == 255
        assert frames[3].plane(0)[0, 2] == 0

    def test_box_larger_than_frame(self):
        frame = next(moving_box(4, 4, num_frames=1, box_size=16))
        assert np.all(frame.plane(0) == 255)


class TestImageFrames(object):

    @pytest.fixture
    def image_filename(self, tmpdir):
        filename = str(tmpdir.join("image.png"))
        data = np.zeros((20, 40, 3), dtype=np.uint8)
        # Left half black, right half white
        data[:, 20:, :] = 255
        Image.fromarray(data).save(filename)
        return filename

    def test_dimensions_and_content(self, image_filename):
        frame = next(image_frames(image_filename, 16, 8))
        assert (frame.width, frame.height) == (16, 8)
        y = frame.plane(0)
        assert y[4, 0] < 16
        assert y[4, 15] > 240
        # Grey image: chroma is neutral
        assert np.all(np.abs(frame.plane(1).astype(np.int64) - 128) <= 2)

    def test_bit_depth_scaling(self, image_filename):
        frame_8 = next(image_frames(image_filename, 16, 8))
        frame_10 = next(image_frames(image_filename, 16, 8, bit_depth=10))
        assert np.array_equal(
            frame_8.plane(0).astype(np.int64) << 2,
            frame_10.plane(0).astype(np.int64),
        )

    def test_pan(self, image_filename):
        frames = list(image_frames(image_filename, 16, 8, num_frames=2, pan=2))
        assert np.array_equal(
            np.roll(frames[0].plane(0), 2, axis=1),
            frames[1].plane(0),
        )


def test_repeat_frames():
    frames = list(white_noise(4, 4, num_frames=2))
    repeated = list(repeat_frames(iter(frames), 3))
    assert len(repeated) == 6
    assert repeated[::2] == [frames[0]] * 3
    assert repeated[1::2] == [frames[1]] * 3
