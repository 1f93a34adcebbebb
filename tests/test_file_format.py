import pytest

from io import BytesIO

import os

import json

from fractions import Fraction

import numpy as np

from vpx_conformance.frame import Frame, compare_frames

from vpx_conformance.file_format import (
    FrameMetadata,
    get_metadata_and_frame_filenames,
    numbered_frame_files,
    enumerate_frame_files,
    read_metadata,
    read_frame,
    write_metadata,
    write_frame,
    read,
    write,
)


def test_get_metadata_and_frame_filenames():
    assert get_metadata_and_frame_filenames("/foo/bar/.baz.xxx") == (
        "/foo/bar/.baz.json",
        "/foo/bar/.baz.raw",
    )


@pytest.fixture
def frame_8bit():
    return Frame.from_arrays(
        [[1, 2, 3, 4], [5, 6, 7, 8]],
        [[9, 10]],
        [[11, 12]],
    )


@pytest.fixture
def frame_10bit():
    return Frame.from_arrays(
        [[1, 2, 3, 1023], [5, 6, 7, 512]],
        [[9, 1000]],
        [[11, 12]],
        bit_depth=10,
    )


@pytest.fixture
def metadata():
    return FrameMetadata(4, 2, 8, 33, 2, Fraction(1, 25))


class TestMetadata(object):

    def test_round_trip(self, metadata):
        f = BytesIO()
        write_metadata(metadata, f)
        f.seek(0)
        assert read_metadata(f) == metadata

    def test_json_form(self, metadata):
        f = BytesIO()
        write_metadata(metadata, f)
        assert json.loads(f.getvalue().decode("utf-8")) == {
            "width": 4,
            "height": 2,
            "bit_depth": 8,
            "pts": 33,
            "duration": 2,
            "timebase": "1/25",
        }

    def test_defaults(self):
        f = BytesIO(b'{"width": 16, "height": 8}')
        assert read_metadata(f) == FrameMetadata(16, 8, 8, 0, 1, Fraction(1, 30))


class TestFrameData(object):

    def test_8bit_layout(self, frame_8bit):
        f = BytesIO()
        write_frame(frame_8bit, f)
        assert f.getvalue() == bytes(bytearray(range(1, 13)))

    def test_10bit_layout(self, frame_10bit):
        f = BytesIO()
        write_frame(frame_10bit, f)
        data = f.getvalue()
        assert len(data) == 12 * 2
        # Little endian
        assert data[6:8] == b"\xff\x03"

    @pytest.mark.parametrize("fixture", ["frame_8bit", "frame_10bit"])
    def test_round_trip(self, request, fixture):
        frame = request.getfixturevalue(fixture)
        metadata = FrameMetadata(4, 2, frame.bit_depth, 0, 1, Fraction(1, 30))
        f = BytesIO()
        write_frame(frame, f)
        f.seek(0)
        assert compare_frames(read_frame(metadata, f), frame)

    def test_padding_bits_masked(self):
        metadata = FrameMetadata(2, 2, 10, 0, 1, Fraction(1, 30))
        f = BytesIO(b"\xff\xff" * 6)
        frame = read_frame(metadata, f)
        assert np.all(frame.plane(0) == 1023)

    def test_too_short(self):
        metadata = FrameMetadata(4, 2, 8, 0, 1, Fraction(1, 30))
        with pytest.raises(ValueError):
            read_frame(metadata, BytesIO(b"\x00" * 11))


def test_read_and_write(tmpdir, frame_10bit):
    filename = str(tmpdir.join("frame_0.raw"))
    # Dimensions given in metadata are overridden by the frame
    write(frame_10bit, FrameMetadata(0, 0, 8, 7, 1, Fraction(1, 60)), filename)

    assert os.path.isfile(str(tmpdir.join("frame_0.json")))

    frame, metadata = read(str(tmpdir.join("frame_0.json")))
    assert compare_frames(frame, frame_10bit)
    assert metadata == FrameMetadata(4, 2, 10, 7, 1, Fraction(1, 60))


class TestEnumerateFrameFiles(object):

    def test_sorted_numerically(self, tmpdir):
        names = ["f_10.raw", "f_2.raw", "f_1.raw", "f_1.json", "other.raw", "x.txt"]
        for name in names:
            tmpdir.join(name).write("")

        assert numbered_frame_files(str(tmpdir)) == {
            1: str(tmpdir.join("f_1.raw")),
            2: str(tmpdir.join("f_2.raw")),
            10: str(tmpdir.join("f_10.raw")),
        }
        assert enumerate_frame_files(str(tmpdir)) == [
            str(tmpdir.join("f_1.raw")),
            str(tmpdir.join("f_2.raw")),
            str(tmpdir.join("f_10.raw")),
        ]

    def test_empty(self, tmpdir):
        assert enumerate_frame_files(str(tmpdir)) == []

    def test_duplicate_numbers(self, tmpdir):
        tmpdir.join("a_1.raw").write("")
        tmpdir.join("b_01.raw").write("")
        with pytest.raises(ValueError):
            enumerate_frame_files(str(tmpdir))
