import pytest

from fractions import Fraction

from vpx_conformance.frame import Frame, compare_frames

from vpx_conformance.file_format import FrameMetadata, write

from vpx_conformance.frame_generators import mid_gray, white_noise

from vpx_conformance.video_source import (
    VideoSource,
    GeneratedVideoSource,
    RawFileVideoSource,
)


def read_all(source):
    out = []
    source.begin()
    while source.current_frame() is not None:
        out.append((source.current_frame(), source.pts(), source.duration()))
        source.advance()
    return out


def test_base_class_is_abstract():
    source = VideoSource()
    with pytest.raises(NotImplementedError):
        source.begin()
    with pytest.raises(NotImplementedError):
        source.advance()
    with pytest.raises(NotImplementedError):
        source.current_frame()
    assert source.timebase() == Fraction(1, 30)


class TestGeneratedVideoSource(object):

    def test_frames_and_timestamps(self):
        source = GeneratedVideoSource(mid_gray, 8, 8, num_frames=3)
        frames = read_all(source)
        assert [(pts, duration) for _, pts, duration in frames] == [
            (0, 1),
            (1, 1),
            (2, 1),
        ]

    def test_restart_produces_same_frames(self):
        source = GeneratedVideoSource(white_noise, 8, 8, num_frames=3)
        first = read_all(source)
        second = read_all(source)
        assert len(first) == len(second) == 3
        for (a, _, _), (b, _, _) in zip(first, second):
            assert compare_frames(a, b)

    def test_limit(self):
        source = GeneratedVideoSource(mid_gray, 8, 8, num_frames=10, limit=4)
        assert len(read_all(source)) == 4

    def test_timebase(self):
        source = GeneratedVideoSource(mid_gray, 8, 8, timebase=Fraction(1, 25))
        assert source.timebase() == Fraction(1, 25)

    def test_advance_after_end_is_harmless(self):
        source = GeneratedVideoSource(mid_gray, 8, 8, num_frames=1)
        source.begin()
        source.advance()
        assert source.current_frame() is None
        source.advance()
        assert source.current_frame() is None
        assert source.frame_index() == 1

    def test_empty(self):
        source = GeneratedVideoSource(mid_gray, 8, 8, num_frames=0)
        assert read_all(source) == []


class TestRawFileVideoSource(object):

    @pytest.fixture
    def frames(self):
        return [Frame.filled(4, 2, value) for value in (10, 20, 30)]

    @pytest.fixture
    def dirname(self, tmpdir, frames):
        for number, (frame, pts) in enumerate(zip(frames, [0, 3, 6])):
            write(
                frame,
                FrameMetadata(4, 2, 8, pts, 3, Fraction(1, 90)),
                str(tmpdir.join("frame_{}.raw".format(number))),
            )
        return str(tmpdir)

    def test_reads_in_order(self, dirname, frames):
        source = RawFileVideoSource(dirname)
        read_frames = read_all(source)
        assert len(read_frames) == 3
        for expected, (frame, pts, duration) in zip(frames, read_frames):
            assert compare_frames(expected, frame)
        assert [pts for _, pts, _ in read_frames] == [0, 3, 6]
        assert [duration for _, _, duration in read_frames] == [3, 3, 3]
        assert source.timebase() == Fraction(1, 90)

    def test_restart(self, dirname):
        source = RawFileVideoSource(dirname)
        assert len(read_all(source)) == 3
        assert len(read_all(source)) == 3

    def test_empty_directory(self, tmpdir):
        source = RawFileVideoSource(str(tmpdir))
        assert read_all(source) == []
