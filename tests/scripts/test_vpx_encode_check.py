import pytest

import os

import numpy as np

from fractions import Fraction

from PIL import Image

from vpx_conformance.constants import TestModes

from vpx_conformance.frame import Frame, compare_frames

from vpx_conformance.file_format import FrameMetadata, read, write

from vpx_conformance.frame_generators import moving_box

from vpx_conformance.video_source import GeneratedVideoSource, RawFileVideoSource

from vpx_conformance.driver import ConformanceDriver

from vpx_conformance.toy_codec import ToyCodecFactory, ToyDecoder

from vpx_conformance.scripts import vpx_encode_check

from vpx_conformance.scripts.vpx_encode_check import (
    DEFAULT_CODEC,
    parse_args,
    EncodeCheckHooks,
    make_video_source,
    format_pass_summary,
    main,
)


class OffByOneDecoder(ToyDecoder):
    """A broken decoder whose output never matches the encoder's."""

    def get_frames(self):
        return iter([
            Frame.filled(frame.width, frame.height, 1, frame.bit_depth)
            for frame in super(OffByOneDecoder, self).get_frames()
        ])


class MismatchingCodecFactory(ToyCodecFactory):

    def create_decoder(self):
        return OffByOneDecoder()


SMALL = ["--width", "16", "--height", "16", "--frames", "3"]


class TestParseArgs(object):

    def test_defaults(self):
        args = parse_args([])
        assert args.codec == DEFAULT_CODEC
        assert args.mode == "one_pass_good"
        assert args.source == "moving_box"
        assert args.image is None
        assert args.raw_directory is None
        assert (args.width, args.height, args.frames) == (64, 48, 10)
        assert args.quantizer is None
        assert args.keep_going is False

    @pytest.mark.parametrize("arguments", [
        ["--source", "mid_gray", "--image", "foo.png"],
        ["--image", "foo.png", "--raw-directory", "foo"],
        ["--mode", "three_pass_best"],
        ["--bit-depth", "9"],
    ])
    def test_invalid(self, arguments):
        with pytest.raises(SystemExit):
            parse_args(arguments)


class TestMakeVideoSource(object):

    def test_synthetic(self):
        source = make_video_source(parse_args(["-s", "mid_gray", "-b", "10"] + SMALL))
        assert isinstance(source, GeneratedVideoSource)
        source.begin()
        frame = source.current_frame()
        assert (frame.width, frame.height, frame.bit_depth) == (16, 16, 10)
        assert np.all(frame.plane(0) == 512)

    def test_image(self, tmpdir):
        filename = str(tmpdir.join("image.png"))
        Image.fromarray(np.full((10, 10, 3), 255, dtype=np.uint8)).save(filename)
        source = make_video_source(parse_args(["-i", filename] + SMALL))
        source.begin()
        assert source.current_frame().width == 16
        assert np.all(source.current_frame().plane(0) >= 250)

    def test_raw_directory(self, tmpdir):
        source = make_video_source(parse_args(["-r", str(tmpdir)]))
        assert isinstance(source, RawFileVideoSource)


@pytest.mark.parametrize("stats,expected", [
    (
        {"frames": 1, "bytes": 10, "stats": 0, "psnr": []},
        "Pass 0: 1 compressed frame (10 bytes), 0 statistics packets",
    ),
    (
        {"frames": 0, "bytes": 0, "stats": 1, "psnr": [None]},
        "Pass 0: 0 compressed frames (0 bytes), 1 statistics packet",
    ),
    (
        {"frames": 2, "bytes": 20, "stats": 0, "psnr": [30.0, 40.0, None]},
        "Pass 0: 2 compressed frames (20 bytes), 0 statistics packets, "
        "mean PSNR 35.0 dB",
    ),
])
def test_format_pass_summary(stats, expected):
    assert format_pass_summary(0, stats) == expected


class TestEncodeCheckHooks(object):

    def run(self, hooks, factory=None, mode=TestModes.two_pass_good):
        driver = ConformanceDriver(factory or ToyCodecFactory(), mode=mode, hooks=hooks)
        driver.run(GeneratedVideoSource(moving_box, 16, 16, num_frames=3))
        return driver

    def test_pass_statistics(self):
        hooks = EncodeCheckHooks(2)
        self.run(hooks)
        assert [p["frames"] for p in hooks.passes] == [0, 3]
        assert [p["stats"] for p in hooks.passes] == [3, 0]
        assert hooks.passes[0]["bytes"] == 0
        assert hooks.passes[1]["bytes"] > 0

    def test_keep_going(self, caplog):
        hooks = EncodeCheckHooks(1, keep_going=True)
        driver = self.run(hooks, MismatchingCodecFactory(), TestModes.one_pass_good)
        assert hooks.mismatches == [0, 1, 2]
        assert driver.run_state["mismatches"] == 3
        assert "reconstructions differ for frame with pts 2" in caplog.text

    def test_output_directory(self, tmpdir):
        hooks = EncodeCheckHooks(2, output_directory=str(tmpdir))
        self.run(hooks)

        source = list(moving_box(16, 16, num_frames=3))
        for number, expected in enumerate(source):
            frame, metadata = read(str(tmpdir.join("frame_{}.raw".format(number))))
            assert compare_frames(frame, expected)
            assert metadata.pts == number
        assert not os.path.exists(str(tmpdir.join("frame_3.raw")))


class TestMain(object):

    def test_one_pass(self, capsys):
        assert main(SMALL) == 0
        out, err = capsys.readouterr()
        lines = out.splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("Pass 0: 3 compressed frames (")
        assert lines[0].endswith("), 0 statistics packets")
        assert lines[1] == "Frames encoded: 3, decoded: 3, mismatched: 0"

    def test_two_pass(self, capsys):
        assert main(["--mode", "two_pass_best"] + SMALL) == 0
        out, err = capsys.readouterr()
        lines = out.splitlines()
        assert lines[0] == "Pass 0: 0 compressed frames (0 bytes), 3 statistics packets"
        assert lines[1].startswith("Pass 1: 3 compressed frames (")

    def test_psnr(self, capsys):
        assert main(["--psnr", "-q", "2", "-s", "white_noise"] + SMALL) == 0
        out, err = capsys.readouterr()
        assert "mean PSNR" in out

    def test_lag(self, capsys):
        assert main(["-l", "2"] + SMALL) == 0
        out, err = capsys.readouterr()
        assert "Frames encoded: 3, decoded: 3, mismatched: 0" in out

    def test_raw_directory(self, tmpdir, capsys):
        for number in range(4):
            write(
                Frame.filled(8, 8, number * 10),
                FrameMetadata(8, 8, 8, number, 1, Fraction(1, 30)),
                str(tmpdir.join("in_{}.raw".format(number))),
            )
        assert main(["-r", str(tmpdir)]) == 0
        out, err = capsys.readouterr()
        assert "Frames encoded: 4, decoded: 4, mismatched: 0" in out

    def test_output_directory_created(self, tmpdir, capsys):
        dirname = str(tmpdir.join("out", "frames"))
        assert main(["-o", dirname] + SMALL) == 0
        assert sorted(os.listdir(dirname)) == [
            "frame_{}.{}".format(number, ext)
            for number in range(3)
            for ext in ["json", "raw"]
        ]

    def test_bad_codec(self, capsys):
        assert main(["--codec", "no_colon_here"]) == 100
        out, err = capsys.readouterr()
        assert "Could not load codec" in err

    def test_missing_raw_directory(self, tmpdir, capsys):
        assert main(["-r", str(tmpdir.join("nope"))]) == 101
        out, err = capsys.readouterr()
        assert "is not a directory" in err

    def test_conformance_failure(self, capsys):
        assert main(["-q", "8"] + SMALL) == 1
        out, err = capsys.readouterr()
        assert err.startswith("Error: ")

    def test_mismatch(self, monkeypatch, capsys):
        monkeypatch.setattr(
            vpx_encode_check,
            "load_codec_factory",
            lambda name: MismatchingCodecFactory(),
        )
        assert main(SMALL) == 1
        out, err = capsys.readouterr()
        assert err.startswith("Error: ")

    def test_mismatch_keep_going(self, monkeypatch, capsys):
        monkeypatch.setattr(
            vpx_encode_check,
            "load_codec_factory",
            lambda name: MismatchingCodecFactory(),
        )
        assert main(["--keep-going"] + SMALL) == 3
        out, err = capsys.readouterr()
        assert "Frames encoded: 3, decoded: 3, mismatched: 3" in out
