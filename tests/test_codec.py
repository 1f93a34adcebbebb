import pytest

from fractions import Fraction

from vpx_conformance.constants import PacketKinds, Passes, Deadlines

from vpx_conformance.codec import (
    AUTO,
    EncoderConfig,
    default_encoder_config,
    default_decoder_config,
    Packet,
    CompressedFrame,
    QualityMetric,
    frame_packet,
    stats_packet,
    quality_metric_packet,
    EncoderInterface,
    DecoderInterface,
    CodecFactory,
    load_codec_factory,
)

from vpx_conformance.toy_codec import ToyCodecFactory


def test_default_encoder_config():
    config = default_encoder_config()
    assert config["width"] is AUTO
    assert config["height"] is AUTO
    assert config["timebase"] == Fraction(1, 30)
    assert config["rc_pass"] == Passes.one_pass
    assert config["stats_in"] is None
    assert config["deadline"] == Deadlines.good

    # Each call produces an independent config
    config["width"] = 100
    assert default_encoder_config()["width"] is AUTO


def test_encoder_config_rejects_unknown_entries():
    with pytest.raises(KeyError):
        EncoderConfig(frobnication=1)


def test_default_decoder_config():
    assert default_decoder_config() == {"threads": 1, "width": AUTO, "height": AUTO}


class TestPacketHelpers(object):

    def test_frame_packet(self):
        packet = frame_packet(b"abc", 10, 2, 1)
        assert packet == Packet(
            PacketKinds.compressed_frame, CompressedFrame(b"abc", 10, 2, 1)
        )
        assert frame_packet(b"", 0).payload.duration == 1
        assert frame_packet(b"", 0).payload.flags == 0

    def test_stats_packet(self):
        assert stats_packet(b"xyz") == Packet(PacketKinds.pass_statistics, b"xyz")

    def test_quality_metric_packet(self):
        packet = quality_metric_packet((6, 4, 1, 1), (0, 0, 0, 0), (None,) * 4)
        assert packet.kind == PacketKinds.quality_metric
        assert packet.payload == QualityMetric((6, 4, 1, 1), (0, 0, 0, 0), (None,) * 4)


class TestInterfaces(object):

    def test_encoder_unimplemented(self):
        encoder = EncoderInterface()
        with pytest.raises(NotImplementedError):
            encoder.initialized
        with pytest.raises(NotImplementedError):
            encoder.encode(None, 0, 0, 0, 0)
        assert encoder.error_detail() is None
        encoder.close()

    def test_decoder_unimplemented(self):
        decoder = DecoderInterface()
        with pytest.raises(NotImplementedError):
            decoder.decode(b"")
        assert decoder.error_detail() is None
        decoder.close()

    def test_factory_default_configs(self):
        factory = CodecFactory()
        assert factory.default_encoder_config() == default_encoder_config()
        assert factory.default_decoder_config() == default_decoder_config()
        with pytest.raises(NotImplementedError):
            factory.create_encoder()


class TestLoadCodecFactory(object):

    def test_class_is_instantiated(self):
        factory = load_codec_factory("vpx_conformance.toy_codec:ToyCodecFactory")
        assert isinstance(factory, ToyCodecFactory)

    def test_instance_returned_as_is(self):
        factory = load_codec_factory("vpx_conformance.codec:default_decoder_config")
        assert factory is default_decoder_config

    @pytest.mark.parametrize("name", [
        "vpx_conformance.toy_codec",
        "vpx_conformance.toy_codec:",
        ":ToyCodecFactory",
    ])
    def test_malformed(self, name):
        with pytest.raises(ValueError):
            load_codec_factory(name)

    def test_missing_attribute(self):
        with pytest.raises(ValueError):
            load_codec_factory("vpx_conformance.toy_codec:NoSuchFactory")

    def test_missing_module(self):
        with pytest.raises(ImportError):
            load_codec_factory("vpx_conformance.no_such_module:Factory")
