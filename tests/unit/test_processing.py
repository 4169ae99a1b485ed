"""Tests for audio post-processing."""

import numpy as np
import pytest

from chefsocial_voice.audio.models import AudioChunk, AudioFile, VoiceRecorderConfig
from chefsocial_voice.audio.processing import (
    AudioPostProcessor,
    apply_compressor,
    base_mime_type,
    decode_wav,
    encode_wav,
    format_duration,
    format_file_size,
    load_audio_file,
)
from chefsocial_voice.audio.quality import NEUTRAL_QUALITY
from chefsocial_voice.exceptions import EmptyInputError, ProcessingError


def make_chunks(pcm_factory, count=3, seconds=0.5):
    """Chunks with distinguishable payloads."""
    return [
        AudioChunk(
            data=pcm_factory(seconds, frequency=220.0 * (i + 1)),
            quality=NEUTRAL_QUALITY,
            duration=seconds * (i + 1),
        )
        for i in range(count)
    ]


class TestAssemble:
    """Tests for chunk assembly."""

    def test_chunks_recoverable(self, pcm_factory):
        """Test the assembled file splits back into the original chunks."""
        chunks = make_chunks(pcm_factory)
        audio = AudioPostProcessor().assemble(chunks)

        assert audio.mime_type == "audio/wav"
        assert audio.header_size == 44
        assert audio.split_chunks() == [chunk.data for chunk in chunks]

    def test_duration(self, pcm_factory):
        """Test the assembled duration matches the PCM length."""
        audio = AudioPostProcessor().assemble(make_chunks(pcm_factory, count=4, seconds=0.5))

        assert audio.duration == pytest.approx(2.0)
        assert audio.sample_rate == 48000
        assert audio.channels == 1

    def test_empty_input(self):
        """Test zero chunks raise."""
        with pytest.raises(EmptyInputError, match="No audio recorded"):
            AudioPostProcessor().assemble([])

    def test_decodable(self, pcm_factory):
        """Test the container is valid WAV."""
        audio = AudioPostProcessor().assemble(make_chunks(pcm_factory, count=1, seconds=0.1))

        samples, sample_rate = decode_wav(audio.data)

        assert sample_rate == 48000
        assert samples.size == 4800


class TestCompress:
    """Tests for upload compression."""

    def test_resamples_to_mono_16k(self, pcm_factory):
        """Test compression downmixes and resamples."""
        stereo = VoiceRecorderConfig(channel_count=2)
        processor = AudioPostProcessor(stereo)
        audio = processor.assemble(make_chunks(pcm_factory, count=2, seconds=1.0))

        compressed = processor.compress(audio)

        assert compressed.sample_rate == 16000
        assert compressed.channels == 1
        assert compressed.size < audio.size
        samples, sample_rate = decode_wav(compressed.data)
        assert sample_rate == 16000
        assert samples.ndim == 1

    def test_peak_follows_quality_hint(self, pcm_factory):
        """Test the output peak is 0.5 + 0.45 * hint."""
        processor = AudioPostProcessor()
        audio = processor.assemble(make_chunks(pcm_factory, count=2, seconds=1.0))

        for hint in (0.0, 0.7, 1.0):
            samples, _ = decode_wav(processor.compress(audio, quality_hint=hint).data)
            assert np.max(np.abs(samples)) == pytest.approx(0.5 + 0.45 * hint, abs=0.01)

    def test_rejects_non_wav(self):
        """Test only WAV input can be compressed."""
        audio = AudioFile(data=b"\x1a\x45\xdf\xa3" * 500, mime_type="audio/webm")

        with pytest.raises(ProcessingError):
            AudioPostProcessor().compress(audio)

    def test_prepare_for_upload_threshold(self, pcm_factory):
        """Test only large recordings are compressed."""
        chunks = make_chunks(pcm_factory, count=2, seconds=0.5)

        small = AudioPostProcessor().prepare_for_upload(chunks)
        assert small.sample_rate == 48000

        forced = AudioPostProcessor(compression_threshold=1000).prepare_for_upload(chunks)
        assert forced.sample_rate == 16000

        skipped = AudioPostProcessor(compression_threshold=1000).prepare_for_upload(chunks, compress=False)
        assert skipped.sample_rate == 48000


class TestValidate:
    """Tests for upload constraint checks."""

    def test_valid_recording(self, pcm_factory):
        """Test a normal recording passes."""
        processor = AudioPostProcessor()
        result = processor.validate(processor.assemble(make_chunks(pcm_factory)))

        assert result.valid
        assert result.errors == []

    def test_codec_parameters_ignored(self):
        """Test MIME parameters do not affect the format check."""
        audio = AudioFile(data=b"\x00" * 4096, mime_type="audio/webm;codecs=opus")

        assert AudioPostProcessor().validate(audio).valid

    def test_all_errors_reported(self):
        """Test every violation is listed."""
        audio = AudioFile(data=b"\x00" * 10, mime_type="audio/flac")

        result = AudioPostProcessor().validate(audio)

        assert not result.valid
        assert result.errors == [
            "Unsupported audio format: audio/flac",
            "File too small: May be corrupted",
        ]

    def test_too_large(self):
        """Test the size limit message."""
        processor = AudioPostProcessor(max_bytes=1024 * 1024)
        audio = AudioFile(data=b"\x00" * (2 * 1024 * 1024), mime_type="audio/mpeg")

        assert processor.validate(audio).errors == ["File too large: 2.0MB (max: 1MB)"]

    def test_too_long(self):
        """Test the duration limit message."""
        pcm = b"\x00\x00" * (16000 * 301)
        audio = AudioFile(
            data=encode_wav(pcm, 16000, 1),
            mime_type="audio/wav",
            sample_rate=16000,
            channels=1,
            header_size=44,
        )

        result = AudioPostProcessor().validate(audio)

        assert result.errors == ["Recording too long: 5:01 (max: 5:00)"]


class TestWavHelpers:
    """Tests for WAV encode and decode."""

    def test_decode_garbage(self):
        """Test non-WAV bytes raise."""
        with pytest.raises(ProcessingError):
            decode_wav(b"not a wav file at all")

    def test_decode_stereo_shape(self, pcm_factory):
        """Test interleaved channels are split."""
        samples, _ = decode_wav(encode_wav(pcm_factory(0.1), 48000, 2))

        assert samples.shape == (2400, 2)

    def test_base_mime_type(self):
        """Test codec parameters are stripped."""
        assert base_mime_type("audio/webm;codecs=opus") == "audio/webm"
        assert base_mime_type(" Audio/WAV ") == "audio/wav"


class TestCompressor:
    """Tests for the dynamic-range compressor."""

    def test_quiet_signal_untouched(self):
        """Test signal well below the knee passes unchanged."""
        t = np.arange(16000) / 16000
        quiet = 0.001 * np.sin(2 * np.pi * 440 * t)

        assert np.allclose(apply_compressor(quiet, 16000), quiet)

    def test_loud_signal_reduced(self):
        """Test loud signal is turned down."""
        t = np.arange(16000) / 16000
        loud = 0.9 * np.sin(2 * np.pi * 440 * t)

        out = apply_compressor(loud, 16000)

        assert np.max(np.abs(out[8000:])) < 0.5 * np.max(np.abs(loud))

    def test_empty(self):
        """Test empty input."""
        assert apply_compressor(np.array([]), 16000).size == 0


class TestFileHelpers:
    """Tests for loading and formatting."""

    def test_load_wav(self, tmp_path, pcm_factory):
        """Test WAV headers are parsed on load."""
        path = tmp_path / "memo.wav"
        path.write_bytes(encode_wav(pcm_factory(1.5, sample_rate=16000), 16000, 1))

        audio = load_audio_file(path)

        assert audio.mime_type == "audio/wav"
        assert audio.name == "memo.wav"
        assert audio.duration == pytest.approx(1.5)

    def test_load_compressed_format(self, tmp_path):
        """Test non-WAV files keep an unknown duration."""
        path = tmp_path / "memo.m4a"
        path.write_bytes(b"\x00" * 2048)

        audio = load_audio_file(path)

        assert audio.mime_type == "audio/mp4"
        assert audio.duration is None

    def test_load_missing(self, tmp_path):
        """Test missing files raise."""
        with pytest.raises(ProcessingError):
            load_audio_file(tmp_path / "missing.wav")

    @pytest.mark.parametrize("size, expected", [
        (0, "0 Bytes"),
        (500, "500 Bytes"),
        (1536, "1.5 KB"),
        (1024 * 1024, "1 MB"),
        (int(2.5 * 1024 * 1024), "2.5 MB"),
    ])
    def test_format_file_size(self, size, expected):
        """Test human-readable sizes."""
        assert format_file_size(size) == expected

    @pytest.mark.parametrize("seconds, expected", [(0, "0:00"), (9.9, "0:09"), (75, "1:15"), (300, "5:00")])
    def test_format_duration(self, seconds, expected):
        """Test m:ss formatting."""
        assert format_duration(seconds) == expected
