"""Unit tests for audio ingestion helpers."""
import wave
import numpy as np
import pytest
from soundml.audio.ingestion import (
    bytes_to_audio_buffer,
    read_wav,
    split_into_buffers,
    timed_buffers,
    validate_audio_data,
)
from soundml.audio.models import AudioBuffer, AudioFormat, WindowDuration


def test_bytes_to_audio_buffer_mono():
    """Test conversion of mono PCM bytes."""
    samples = np.array([100, -200, 300, -400], dtype=np.int16)

    buffer = bytes_to_audio_buffer(samples.tobytes(), sample_rate=16000)

    assert np.array_equal(buffer.pcm_data, samples)
    assert buffer.format == AudioFormat(sample_rate=16000, channels=1)
    assert buffer.frame_length == 4


def test_bytes_to_audio_buffer_stereo():
    """Test that interleaved stereo is split into frames."""
    samples = np.array([1, 2, 3, 4, 5, 6], dtype=np.int16)

    buffer = bytes_to_audio_buffer(samples.tobytes(), sample_rate=44100, channels=2)

    assert buffer.pcm_data.shape == (3, 2)
    assert buffer.frame_length == 3
    assert buffer.format.channels == 2


def test_validate_audio_data():
    """Test raw data validation."""
    assert validate_audio_data(b"\x00\x01\x02\x03")
    assert not validate_audio_data(b"")
    assert not validate_audio_data(b"\x00\x01\x02")
    assert not validate_audio_data(b"\x00\x01", channels=2)


def test_buffer_rejects_channel_mismatch():
    """Test that buffer shape must agree with its format."""
    with pytest.raises(ValueError):
        AudioBuffer(pcm_data=np.zeros((10, 2), dtype=np.int16), format=AudioFormat(16000, channels=1))


def test_as_float_mono_downmixes():
    """Test float conversion and channel averaging."""
    pcm_data = np.array([[16384, 0], [-16384, -16384]], dtype=np.int16)
    buffer = AudioBuffer(pcm_data=pcm_data, format=AudioFormat(16000, channels=2))

    mono = buffer.as_float_mono()

    assert mono.dtype == np.float32
    assert np.allclose(mono, [0.25, -0.5])


def test_split_into_buffers():
    """Test splitting into fixed-length buffers with a short remainder."""
    samples = np.arange(5000, dtype=np.int16)

    buffers = split_into_buffers(samples, AudioFormat(16000), buffer_length=2048)

    assert [b.frame_length for b in buffers] == [2048, 2048, 904]
    assert np.array_equal(np.concatenate([b.pcm_data for b in buffers]), samples)


def test_timed_buffers_running_offset():
    """Test that sample times accumulate buffer lengths."""
    buffers = split_into_buffers(np.zeros(5000, dtype=np.int16), AudioFormat(16000), buffer_length=2048)

    times = [time for _, time in timed_buffers(buffers)]

    assert [t.sample_time for t in times] == [0, 2048, 4096]
    assert times[1].seconds == pytest.approx(0.128)


def test_read_wav(tmp_path):
    """Test reading a 16-bit WAV file into buffers."""
    path = tmp_path / "tone.wav"
    samples = (np.sin(np.linspace(0, 2 * np.pi * 440, 8000)) * 10000).astype(np.int16)
    with wave.open(str(path), "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(8000)
        wav_file.writeframes(samples.tobytes())

    buffers = read_wav(str(path), buffer_length=3000)

    assert [b.frame_length for b in buffers] == [3000, 3000, 2000]
    assert buffers[0].format == AudioFormat(sample_rate=8000, channels=1)
    assert np.array_equal(buffers[0].pcm_data, samples[:3000])


def test_window_duration_from_seconds():
    """Test window conversion to a timescale."""
    window = WindowDuration.from_seconds(0.5, 16000)

    assert window.value == 8000
    assert window.seconds == pytest.approx(0.5)
    with pytest.raises(ValueError):
        WindowDuration.from_seconds(0.0, 16000)
