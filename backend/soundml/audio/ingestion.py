"""Helpers for ingesting and converting incoming audio data."""
import wave
import numpy as np
from typing import Iterable, Iterator, List, Optional, Tuple
from soundml.audio.models import AudioBuffer, AudioFormat, AudioTime
from soundml.core.config import settings
from soundml.core.logging import logger


def bytes_to_audio_buffer(
    data: bytes,
    sample_rate: Optional[float] = None,
    channels: int = 1
) -> AudioBuffer:
    """
    Convert raw interleaved PCM int16 bytes to an AudioBuffer.

    Args:
        data: Raw PCM int16 bytes
        sample_rate: Sample rate (defaults to the model rate from config)
        channels: Number of interleaved channels

    Returns:
        AudioBuffer object
    """
    if sample_rate is None:
        sample_rate = settings.model_sample_rate

    pcm_array = np.frombuffer(data, dtype=np.int16)
    if channels > 1:
        pcm_array = pcm_array.reshape(-1, channels)

    return AudioBuffer(
        pcm_data=pcm_array,
        format=AudioFormat(sample_rate=sample_rate, channels=channels)
    )


def validate_audio_data(data: bytes, channels: int = 1) -> bool:
    """
    Validate incoming audio data.

    Args:
        data: Raw audio bytes
        channels: Number of interleaved channels

    Returns:
        True if valid, False otherwise
    """
    if len(data) == 0:
        logger.warning("Received empty audio data")
        return False

    # Whole int16 frames only
    frame_bytes = 2 * channels
    if len(data) % frame_bytes != 0:
        logger.warning(f"Audio data size {len(data)} is not a multiple of {frame_bytes} bytes")
        return False

    return True


def split_into_buffers(
    samples: np.ndarray,
    audio_format: AudioFormat,
    buffer_length: Optional[int] = None
) -> List[AudioBuffer]:
    """
    Split a long sample array into consecutive fixed-length buffers.

    The final buffer holds whatever remains and may be shorter.

    Args:
        samples: Samples shaped (frames,) or (frames, channels)
        audio_format: Format shared by every produced buffer
        buffer_length: Frames per buffer (defaults to config value)

    Returns:
        List of AudioBuffer objects in capture order
    """
    if buffer_length is None:
        buffer_length = settings.buffer_length
    if buffer_length <= 0:
        raise ValueError(f"buffer_length must be positive, got {buffer_length}")

    return [
        AudioBuffer(pcm_data=samples[start:start + buffer_length], format=audio_format)
        for start in range(0, samples.shape[0], buffer_length)
    ]


def timed_buffers(buffers: Iterable[AudioBuffer]) -> Iterator[Tuple[AudioBuffer, AudioTime]]:
    """
    Pair each buffer with its capture time, using a running sample offset.

    Args:
        buffers: Buffers in capture order

    Yields:
        (buffer, time) pairs with strictly increasing sample times
    """
    sample_offset = 0
    for buffer in buffers:
        yield buffer, AudioTime(sample_time=sample_offset, sample_rate=buffer.format.sample_rate)
        sample_offset += buffer.frame_length


def read_wav(path: str, buffer_length: Optional[int] = None) -> List[AudioBuffer]:
    """
    Read a 16-bit PCM WAV file into fixed-length buffers.

    Args:
        path: Path to the WAV file
        buffer_length: Frames per buffer (defaults to config value)

    Returns:
        List of AudioBuffer objects
    """
    with wave.open(path, "rb") as wav_file:
        if wav_file.getsampwidth() != 2:
            raise ValueError(f"Expected 16-bit PCM WAV, got {8 * wav_file.getsampwidth()}-bit")
        channels = wav_file.getnchannels()
        sample_rate = wav_file.getframerate()
        data = wav_file.readframes(wav_file.getnframes())

    buffer = bytes_to_audio_buffer(data, sample_rate=sample_rate, channels=channels)
    logger.info(f"Read {buffer.frame_length} frames from {path} ({sample_rate} Hz, {channels} ch)")
    return split_into_buffers(buffer.pcm_data, buffer.format, buffer_length)
