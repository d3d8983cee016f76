"""Audio data models and structures."""
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class AudioFormat:
    """Sample rate and channel layout of a buffer. Compared on every buffer."""
    sample_rate: float
    channels: int = 1

    def __post_init__(self):
        """Validate format values."""
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")
        if self.channels < 1:
            raise ValueError(f"Channel count must be at least 1, got {self.channels}")


@dataclass(eq=False)
class AudioBuffer:
    """A chunk of captured PCM audio with its format."""
    pcm_data: np.ndarray  # shape (frames,) for mono or (frames, channels)
    format: AudioFormat

    def __post_init__(self):
        """Validate buffer shape against the format."""
        if self.pcm_data.ndim not in (1, 2):
            raise ValueError(f"Expected 1D or 2D samples, got shape {self.pcm_data.shape}")
        channels = 1 if self.pcm_data.ndim == 1 else self.pcm_data.shape[1]
        if channels != self.format.channels:
            raise ValueError(
                f"Buffer has {channels} channels but format declares {self.format.channels}"
            )

    @property
    def frame_length(self) -> int:
        """Number of sample frames in the buffer."""
        return int(self.pcm_data.shape[0])

    def as_float_mono(self) -> np.ndarray:
        """Samples downmixed to mono float32 in [-1, 1]."""
        samples = self.pcm_data
        if samples.dtype == np.int16:
            samples = samples.astype(np.float32) / 32768.0
        elif samples.dtype != np.float32:
            samples = samples.astype(np.float32)
        if samples.ndim == 2:
            samples = samples.mean(axis=1)
        return samples


@dataclass(frozen=True)
class AudioTime:
    """Capture timestamp of a buffer, expressed as a sample position."""
    sample_time: int
    sample_rate: float

    @property
    def seconds(self) -> float:
        return self.sample_time / self.sample_rate


@dataclass(frozen=True)
class WindowDuration:
    """An analysis window length as an integer count over a timescale."""
    value: int
    timescale: int

    def __post_init__(self):
        if self.timescale <= 0:
            raise ValueError(f"Timescale must be positive, got {self.timescale}")
        if self.value <= 0:
            raise ValueError(f"Window duration must be positive, got {self.value}/{self.timescale}")

    @classmethod
    def from_seconds(cls, seconds: float, timescale: int) -> "WindowDuration":
        return cls(value=int(round(seconds * timescale)), timescale=timescale)

    @property
    def seconds(self) -> float:
        return self.value / self.timescale
