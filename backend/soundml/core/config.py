"""Configuration settings for the SoundML stream analyzer."""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Analysis window settings
    window_duration: float = 0.5  # seconds of audio per classification batch
    preferred_timescale: int = 16000  # ticks per second used to express the window
    window_overlap: float = 0.5  # fraction of a window shared with the next one

    # Classifier backend ("onnx" or "mock")
    classifier_backend: str = "onnx"
    onnx_model_path: Optional[str] = "models/sound_classifier.onnx"  # Path to ONNX model file
    labels_path: Optional[str] = "models/sound_classifier_labels.txt"  # One label per line
    model_sample_rate: int = 16000  # Hz, rate the model expects

    # Capture / fixture settings
    buffer_length: int = 2048  # frames per buffer when splitting long audio

    # Serial queue settings
    queue_join_timeout_s: float = 5.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
