"""Default classifier factory selected by configuration."""
from soundml.audio.models import AudioFormat
from soundml.classifiers.base import SoundClassifier
from soundml.core.config import settings
from soundml.core.errors import ConstructionError


def create_classifier(audio_format: AudioFormat) -> SoundClassifier:
    """
    Create a classifier bound to an audio format.

    The backend comes from `settings.classifier_backend`: "onnx" for the
    ONNX Runtime model, "mock" for the scripted mock.

    Args:
        audio_format: Format of the buffers the classifier will receive

    Returns:
        A new classifier instance

    Raises:
        ConstructionError: unknown backend, or the backend cannot be created
    """
    backend = settings.classifier_backend.lower()
    if backend == "onnx":
        from soundml.classifiers.onnx import OnnxSoundClassifier
        return OnnxSoundClassifier(audio_format)
    if backend == "mock":
        from soundml.classifiers.mock import MockSoundClassifier
        return MockSoundClassifier(audio_format)
    raise ConstructionError(f"Unknown classifier backend: {settings.classifier_backend}")
