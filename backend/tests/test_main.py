"""Unit tests for the command line entrypoint and classifier factory."""
import argparse
import wave
import numpy as np
import pytest
from soundml.audio.models import AudioFormat
from soundml.classifiers.factory import create_classifier
from soundml.classifiers.mock import MockSoundClassifier
from soundml.core.config import settings
from soundml.core.errors import ConstructionError
from soundml.main import main, parse_group
from soundml.matching.sound import Sound


def test_parse_group_single_sound():
    """Test the label:threshold form."""
    group = parse_group("clapping:0.7")

    assert group.id == "clapping"
    assert group.sounds == (Sound(label="clapping", threshold=0.7),)


def test_parse_group_named_group():
    """Test the id=label:threshold,... form."""
    group = parse_group("illness=cough:0.5,sneeze:0.6")

    assert group.id == "illness"
    assert [s.label for s in group.sounds] == ["cough", "sneeze"]
    assert [s.threshold for s in group.sounds] == [0.5, 0.6]


def test_parse_group_normalizes_known_labels():
    """Test that known sound labels are accepted in any case."""
    group = parse_group("Clapping:0.7")

    assert group.id == "clapping"
    assert group.sounds == (Sound(label="clapping", threshold=0.7),)
    assert parse_group("my_label:0.5").sounds[0].label == "my_label"


def test_parse_group_rejects_bad_input():
    """Test malformed group arguments."""
    with pytest.raises(argparse.ArgumentTypeError):
        parse_group("clapping")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_group("clapping:2.0")


def test_main_with_mock_classifier(tmp_path):
    """Test replaying a WAV file through the mock classifier."""
    path = tmp_path / "noise.wav"
    samples = np.random.randint(-5000, 5000, size=16000, dtype=np.int16)
    with wave.open(str(path), "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(16000)
        wav_file.writeframes(samples.tobytes())

    assert main([str(path), "-g", "clapping:0.5", "-g", "talk=speech:0.5,shout:0.5", "--mock"]) == 0


def test_create_classifier_uses_configured_backend():
    """Test backend selection from settings."""
    original_backend = settings.classifier_backend

    try:
        settings.classifier_backend = "mock"
        assert isinstance(create_classifier(AudioFormat(16000)), MockSoundClassifier)

        settings.classifier_backend = "bogus"
        with pytest.raises(ConstructionError):
            create_classifier(AudioFormat(16000))
    finally:
        settings.classifier_backend = original_backend
