"""Sounds: a classifier label plus the confidence above which it counts as detected."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SoundType(str, Enum):
    """Well-known labels emitted by the built-in sound classifier."""
    SPEECH = "speech"
    SHOUT = "shout"
    WHISPERING = "whispering"
    LAUGHTER = "laughter"
    CRYING_SOBBING = "crying_sobbing"
    BABY_CRYING = "baby_crying"
    SINGING = "singing"
    WHISTLING = "whistling"
    SNORING = "snoring"
    COUGH = "cough"
    SNEEZE = "sneeze"
    CLAPPING = "clapping"
    FINGER_SNAPPING = "finger_snapping"
    APPLAUSE = "applause"
    DOG_BARK = "dog_bark"
    CAT_MEOW = "cat_meow"
    GUITAR = "guitar"
    PIANO = "piano"
    MUSIC = "music"
    KNOCK = "knock"
    WATER = "water"
    SILENCE = "silence"

    @classmethod
    def from_string(cls, value: str) -> Optional["SoundType"]:
        """Convert string to SoundType, returns None if unknown"""
        try:
            return cls(value.lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Classification:
    """One label/confidence pair produced by the classifier for a window."""
    label: str
    confidence: float


@dataclass(frozen=True)
class Sound:
    """
    A specific recognition target.

    Attributes:
        label: Classifier label to look for. See `SoundType` for known values.
        threshold: Confidence (0.0 to 1.0) at or above which the label counts
            as matched.
    """
    label: str
    threshold: float

    def __post_init__(self):
        """Validate threshold is in valid range"""
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got {self.threshold}")
        # Accept a SoundType in place of its raw label
        if isinstance(self.label, SoundType):
            object.__setattr__(self, "label", self.label.value)

    def matches(self, classification: Classification) -> bool:
        return (
            classification.label == self.label
            and classification.confidence >= self.threshold
        )
