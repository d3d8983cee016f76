"""Sound groups: several sounds sharing one semantic identity."""
import uuid
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, Union
from soundml.matching.sound import Classification, Sound, SoundType


@dataclass(frozen=True)
class SoundGroup:
    """
    One or more Sounds, any of which matching above its threshold is a match.

    Lets a client target several sounds with the same meaning, e.g. both
    `cough` and `sneeze` under the id `illness`.

    Attributes:
        sounds: Sounds in priority order. The first one that matches wins.
        id: Identifier, unique within a client's active set. A random one is
            generated when omitted.
    """
    sounds: Tuple[Sound, ...]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        """Freeze the sound sequence and reject empty groups"""
        object.__setattr__(self, "sounds", tuple(self.sounds))
        if not self.sounds:
            raise ValueError(f"SoundGroup {self.id} must contain at least one sound")

    @classmethod
    def single(cls, sound_type: Union[SoundType, str], threshold: float) -> "SoundGroup":
        """Group with a single sound, identified by that sound's label."""
        sound = Sound(sound_type, threshold)
        return cls(sounds=(sound,), id=sound.label)

    def best_match(self, classifications: Sequence[Classification]) -> Optional["GroupMatch"]:
        """
        Find the highest-priority sound of this group present in a batch.

        Sounds are scanned in declaration order; for each, the batch is scanned
        in its own order and the first classification that passes the sound's
        threshold supplies the confidence.

        Args:
            classifications: One window's classification batch

        Returns:
            GroupMatch, or None if no sound of the group matched
        """
        for sound in self.sounds:
            for classification in classifications:
                if sound.matches(classification):
                    return GroupMatch(
                        group=self,
                        sound=sound,
                        confidence=classification.confidence
                    )
        return None


@dataclass(frozen=True)
class GroupMatch:
    """A SoundGroup that matched within one analysis window."""
    group: SoundGroup
    sound: Sound  # the sound within the group that matched
    confidence: float  # always >= sound.threshold
