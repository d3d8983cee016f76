"""Mock Sound Classifier for Testing

Provides scripted implementations of SoundClassifier and ClassifierFactory
for testing and demonstration purposes.

Useful for:
- Unit testing the analyzer state machine without an ML model
- Demo/development runs (`--mock`) without model files
- Simulating classifier errors and request completion
"""

import random
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from soundml.audio.models import AudioBuffer, AudioFormat, WindowDuration
from soundml.classifiers.base import ClassifierObserver, SoundClassifier
from soundml.core.errors import ConstructionError
from soundml.matching.sound import Classification, SoundType


class MockEvent(Enum):
    """Non-result events a script can emit."""
    COMPLETE = "complete"


ScriptStep = Union[None, Sequence[Classification], Exception, MockEvent]


class MockSoundClassifier(SoundClassifier):
    """
    Mock classifier driven by a script of per-buffer events.

    Each analyze() call consumes the next script step:
    - a sequence of Classification: reported via on_result
    - an Exception: reported via on_error
    - MockEvent.COMPLETE: reported via on_complete
    - None: nothing reported for that buffer

    Once the script is exhausted, `fixed_result` (if set) is reported for
    every buffer, otherwise a random detection is made with
    `detection_probability`.
    """

    def __init__(
        self,
        audio_format: AudioFormat,
        script: Optional[Sequence[ScriptStep]] = None,
        fixed_result: Optional[Sequence[Classification]] = None,
        detection_probability: float = 0.0,
        reject_request: Optional[Exception] = None,
    ):
        """
        Initialize MockSoundClassifier.

        Args:
            audio_format: Format this instance is bound to
            script: Events to emit, one per analyze() call
            fixed_result: Batch to report for every buffer after the script
            detection_probability: Probability (0.0-1.0) of a random detection
                when neither script nor fixed_result applies
            reject_request: If set, add_request() fails with this error
        """
        super().__init__(audio_format)
        if not 0.0 <= detection_probability <= 1.0:
            raise ValueError(f"detection_probability must be 0.0-1.0, got {detection_probability}")

        self.script: List[ScriptStep] = list(script or [])
        self.fixed_result = list(fixed_result) if fixed_result is not None else None
        self.detection_probability = detection_probability
        self.reject_request = reject_request

        # Statistics tracking
        self.analyzed: List[Tuple[AudioBuffer, int]] = []
        self.remove_count = 0

    def add_request(self, window: WindowDuration, observer: ClassifierObserver) -> None:
        if self.reject_request is not None:
            raise ConstructionError(f"Request rejected: {self.reject_request}") from self.reject_request
        super().add_request(window, observer)

    def analyze(self, buffer: AudioBuffer, sample_position: int) -> None:
        self.analyzed.append((buffer, sample_position))
        if self.observer is None:
            return

        if self.script:
            step = self.script.pop(0)
        elif self.fixed_result is not None:
            step = self.fixed_result
        else:
            step = self._random_step()

        if step is None:
            return
        if isinstance(step, MockEvent):
            self.complete_analysis()
        elif isinstance(step, Exception):
            self.observer.on_error(step)
        else:
            self.observer.on_result(list(step))

    def remove_all_requests(self) -> None:
        self.remove_count += 1
        super().remove_all_requests()

    def _random_step(self) -> Optional[List[Classification]]:
        if random.random() >= self.detection_probability:
            return None
        sound_type = random.choice(list(SoundType))
        return [Classification(label=sound_type.value, confidence=random.uniform(0.6, 0.95))]


class MockClassifierFactory:
    """
    Factory producing MockSoundClassifier instances and recording each call.

    Attributes:
        created: Classifiers created so far, oldest first
        formats: Format requested on each call, including failed ones
        fail_with: If set, every call raises ConstructionError from it
    """

    def __init__(
        self,
        scripts: Optional[Sequence[Sequence[ScriptStep]]] = None,
        fixed_result: Optional[Sequence[Classification]] = None,
        detection_probability: float = 0.0,
        fail_with: Optional[Exception] = None,
    ):
        self.scripts = [list(script) for script in (scripts or [])]
        self.fixed_result = fixed_result
        self.detection_probability = detection_probability
        self.fail_with = fail_with
        self.created: List[MockSoundClassifier] = []
        self.formats: List[AudioFormat] = []

    def __call__(self, audio_format: AudioFormat) -> MockSoundClassifier:
        self.formats.append(audio_format)
        if self.fail_with is not None:
            raise ConstructionError(f"Cannot create classifier: {self.fail_with}") from self.fail_with
        classifier = MockSoundClassifier(
            audio_format,
            script=self.scripts.pop(0) if self.scripts else None,
            fixed_result=self.fixed_result,
            detection_probability=self.detection_probability,
        )
        self.created.append(classifier)
        return classifier

    @property
    def attempts(self) -> int:
        """Number of construction attempts, successful or not."""
        return len(self.formats)

    @property
    def latest(self) -> Optional[MockSoundClassifier]:
        return self.created[-1] if self.created else None
