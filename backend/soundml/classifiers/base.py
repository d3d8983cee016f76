"""Sound Classifier Interface

Defines the contract between a StreamAnalyzer and the pluggable engine that
turns audio into per-window label/confidence batches. The engine itself is a
black box; implementations can wrap any ML model.

Lifecycle of one classifier instance:
- created for exactly one AudioFormat by a ClassifierFactory
- configured with one request (window duration + observer)
- fed buffers in timestamp order via analyze()
- detached with remove_all_requests(), after which it must not call its
  observer again
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from soundml.audio.models import AudioBuffer, AudioFormat, WindowDuration
from soundml.matching.sound import Classification


@dataclass(frozen=True)
class ClassifierObserver:
    """
    Handlers a classifier invokes as analysis progresses.

    Attributes:
        on_result: Called with one window's classification batch
        on_error: Called when the request fails mid-stream
        on_complete: Called when the request ends without error
    """
    on_result: Callable[[List[Classification]], None]
    on_error: Callable[[Exception], None]
    on_complete: Callable[[], None]


class SoundClassifier(ABC):
    """
    Abstract base class for streaming sound classifiers.

    Example usage:
        classifier = factory(buffer.format)
        classifier.add_request(WindowDuration.from_seconds(0.5, 16000), observer)
        classifier.analyze(buffer, sample_position=0)
        ...
        classifier.remove_all_requests()
    """

    def __init__(self, audio_format: AudioFormat):
        self.format = audio_format
        self.window: Optional[WindowDuration] = None
        self.observer: Optional[ClassifierObserver] = None

    def add_request(self, window: WindowDuration, observer: ClassifierObserver) -> None:
        """
        Attach the classification request and its observer.

        Raises:
            ConstructionError: the request cannot be configured for this
                classifier (e.g. unsupported window length)
        """
        self.window = window
        self.observer = observer

    @abstractmethod
    def analyze(self, buffer: AudioBuffer, sample_position: int) -> None:
        """
        Feed one buffer captured at the given sample position.

        Results, errors and completion are reported through the observer,
        possibly from within this call.
        """
        pass

    def remove_all_requests(self) -> None:
        """Detach the observer. No callbacks are delivered afterwards."""
        self.observer = None

    def complete_analysis(self) -> None:
        """Signal end of stream; reports completion to an attached observer."""
        observer = self.observer
        self.observer = None
        if observer is not None:
            observer.on_complete()


ClassifierFactory = Callable[[AudioFormat], SoundClassifier]
