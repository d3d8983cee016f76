"""Streaming sound group analysis on top of a pluggable classifier."""
import uuid
from typing import Callable, Iterable, List, Optional, Sequence, Union
from soundml.audio.ingestion import timed_buffers
from soundml.audio.models import AudioBuffer, AudioFormat, AudioTime, WindowDuration
from soundml.classifiers.base import ClassifierFactory, ClassifierObserver, SoundClassifier
from soundml.classifiers.factory import create_classifier
from soundml.core.config import settings
from soundml.core.errors import ClassificationError, ConstructionError
from soundml.core.logging import logger
from soundml.matching.groups import GroupMatch, SoundGroup
from soundml.matching.matcher import reduce_matches
from soundml.matching.sound import Classification
from soundml.services.serial_queue import SerialQueue

UpdateHandler = Callable[[bool, Optional[List[GroupMatch]]], None]
ErrorHandler = Callable[[Exception], None]

_CONFIGURED_TIMEOUT = object()


class StreamAnalyzer:
    """
    Observes audio buffers through a live classifier and reports, per analysis
    window, which of the configured sound groups matched.

    The classifier is created lazily for the format of the first buffer and
    recreated whenever the format changes, or on the next buffer after the
    classifier reported an error or completed its request.

    All classifier state is owned by a per-analyzer serial queue: process()
    only enqueues the buffer, and the format check, classifier construction,
    feeding and observer callbacks all run there in FIFO order. Callers must
    serialize their own process() calls (single producer) so buffers arrive in
    timestamp order; the analyzer never reorders input.

    Example usage:
        analyzer = StreamAnalyzer()
        analyzer.set_groups([SoundGroup.single(SoundType.CLAPPING, threshold=0.7)])
        analyzer.on_update = lambda matched, matches: print(matched, matches)
        for buffer, time in capture:
            analyzer.process(buffer, time)
        analyzer.close()
    """

    def __init__(
        self,
        id: Optional[str] = None,
        classifier_factory: Optional[ClassifierFactory] = None,
        window_duration: Optional[float] = None,
        preferred_timescale: Optional[int] = None,
        sound_groups: Optional[Sequence[SoundGroup]] = None,
    ):
        """
        Create an analyzer and start its serial queue.

        Args:
            id: Identifier used to name the worker thread (random if omitted)
            classifier_factory: Creates a classifier for a format (defaults to
                the configured backend)
            window_duration: Seconds per analysis window (if None, uses config value)
            preferred_timescale: Timescale for the window duration (if None, uses config value)
            sound_groups: Groups of interest; None disables updates
        """
        self.id = id or uuid.uuid4().hex
        self.on_update: Optional[UpdateHandler] = None
        self.on_error: Optional[ErrorHandler] = None
        self.sound_groups: Optional[List[SoundGroup]] = None
        self.window_duration = settings.window_duration
        self.preferred_timescale = preferred_timescale or settings.preferred_timescale
        self.set_groups(sound_groups)
        if window_duration is not None:
            self.set_window_duration(window_duration)

        self._factory = classifier_factory or create_classifier
        self._classifier: Optional[SoundClassifier] = None
        self._format: Optional[AudioFormat] = None
        self._queue = SerialQueue(f"soundml.analyzer.{self.id}")

    def __enter__(self) -> "StreamAnalyzer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- configuration ---

    def set_groups(self, groups: Optional[Iterable[SoundGroup]]) -> None:
        """Replace the groups of interest. None stops updates entirely."""
        self.sound_groups = list(groups) if groups is not None else None

    def set_window_duration(self, seconds: float) -> None:
        """
        Set the analysis window length.

        Only applies to classifiers created afterwards; a live classifier keeps
        the window it was created with until it is recreated.
        """
        if seconds <= 0:
            raise ValueError(f"Window duration must be positive, got {seconds}")
        self.window_duration = seconds

    # --- ingress ---

    def process(self, buffer: AudioBuffer, time: AudioTime) -> None:
        """
        Queue one captured buffer for analysis. Returns immediately.

        Args:
            buffer: Captured audio
            time: Capture time; its sample_time is the feed position
        """
        if not self._queue.submit(self._ingest, buffer, time):
            logger.warning(f"Analyzer {self.id} is closed, dropping buffer at {time.sample_time}")

    def process_buffers(self, buffers: Iterable[AudioBuffer]) -> None:
        """Queue consecutive buffers, timestamping them with a running sample offset."""
        for buffer, time in timed_buffers(buffers):
            self.process(buffer, time)

    # --- lifecycle ---

    @property
    def classifier(self) -> Optional[SoundClassifier]:
        """The live classifier, if any."""
        return self._classifier

    @property
    def format(self) -> Optional[AudioFormat]:
        """Format the live classifier was created with, if any."""
        return self._format

    def replace_classifier(
        self,
        classifier: Optional[SoundClassifier],
        audio_format: Optional[AudioFormat] = None
    ) -> Optional[SoundClassifier]:
        """
        Swap the live classifier, releasing the old one's requests first.

        Must run on the serial queue (or while it is idle).

        Args:
            classifier: New live classifier, or None to tear down
            audio_format: Format the new classifier was created with

        Returns:
            The new live classifier
        """
        previous = self._classifier
        if previous is not None and previous is not classifier:
            previous.remove_all_requests()
            logger.info(f"Analyzer {self.id} released classifier for {self._format}")
        self._classifier = classifier
        self._format = audio_format if classifier is not None else None
        return classifier

    def teardown(self) -> None:
        """Release the live classifier; the next buffer creates a new one."""
        self._queue.submit(self.replace_classifier, None)

    def join(self, timeout: Union[float, None, object] = _CONFIGURED_TIMEOUT) -> bool:
        """
        Wait until all work queued so far has run.

        Args:
            timeout: Seconds to wait; None waits without limit. Defaults to
                `settings.queue_join_timeout_s`.

        Returns:
            True if the queue drained within the timeout
        """
        if timeout is _CONFIGURED_TIMEOUT:
            timeout = settings.queue_join_timeout_s
        return self._queue.join(timeout)

    def close(self) -> None:
        """Release the classifier and stop the serial queue."""
        if self._queue.closed:
            return
        self._queue.submit(self.replace_classifier, None)
        self._queue.close(timeout=settings.queue_join_timeout_s)
        logger.debug(f"Analyzer {self.id} closed")

    # --- serial queue only ---

    def _ingest(self, buffer: AudioBuffer, time: AudioTime) -> None:
        if self._classifier is None:
            self._create_classifier(buffer.format)
        elif self._format != buffer.format:
            logger.info(f"Analyzer {self.id} format changed {self._format} -> {buffer.format}")
            self._create_classifier(buffer.format)

        classifier = self._classifier
        if classifier is None:
            # Construction failed; the buffer is dropped, not retried
            return

        try:
            classifier.analyze(buffer, time.sample_time)
        except Exception as e:
            error = e if isinstance(e, ClassificationError) else ClassificationError(f"Analysis failed: {e}")
            if error is not e:
                error.__cause__ = e
            self._handle_error(classifier, error)

    def _create_classifier(self, audio_format: AudioFormat) -> None:
        self.replace_classifier(None)

        classifier = None
        try:
            classifier = self._factory(audio_format)
            window = WindowDuration.from_seconds(self.window_duration, self.preferred_timescale)
            classifier.add_request(window, self._observer_for(classifier))
        except Exception as e:
            if classifier is not None:
                classifier.remove_all_requests()
            error = e if isinstance(e, ConstructionError) else ConstructionError(f"Cannot create classifier: {e}")
            if error is not e:
                error.__cause__ = e
            logger.warning(f"Analyzer {self.id} could not create classifier for {audio_format}: {error}")
            self._emit_error(error)
            return

        self.replace_classifier(classifier, audio_format)
        logger.info(f"Analyzer {self.id} created classifier for {audio_format} ({self.window_duration}s windows)")

    def _observer_for(self, classifier: SoundClassifier) -> ClassifierObserver:
        return ClassifierObserver(
            on_result=lambda classifications: self._dispatch(self._handle_result, classifier, classifications),
            on_error=lambda error: self._dispatch(self._handle_error, classifier, error),
            on_complete=lambda: self._dispatch(self._handle_complete, classifier),
        )

    def _dispatch(self, handler: Callable[..., None], *args) -> None:
        # Observer callbacks never overlap: run inline on the worker, else hop onto it
        if self._queue.is_current():
            handler(*args)
        else:
            self._queue.submit(handler, *args)

    def _is_stale(self, classifier: SoundClassifier, event: str) -> bool:
        if classifier is self._classifier:
            return False
        logger.debug(f"Analyzer {self.id} ignoring {event} from a superseded classifier")
        return True

    def _handle_result(self, classifier: SoundClassifier, classifications: List[Classification]) -> None:
        if self._is_stale(classifier, "result"):
            return
        groups = self.sound_groups
        if groups is None:
            return

        matches = reduce_matches(groups, classifications)
        if matches:
            logger.debug(f"Analyzer {self.id} matched {[(m.group.id, round(m.confidence, 3)) for m in matches]}")
            self._emit_update(True, matches)
        else:
            self._emit_update(False, None)

    def _handle_error(self, classifier: SoundClassifier, error: Exception) -> None:
        if self._is_stale(classifier, "error"):
            return
        logger.error(f"Analyzer {self.id} classification failed: {error}")
        self.replace_classifier(None)
        self._emit_error(error)

    def _handle_complete(self, classifier: SoundClassifier) -> None:
        if self._is_stale(classifier, "completion"):
            return
        logger.info(f"Analyzer {self.id} classification request completed")
        self.replace_classifier(None)

    def _emit_update(self, matched: bool, matches: Optional[List[GroupMatch]]) -> None:
        handler = self.on_update
        if handler is None:
            return
        try:
            handler(matched, matches)
        except Exception as e:
            logger.error(f"Analyzer {self.id} update handler raised: {e}", exc_info=True)

    def _emit_error(self, error: Exception) -> None:
        handler = self.on_error
        if handler is None:
            return
        try:
            handler(error)
        except Exception as e:
            logger.error(f"Analyzer {self.id} error handler raised: {e}", exc_info=True)
