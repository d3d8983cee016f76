"""Sound classification using ONNX Runtime."""
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple
import numpy as np
from scipy import signal
from soundml.audio.models import AudioBuffer, AudioFormat, WindowDuration
from soundml.classifiers.base import ClassifierObserver, SoundClassifier
from soundml.core.config import settings
from soundml.core.errors import ClassificationError, ConstructionError
from soundml.core.logging import logger
from soundml.matching.sound import Classification


def load_labels(labels_path: str) -> List[str]:
    """
    Load class labels, one per line, in model output order.

    Args:
        labels_path: Path to the labels text file

    Returns:
        List of labels
    """
    with open(labels_path, encoding="utf-8") as f:
        labels = [line.strip() for line in f if line.strip()]
    if not labels:
        raise ValueError(f"No labels found in {labels_path}")
    return labels


def load_session(model_path: str) -> object:
    """
    Create an ONNX Runtime inference session for a sound classification model.

    Args:
        model_path: Path to ONNX model file

    Returns:
        ONNX InferenceSession
    """
    import onnxruntime as ort

    # Use CPU provider for low latency
    providers = ['CPUExecutionProvider']

    sess_options = ort.SessionOptions()
    sess_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_BASIC
    sess_options.execution_mode = ort.ExecutionMode.ORT_SEQUENTIAL
    sess_options.inter_op_num_threads = 1  # Analysis already runs on its own serial thread
    sess_options.intra_op_num_threads = 1

    session = ort.InferenceSession(
        model_path,
        sess_options=sess_options,
        providers=providers
    )
    logger.info(f"ONNX model loaded: {model_path}")
    logger.debug(f"  Input names: {[inp.name for inp in session.get_inputs()]}")
    logger.debug(f"  Input shapes: {[inp.shape for inp in session.get_inputs()]}")
    logger.debug(f"  Output shapes: {[out.shape for out in session.get_outputs()]}")
    return session


class OnnxSoundClassifier(SoundClassifier):
    """
    Streaming classifier backed by an ONNX audio event model.

    The model takes a float32 mono waveform at `model_sample_rate` and returns
    one score per label (YAMNet-style models returning per-frame scores are
    averaged over frames). Incoming audio is downmixed and kept at the capture
    rate; each window of the request's duration is resampled from that
    continuous stream, so buffer boundaries leave no trace in what the model
    sees. Consecutive windows overlap by `overlap` of their length. Each full
    window produces one batch of classifications, highest confidence first.
    """

    def __init__(
        self,
        audio_format: AudioFormat,
        model_path: Optional[str] = None,
        labels_path: Optional[str] = None,
        model_sample_rate: Optional[int] = None,
        overlap: Optional[float] = None,
        session: Optional[object] = None,
        labels: Optional[Sequence[str]] = None,
    ):
        """
        Load the model and bind the classifier to an audio format.

        Args:
            audio_format: Format of the buffers this instance will receive
            model_path: Path to ONNX model file (if None, uses config value)
            labels_path: Path to labels file (if None, uses config value)
            model_sample_rate: Rate the model expects (if None, uses config value)
            overlap: Window overlap factor in [0, 1) (if None, uses config value)
            session: Preloaded inference session, skips model loading
            labels: Preloaded labels, skips reading the labels file

        Raises:
            ConstructionError: model, labels or format unusable
        """
        super().__init__(audio_format)
        self.model_sample_rate = model_sample_rate or settings.model_sample_rate
        self.overlap = settings.window_overlap if overlap is None else overlap
        if not 0.0 <= self.overlap < 1.0:
            raise ConstructionError(f"Window overlap must be in [0, 1), got {self.overlap}")

        try:
            self.labels = list(labels) if labels is not None else load_labels(labels_path or settings.labels_path)
            self.session = session if session is not None else load_session(model_path or settings.onnx_model_path)
        except ImportError as e:
            raise ConstructionError("onnxruntime not installed. Install with: pip install onnxruntime") from e
        except Exception as e:
            raise ConstructionError(f"Cannot load sound classification model: {e}") from e

        # Rational resampling factor from the capture rate to the model rate
        ratio = Fraction(self.model_sample_rate) / Fraction(audio_format.sample_rate).limit_denominator(1000)
        ratio = ratio.limit_denominator(1000)
        self._up, self._down = ratio.numerator, ratio.denominator
        # Input samples of context either side of a window; resample_poly's filter half length
        self._margin = 0 if ratio == 1 else int(np.ceil(10 * max(self._up, self._down) / self._up)) + 1

        self._input = self.session.get_inputs()[0]
        self._pending = np.zeros(0, dtype=np.float32)  # mono capture-rate audio
        self._pending_start = 0  # input index of _pending[0]
        self._next_output = 0  # model-rate index where the next window starts
        self._next_position: Optional[int] = None
        self._window_samples = 0
        self._hop_samples = 0

    def add_request(self, window: WindowDuration, observer: ClassifierObserver) -> None:
        window_samples = int(round(window.seconds * self.model_sample_rate))
        if window_samples <= 0:
            raise ConstructionError(f"Window of {window.seconds}s is too short for a {self.model_sample_rate} Hz model")
        self._window_samples = window_samples
        self._hop_samples = max(1, int(round(window_samples * (1.0 - self.overlap))))
        super().add_request(window, observer)

    def analyze(self, buffer: AudioBuffer, sample_position: int) -> None:
        if self.observer is None:
            return

        # A gap in sample positions means the pending audio is no longer contiguous
        if self._next_position is not None and sample_position != self._next_position:
            logger.debug(f"Sample position jumped {self._next_position} -> {sample_position}, resetting window")
            self._reset_stream()
        self._next_position = sample_position + buffer.frame_length
        self._pending = np.concatenate([self._pending, buffer.as_float_mono()])

        while self.observer is not None:
            window = self._next_window()
            if window is None:
                return
            try:
                classifications = self._classify(window)
            except Exception as e:
                logger.error(f"Sound classification inference failed: {e}", exc_info=True)
                self.observer.on_error(ClassificationError(f"Inference failed: {e}"))
                return
            self.observer.on_result(classifications)

    def remove_all_requests(self) -> None:
        super().remove_all_requests()
        self._reset_stream()
        self._next_position = None

    def _reset_stream(self) -> None:
        self._pending = np.zeros(0, dtype=np.float32)
        self._pending_start = 0
        self._next_output = 0

    def _segment_bounds(self, output_start: int) -> Tuple[int, int]:
        """
        Input span whose resampling yields the window starting at `output_start`.

        The span starts on a multiple of the decimation factor so its resampled
        samples line up with those of the whole stream, and carries `_margin`
        samples of context on both sides so the filter never sees the edges.
        """
        first = output_start * self._down / self._up - self._margin
        start = max(0, int(np.floor(first / self._down)) * self._down)
        end = int(np.ceil((output_start + self._window_samples) * self._down / self._up)) + self._margin
        return start, end

    def _next_window(self) -> Optional[np.ndarray]:
        """Cut the next model-rate window once enough input has arrived."""
        start, end = self._segment_bounds(self._next_output)
        if self._pending_start + self._pending.size < end:
            return None

        segment = self._pending[start - self._pending_start:end - self._pending_start]
        if self._margin:
            segment = signal.resample_poly(segment, self._up, self._down)
        offset = self._next_output - start * self._up // self._down
        window = segment[offset:offset + self._window_samples].astype(np.float32)

        # Drop input no later window needs
        self._next_output += self._hop_samples
        keep_from, _ = self._segment_bounds(self._next_output)
        if keep_from > self._pending_start:
            self._pending = self._pending[keep_from - self._pending_start:]
            self._pending_start = keep_from
        return window

    def _classify(self, window: np.ndarray) -> List[Classification]:
        """Run the model on one window and map scores to labels."""
        model_input = window if len(self._input.shape or []) <= 1 else window[np.newaxis, :]
        outputs = self.session.run(None, {self._input.name: model_input.astype(np.float32)})

        scores = np.asarray(outputs[0], dtype=np.float32)
        if scores.ndim > 1:
            scores = scores.reshape(-1, scores.shape[-1]).mean(axis=0)
        if scores.shape[0] != len(self.labels):
            raise ClassificationError(f"Model returned {scores.shape[0]} scores for {len(self.labels)} labels")

        scores = np.clip(scores, 0.0, 1.0)
        order = np.argsort(-scores, kind="stable")
        return [Classification(label=self.labels[i], confidence=float(scores[i])) for i in order]
