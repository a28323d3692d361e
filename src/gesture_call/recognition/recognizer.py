"""
Gesture Recognizer - MediaPipe Tasks API
=========================================

Wraps the MediaPipe ``GestureRecognizer`` task in VIDEO running mode and
provides a provider that loads it on a background thread so the camera
preview can start while the model is still loading.
"""

import logging
import threading
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from ..core.events import EventBus, Events
from ..utils.performance import Timer
from .types import GestureCategory, GestureLabel, HandLandmarks, Landmark, RecognitionResult

logger = logging.getLogger(__name__)

# Model download URL
GESTURE_RECOGNIZER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/gesture_recognizer/"
    "gesture_recognizer/float16/1/gesture_recognizer.task"
)
DEFAULT_MODEL_PATH = Path(__file__).resolve().parents[3] / "models" / "gesture_recognizer.task"


class RecognizerInitError(RuntimeError):
    """The gesture model could not be downloaded or loaded."""


class TimestampOrderError(RuntimeError):
    """VIDEO mode requires strictly increasing timestamps."""


@dataclass
class RecognizerConfig:
    """Configuration for the gesture recognizer."""
    model_path: str = ""
    model_url: str = GESTURE_RECOGNIZER_MODEL_URL
    num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, d: dict) -> "RecognizerConfig":
        """Create config from dictionary."""
        return cls(
            model_path=d.get("model_path", ""),
            model_url=d.get("model_url", GESTURE_RECOGNIZER_MODEL_URL),
            num_hands=d.get("num_hands", 1),
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
        )


def download_model(url: str, save_path: Path) -> bool:
    """Download the gesture recognizer model if not present."""
    if save_path.exists():
        logger.info("Model already exists at %s", save_path)
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading gesture recognizer model to %s...", save_path)
        urllib.request.urlretrieve(url, save_path)
        logger.info("Model download complete!")
        return True
    except OSError as e:
        logger.error("Failed to download model: %s", e)
        return False


def convert_result(mp_result, image_width: int, image_height: int,
                   timestamp_ms: int = 0) -> RecognitionResult:
    """Convert a MediaPipe ``GestureRecognizerResult`` into a RecognitionResult."""
    hands: List[HandLandmarks] = []
    for i, hand_landmarks in enumerate(mp_result.hand_landmarks or []):
        handedness = "Right"
        confidence = 0.0
        if mp_result.handedness and len(mp_result.handedness) > i and mp_result.handedness[i]:
            handedness = mp_result.handedness[i][0].category_name
            confidence = mp_result.handedness[i][0].score

        hands.append(HandLandmarks(
            landmarks=[Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in hand_landmarks],
            handedness=handedness,
            confidence=confidence,
            image_width=image_width,
            image_height=image_height,
        ))

    gestures = [
        [GestureCategory(GestureLabel.from_string(c.category_name), float(c.score)) for c in categories]
        for categories in (mp_result.gestures or [])
    ]

    return RecognitionResult(hands=hands, gestures=gestures, timestamp_ms=timestamp_ms)


class MediaPipeGestureRecognizer:
    """
    MediaPipe GestureRecognizer in VIDEO running mode.

    The task is stateful across frames: every call must carry a timestamp
    strictly greater than the previous one, and calls must not overlap.

    Example:
        >>> recognizer = MediaPipeGestureRecognizer.create(RecognizerConfig())
        >>> result = recognizer.recognize(frame, timestamp_ms=1000)
        >>> recognizer.close()
    """

    def __init__(self, task, config: Optional[RecognizerConfig] = None):
        self.config = config or RecognizerConfig()
        self._task = task
        self._last_timestamp_ms: Optional[int] = None

    @classmethod
    def create(cls, config: Optional[RecognizerConfig] = None) -> "MediaPipeGestureRecognizer":
        """Download (if needed) and load the model. Raises RecognizerInitError."""
        config = config or RecognizerConfig()
        model_path = Path(config.model_path) if config.model_path else DEFAULT_MODEL_PATH

        if not model_path.exists() and not download_model(config.model_url, model_path):
            raise RecognizerInitError(f"could not download model to {model_path}")

        options = vision.GestureRecognizerOptions(
            base_options=python.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=config.num_hands,
            min_hand_detection_confidence=config.min_detection_confidence,
            min_hand_presence_confidence=config.min_presence_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )

        try:
            task = vision.GestureRecognizer.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise RecognizerInitError(str(e)) from e

        logger.info("GestureRecognizer initialized with model: %s (max hands: %d)",
                    model_path, config.num_hands)
        return cls(task, config)

    def recognize(self, frame, timestamp_ms: int) -> RecognitionResult:
        """
        Recognize hand gestures in a captured frame.

        Args:
            frame: Captured Frame (BGR image with an ``rgb`` view)
            timestamp_ms: Strictly increasing timestamp in milliseconds

        Returns:
            RecognitionResult for this frame
        """
        if self._task is None:
            raise RuntimeError("GestureRecognizer is closed")
        if self._last_timestamp_ms is not None and timestamp_ms <= self._last_timestamp_ms:
            raise TimestampOrderError(
                f"timestamp {timestamp_ms}ms is not after previous {self._last_timestamp_ms}ms"
            )
        self._last_timestamp_ms = timestamp_ms

        rgb = frame.rgb
        height, width = rgb.shape[:2]
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        mp_result = self._task.recognize_for_video(mp_image, timestamp_ms)

        return convert_result(mp_result, width, height, timestamp_ms)

    def close(self) -> None:
        """Release resources."""
        if self._task is not None:
            self._task.close()
            self._task = None
            logger.info("GestureRecognizer closed")


class RecognizerProvider:
    """
    Loads the recognizer once, off the display thread.

    States: ``idle`` -> ``loading`` -> ``ready`` | ``failed``. A failed load
    is never retried automatically; ``retry()`` starts a new attempt.

    Example:
        >>> provider = RecognizerProvider(RecognizerConfig())
        >>> provider.initialize_async()
        >>> ...
        >>> if provider.ready:
        ...     result = provider.recognizer.recognize(frame, ts)
    """

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"

    def __init__(
        self,
        config: Optional[RecognizerConfig] = None,
        factory: Optional[Callable[[], object]] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config or RecognizerConfig()
        self._factory = factory or (lambda: MediaPipeGestureRecognizer.create(self.config))
        self._bus = event_bus
        self._lock = threading.Lock()
        self._state = self.IDLE
        self._recognizer = None
        self._error: Optional[Exception] = None
        self._thread: Optional[threading.Thread] = None
        # Bumped by close(); a load started before it is discarded
        self._generation = 0

    def initialize(self):
        """Load the recognizer on the calling thread.

        Returns:
            The loaded recognizer, or None if close() ran during the load

        Raises:
            RecognizerInitError: if loading failed
        """
        with self._lock:
            if self._state == self.READY:
                return self._recognizer
            self._state = self.LOADING
            self._error = None
            generation = self._generation

        try:
            with Timer("model_load") as t:
                recognizer = self._factory()
        except Exception as e:
            error = e if isinstance(e, RecognizerInitError) else RecognizerInitError(str(e))
            with self._lock:
                if generation == self._generation:
                    self._state = self.FAILED
                    self._error = error
            logger.error("Gesture model load failed: %s", error)
            if self._bus:
                self._bus.emit(Events.RECOGNIZER_FAILED, error=error)
            if error is e:
                raise
            raise error from e

        with self._lock:
            closed = generation != self._generation
            if not closed:
                self._recognizer = recognizer
                self._state = self.READY
        if closed:
            logger.info("Provider closed during load, discarding recognizer")
            if hasattr(recognizer, "close"):
                recognizer.close()
            return None
        logger.info("Gesture model loaded in %.0fms", t.elapsed_ms)
        if self._bus:
            self._bus.emit(Events.RECOGNIZER_READY)
        return recognizer

    def initialize_async(self) -> Optional[threading.Thread]:
        """Start loading on a background thread (no-op if already loading/ready)."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return self._thread
            if self._state == self.READY:
                return self._thread

            def _runner():
                try:
                    self.initialize()
                except RecognizerInitError:
                    # Recorded in self.error; surfaced through the status line
                    pass

            self._state = self.LOADING
            self._thread = threading.Thread(target=_runner, name="RecognizerLoader", daemon=True)
            self._thread.start()
            return self._thread

    def retry(self) -> bool:
        """Start a new load attempt after a failure. Returns True if started."""
        if self.state != self.FAILED:
            return False
        logger.info("Retrying gesture model load")
        self.initialize_async()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current load attempt finishes. Returns ``ready``."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.ready

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    @property
    def ready(self) -> bool:
        return self.state == self.READY

    @property
    def recognizer(self):
        with self._lock:
            return self._recognizer if self._state == self.READY else None

    @property
    def error(self) -> Optional[Exception]:
        with self._lock:
            return self._error

    def close(self) -> None:
        with self._lock:
            self._generation += 1
            recognizer, self._recognizer = self._recognizer, None
            self._state = self.IDLE
        if recognizer is not None and hasattr(recognizer, "close"):
            recognizer.close()
