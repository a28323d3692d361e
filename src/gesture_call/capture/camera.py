"""
Camera Capture Module
======================

Live webcam frames for the call window. Threaded capture keeps only the
latest frame so the display loop never waits on the device.
"""

import cv2
import time
import threading
import logging
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

logger = logging.getLogger(__name__)


class AcquisitionError(RuntimeError):
    """The camera could not be opened (missing device, permission denied, busy)."""


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    buffer_size: int = 1  # Minimal buffering for low latency
    threaded: bool = True
    flip_horizontal: bool = True  # Mirror view, like a video call preview
    warmup_frames: int = 5

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 640),
            height=config.get("height", 480),
            fps=config.get("fps", 30),
            buffer_size=config.get("buffer_size", 1),
            warmup_frames=config.get("warmup_frames", 5),
            flip_horizontal=config.get("flip_horizontal", True),
            threaded=config.get("threaded", True),
        )


@dataclass
class Frame:
    """Container for captured frame with metadata."""
    image: np.ndarray
    timestamp: float
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        """Convert BGR to RGB."""
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)

    @property
    def is_empty(self) -> bool:
        return self.image is None or self.image.size == 0


class Camera:
    """
    Webcam capture with optional threading.

    Example:
        >>> camera = Camera(CameraConfig())
        >>> try:
        ...     camera.acquire()
        ... except AcquisitionError as e:
        ...     print(f"Camera unavailable: {e}")
        >>> frame = camera.read()
        >>> camera.stop()
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_number = 0
        self._running = False

        # Threading components
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._latest_frame: Optional[Frame] = None

    def acquire(self) -> None:
        """
        Open the camera and start capturing.

        Raises:
            AcquisitionError: if no backend could deliver frames
        """
        if self._running:
            return

        logger.info("Starting camera (device=%d, %dx%d@%dfps)",
                    self.config.device_id, self.config.width, self.config.height, self.config.fps)

        for backend in [cv2.CAP_V4L2, cv2.CAP_ANY]:
            if backend == cv2.CAP_V4L2:
                logger.debug("Trying V4L2 backend...")
                self._cap = cv2.VideoCapture(self.config.device_id, backend)
            else:
                logger.debug("Trying default backend...")
                self._cap = cv2.VideoCapture(self.config.device_id)

            if not self._cap.isOpened():
                logger.warning("Backend failed, trying next...")
                self._cap.release()
                self._cap = None
                continue

            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
            self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

            # Verify we can actually read frames
            test_ret, test_frame = self._cap.read()
            if test_ret and test_frame is not None:
                break

            logger.warning("Can't read frames, trying next backend...")
            self._cap.release()
            self._cap = None

        if self._cap is None:
            raise AcquisitionError(f"cannot open camera device {self.config.device_id}")

        actual_width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = self._cap.get(cv2.CAP_PROP_FPS)
        logger.info("Camera initialized: %dx%d@%sfps", actual_width, actual_height, actual_fps)

        if self.config.warmup_frames > 0:
            logger.debug("Warming up camera (%d frames)...", self.config.warmup_frames)
            for _ in range(self.config.warmup_frames):
                self._cap.read()

        self._running = True
        self._frame_number = 0

        if self.config.threaded:
            self._thread = threading.Thread(target=self._capture_loop, name="CameraCapture", daemon=True)
            self._thread.start()
            logger.info("Started threaded capture")

    def start(self) -> bool:
        """
        Start camera capture.

        Returns:
            True if camera started successfully
        """
        try:
            self.acquire()
        except AcquisitionError as e:
            logger.error("Failed to start camera: %s", e)
            return False
        return True

    def stop(self) -> None:
        """Stop camera capture and release resources."""
        self._running = False

        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self._cap:
            self._cap.release()
            self._cap = None

        with self._lock:
            self._latest_frame = None

        logger.info("Camera stopped")

    def read(self) -> Optional[Frame]:
        """
        Read the latest frame.

        In threaded mode, returns the most recent captured frame.
        In synchronous mode, captures a new frame.

        Returns:
            Frame or None if no frame is available
        """
        if not self._running:
            return None

        if self.config.threaded:
            with self._lock:
                return self._latest_frame
        return self._capture_frame()

    def _capture_frame(self) -> Optional[Frame]:
        """Capture a single frame from the camera."""
        if not self._cap:
            return None

        ret, image = self._cap.read()

        if not ret or image is None:
            logger.debug("Failed to capture frame")
            return None

        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)

        self._frame_number += 1

        return Frame(
            image=image,
            timestamp=time.time(),
            frame_number=self._frame_number,
        )

    def _capture_loop(self) -> None:
        """Background thread for continuous frame capture."""
        while self._running:
            frame = self._capture_frame()
            if frame:
                with self._lock:
                    self._latest_frame = frame
            else:
                time.sleep(0.005)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self.config.width, self.config.height)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
