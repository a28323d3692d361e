"""
Performance Monitoring Module
==============================

Real-time metrics for the display loop: FPS, per-stage timing and
frames skipped while the recognizer was busy.
"""

import time
import logging
from dataclasses import dataclass
from typing import Optional, Dict
from collections import deque
from contextlib import contextmanager
import threading

logger = logging.getLogger(__name__)


class Timer:
    """
    High-precision timer for measuring code execution time.

    Example:
        >>> with Timer("model_load") as t:
        ...     recognizer = create_recognizer()
        >>> print(f"Took {t.elapsed_ms:.2f}ms")
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None
        self._elapsed: float = 0.0

    def start(self) -> "Timer":
        """Start the timer."""
        self._start_time = time.perf_counter()
        self._end_time = None
        return self

    def stop(self) -> float:
        """Stop the timer and return elapsed time in seconds."""
        self._end_time = time.perf_counter()
        if self._start_time:
            self._elapsed = self._end_time - self._start_time
        return self._elapsed

    @property
    def elapsed(self) -> float:
        """Get elapsed time in seconds."""
        if self._start_time is None:
            return 0.0
        if self._end_time is None:
            return time.perf_counter() - self._start_time
        return self._elapsed

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


@dataclass
class PerformanceMetrics:
    """Container for performance metrics snapshot."""
    fps: float = 0.0
    frame_time_ms: float = 0.0
    render_time_ms: float = 0.0
    recognition_time_ms: float = 0.0
    total_frames: int = 0
    skipped_frames: int = 0


class PerformanceMonitor:
    """
    Performance monitoring for the display loop.

    Tracks:
    - FPS (frames per second)
    - Per-stage latency ("render" on the display thread,
      "recognition" on the recognizer worker)
    - Frames whose recognition was skipped because a call was in flight

    Example:
        >>> monitor = PerformanceMonitor()
        >>> monitor.start()
        >>> while running:
        ...     monitor.frame_start()
        ...     with monitor.measure("render"):
        ...         canvas = loop.tick()
        ...     monitor.frame_complete()
    """

    def __init__(self, window_size: int = 30):
        """
        Args:
            window_size: Number of frames for rolling average
        """
        self.window_size = window_size
        self._frame_times: deque = deque(maxlen=window_size)
        self._stage_times: Dict[str, deque] = {}
        self._frame_start: Optional[float] = None
        self._total_frames: int = 0
        self._skipped_frames: int = 0
        self._lock = threading.Lock()

        self.target_fps: float = 25.0

    def start(self) -> None:
        """Start performance monitoring."""
        with self._lock:
            self._total_frames = 0
            self._skipped_frames = 0
            self._frame_times.clear()
            self._stage_times.clear()
        logger.info("Performance monitor started")

    def stop(self) -> None:
        logger.info("Performance monitor stopped. Total frames: %d, skipped: %d",
                    self._total_frames, self._skipped_frames)

    def frame_start(self) -> None:
        """Mark the start of frame processing."""
        self._frame_start = time.perf_counter()

    def frame_complete(self) -> None:
        """Mark frame processing complete and update metrics."""
        if self._frame_start is None:
            return

        frame_time = time.perf_counter() - self._frame_start

        with self._lock:
            self._frame_times.append(frame_time)
            self._total_frames += 1

        self._frame_start = None

    def record_skip(self) -> None:
        """Count a frame whose recognition was dropped (recognizer busy)."""
        with self._lock:
            self._skipped_frames += 1

    @contextmanager
    def measure(self, stage: str):
        """
        Context manager to measure a processing stage.

        Safe to use from the recognizer worker thread.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                if stage not in self._stage_times:
                    self._stage_times[stage] = deque(maxlen=self.window_size)
                self._stage_times[stage].append(elapsed)

    @property
    def fps(self) -> float:
        """Get current FPS (rolling average)."""
        with self._lock:
            if not self._frame_times:
                return 0.0
            avg_frame_time = sum(self._frame_times) / len(self._frame_times)
            return 1.0 / avg_frame_time if avg_frame_time > 0 else 0.0

    @property
    def frame_time_ms(self) -> float:
        """Get average frame time in milliseconds."""
        with self._lock:
            if not self._frame_times:
                return 0.0
            return (sum(self._frame_times) / len(self._frame_times)) * 1000

    def stage_time_ms(self, stage: str) -> float:
        """Get average time for a specific stage in milliseconds."""
        with self._lock:
            if stage not in self._stage_times or not self._stage_times[stage]:
                return 0.0
            times = self._stage_times[stage]
            return (sum(times) / len(times)) * 1000

    @property
    def skipped_frames(self) -> int:
        return self._skipped_frames

    def get_metrics(self) -> PerformanceMetrics:
        """Get current performance metrics snapshot."""
        return PerformanceMetrics(
            fps=self.fps,
            frame_time_ms=self.frame_time_ms,
            render_time_ms=self.stage_time_ms("render"),
            recognition_time_ms=self.stage_time_ms("recognition"),
            total_frames=self._total_frames,
            skipped_frames=self._skipped_frames,
        )

    def get_report(self) -> str:
        """Get formatted performance report string."""
        metrics = self.get_metrics()

        status = "OK" if metrics.fps >= self.target_fps else "BELOW TARGET"

        return (
            f"Performance Report ({status})\n"
            f"{'=' * 40}\n"
            f"FPS: {metrics.fps:.1f} (target: >={self.target_fps})\n"
            f"Frame Time: {metrics.frame_time_ms:.1f}ms\n"
            f"\nPer-Stage Breakdown:\n"
            f"  Render: {metrics.render_time_ms:.2f}ms\n"
            f"  Recognition: {metrics.recognition_time_ms:.2f}ms\n"
            f"\nFrame Stats:\n"
            f"  Total: {metrics.total_frames}\n"
            f"  Recognition skipped (busy): {metrics.skipped_frames} "
            f"({100 * metrics.skipped_frames / max(1, metrics.total_frames):.1f}%)\n"
        )
