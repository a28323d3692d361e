"""
Detection Loop
===============

One cycle per displayed frame: render the live frame, harvest the last
recognition, and submit the current frame to the recognizer if it is idle.

Recognition runs on a single worker thread so the preview never waits on
the model. At most one call is outstanding; frames that arrive while it is
busy are shown but not recognized.
"""

import time
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..call.session import CallPhase
from ..recognition.types import HandLandmarks
from .events import EventBus, Events

logger = logging.getLogger(__name__)


@dataclass
class LoopStats:
    """Counters for one DetectionLoop."""
    cycles: int = 0
    not_ready: int = 0
    recognitions: int = 0
    skipped_busy: int = 0
    errors: int = 0
    gestures_delivered: int = 0


class DetectionLoop:
    """
    Drives the recognizer from the display thread.

    Collaborators are duck-typed:
        provider      - ``ready`` and ``recognizer.recognize(frame, ts)``
        frame_source  - ``read() -> Frame | None``
        renderer      - ``make_canvas(image)`` and ``draw_hands(canvas, hands)``
        state_machine - ``snapshot()`` and ``handle_gesture(label, session_id, score)``

    Example:
        >>> loop = DetectionLoop(provider, camera, renderer, machine)
        >>> while running:
        ...     canvas = loop.tick()
        >>> loop.stop()
    """

    def __init__(
        self,
        provider,
        frame_source,
        renderer,
        state_machine,
        event_bus: Optional[EventBus] = None,
        performance=None,
    ):
        self.provider = provider
        self.frame_source = frame_source
        self.renderer = renderer
        self.state_machine = state_machine
        self._bus = event_bus
        self._perf = performance

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="Recognizer")
        self._pending: Optional[Future] = None
        self._pending_session_id: Optional[int] = None
        self._last_timestamp_ms = 0
        self._hands: List[HandLandmarks] = []
        self._stopped = threading.Event()
        self.stats = LoopStats()

    # --- Cycle ------------------------------------------------------------

    def tick(self) -> Optional[np.ndarray]:
        """
        Run one detection cycle.

        Returns:
            The annotated canvas, or None if the loop is stopped or not
            ready (no model yet, no frame, empty frame)
        """
        if self._stopped.is_set():
            return None

        try:
            return self._tick()
        except Exception:
            logger.exception("Detection cycle failed")
            self.stats.errors += 1
            return None

    def _tick(self) -> Optional[np.ndarray]:
        frame = self.frame_source.read() if self.provider.ready else None
        if frame is None or frame.image is None or frame.image.size == 0:
            self.stats.not_ready += 1
            return None

        self.stats.cycles += 1
        canvas = self.renderer.make_canvas(frame.image)

        harvested = self._harvest()

        session = self.state_machine.snapshot()
        if session.phase is CallPhase.RINGING:
            if self._pending is None:
                self._submit(frame, session.session_id)
            else:
                self.stats.skipped_busy += 1
                if self._perf:
                    self._perf.record_skip()
        else:
            self._hands = []

        # The deciding result is drawn once even though the call left RINGING
        hands = self._hands or harvested
        if hands:
            self.renderer.draw_hands(canvas, hands)
        return canvas

    def _submit(self, frame, session_id: int) -> None:
        recognizer = self.provider.recognizer
        if recognizer is None:
            return

        timestamp_ms = self._next_timestamp()

        def _run():
            if self._perf:
                with self._perf.measure("recognition"):
                    return recognizer.recognize(frame, timestamp_ms)
            return recognizer.recognize(frame, timestamp_ms)

        try:
            self._pending = self._executor.submit(_run)
        except RuntimeError:
            # Executor already shut down by stop()
            self._pending = None
            return
        self._pending_session_id = session_id
        self.stats.recognitions += 1

    def _harvest(self) -> List[HandLandmarks]:
        """Apply a finished recognition, if there is one.

        Returns:
            The hands of the applied result, empty if nothing was applied
        """
        future = self._pending
        if future is None or not future.done():
            return []
        session_id = self._pending_session_id
        self._pending = None
        self._pending_session_id = None

        if future.cancelled():
            return []
        error = future.exception()
        if error is not None:
            self.stats.errors += 1
            logger.warning("Gesture recognition failed: %s", error)
            if self._bus:
                self._bus.emit(Events.RECOGNITION_ERROR, error=error)
            return []

        result = future.result()
        session = self.state_machine.snapshot()
        if session.phase is not CallPhase.RINGING or session.session_id != session_id:
            logger.debug("Discarding result for stale session #%s", session_id)
            return []

        self._hands = list(result.hands)

        top = result.top_gesture()
        if top is None or session.decision is not None:
            return self._hands

        self.stats.gestures_delivered += 1
        if self._bus:
            self._bus.emit(Events.GESTURE_DETECTED, gesture=top.label, score=top.score,
                           session_id=session_id)
        self.state_machine.handle_gesture(top.label, session_id=session_id, score=top.score)
        return self._hands

    def _next_timestamp(self) -> int:
        now_ms = int(time.monotonic() * 1000)
        self._last_timestamp_ms = max(now_ms, self._last_timestamp_ms + 1)
        return self._last_timestamp_ms

    # --- Lifecycle --------------------------------------------------------

    def wait_pending(self, timeout: Optional[float] = None) -> bool:
        """Block until the outstanding recognition finishes. Returns True if none is left running."""
        future = self._pending
        if future is None:
            return True
        done, _ = wait_futures([future], timeout=timeout)
        return bool(done)

    def stop(self, wait: bool = False) -> None:
        """Cancel outstanding work; later ticks do nothing."""
        if self._stopped.is_set():
            return
        self._stopped.set()

        future = self._pending
        if future is not None:
            future.cancel()
        self._pending = None
        self._pending_session_id = None
        self._hands = []

        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.info("Detection loop stopped (%d cycles, %d recognitions, %d skipped, %d errors)",
                    self.stats.cycles, self.stats.recognitions,
                    self.stats.skipped_busy, self.stats.errors)

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    @property
    def hands(self) -> List[HandLandmarks]:
        """Landmarks currently drawn on each frame."""
        return list(self._hands)
