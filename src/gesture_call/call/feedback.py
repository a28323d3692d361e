"""
Visual feedback for call decisions.
Shows a fading confirmation box when a call is accepted or declined.
"""

import time
import logging
from typing import Optional

import cv2
import numpy as np

from ..core.events import EventBus, Events
from .session import CallDecision

logger = logging.getLogger(__name__)


class DecisionFeedback:
    """Renders a short-lived confirmation overlay for call decisions."""

    _DISPLAY = {
        CallDecision.ACCEPTED: {"icon": "OK", "label": "ACCEPTED", "color": (0, 200, 0)},
        CallDecision.DECLINED: {"icon": "X", "label": "DECLINED", "color": (0, 0, 230)},
    }

    def __init__(self, event_bus: Optional[EventBus] = None,
                 duration: float = 1.5, fade_duration: float = 0.4):
        self._active = None
        self._duration = duration
        self._fade_duration = fade_duration

        if event_bus is not None:
            event_bus.subscribe(Events.CALL_DECIDED, self._on_call_decided)
            event_bus.subscribe(Events.CALL_STARTED, self._on_call_reset)
            event_bus.subscribe(Events.CALL_ENDED, self._on_call_reset)

    def _on_call_decided(self, decision=None, **kwargs):
        if decision is not None:
            self.trigger(decision)

    def _on_call_reset(self, **kwargs):
        self._active = None

    def trigger(self, decision: CallDecision):
        """Start the confirmation overlay for a decision."""
        display = self._DISPLAY[decision]
        self._active = dict(display, start_time=time.time())

    def render(self, frame: np.ndarray) -> np.ndarray:
        """Render the confirmation overlay on a BGR frame (in place)."""
        active = self._active
        if active is None:
            return frame

        elapsed = time.time() - active["start_time"]
        if elapsed > self._duration:
            self._active = None
            return frame

        # Fade out over the last part of the display time
        fade_start = self._duration - self._fade_duration
        if elapsed > fade_start:
            opacity = 1.0 - (elapsed - fade_start) / self._fade_duration
        else:
            opacity = 1.0

        h, w = frame.shape[:2]
        box_w, box_h = min(260, w - 20), 70
        x1 = (w - box_w) // 2
        y1 = (h - box_h) // 2

        overlay = frame.copy()
        cv2.rectangle(overlay, (x1, y1), (x1 + box_w, y1 + box_h), (40, 40, 40), -1)
        cv2.rectangle(overlay, (x1, y1), (x1 + box_w, y1 + box_h), active["color"], 2)
        cv2.addWeighted(overlay, opacity * 0.8, frame, 1 - opacity * 0.8, 0, frame)

        if opacity > 0.3:
            cv2.putText(frame, active["icon"], (x1 + 15, y1 + 47),
                        cv2.FONT_HERSHEY_SIMPLEX, 1.2, active["color"], 3)
            cv2.putText(frame, active["label"], (x1 + 80, y1 + 45),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.9, (255, 255, 255), 2)

        return frame

    @property
    def is_active(self) -> bool:
        if self._active is None:
            return False
        return time.time() - self._active["start_time"] <= self._duration
