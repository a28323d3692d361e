"""
Visualization Module
=====================

Overlay drawing for the call window: hand skeletons, status lines and the
incoming-call banner.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from ..recognition.types import FINGERTIPS, HandLandmarks


@dataclass
class OverlayStyle:
    """Visualization settings."""
    show_landmarks: bool = True
    show_connections: bool = True
    show_handedness: bool = False
    show_fps: bool = True

    # Canvas size; 0 keeps the camera frame size
    canvas_width: int = 0
    canvas_height: int = 0

    # Colors (BGR format)
    landmark_color: Tuple[int, int, int] = (0, 255, 0)       # Green
    fingertip_color: Tuple[int, int, int] = (0, 0, 255)      # Red
    connection_color: Tuple[int, int, int] = (255, 255, 255) # White
    text_color: Tuple[int, int, int] = (0, 255, 255)         # Yellow
    ringing_color: Tuple[int, int, int] = (0, 200, 255)      # Orange
    accepted_color: Tuple[int, int, int] = (0, 200, 0)
    declined_color: Tuple[int, int, int] = (0, 0, 230)

    landmark_radius: int = 4
    line_width: int = 2
    font_scale: float = 0.6
    font_thickness: int = 1

    @classmethod
    def from_dict(cls, config: dict) -> "OverlayStyle":
        """Create style from dictionary."""
        colors = config.get("colors", {})
        defaults = cls()
        return cls(
            show_landmarks=config.get("show_landmarks", True),
            show_connections=config.get("show_connections", True),
            show_handedness=config.get("show_handedness", False),
            show_fps=config.get("show_fps", True),
            canvas_width=config.get("canvas_width", 0),
            canvas_height=config.get("canvas_height", 0),
            landmark_color=tuple(colors.get("landmarks", defaults.landmark_color)),
            fingertip_color=tuple(colors.get("fingertips", defaults.fingertip_color)),
            connection_color=tuple(colors.get("connections", defaults.connection_color)),
            text_color=tuple(colors.get("text", defaults.text_color)),
            ringing_color=tuple(colors.get("ringing", defaults.ringing_color)),
            accepted_color=tuple(colors.get("accepted", defaults.accepted_color)),
            declined_color=tuple(colors.get("declined", defaults.declined_color)),
            landmark_radius=config.get("landmark_radius", 4),
            line_width=config.get("line_width", 2),
            font_scale=config.get("font_scale", 0.6),
            font_thickness=config.get("font_thickness", 1),
        )


class OverlayRenderer:
    """
    Draws feedback overlays onto BGR canvases.

    Example:
        >>> renderer = OverlayRenderer(OverlayStyle(canvas_width=320, canvas_height=240))
        >>> canvas = renderer.make_canvas(frame.image)
        >>> for hand in result.hands:
        ...     renderer.draw_hand(canvas, hand)
        >>> renderer.draw_status(canvas, ["Status: Model loaded"])
    """

    # Hand connection pairs for drawing skeleton
    HAND_CONNECTIONS = [
        (0, 1), (1, 2), (2, 3), (3, 4),         # Thumb
        (0, 5), (5, 6), (6, 7), (7, 8),         # Index
        (5, 9), (9, 10), (10, 11), (11, 12),    # Middle
        (9, 13), (13, 14), (14, 15), (15, 16),  # Ring
        (13, 17), (17, 18), (18, 19), (19, 20), # Pinky
        (0, 17),                                # Palm base
    ]

    def __init__(self, style: Optional[OverlayStyle] = None):
        self.style = style or OverlayStyle()
        self._font = cv2.FONT_HERSHEY_SIMPLEX

    def make_canvas(self, image: np.ndarray) -> np.ndarray:
        """Render a camera frame into a fresh canvas of the configured size."""
        width, height = self.style.canvas_width, self.style.canvas_height
        if width > 0 and height > 0 and image.shape[:2] != (height, width):
            return cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)
        return image.copy()

    def draw_hands(self, image: np.ndarray, hands: Sequence[HandLandmarks]) -> np.ndarray:
        """Draw all hands, in detection order."""
        for hand in hands:
            self.draw_hand(image, hand)
        return image

    def draw_hand(
        self,
        image: np.ndarray,
        hand: HandLandmarks,
        style: Optional[OverlayStyle] = None,
    ) -> np.ndarray:
        """
        Draw one hand's landmarks and connections.

        Landmarks are normalized, so they are scaled to this image's size
        rather than the size of the frame they were detected on.
        """
        style = style or self.style
        height, width = image.shape[:2]
        points = [lm.to_pixel(width, height) for lm in hand.landmarks]

        if style.show_connections:
            for start_idx, end_idx in self.HAND_CONNECTIONS:
                if start_idx < len(points) and end_idx < len(points):
                    cv2.line(image, points[start_idx], points[end_idx],
                             style.connection_color, style.line_width)

        if style.show_landmarks:
            for i, pos in enumerate(points):
                color = style.fingertip_color if i in FINGERTIPS else style.landmark_color
                cv2.circle(image, pos, style.landmark_radius, color, -1)

        if style.show_handedness and points:
            x, y = points[0]
            cv2.putText(image, f"{hand.handedness} ({hand.confidence:.2f})", (x - 40, y + 20),
                        self._font, 0.45, style.text_color, 1)

        return image

    def draw_status(self, image: np.ndarray, lines: List[str],
                    origin: Tuple[int, int] = (10, 22)) -> np.ndarray:
        """Draw status lines top-left with a dark backing for legibility."""
        x, y = origin
        line_height = int(26 * self.style.font_scale / 0.6)
        for line in lines:
            if not line:
                continue
            (tw, th), _ = cv2.getTextSize(line, self._font, self.style.font_scale,
                                          self.style.font_thickness)
            cv2.rectangle(image, (x - 4, y - th - 4), (x + tw + 4, y + 6), (0, 0, 0), -1)
            cv2.putText(image, line, (x, y), self._font, self.style.font_scale,
                        self.style.text_color, self.style.font_thickness)
            y += line_height
        return image

    def draw_call_banner(self, image: np.ndarray, text: str,
                         color: Optional[Tuple[int, int, int]] = None) -> np.ndarray:
        """Draw the call status as a bar along the bottom edge."""
        if not text:
            return image
        height, width = image.shape[:2]
        bar_h = 34
        color = color or self.style.ringing_color
        cv2.rectangle(image, (0, height - bar_h), (width, height), (30, 30, 30), -1)
        cv2.rectangle(image, (0, height - bar_h), (width, height), color, 2)

        scale = self.style.font_scale
        (tw, th), _ = cv2.getTextSize(text, self._font, scale, 2)
        # Shrink long messages to fit small canvases
        if tw > width - 20:
            scale *= (width - 20) / tw
            (tw, th), _ = cv2.getTextSize(text, self._font, scale, 2)
        cv2.putText(image, text, ((width - tw) // 2, height - (bar_h - th) // 2),
                    self._font, scale, (255, 255, 255), 2 if scale >= 0.5 else 1)
        return image

    def draw_performance(self, image: np.ndarray, fps: float) -> np.ndarray:
        if not self.style.show_fps:
            return image
        width = image.shape[1]
        cv2.putText(image, f"FPS: {fps:.1f}", (width - 95, 20),
                    self._font, 0.5, self.style.text_color, 1)
        return image
