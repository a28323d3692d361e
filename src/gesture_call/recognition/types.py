"""
Recognition Types
==================

Plain data types produced by the gesture recognizer for one detection
cycle. Kept free of MediaPipe imports so the detection loop and the call
state machine can be used (and tested) without the model runtime.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Tuple


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


FINGERTIPS = (
    LandmarkIndex.THUMB_TIP,
    LandmarkIndex.INDEX_TIP,
    LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP,
    LandmarkIndex.PINKY_TIP,
)


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float  # Depth relative to wrist

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates."""
        return (int(self.x * width), int(self.y * height))


@dataclass
class HandLandmarks:
    """Landmarks of one detected hand."""
    landmarks: List[Landmark]
    handedness: str = "Right"
    confidence: float = 0.0
    image_width: int = 640
    image_height: int = 480


class GestureLabel(Enum):
    """Canned gesture labels emitted by the MediaPipe gesture recognizer."""
    NONE = "None"
    CLOSED_FIST = "Closed_Fist"
    OPEN_PALM = "Open_Palm"
    POINTING_UP = "Pointing_Up"
    THUMB_DOWN = "Thumb_Down"
    THUMB_UP = "Thumb_Up"
    VICTORY = "Victory"
    I_LOVE_YOU = "ILoveYou"

    @classmethod
    def from_string(cls, name: Optional[str]) -> "GestureLabel":
        """Convert a label string to GestureLabel, mapping unknown values to NONE."""
        if isinstance(name, cls):
            return name
        if not name:
            return cls.NONE
        try:
            return cls(name)
        except ValueError:
            pass
        # Accept enum member names too ("THUMB_UP", "thumb_up")
        return cls.__members__.get(str(name).upper(), cls.NONE)

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ")


@dataclass(frozen=True)
class GestureCategory:
    """One ranked gesture classification for a hand."""
    label: GestureLabel
    score: float = 0.0


@dataclass
class RecognitionResult:
    """
    Output of one recognizer invocation.

    ``gestures`` is parallel to ``hands``: ``gestures[i]`` holds the ranked
    candidates for ``hands[i]``. It may be shorter than ``hands`` (or empty)
    when the classifier produced no categories.
    """
    hands: List[HandLandmarks] = field(default_factory=list)
    gestures: List[List[GestureCategory]] = field(default_factory=list)
    timestamp_ms: int = 0

    @classmethod
    def empty(cls, timestamp_ms: int = 0) -> "RecognitionResult":
        return cls(timestamp_ms=timestamp_ms)

    @property
    def hand_count(self) -> int:
        return len(self.hands)

    def top_gesture(self) -> Optional[GestureCategory]:
        """First-ranked candidate of the first hand only, if any."""
        if not self.gestures or not self.gestures[0]:
            return None
        return self.gestures[0][0]
