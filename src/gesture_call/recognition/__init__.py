"""Gesture recognition module."""
from .types import (
    GestureCategory,
    GestureLabel,
    HandLandmarks,
    Landmark,
    LandmarkIndex,
    RecognitionResult,
)

_RECOGNIZER_NAMES = (
    "MediaPipeGestureRecognizer",
    "RecognizerConfig",
    "RecognizerInitError",
    "RecognizerProvider",
    "TimestampOrderError",
)


def __getattr__(name):
    # Keep mediapipe out of imports that only need the result types
    if name in _RECOGNIZER_NAMES:
        from . import recognizer

        return getattr(recognizer, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GestureCategory",
    "GestureLabel",
    "HandLandmarks",
    "Landmark",
    "LandmarkIndex",
    "RecognitionResult",
    *_RECOGNIZER_NAMES,
]
