"""Detection loop and event bus."""
from .events import EventBus, Events
from .detection_loop import DetectionLoop, LoopStats

__all__ = ["EventBus", "Events", "DetectionLoop", "LoopStats"]
