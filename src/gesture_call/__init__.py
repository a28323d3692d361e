"""
Gesture Call Control
=====================

Accept or decline a simulated incoming call with hand gestures in front of
a webcam: thumbs up accepts, closed fist declines.

Modules:
    - capture: Camera frame acquisition
    - recognition: MediaPipe gesture recognizer and result types
    - core: Detection loop and event bus
    - call: Call session state machine and decision feedback
    - utils: Configuration, logging, performance monitoring, visualization
"""

__version__ = "1.0.0"
__author__ = "HCI Team"
