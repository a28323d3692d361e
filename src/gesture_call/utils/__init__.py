"""Utility modules for configuration, logging, performance and visualization."""
from .performance import PerformanceMonitor, Timer
from .visualization import OverlayRenderer, OverlayStyle

__all__ = ["PerformanceMonitor", "Timer", "OverlayRenderer", "OverlayStyle"]
