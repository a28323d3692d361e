"""Camera frame acquisition."""
from .camera import AcquisitionError, Camera, CameraConfig, Frame

__all__ = ["AcquisitionError", "Camera", "CameraConfig", "Frame"]
