"""Camera adapters."""

from .opencv_camera import CameraStream, OpenCVCamera

__all__ = ['CameraStream', 'OpenCVCamera']
