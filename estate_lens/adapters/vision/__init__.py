"""Vision adapters - implementations of the VisionBackend port."""

from .heuristic_backend import HeuristicFallbackBackend
from .opencv_backend import NativeVisionBackend

__all__ = ['HeuristicFallbackBackend', 'NativeVisionBackend']
