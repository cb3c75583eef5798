"""Value objects - immutable data with validation."""

from .geometry import Point, BoundingBox, Quadrilateral, order_points, to_image_space
from .config import (
    CompressionOptions,
    CaptureOptions,
    PipelineConfig,
    FacingMode,
    SubjectType,
    VisionBackendChoice,
)

__all__ = [
    'Point',
    'BoundingBox',
    'Quadrilateral',
    'order_points',
    'to_image_space',
    'CompressionOptions',
    'CaptureOptions',
    'PipelineConfig',
    'FacingMode',
    'SubjectType',
    'VisionBackendChoice',
]
