"""Domain layer - images, geometry and option models."""

from .entities.image import RasterImage, ImageFile, DetectedSubject, TransformResult
from .value_objects.config import (
    CompressionOptions,
    CaptureOptions,
    PipelineConfig,
    FacingMode,
    SubjectType,
    VisionBackendChoice,
)
from .value_objects.geometry import Point, BoundingBox, Quadrilateral, order_points

__all__ = [
    # Entities
    'RasterImage',
    'ImageFile',
    'DetectedSubject',
    'TransformResult',
    # Value Objects
    'CompressionOptions',
    'CaptureOptions',
    'PipelineConfig',
    'FacingMode',
    'SubjectType',
    'VisionBackendChoice',
    'Point',
    'BoundingBox',
    'Quadrilateral',
    'order_points',
]
