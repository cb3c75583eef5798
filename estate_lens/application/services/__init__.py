"""Application services - orchestrate use cases."""

from .detector import SubjectDetector
from .rectifier import PerspectiveRectifier
from .compressor import ImageCompressor, compress_image
from .pipeline import PhotoPipeline, PipelineResult

__all__ = [
    'SubjectDetector',
    'PerspectiveRectifier',
    'ImageCompressor',
    'compress_image',
    'PhotoPipeline',
    'PipelineResult',
]
