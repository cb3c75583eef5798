"""Estate Lens - subject detection, perspective correction and compression for property photos."""

__version__ = "1.0.0"

from .config import FacingMode, SubjectType, VisionBackendChoice
from .domain import (
    Point,
    BoundingBox,
    Quadrilateral,
    RasterImage,
    ImageFile,
    DetectedSubject,
    TransformResult,
    CompressionOptions,
    CaptureOptions,
    PipelineConfig,
)
from .application.services import (
    SubjectDetector,
    PerspectiveRectifier,
    ImageCompressor,
    compress_image,
    PhotoPipeline,
    PipelineResult,
)
from .exceptions import (
    EstateLensError,
    ConfigurationError,
    ValidationError,
    CameraUnavailable,
    VisionLibraryUnavailable,
    InvalidGeometry,
    CompressionFailed,
    SubjectNotFoundError,
)
from .utils.env import setup_logging

__all__ = [
    '__version__',
    'FacingMode',
    'SubjectType',
    'VisionBackendChoice',
    # Domain
    'Point',
    'BoundingBox',
    'Quadrilateral',
    'RasterImage',
    'ImageFile',
    'DetectedSubject',
    'TransformResult',
    'CompressionOptions',
    'CaptureOptions',
    'PipelineConfig',
    # Services
    'SubjectDetector',
    'PerspectiveRectifier',
    'ImageCompressor',
    'compress_image',
    'PhotoPipeline',
    'PipelineResult',
    'setup_logging',
    # Exceptions
    'EstateLensError',
    'ConfigurationError',
    'ValidationError',
    'CameraUnavailable',
    'VisionLibraryUnavailable',
    'InvalidGeometry',
    'CompressionFailed',
    'SubjectNotFoundError',
]
