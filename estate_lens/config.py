"""Configuration and constants for the Estate Lens project."""

from dataclasses import dataclass
from enum import Enum


class FacingMode(str, Enum):
    """Camera facing modes."""
    USER = "user"
    ENVIRONMENT = "environment"


class SubjectType(str, Enum):
    """Kinds of planar subject the detector reports."""
    BUILDING = "building"
    FACADE = "facade"
    DOCUMENT = "document"
    OBJECT = "object"


class VisionBackendChoice(str, Enum):
    """Vision backend selection."""
    AUTO = "auto"
    OPENCV = "opencv"
    HEURISTIC = "heuristic"


# Subject detection constants
@dataclass(frozen=True)
class DetectionConfig:
    """Configuration for quadrilateral subject detection."""
    blur_kernel: int = 5
    canny_low: int = 50
    canny_high: int = 150
    min_area_ratio: float = 0.1  # Contour must cover this share of the image
    approx_epsilon_ratio: float = 0.02  # Fraction of contour perimeter
    default_subject: SubjectType = SubjectType.BUILDING

    # Heuristic fallback
    fallback_margin_ratio: float = 0.1  # Of the shorter image side
    fallback_confidence: float = 0.6
    sobel_threshold: float = 128.0

    # Detection runs on a downscaled copy no larger than this
    analysis_max_size: int = 1280


DETECTION_CONFIG = DetectionConfig()


@dataclass(frozen=True)
class RectifyConfig:
    """Configuration for perspective rectification."""
    jpeg_quality: float = 0.9
    collinear_tolerance: float = 1e-6  # Relative to squared edge length


RECTIFY_CONFIG = RectifyConfig()


@dataclass(frozen=True)
class CaptureConfig:
    """Configuration for camera capture."""
    default_width: int = 1920
    default_height: int = 1080
    default_aspect_ratio: float = 16 / 9
    photo_quality: float = 0.9
    warmup_frames: int = 2  # Frames discarded while exposure settles


CAPTURE_CONFIG = CaptureConfig()

# Device index used for each facing mode when no explicit index is given
FACING_MODE_DEVICES: dict[FacingMode, int] = {
    FacingMode.ENVIRONMENT: 0,
    FacingMode.USER: 1,
}


# Compression
COMPRESSIBLE_FORMATS: tuple[str, ...] = ("JPEG", "WEBP")
PRESERVED_FORMATS: tuple[str, ...] = ("JPEG", "PNG", "WEBP")
# Pillow names for encodings of a preserved format (MPO is JPEG with extra frames)
FORMAT_ALIASES: dict[str, str] = {"MPO": "JPEG"}
MIN_COMPRESSION_QUALITY: float = 0.1
COMPRESSION_QUALITY_STEP: float = 0.1
COMPRESSION_SCALE_STEP: float = 0.9

CONTENT_TYPES: dict[str, str] = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

FORMAT_EXTENSIONS: dict[str, str] = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "WEBP": ".webp",
}

# File handling - formats Pillow can decode for the CLI
SUPPORTED_IMAGE_EXTENSIONS: tuple[str, ...] = (
    '.jpg', '.jpeg', '.jpe',
    '.png',
    '.bmp', '.dib',
    '.tiff', '.tif',
    '.webp',
    '.heic',
)

# Vision plugins
VISION_ENTRY_POINT_GROUP = "estate_lens.vision"
VISION_MODULE_NAME = "cv2"

# Environment
ENV_FILE = ".env"
ENV_PREFIX = "ESTATE_LENS_"
VISION_BACKEND_KEY = "ESTATE_LENS_VISION_BACKEND"
LOG_LEVEL_KEY = "ESTATE_LENS_LOG_LEVEL"


# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
