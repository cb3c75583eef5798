"""Configuration value objects with validation."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...config import (
    CAPTURE_CONFIG,
    DETECTION_CONFIG,
    RECTIFY_CONFIG,
    FacingMode,
    SubjectType,
    VisionBackendChoice,
)


class CompressionOptions(BaseModel):
    """Target constraints for upload compression."""

    model_config = {"frozen": True}

    max_size_mb: float = Field(default=1.0, gt=0)
    max_width_or_height: int = Field(default=1920, ge=1)
    quality: float = Field(default=0.8, gt=0, le=1)
    use_worker: bool = True
    max_iterations: int = Field(default=10, ge=1, le=50)
    file_type: Optional[str] = None  # Pillow format name, e.g. "JPEG"

    @field_validator('file_type')
    @classmethod
    def normalize_file_type(cls, v: Optional[str]) -> Optional[str]:
        """Accept 'jpg', 'image/jpeg' and friends."""
        if v is None:
            return v
        name = v.strip().upper()
        if name.startswith("IMAGE/"):
            name = name.split("/", 1)[1]
        if name in ("JPG", "JPE"):
            name = "JPEG"
        return name

    @property
    def max_bytes(self) -> int:
        return int(self.max_size_mb * 1024 * 1024)


class CaptureOptions(BaseModel):
    """Camera stream constraints."""

    model_config = {"frozen": True}

    facing_mode: FacingMode = FacingMode.ENVIRONMENT
    width: int = Field(default=CAPTURE_CONFIG.default_width, ge=1)
    height: Optional[int] = Field(default=CAPTURE_CONFIG.default_height, ge=1)
    aspect_ratio: float = Field(default=CAPTURE_CONFIG.default_aspect_ratio, gt=0)
    device_index: Optional[int] = Field(default=None, ge=0)

    @property
    def resolved_height(self) -> int:
        """Requested height, derived from the aspect ratio when unset."""
        if self.height is not None:
            return self.height
        return max(1, round(self.width / self.aspect_ratio))


class PipelineConfig(BaseModel):
    """Configuration for a capture-to-upload flow."""

    model_config = {"validate_assignment": True}

    vision_backend: str = VisionBackendChoice.AUTO.value
    subject_type: SubjectType = DETECTION_CONFIG.default_subject
    analysis_max_size: Optional[int] = Field(
        default=DETECTION_CONFIG.analysis_max_size, ge=16
    )

    # None for both means: derive from the quadrilateral's edge lengths
    target_width: Optional[int] = Field(default=None, ge=1, le=20000)
    target_height: Optional[int] = Field(default=None, ge=1, le=20000)
    jpeg_quality: float = Field(default=RECTIFY_CONFIG.jpeg_quality, gt=0, le=1)

    compress: bool = True
    compression: CompressionOptions = Field(default_factory=CompressionOptions)

    @field_validator('vision_backend')
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode='after')
    def check_target_size(self) -> PipelineConfig:
        """Target size is given as both dimensions or neither."""
        if (self.target_width is None) != (self.target_height is None):
            raise ValueError("target_width and target_height must be set together")
        return self

    @property
    def target_size(self) -> Optional[tuple[int, int]]:
        if self.target_width is None or self.target_height is None:
            return None
        return self.target_width, self.target_height


__all__ = [
    'CompressionOptions',
    'CaptureOptions',
    'PipelineConfig',
    'FacingMode',
    'SubjectType',
    'VisionBackendChoice',
]
