"""Unit tests for option models and configuration constants."""

import pydantic
import pytest

from estate_lens.config import (
    CAPTURE_CONFIG,
    DETECTION_CONFIG,
    RECTIFY_CONFIG,
    FacingMode,
    SubjectType,
)
from estate_lens.domain.value_objects.config import (
    CaptureOptions,
    CompressionOptions,
    PipelineConfig,
)


class TestConstants:
    """Documented defaults."""

    def test_detection_defaults(self):
        assert DETECTION_CONFIG.blur_kernel == 5
        assert (DETECTION_CONFIG.canny_low, DETECTION_CONFIG.canny_high) == (50, 150)
        assert DETECTION_CONFIG.min_area_ratio == 0.1
        assert DETECTION_CONFIG.approx_epsilon_ratio == 0.02
        assert DETECTION_CONFIG.fallback_confidence == 0.6
        assert DETECTION_CONFIG.sobel_threshold == 128
        assert DETECTION_CONFIG.default_subject is SubjectType.BUILDING

    def test_rectify_defaults(self):
        assert RECTIFY_CONFIG.jpeg_quality == 0.9

    def test_configs_are_frozen(self):
        with pytest.raises(AttributeError):
            CAPTURE_CONFIG.default_width = 10


class TestCompressionOptions:
    """Tests for CompressionOptions."""

    def test_defaults(self):
        opts = CompressionOptions()
        assert opts.max_size_mb == 1
        assert opts.max_width_or_height == 1920
        assert opts.quality == 0.8
        assert opts.use_worker is True
        assert opts.file_type is None
        assert opts.max_bytes == 1024 * 1024

    @pytest.mark.parametrize("value,expected", [
        ("jpg", "JPEG"),
        ("image/jpeg", "JPEG"),
        ("png", "PNG"),
        ("image/webp", "WEBP"),
    ])
    def test_file_type_normalized(self, value, expected):
        assert CompressionOptions(file_type=value).file_type == expected

    @pytest.mark.parametrize("field,value", [
        ("quality", 0),
        ("quality", 1.5),
        ("max_size_mb", 0),
        ("max_width_or_height", 0),
    ])
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(pydantic.ValidationError):
            CompressionOptions(**{field: value})

    def test_frozen(self):
        opts = CompressionOptions()
        with pytest.raises(pydantic.ValidationError):
            opts.quality = 0.5


class TestCaptureOptions:
    """Tests for CaptureOptions."""

    def test_defaults(self):
        opts = CaptureOptions()
        assert opts.facing_mode is FacingMode.ENVIRONMENT
        assert (opts.width, opts.resolved_height) == (1920, 1080)

    def test_height_from_aspect_ratio(self):
        assert CaptureOptions(width=1920, height=None).resolved_height == 1080
        assert CaptureOptions(width=1200, height=None, aspect_ratio=4 / 3).resolved_height == 900

    def test_facing_mode_from_string(self):
        assert CaptureOptions(facing_mode="user").facing_mode is FacingMode.USER


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_defaults(self):
        config = PipelineConfig()
        assert config.vision_backend == "auto"
        assert config.target_size is None
        assert config.analysis_max_size == 1280
        assert config.compress is True

    def test_backend_normalized(self):
        assert PipelineConfig(vision_backend=" OpenCV ").vision_backend == "opencv"

    def test_target_size_pair(self):
        assert PipelineConfig(target_width=600, target_height=400).target_size == (600, 400)

    def test_target_size_needs_both(self):
        with pytest.raises(pydantic.ValidationError):
            PipelineConfig(target_width=600)
