"""Unit tests for image entities and the exception hierarchy."""

import io

import numpy as np
import pytest
from PIL import Image

from estate_lens.domain.entities.image import (
    DetectedSubject,
    ImageFile,
    RasterImage,
    TransformResult,
)
from estate_lens.domain.value_objects.geometry import Quadrilateral
from estate_lens.exceptions import (
    CameraUnavailable,
    CompressionFailed,
    EstateLensError,
    InvalidGeometry,
    SubjectNotFoundError,
    ValidationError,
)


class TestRasterImage:
    """Tests for RasterImage."""

    def test_pixels_are_read_only_copies(self):
        data = np.zeros((4, 6, 3), dtype=np.uint8)
        image = RasterImage(data)
        data[0, 0] = 255
        assert image.pixels[0, 0].tolist() == [0, 0, 0]
        with pytest.raises(ValueError):
            image.pixels[0, 0] = 1
        assert image.size == (6, 4)
        assert image.area == 24

    def test_gray_and_rgba_become_rgb(self):
        gray = RasterImage(np.full((3, 3), 7, dtype=np.uint8))
        assert gray.pixels.shape == (3, 3, 3)
        rgba = RasterImage(np.full((3, 3, 4), 9, dtype=np.uint8))
        assert rgba.pixels.shape == (3, 3, 3)

    def test_rejects_bad_input(self):
        with pytest.raises(ValidationError):
            RasterImage(np.zeros((3, 3, 3), dtype=np.float32))
        with pytest.raises(ValidationError):
            RasterImage(np.zeros((0, 3, 3), dtype=np.uint8))
        with pytest.raises(ValidationError):
            RasterImage(np.zeros((3, 3, 2), dtype=np.uint8))

    def test_from_bytes(self):
        buffer = io.BytesIO()
        Image.new("RGB", (5, 7), (10, 20, 30)).save(buffer, format="PNG")
        image = RasterImage.from_bytes(buffer.getvalue(), source_name="a.png")
        assert image.size == (5, 7)
        assert image.pixels[0, 0].tolist() == [10, 20, 30]
        assert image.to_pil().size == (5, 7)

    def test_from_bytes_garbage(self):
        with pytest.raises(ValidationError):
            RasterImage.from_bytes(b"not an image")


class TestImageFile:
    """Tests for ImageFile."""

    def test_from_path_sniffs_type(self, tmp_path):
        path = tmp_path / "x.bin"
        Image.new("RGB", (2, 2)).save(path, format="PNG")
        file = ImageFile.from_path(path)
        assert file.content_type == "image/png"
        assert file.name == "x.bin"
        assert file.size == path.stat().st_size

    def test_save(self, tmp_path):
        out = ImageFile("y.jpg", b"abc").save(tmp_path / "y.jpg")
        assert out.read_bytes() == b"abc"


class TestResults:
    """Tests for DetectedSubject and TransformResult."""

    def test_confidence_range(self):
        bounds = Quadrilateral.from_bbox(0, 0, 1, 1)
        with pytest.raises(ValidationError):
            DetectedSubject(bounds=bounds, confidence=1.5)
        subject = DetectedSubject(bounds=bounds, confidence=0.6, backend="heuristic")
        data = subject.to_dict()
        assert data["type"] == "building"
        assert data["bounds"][2] == {"x": 1, "y": 1}

    def test_corrected_bounds_are_target_rectangle(self):
        original = Quadrilateral.from_points([(5, 5), (60, 2), (58, 40), (3, 44)])
        result = TransformResult.for_target(b"jpeg", original, 600, 400)
        assert result.corrected_bounds.to_tuples() == [(0, 0), (600, 0), (600, 400), (0, 400)]
        assert result.to_file("out.jpg").content_type == "image/jpeg"


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_str_includes_code(self):
        error = InvalidGeometry("zero area", corners=[(0, 0)] * 4)
        assert str(error) == "[INVALID_GEOMETRY] zero area"
        assert error.corners == [(0, 0)] * 4
        assert isinstance(error, EstateLensError)

    def test_camera_unavailable(self):
        error = CameraUnavailable("no device", device_index=1)
        assert error.error_code == "CAMERA_UNAVAILABLE"
        assert error.device_index == 1

    def test_compression_failed_names_file(self):
        assert "(file: a.jpg)" in str(CompressionFailed("bad", file_name="a.jpg"))

    def test_subject_not_found_default(self):
        assert "corners required" in str(SubjectNotFoundError())
