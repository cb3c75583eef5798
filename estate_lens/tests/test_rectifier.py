"""Tests for perspective rectification."""

import numpy as np
import pytest

from estate_lens.application.ports.vision_backend import BackendResult, FailureReason
from estate_lens.application.services.rectifier import PerspectiveRectifier
from estate_lens.domain.entities.image import RasterImage
from estate_lens.domain.value_objects.geometry import Point, Quadrilateral
from estate_lens.exceptions import InvalidGeometry, ValidationError

from .conftest import QUADRANT_COLORS, SUBJECT_CORNERS

BACKENDS = ["heuristic_backend", "native_backend"]


class FailingWarpBackend:
    """Backend whose warp always fails or raises."""

    name = "failing"
    is_native = True

    def __init__(self, error=None):
        self.error = error

    def find_quadrilateral(self, image):
        raise NotImplementedError

    def warp_perspective(self, image, corners, width, height):
        if self.error is not None:
            raise self.error
        return BackendResult.failed(FailureReason.BACKEND_ERROR, "warp failed")


def _decode(data: bytes) -> np.ndarray:
    return RasterImage.from_bytes(data).pixels.astype(np.int16)


@pytest.fixture(params=BACKENDS)
def rectifier(request):
    return PerspectiveRectifier(request.getfixturevalue(request.param))


class TestRoundTrip:
    """Axis-aligned rectangles come back unchanged on both paths."""

    def test_same_size_crop(self, rectifier, gradient_image):
        corners = Quadrilateral.from_bbox(20, 10, 100, 50)
        out = _decode(rectifier.rectify(gradient_image, corners, 100, 50))
        crop = gradient_image.pixels[10:60, 20:120].astype(np.int16)

        assert out.shape == crop.shape
        assert np.abs(out - crop).mean() < 3

    def test_uniform_crop_resized(self, rectifier):
        pixels = np.zeros((200, 300, 3), dtype=np.uint8)
        pixels[50:150, 100:250] = (200, 40, 40)
        image = RasterImage(pixels)
        out = _decode(rectifier.rectify(image, Quadrilateral.from_bbox(100, 50, 150, 100), 60, 40))

        assert out.shape == (40, 60, 3)
        assert np.abs(out - np.array([200, 40, 40])).max() < 12

    def test_input_not_modified(self, rectifier, gradient_image):
        before = gradient_image.pixels.copy()
        rectifier.rectify(gradient_image, Quadrilateral.from_bbox(0, 0, 50, 50), 30, 30)
        assert np.array_equal(gradient_image.pixels, before)


class TestCornerOrdering:
    """Corners may arrive in any order."""

    def test_unordered_equals_ordered(self, rectifier, subject_image):
        ordered = Quadrilateral(*SUBJECT_CORNERS)
        tl, tr, br, bl = SUBJECT_CORNERS
        shuffled = [br, tl, bl, tr]
        assert (
            rectifier.rectify(subject_image, ordered, 300, 200)
            == rectifier.rectify(subject_image, shuffled, 300, 200)
        )

    def test_accepts_mappings(self, rectifier, gradient_image):
        corners = [{"x": 0, "y": 0}, {"x": 50, "y": 0}, {"x": 50, "y": 50}, {"x": 0, "y": 50}]
        result = rectifier.transform(gradient_image, corners, 20, 20)
        assert (result.width, result.height) == (20, 20)
        assert result.original_bounds.is_ordered


class TestGeometryErrors:
    """Degenerate corners signal InvalidGeometry."""

    def test_collinear_points(self, rectifier, gradient_image):
        corners = [Point(10, 50), Point(50, 50), Point(100, 50), Point(150, 50)]
        with pytest.raises(InvalidGeometry) as excinfo:
            rectifier.rectify(gradient_image, corners, 100, 100)
        assert len(excinfo.value.corners) == 4

    def test_vertical_line(self, rectifier, gradient_image):
        corners = [(30, 0), (30, 20), (30, 40), (30, 90)]
        with pytest.raises(InvalidGeometry):
            rectifier.rectify(gradient_image, corners, 100, 100)

    def test_outside_image(self, rectifier, gradient_image):
        corners = Quadrilateral.from_bbox(500, 500, 100, 100)
        with pytest.raises(InvalidGeometry):
            rectifier.rectify(gradient_image, corners, 100, 100)

    def test_wrong_point_count(self, rectifier, gradient_image):
        with pytest.raises(ValidationError):
            rectifier.rectify(gradient_image, [(0, 0), (10, 0), (10, 10)], 10, 10)


class TestTargetSize:
    """Output size handling."""

    def test_natural_size_when_omitted(self, rectifier, subject_image):
        result = rectifier.transform(subject_image, SUBJECT_CORNERS)
        assert (result.width, result.height) == (602, 450)
        assert _decode(result.corrected_image).shape == (450, 602, 3)

    def test_single_dimension_rejected(self, rectifier, gradient_image):
        with pytest.raises(ValidationError):
            rectifier.transform(gradient_image, Quadrilateral.from_bbox(0, 0, 10, 10), 100)

    def test_non_positive_rejected(self, rectifier, gradient_image):
        with pytest.raises(ValidationError):
            rectifier.transform(gradient_image, Quadrilateral.from_bbox(0, 0, 10, 10), 0, 10)

    def test_corrected_bounds(self, rectifier, gradient_image):
        result = rectifier.transform(gradient_image, Quadrilateral.from_bbox(0, 0, 10, 10), 64, 32)
        assert result.corrected_bounds.to_tuples() == [(0, 0), (64, 0), (64, 32), (0, 32)]


class TestApproximateFlag:
    """Which path produced the output is reported."""

    def test_heuristic_is_approximate(self, heuristic_backend, gradient_image):
        result = PerspectiveRectifier(heuristic_backend).transform(
            gradient_image, Quadrilateral.from_bbox(0, 0, 50, 50), 50, 50
        )
        assert result.approximate

    def test_native_is_exact(self, native_backend, gradient_image):
        result = PerspectiveRectifier(native_backend).transform(
            gradient_image, Quadrilateral.from_bbox(0, 0, 50, 50), 50, 50
        )
        assert not result.approximate

    def test_native_collinear_triple_falls_back(self, native_backend, gradient_image):
        corners = [(0, 0), (50, 50), (100, 100), (0, 100)]
        result = PerspectiveRectifier(native_backend).transform(gradient_image, corners, 40, 40)
        assert result.approximate
        assert (result.width, result.height) == (40, 40)

    @pytest.mark.parametrize("error", [None, RuntimeError("gpu lost")])
    def test_primary_failure_falls_back(self, gradient_image, error):
        rectifier = PerspectiveRectifier(FailingWarpBackend(error))
        result = rectifier.transform(gradient_image, Quadrilateral.from_bbox(0, 0, 50, 50), 25, 25)
        assert result.approximate
        assert _decode(result.corrected_image).shape == (25, 25, 3)


def test_skewed_subject_maps_corners(native_backend, subject_image):
    """A skewed quadrilateral lands upright, neither mirrored nor transposed."""
    result = PerspectiveRectifier(native_backend).transform(subject_image, SUBJECT_CORNERS, 600, 400)
    out = _decode(result.corrected_image)

    samples = {
        "top_left": out[30, 30],
        "top_right": out[30, 570],
        "bottom_right": out[370, 570],
        "bottom_left": out[370, 30],
    }
    for name, pixel in samples.items():
        assert np.abs(pixel - np.array(QUADRANT_COLORS[name])).max() < 40, name
