"""Shared fixtures for estate_lens tests."""

import io

import numpy as np
import pytest
from PIL import Image, ImageDraw

from estate_lens.adapters.vision.heuristic_backend import HeuristicFallbackBackend
from estate_lens.domain.entities.image import ImageFile, RasterImage
from estate_lens.domain.value_objects.geometry import Point

# Skewed subject used by the end-to-end scenarios
SUBJECT_CORNERS = [Point(200, 300), Point(800, 250), Point(780, 700), Point(220, 650)]

QUADRANT_COLORS = {
    "top_left": (255, 64, 64),
    "top_right": (64, 255, 64),
    "bottom_right": (64, 128, 255),
    "bottom_left": (255, 255, 64),
}


def _bilinear(corners, u, v):
    tl, tr, br, bl = corners
    top = tl * (1 - u) + tr * u
    bottom = bl * (1 - u) + br * u
    p = top * (1 - v) + bottom * v
    return (p.x, p.y)


def draw_quadrant_subject(size=1000, corners=SUBJECT_CORNERS, background=(0, 0, 0)):
    """Draw a quadrilateral split into four colored quadrants on a plain background."""
    image = Image.new("RGB", (size, size), background)
    draw = ImageDraw.Draw(image)
    quadrants = {
        "top_left": (0.0, 0.0),
        "top_right": (0.5, 0.0),
        "bottom_right": (0.5, 0.5),
        "bottom_left": (0.0, 0.5),
    }
    for name, (u, v) in quadrants.items():
        polygon = [
            _bilinear(corners, u, v),
            _bilinear(corners, u + 0.5, v),
            _bilinear(corners, u + 0.5, v + 0.5),
            _bilinear(corners, u, v + 0.5),
        ]
        draw.polygon(polygon, fill=QUADRANT_COLORS[name])
    return np.array(image)


def encode(array, fmt="JPEG", **kwargs) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(array).save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


@pytest.fixture
def heuristic_backend():
    return HeuristicFallbackBackend()


@pytest.fixture
def native_backend():
    cv2 = pytest.importorskip("cv2")
    from estate_lens.adapters.vision.opencv_backend import NativeVisionBackend
    return NativeVisionBackend(cv2)


@pytest.fixture
def subject_image():
    return RasterImage(draw_quadrant_subject(), source_name="listing.jpg")


@pytest.fixture
def gradient_image():
    """Smooth 200x100 image that survives JPEG encoding well."""
    xs = np.linspace(0, 255, 200, dtype=np.float32)
    ys = np.linspace(0, 255, 100, dtype=np.float32)
    r = np.tile(xs, (100, 1))
    g = np.tile(ys[:, None], (1, 200))
    b = np.full((100, 200), 128, dtype=np.float32)
    return RasterImage(np.stack([r, g, b], axis=-1).astype(np.uint8), source_name="gradient.png")


@pytest.fixture
def jpeg_file():
    def _make(width=64, height=48, color=(120, 80, 40), name="photo.jpg", quality=95):
        array = np.zeros((height, width, 3), dtype=np.uint8)
        array[:] = color
        return ImageFile(name=name, data=encode(array, "JPEG", quality=quality))
    return _make
