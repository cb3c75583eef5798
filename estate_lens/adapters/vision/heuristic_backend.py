"""Heuristic fallback backend - works with numpy and Pillow only."""

from __future__ import annotations

import logging

import numpy as np

from ...application.ports.vision_backend import BackendResult, FailureReason, VisionBackend
from ...config import DETECTION_CONFIG, SubjectType
from ...core.image_ops import crop_and_scale, pixel_box, sobel_edges
from ...domain.entities.image import DetectedSubject, RasterImage
from ...domain.value_objects.geometry import Point, Quadrilateral

logger = logging.getLogger(__name__)


class HeuristicFallbackBackend(VisionBackend):
    """Adapter used when no native vision library is available.

    Detection does not infer a real quadrilateral. It measures edge density
    with a Sobel pass and then offers a fixed inset rectangle at moderate
    confidence so a human always has corners to adjust.

    Warping is a crop of the corners' bounding box scaled to the target
    size. It corrects translation and scale only, not skew or rotation,
    so results are lower fidelity than a true perspective transform.
    """

    def __init__(
        self,
        margin_ratio: float = DETECTION_CONFIG.fallback_margin_ratio,
        confidence: float = DETECTION_CONFIG.fallback_confidence,
        edge_threshold: float = DETECTION_CONFIG.sobel_threshold,
        subject_type: SubjectType = DETECTION_CONFIG.default_subject
    ):
        self._margin_ratio = margin_ratio
        self._confidence = confidence
        self._edge_threshold = edge_threshold
        self._subject_type = subject_type

    @property
    def name(self) -> str:
        return "heuristic"

    @property
    def is_native(self) -> bool:
        return False

    def edge_density(self, image: RasterImage) -> float:
        """Share of pixels whose Sobel magnitude exceeds the threshold."""
        edges = sobel_edges(image.pixels, self._edge_threshold)
        return float(np.count_nonzero(edges)) / edges.size

    def inset_rectangle(self, width: int, height: int) -> Quadrilateral:
        """Rectangle inset from every side by a share of the shorter side."""
        margin = min(width, height) * self._margin_ratio
        return Quadrilateral(
            Point(margin, margin),
            Point(width - margin, margin),
            Point(width - margin, height - margin),
            Point(margin, height - margin)
        )

    def find_quadrilateral(self, image: RasterImage) -> BackendResult[DetectedSubject]:
        density = self.edge_density(image)
        logger.debug(
            f"Heuristic detection on {image.width}x{image.height}: "
            f"edge density {density:.3f}"
        )
        return BackendResult.success(DetectedSubject(
            bounds=self.inset_rectangle(image.width, image.height),
            confidence=self._confidence,
            type=self._subject_type,
            backend=self.name
        ))

    def warp_perspective(
        self,
        image: RasterImage,
        corners: Quadrilateral,
        width: int,
        height: int
    ) -> BackendResult[np.ndarray]:
        box = pixel_box(corners.bounding_box, image.width, image.height)
        if box is None:
            return BackendResult.failed(
                FailureReason.INVALID_GEOMETRY,
                f"Corners {corners.to_tuples()} enclose no pixels of a "
                f"{image.width}x{image.height} image"
            )
        logger.debug(f"Crop+scale fallback: box {box} -> {width}x{height}")
        return BackendResult.success(crop_and_scale(image.pixels, box, width, height))
