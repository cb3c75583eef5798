"""Perspective rectification service."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional, Union

import numpy as np

from ...config import RECTIFY_CONFIG
from ...core.image_ops import encode_image, pixel_box
from ...domain.entities.image import RasterImage, TransformResult
from ...domain.value_objects.geometry import PointLike, Quadrilateral
from ...exceptions import InvalidGeometry, ValidationError
from ..ports.vision_backend import BackendResult, FailureReason, VisionBackend

logger = logging.getLogger(__name__)

Corners = Union[Quadrilateral, Iterable[PointLike]]


class PerspectiveRectifier:
    """Map a quadrilateral of an image onto an axis-aligned rectangle.

    The injected backend performs the warp. When it fails (no native
    library, singular homography, runtime error) the fallback crops the
    corners' bounding box and scales it, which does not remove skew; the
    result is flagged ``approximate``.
    """

    def __init__(
        self,
        backend: VisionBackend,
        fallback: Optional[VisionBackend] = None,
        jpeg_quality: float = RECTIFY_CONFIG.jpeg_quality
    ):
        if fallback is None:
            from ...adapters.vision.heuristic_backend import HeuristicFallbackBackend
            fallback = HeuristicFallbackBackend()
        self._backend = backend
        self._fallback = fallback
        self._jpeg_quality = jpeg_quality

    def rectify(
        self,
        image: RasterImage,
        corners: Corners,
        target_width: Optional[int] = None,
        target_height: Optional[int] = None
    ) -> bytes:
        """Rectify and return JPEG bytes.

        Args:
            image: Source image (not modified)
            corners: Four corners in any order
            target_width: Output width (derived from the corners if None)
            target_height: Output height (derived from the corners if None)

        Returns:
            JPEG-encoded rectified image

        Raises:
            InvalidGeometry: If the corners enclose no area of the image
        """
        return self.transform(image, corners, target_width, target_height).corrected_image

    def transform(
        self,
        image: RasterImage,
        corners: Corners,
        target_width: Optional[int] = None,
        target_height: Optional[int] = None
    ) -> TransformResult:
        """Rectify and return the image with its original and target bounds.

        Args:
            image: Source image (not modified)
            corners: Four corners in any order
            target_width: Output width (derived from the corners if None)
            target_height: Output height (derived from the corners if None)

        Returns:
            TransformResult with JPEG bytes

        Raises:
            InvalidGeometry: If the corners enclose no area of the image
            ValidationError: If only one target dimension is given
        """
        quad = corners if isinstance(corners, Quadrilateral) else Quadrilateral.from_points(corners)
        ordered = quad.ordered()

        if pixel_box(ordered.bounding_box, image.width, image.height) is None:
            raise InvalidGeometry(
                f"Corners {ordered.to_tuples()} have a zero-area bounding box "
                f"inside the {image.width}x{image.height} image",
                corners=ordered.to_tuples()
            )

        width, height = self._target_size(ordered, target_width, target_height)

        approximate = False
        result = _attempt(self._backend, image, ordered, width, height)
        if not result.ok and self._fallback is not self._backend:
            logger.warning(
                f"{self._backend.name} warp failed ({result.failure.value}: "
                f"{result.detail}); using {self._fallback.name} crop+scale"
            )
            result = _attempt(self._fallback, image, ordered, width, height)
            approximate = True
        elif not self._backend.is_native:
            approximate = True

        if not result.ok:
            raise InvalidGeometry(
                result.detail or "Corners could not be rectified",
                corners=ordered.to_tuples()
            )

        data = encode_image(result.value, "JPEG", self._jpeg_quality)
        logger.debug(
            f"Rectified {image.source_name or 'image'} to {width}x{height} "
            f"({'approximate' if approximate else 'perspective'}, {len(data)} bytes)"
        )
        return TransformResult.for_target(data, ordered, width, height, approximate)

    @staticmethod
    def _target_size(
        ordered: Quadrilateral,
        target_width: Optional[int],
        target_height: Optional[int]
    ) -> tuple[int, int]:
        if target_width is None and target_height is None:
            return ordered.natural_size()
        if target_width is None or target_height is None:
            raise ValidationError(
                "target_width and target_height must be given together",
                field="target_size"
            )
        if target_width < 1 or target_height < 1:
            raise ValidationError(
                f"Target size must be positive, got {target_width}x{target_height}",
                field="target_size"
            )
        return int(target_width), int(target_height)


def _attempt(
    backend: VisionBackend,
    image: RasterImage,
    corners: Quadrilateral,
    width: int,
    height: int
) -> BackendResult[np.ndarray]:
    """Call a backend, turning escaped exceptions into a failure result."""
    try:
        return backend.warp_perspective(image, corners, width, height)
    except Exception as e:
        logger.exception(f"{backend.name} raised during warp")
        return BackendResult.failed(FailureReason.BACKEND_ERROR, str(e))
