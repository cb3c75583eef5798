"""Subject detection service."""

from __future__ import annotations

import logging
from typing import Optional

from ...config import DETECTION_CONFIG
from ...core.image_ops import downscale
from ...domain.entities.image import DetectedSubject, RasterImage
from ..ports.vision_backend import BackendResult, FailureReason, VisionBackend

logger = logging.getLogger(__name__)


class SubjectDetector:
    """Find the dominant planar subject of an image.

    Runs the injected backend first. A failed result (library missing,
    backend error) switches to the fallback backend; a successful result
    with no subject is returned as None, meaning the user should place
    the corners by hand.
    """

    def __init__(
        self,
        backend: VisionBackend,
        fallback: Optional[VisionBackend] = None,
        analysis_max_size: Optional[int] = DETECTION_CONFIG.analysis_max_size
    ):
        from ...adapters.vision.heuristic_backend import HeuristicFallbackBackend
        if fallback is None:
            fallback = HeuristicFallbackBackend()
        self._heuristic_type = HeuristicFallbackBackend
        self._backend = backend
        self._fallback = fallback
        self._analysis_max_size = analysis_max_size

    @property
    def backend(self) -> VisionBackend:
        return self._backend

    def detect(self, image: RasterImage) -> Optional[DetectedSubject]:
        """Detect the subject quadrilateral.

        Args:
            image: Image to analyse (not modified)

        Returns:
            Subject with corners in full-resolution image coordinates, or
            None if no subject was found
        """
        pixels, scale = downscale(image.pixels, self._analysis_max_size)
        analysis = image if scale == 1.0 else RasterImage(pixels, image.source_name)

        used = self._backend
        result = _attempt(used, analysis)
        if not result.ok and self._fallback is not self._backend:
            logger.warning(
                f"{self._backend.name} detection failed "
                f"({result.failure.value}: {result.detail}); using {self._fallback.name}"
            )
            used = self._fallback
            result = _attempt(used, analysis)

        if not result.ok:
            logger.warning(f"Detection failed: {result.detail}")
            return None

        subject = result.value
        if subject is None:
            logger.info(f"No subject found in {image.source_name or 'image'}")
            return None

        if scale != 1.0:
            if isinstance(used, self._heuristic_type):
                # The inset depends only on the size, so rebuild it exactly.
                bounds = used.inset_rectangle(image.width, image.height)
            else:
                bounds = subject.bounds.scale(
                    image.width / analysis.width, image.height / analysis.height
                ).clamp_to(image.width, image.height)
            subject = DetectedSubject(
                bounds=bounds,
                confidence=subject.confidence,
                type=subject.type,
                backend=subject.backend
            )

        return DetectedSubject(
            bounds=subject.bounds.ordered(),
            confidence=subject.confidence,
            type=subject.type,
            backend=subject.backend
        )


def _attempt(backend: VisionBackend, image: RasterImage) -> BackendResult[DetectedSubject]:
    """Call a backend, turning escaped exceptions into a failure result."""
    try:
        return backend.find_quadrilateral(image)
    except Exception as e:
        logger.exception(f"{backend.name} raised during detection")
        return BackendResult.failed(FailureReason.BACKEND_ERROR, str(e))
