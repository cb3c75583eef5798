"""OpenCV backend - contour detection and true homographies."""

from __future__ import annotations

import logging
from types import ModuleType

import numpy as np

from ...application.ports.vision_backend import BackendResult, FailureReason, VisionBackend
from ...config import DETECTION_CONFIG, RECTIFY_CONFIG, SubjectType
from ...domain.entities.image import DetectedSubject, RasterImage
from ...domain.value_objects.geometry import Point, Quadrilateral

logger = logging.getLogger(__name__)


class NativeVisionBackend(VisionBackend):
    """Adapter for OpenCV.

    The cv2 module is injected (see VisionLibraryLoader) so the import
    happens once per process rather than per call.
    """

    def __init__(
        self,
        cv2: ModuleType,
        subject_type: SubjectType = DETECTION_CONFIG.default_subject
    ):
        self._cv2 = cv2
        self._subject_type = subject_type

    @property
    def name(self) -> str:
        return "opencv"

    @property
    def is_native(self) -> bool:
        return True

    def find_quadrilateral(self, image: RasterImage) -> BackendResult[DetectedSubject]:
        cv2 = self._cv2
        cfg = DETECTION_CONFIG
        try:
            gray = cv2.cvtColor(np.array(image.pixels), cv2.COLOR_RGB2GRAY)
            blurred = cv2.GaussianBlur(gray, (cfg.blur_kernel, cfg.blur_kernel), 0)
            edges = cv2.Canny(blurred, cfg.canny_low, cfg.canny_high)
            contours = cv2.findContours(
                edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
            )[-2]  # 3.x returns three values
        except cv2.error as e:
            return BackendResult.failed(FailureReason.BACKEND_ERROR, str(e))

        image_area = float(image.area)
        min_area = image_area * cfg.min_area_ratio
        best_quad = None
        max_area = 0.0

        for contour in contours:
            area = cv2.contourArea(contour)
            if area <= min_area:
                continue

            epsilon = cfg.approx_epsilon_ratio * cv2.arcLength(contour, True)
            approx = cv2.approxPolyDP(contour, epsilon, True)
            if len(approx) == 4 and area > max_area:
                max_area = area
                best_quad = approx.reshape(4, 2)

        if best_quad is None:
            logger.debug(f"No 4-vertex contour above {cfg.min_area_ratio:.0%} of the image")
            return BackendResult.success(None)

        bounds = Quadrilateral(*(Point(float(x), float(y)) for x, y in best_quad))
        confidence = min(max(max_area / image_area, 0.0), 1.0)
        logger.debug(f"Detected quadrilateral {bounds.to_tuples()} (confidence {confidence:.2f})")
        return BackendResult.success(DetectedSubject(
            bounds=bounds.ordered(),
            confidence=confidence,
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
        if corners.has_collinear_triple(RECTIFY_CONFIG.collinear_tolerance):
            return BackendResult.failed(
                FailureReason.DEGENERATE_GEOMETRY,
                f"Three of the corners {corners.to_tuples()} are collinear"
            )

        cv2 = self._cv2
        src = corners.as_array()
        dst = np.array(
            [[0, 0], [width, 0], [width, height], [0, height]],
            dtype=np.float32
        )
        try:
            matrix = cv2.getPerspectiveTransform(src, dst)
            warped = cv2.warpPerspective(
                np.array(image.pixels),
                matrix,
                (width, height),
                flags=cv2.INTER_LINEAR,
                borderMode=cv2.BORDER_CONSTANT
            )
        except cv2.error as e:
            return BackendResult.failed(FailureReason.BACKEND_ERROR, str(e))

        return BackendResult.success(warped)
