"""Vision Backend port - interface for detection and warping engines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Protocol, TypeVar, runtime_checkable

import numpy as np

from ...domain.entities.image import DetectedSubject, RasterImage
from ...domain.value_objects.geometry import Quadrilateral

T = TypeVar('T')


class FailureReason(str, Enum):
    """Why a backend could not produce a result."""
    LIBRARY_UNAVAILABLE = "library_unavailable"
    DEGENERATE_GEOMETRY = "degenerate_geometry"  # Primary path cannot solve, fallback may
    INVALID_GEOMETRY = "invalid_geometry"  # Nothing can be rendered
    BACKEND_ERROR = "backend_error"


@dataclass(frozen=True, slots=True)
class BackendResult(Generic[T]):
    """Outcome of a backend call: a value or an enumerated failure."""
    value: Optional[T] = None
    failure: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: Optional[T]) -> BackendResult[T]:
        """Create a success result; value may be None (nothing found)."""
        return cls(value=value)

    @classmethod
    def failed(cls, reason: FailureReason, detail: str = "") -> BackendResult[T]:
        """Create a failure result."""
        return cls(failure=reason, detail=detail)


@runtime_checkable
class VisionBackend(Protocol):
    """Port for vision engines.

    Implementations: OpenCV (native), numpy heuristic fallback.
    """

    @property
    def name(self) -> str:
        """Backend name."""
        ...

    @property
    def is_native(self) -> bool:
        """True if the backend performs real contour detection and homographies."""
        ...

    def find_quadrilateral(self, image: RasterImage) -> BackendResult[DetectedSubject]:
        """Find the dominant quadrilateral subject.

        Args:
            image: Image to analyse

        Returns:
            Success with a subject, success with None when no subject is
            found, or a failure
        """
        ...

    def warp_perspective(
        self,
        image: RasterImage,
        corners: Quadrilateral,
        width: int,
        height: int
    ) -> BackendResult[np.ndarray]:
        """Map ordered corners onto a width x height rectangle.

        Args:
            image: Source image
            corners: Corners ordered [top-left, top-right, bottom-right, bottom-left]
            width: Output width
            height: Output height

        Returns:
            Success with an HxWx3 uint8 array, or a failure
        """
        ...
