"""Camera port - interface for acquiring frames from a device."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ...domain.entities.image import ImageFile, RasterImage
from ...domain.value_objects.config import CaptureOptions


@runtime_checkable
class MediaStream(Protocol):
    """An open camera stream.

    The owner must call ``stop()`` on every exit path; using the stream as
    a context manager does that. ``stop()`` is idempotent.
    """

    @property
    def active(self) -> bool:
        """True until the stream is stopped."""
        ...

    def read_frame(self) -> RasterImage:
        """Grab the current frame."""
        ...

    def capture_photo(self, quality: float = 0.9) -> ImageFile:
        """Grab the current frame encoded as a JPEG file."""
        ...

    def stop(self) -> None:
        """Release the device. Safe to call repeatedly."""
        ...

    def __enter__(self) -> MediaStream: ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None: ...


@runtime_checkable
class CameraSource(Protocol):
    """Port for camera hardware."""

    def acquire_stream(self, options: CaptureOptions | None = None) -> MediaStream:
        """Open a stream under the given constraints.

        Raises:
            CameraUnavailable: If no stream can be opened
        """
        ...
