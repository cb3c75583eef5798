"""Capture-to-upload pipeline."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional, Sequence

from ...domain.entities.image import DetectedSubject, ImageFile, RasterImage, TransformResult
from ...domain.value_objects.config import CaptureOptions, PipelineConfig
from ...exceptions import SubjectNotFoundError
from ..ports.camera import CameraSource
from ..ports.event_publisher import EventPublisher, PipelineEvent, SimpleEventPublisher
from ..ports.vision_backend import VisionBackend
from .compressor import ImageCompressor
from .detector import SubjectDetector
from .rectifier import Corners, PerspectiveRectifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Result of one capture-to-upload flow."""
    subject: Optional[DetectedSubject]  # None when corners were supplied
    transform: TransformResult
    upload: ImageFile
    processing_time_ms: float = 0.0

    @property
    def approximate(self) -> bool:
        return self.transform.approximate


class PhotoPipeline:
    """Normalize property photos before upload.

    The vision backend is resolved once, at construction, and shared by
    the detector and the rectifier. Each call to ``process`` is an
    independent flow over its own image, so one pipeline may serve several
    flows concurrently.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        backend: Optional[VisionBackend] = None,
        event_publisher: Optional[EventPublisher] = None,
        compressor: Optional[ImageCompressor] = None
    ):
        self.config = config or PipelineConfig()
        if backend is None:
            from ...infrastructure.plugin_registry import PluginRegistry
            backend = PluginRegistry.create_backend(
                self.config.vision_backend,
                subject_type=self.config.subject_type
            )
        self.backend = backend
        self._events = event_publisher or SimpleEventPublisher()
        self._detector = SubjectDetector(
            backend, analysis_max_size=self.config.analysis_max_size
        )
        self._rectifier = PerspectiveRectifier(
            backend, jpeg_quality=self.config.jpeg_quality
        )
        self._compressor = compressor or ImageCompressor(self.config.compression)
        logger.debug(f"Pipeline using {backend.name} vision backend")

    def capture(self, camera: CameraSource, options: Optional[CaptureOptions] = None) -> RasterImage:
        """Grab one frame; the stream is stopped on every exit path.

        Raises:
            CameraUnavailable: If no stream can be opened
        """
        self._publish("capture", "Opening camera", 0.0)
        with camera.acquire_stream(options) as stream:
            frame = stream.read_frame()
        self._publish("capture", f"Captured {frame.width}x{frame.height} frame", 0.25)
        return frame

    def detect(self, image: RasterImage) -> Optional[DetectedSubject]:
        """Detect the subject quadrilateral, or None to ask the user."""
        subject = self._detector.detect(image)
        if subject is None:
            self._publish("detect", "No subject found", 0.5, image)
        else:
            self._publish(
                "detect",
                f"Detected {subject.type.value} ({subject.confidence:.0%} confidence)",
                0.5,
                image
            )
        return subject

    def process(self, image: RasterImage, corners: Optional[Corners] = None) -> PipelineResult:
        """Run detection (unless corners are given), rectification and compression.

        Args:
            image: Captured image
            corners: Corners adjusted by the user, in image coordinates

        Returns:
            PipelineResult holding the file to upload

        Raises:
            SubjectNotFoundError: If corners are None and nothing is detected
            InvalidGeometry: If the corners cannot be rectified
        """
        start_time = time.time()

        subject = None
        if corners is None:
            subject = self.detect(image)
            if subject is None:
                raise SubjectNotFoundError()
            corners = subject.bounds

        width, height = self.config.target_size or (None, None)
        transform = self._rectifier.transform(image, corners, width, height)
        self._publish(
            "rectify",
            f"Rectified to {transform.width}x{transform.height}"
            + (" (approximate)" if transform.approximate else ""),
            0.75,
            image
        )

        upload = transform.to_file(_upload_name(image))
        if self.config.compress:
            upload = self._compressor.compress_async(upload, self.config.compression).result()
            self._publish("compress", f"Prepared {upload.size} bytes for upload", 1.0, image)

        elapsed = (time.time() - start_time) * 1000
        return PipelineResult(
            subject=subject,
            transform=transform,
            upload=upload,
            processing_time_ms=elapsed
        )

    def capture_and_process(
        self,
        camera: CameraSource,
        options: Optional[CaptureOptions] = None
    ) -> PipelineResult:
        """Capture a frame and process it with detected corners."""
        return self.process(self.capture(camera, options))

    def process_many(
        self,
        images: Sequence[RasterImage],
        corners: Optional[Sequence[Optional[Corners]]] = None,
        max_workers: int = 4
    ) -> list[PipelineResult]:
        """Run independent flows concurrently.

        Args:
            images: Images to process
            corners: Optional per-image corners (same length as images)
            max_workers: Thread pool size

        Returns:
            Results in input order

        Raises:
            The first error raised by any flow
        """
        if corners is None:
            corners = [None] * len(images)
        if len(corners) != len(images):
            raise ValueError("corners must match images in length")

        with ThreadPoolExecutor(max_workers=max(1, max_workers),
                                thread_name_prefix="flow") as pool:
            futures = [
                pool.submit(self.process, image, quad)
                for image, quad in zip(images, corners)
            ]
            return [f.result() for f in futures]

    def subscribe_to_events(self, callback) -> None:
        """Subscribe to pipeline events."""
        self._events.subscribe(callback)

    def close(self) -> None:
        self._compressor.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _publish(
        self,
        stage: str,
        message: str,
        progress: float,
        image: Optional[RasterImage] = None
    ) -> None:
        logger.debug(f"[{stage}] {message}")
        self._events.publish(PipelineEvent(
            stage=stage,
            message=message,
            progress=progress,
            source_name=image.source_name if image is not None else None
        ))


def _upload_name(image: RasterImage) -> str:
    if image.source_name:
        return f"{PurePath(image.source_name).stem}-rectified.jpg"
    return f"capture-{int(time.time() * 1000)}.jpg"
