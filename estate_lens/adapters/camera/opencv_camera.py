"""Camera adapter backed by cv2.VideoCapture."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, Optional

import numpy as np

from ...config import CAPTURE_CONFIG, FACING_MODE_DEVICES
from ...core.image_ops import encode_image
from ...domain.entities.image import ImageFile, RasterImage
from ...domain.value_objects.config import CaptureOptions
from ...exceptions import CameraUnavailable, VisionLibraryUnavailable
from ...infrastructure.vision_loader import VisionLibraryLoader, get_default_loader

logger = logging.getLogger(__name__)

# V4L2 "aperture priority" (automatic) exposure mode
AUTO_EXPOSURE_ON = 3

CaptureFactory = Callable[[int], Any]


@dataclass(frozen=True)
class CaptureProperties:
    """VideoCapture property ids set by the constrained open.

    Defaults mirror cv2.VideoCaptureProperties and are used only when a
    capture factory is injected without the vision library.
    """
    frame_width: int = 3
    frame_height: int = 4
    auto_exposure: int = 21
    autofocus: int = 39
    auto_wb: int = 44

    @classmethod
    def from_module(cls, cv2: ModuleType) -> CaptureProperties:
        return cls(
            frame_width=cv2.CAP_PROP_FRAME_WIDTH,
            frame_height=cv2.CAP_PROP_FRAME_HEIGHT,
            auto_exposure=cv2.CAP_PROP_AUTO_EXPOSURE,
            autofocus=cv2.CAP_PROP_AUTOFOCUS,
            auto_wb=cv2.CAP_PROP_AUTO_WB
        )


DEFAULT_PROPERTIES = CaptureProperties()


class CameraStream:
    """An open VideoCapture that yields RGB frames.

    ``stop()`` releases the device exactly once, whichever thread calls it.
    """

    def __init__(self, capture: Any, device_index: int):
        self._capture = capture
        self.device_index = device_index
        self._lock = threading.Lock()
        self._active = True

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def read_frame(self) -> RasterImage:
        """Grab the current frame.

        Raises:
            CameraUnavailable: If the stream is stopped or the read fails
        """
        with self._lock:
            if not self._active:
                raise CameraUnavailable("Camera stream is stopped", device_index=self.device_index)
            ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CameraUnavailable(
                f"Failed to read a frame from camera {self.device_index}",
                device_index=self.device_index
            )
        frame = np.asarray(frame)
        if frame.ndim == 3 and frame.shape[2] >= 3:
            frame = frame[:, :, 2::-1]  # BGR(A) -> RGB
        return RasterImage(np.ascontiguousarray(frame))

    def capture_photo(self, quality: float = CAPTURE_CONFIG.photo_quality) -> ImageFile:
        """Grab the current frame as a JPEG named ``capture-<ms>.jpg``."""
        frame = self.read_frame()
        data = encode_image(frame.pixels, "JPEG", quality)
        return ImageFile(name=f"capture-{int(time.time() * 1000)}.jpg", data=data)

    def stop(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._capture.release()
        logger.debug(f"Camera {self.device_index} released")

    def __enter__(self) -> CameraStream:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


class OpenCVCamera:
    """Open camera streams through OpenCV.

    The first attempt applies the full constraint set (resolution, auto
    focus, auto white balance, auto exposure). If the device rejects it,
    the capture is released and opened once more with no constraints.

    Example:
        >>> camera = OpenCVCamera()
        >>> with camera.acquire_stream() as stream:
        ...     photo = stream.capture_photo()
    """

    def __init__(
        self,
        capture_factory: Optional[CaptureFactory] = None,
        loader: Optional[VisionLibraryLoader] = None,
        warmup_frames: int = CAPTURE_CONFIG.warmup_frames,
        properties: CaptureProperties = DEFAULT_PROPERTIES
    ):
        self._capture_factory = capture_factory
        self._properties = properties
        self._loader = loader or get_default_loader()
        self.warmup_frames = warmup_frames

    def acquire_stream(self, options: Optional[CaptureOptions] = None) -> CameraStream:
        """Open a stream under the given constraints.

        Args:
            options: Stream constraints (defaults if None)

        Returns:
            Active CameraStream; the caller must stop it

        Raises:
            CameraUnavailable: If neither the constrained nor the basic open works
        """
        options = options or CaptureOptions()
        device = self._device_index(options)
        factory, props = self._factory()

        capture = self._open_rich(factory, device, options, props)
        if capture is None:
            logger.warning(f"Camera {device} rejected constraints; retrying with defaults")
            capture = self._open_basic(factory, device)
        if capture is None:
            raise CameraUnavailable(f"Cannot open camera {device}", device_index=device)

        logger.info(f"Camera {device} opened ({options.facing_mode.value})")
        return CameraStream(capture, device)

    @staticmethod
    def _device_index(options: CaptureOptions) -> int:
        if options.device_index is not None:
            return options.device_index
        return FACING_MODE_DEVICES[options.facing_mode]

    def _factory(self) -> tuple[CaptureFactory, CaptureProperties]:
        """Capture factory and the property ids it understands."""
        if self._capture_factory is not None:
            return self._capture_factory, self._properties
        try:
            cv2 = self._loader.load()
        except VisionLibraryUnavailable as e:
            raise CameraUnavailable(f"Camera support unavailable: {e}") from e
        return cv2.VideoCapture, CaptureProperties.from_module(cv2)

    def _open_rich(
        self,
        factory: CaptureFactory,
        device: int,
        options: CaptureOptions,
        props: CaptureProperties
    ):
        capture = _open(factory, device)
        if capture is None:
            return None
        try:
            settings = (
                (props.frame_width, options.width),
                (props.frame_height, options.resolved_height),
                (props.autofocus, 1),
                (props.auto_wb, 1),
                (props.auto_exposure, AUTO_EXPOSURE_ON),
            )
            for prop, value in settings:
                if not capture.set(prop, value):
                    logger.debug(f"Camera {device} ignored property {prop}={value}")
            if self._warm_up(capture):
                return capture
        except Exception as e:
            logger.debug(f"Constrained open of camera {device} failed: {e}")
        capture.release()
        return None

    def _open_basic(self, factory: CaptureFactory, device: int):
        capture = _open(factory, device)
        if capture is None:
            return None
        try:
            if self._warm_up(capture):
                return capture
        except Exception as e:
            logger.debug(f"Basic open of camera {device} failed: {e}")
        capture.release()
        return None

    def _warm_up(self, capture) -> bool:
        """Discard frames while exposure settles; False if the device yields none."""
        for _ in range(max(1, self.warmup_frames)):
            ok, _frame = capture.read()
            if not ok:
                return False
        return True


def _open(factory: CaptureFactory, device: int):
    try:
        capture = factory(device)
    except Exception as e:
        logger.debug(f"Opening camera {device} raised: {e}")
        return None
    if not capture.isOpened():
        capture.release()
        return None
    return capture
