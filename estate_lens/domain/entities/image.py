"""Image entities - raster buffers, files and detection results."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from PIL import Image as PILImage
from PIL import ImageOps

from ...config import CONTENT_TYPES, SubjectType
from ...exceptions import ValidationError
from ..value_objects.geometry import Quadrilateral


@dataclass(frozen=True, slots=True, eq=False)
class RasterImage:
    """Read-only in-memory RGB image.

    Stages take a RasterImage and produce new buffers; the pixel array is
    copied on construction and flagged non-writeable so nothing downstream
    can mutate a caller's image in place.
    """
    pixels: np.ndarray
    source_name: str | None = None

    def __post_init__(self) -> None:
        arr = np.asarray(self.pixels)
        if arr.dtype != np.uint8:
            raise ValidationError(f"Expected uint8 pixels, got {arr.dtype}", field="pixels")
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)
        elif arr.ndim == 3 and arr.shape[2] == 4:
            arr = arr[:, :, :3]
        elif arr.ndim == 3 and arr.shape[2] == 1:
            arr = np.repeat(arr, 3, axis=2)
        if arr.ndim != 3 or arr.shape[2] != 3:
            raise ValidationError(f"Unsupported pixel shape {arr.shape}", field="pixels")
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ValidationError("Image has no pixels", field="pixels")
        arr = np.ascontiguousarray(arr).copy()
        arr.setflags(write=False)
        object.__setattr__(self, "pixels", arr)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def area(self) -> int:
        return self.width * self.height

    @classmethod
    def from_array(cls, data: np.ndarray, source_name: str | None = None) -> RasterImage:
        """Create from an RGB (or gray/RGBA) uint8 array."""
        return cls(pixels=data, source_name=source_name)

    @classmethod
    def from_pil(cls, image: PILImage.Image, source_name: str | None = None) -> RasterImage:
        """Create from a Pillow image, honouring EXIF orientation."""
        image = ImageOps.exif_transpose(image)
        return cls(pixels=np.array(image.convert("RGB")), source_name=source_name)

    @classmethod
    def from_bytes(cls, data: bytes, source_name: str | None = None) -> RasterImage:
        """Decode encoded image bytes (JPEG, PNG, ...)."""
        try:
            with PILImage.open(io.BytesIO(data)) as img:
                return cls.from_pil(img, source_name=source_name)
        except (OSError, ValueError) as e:
            raise ValidationError(f"Could not decode image: {e}", field="data") from e

    @classmethod
    def from_path(cls, path: Path | str) -> RasterImage:
        """Load image from file."""
        path = Path(path)
        return cls.from_bytes(path.read_bytes(), source_name=path.name)

    def to_pil(self) -> PILImage.Image:
        """Return a new Pillow image with a copy of the pixels."""
        return PILImage.fromarray(np.array(self.pixels))


@dataclass(frozen=True, slots=True)
class ImageFile:
    """Encoded image bytes with a file name, as handed to the uploader."""
    name: str
    data: bytes = field(repr=False)
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path | str) -> ImageFile:
        """Read a file from disk, sniffing its content type."""
        path = Path(path)
        data = path.read_bytes()
        return cls(name=path.name, data=data, content_type=sniff_content_type(data))

    def save(self, path: Path | str) -> Path:
        """Write bytes to path and return it."""
        path = Path(path)
        path.write_bytes(self.data)
        return path


def sniff_content_type(data: bytes) -> str:
    """Best-effort MIME type of encoded image bytes."""
    try:
        with PILImage.open(io.BytesIO(data)) as img:
            return CONTENT_TYPES.get(img.format or "", "application/octet-stream")
    except (OSError, ValueError):
        return "application/octet-stream"


@dataclass(frozen=True, slots=True)
class DetectedSubject:
    """Best-guess boundary of the dominant planar subject."""
    bounds: Quadrilateral
    confidence: float
    type: SubjectType = SubjectType.BUILDING
    backend: str = ""

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(
                f"Confidence must be within [0, 1], got {self.confidence}",
                field="confidence"
            )

    def to_dict(self) -> dict:
        return {
            "bounds": [{"x": p.x, "y": p.y} for p in self.bounds],
            "confidence": self.confidence,
            "type": self.type.value,
            "backend": self.backend,
        }


@dataclass(frozen=True, slots=True)
class TransformResult:
    """Result of rectifying a quadrilateral onto a rectangle."""
    corrected_image: bytes = field(repr=False)
    original_bounds: Quadrilateral
    corrected_bounds: Quadrilateral
    width: int
    height: int
    approximate: bool = False  # True for crop+scale without skew correction

    @classmethod
    def for_target(
        cls,
        corrected_image: bytes,
        original_bounds: Quadrilateral,
        width: int,
        height: int,
        approximate: bool = False
    ) -> TransformResult:
        """Build a result whose corrected bounds are the target rectangle."""
        return cls(
            corrected_image=corrected_image,
            original_bounds=original_bounds,
            corrected_bounds=Quadrilateral.from_bbox(0, 0, width, height),
            width=width,
            height=height,
            approximate=approximate
        )

    def to_file(self, name: str) -> ImageFile:
        return ImageFile(name=name, data=self.corrected_image, content_type="image/jpeg")
