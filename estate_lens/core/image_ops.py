"""Array-level image operations shared by the vision backends."""

import io
import logging
import math
from typing import Optional

import numpy as np
import numpy.typing as npt
from PIL import Image

from ..domain.value_objects.geometry import BoundingBox

logger = logging.getLogger(__name__)

# Type aliases
ImageArray = npt.NDArray[np.uint8]  # HxWx3 RGB
GrayArray = npt.NDArray[np.float32]  # HxW
EdgeMap = npt.NDArray[np.bool_]  # HxW


def to_grayscale(img: ImageArray) -> GrayArray:
    """Average the RGB channels into a float grayscale image.

    Args:
        img: HxWx3 uint8 image

    Returns:
        HxW float32 array in [0, 255]
    """
    return img.astype(np.float32).mean(axis=2)


def sobel_magnitude(gray: GrayArray) -> GrayArray:
    """Sobel gradient magnitude of a grayscale image.

    Border pixels have no full 3x3 neighbourhood and are left at zero.

    Args:
        gray: HxW float array

    Returns:
        HxW float32 gradient magnitude
    """
    h, w = gray.shape
    magnitude = np.zeros((h, w), dtype=np.float32)
    if h < 3 or w < 3:
        return magnitude

    g = gray.astype(np.float32)
    gx = (
        g[:-2, 2:] + 2 * g[1:-1, 2:] + g[2:, 2:]
        - g[:-2, :-2] - 2 * g[1:-1, :-2] - g[2:, :-2]
    )
    gy = (
        g[2:, :-2] + 2 * g[2:, 1:-1] + g[2:, 2:]
        - g[:-2, :-2] - 2 * g[:-2, 1:-1] - g[:-2, 2:]
    )
    magnitude[1:-1, 1:-1] = np.hypot(gx, gy)
    return magnitude


def sobel_edges(img: ImageArray, threshold: float = 128.0) -> EdgeMap:
    """Binary edge map from thresholded Sobel magnitude.

    Args:
        img: HxWx3 uint8 image
        threshold: Magnitude above which a pixel counts as an edge

    Returns:
        HxW boolean edge map
    """
    return sobel_magnitude(to_grayscale(img)) > threshold


def pixel_box(box: BoundingBox, width: int, height: int) -> Optional[tuple[int, int, int, int]]:
    """Snap a float box to whole pixels inside the image.

    Args:
        box: Box in image coordinates (may extend past the image)
        width: Image width
        height: Image height

    Returns:
        (left, top, right, bottom) with right/bottom exclusive, or None if
        nothing of the box remains inside the image
    """
    clipped = box.clip(width, height)
    if clipped.is_empty:
        return None
    left = int(math.floor(clipped.min_x))
    top = int(math.floor(clipped.min_y))
    right = int(math.ceil(clipped.max_x))
    bottom = int(math.ceil(clipped.max_y))
    if right <= left or bottom <= top:
        return None
    return left, top, right, bottom


def crop_and_scale(
    img: ImageArray,
    box: tuple[int, int, int, int],
    width: int,
    height: int
) -> ImageArray:
    """Crop a pixel box and resize it to width x height (bilinear).

    Args:
        img: Source image
        box: (left, top, right, bottom) as returned by pixel_box
        width: Output width
        height: Output height

    Returns:
        New HxWx3 uint8 array
    """
    left, top, right, bottom = box
    region = Image.fromarray(np.ascontiguousarray(img[top:bottom, left:right]))
    if region.size != (width, height):
        region = region.resize((width, height), Image.Resampling.BILINEAR)
    return np.array(region)


def downscale(img: ImageArray, max_size: Optional[int]) -> tuple[ImageArray, float]:
    """Shrink image so its longest side is at most max_size.

    Args:
        img: Source image
        max_size: Longest side limit (None to keep the original)

    Returns:
        Tuple of (image, scale) where scale = new / original
    """
    h, w = img.shape[:2]
    if max_size is None or max(h, w) <= max_size:
        return img, 1.0

    scale = max_size / max(h, w)
    new_w = max(1, round(w * scale))
    new_h = max(1, round(h * scale))
    resized = Image.fromarray(np.ascontiguousarray(img)).resize(
        (new_w, new_h), Image.Resampling.BILINEAR
    )
    logger.debug(f"Downscaled image from ({w}, {h}) to ({new_w}, {new_h}) for analysis")
    return np.array(resized), new_w / w


def fit_within(width: int, height: int, max_side: int) -> tuple[int, int]:
    """Proportionally shrink (width, height) so neither side exceeds max_side.

    Args:
        width: Source width
        height: Source height
        max_side: Longest side limit

    Returns:
        New (width, height), unchanged if already within the limit
    """
    longest = max(width, height)
    if longest <= max_side:
        return width, height
    scale = max_side / longest
    return max(1, round(width * scale)), max(1, round(height * scale))


def encode_image(img: ImageArray, fmt: str = "JPEG", quality: float = 0.9) -> bytes:
    """Encode an RGB array.

    Args:
        img: HxWx3 uint8 image
        fmt: Pillow format name
        quality: 0..1 quality for lossy formats

    Returns:
        Encoded bytes
    """
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(img)).save(
        buffer, format=fmt, quality=max(1, min(100, round(quality * 100)))
    )
    return buffer.getvalue()
