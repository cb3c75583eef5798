"""Upload compression service."""

from __future__ import annotations

import io
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import PurePath
from typing import Optional

from PIL import Image, ImageOps

from ...config import (
    COMPRESSIBLE_FORMATS,
    COMPRESSION_QUALITY_STEP,
    COMPRESSION_SCALE_STEP,
    CONTENT_TYPES,
    FORMAT_ALIASES,
    FORMAT_EXTENSIONS,
    MIN_COMPRESSION_QUALITY,
    PRESERVED_FORMATS,
)
from ...core.image_ops import fit_within
from ...domain.entities.image import ImageFile
from ...domain.value_objects.config import CompressionOptions
from ...exceptions import CompressionFailed

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class ImageCompressor:
    """Shrink images for upload on a best-effort basis.

    ``compress`` never raises: on any internal error the original file is
    returned unchanged. Output size below ``max_size_mb`` is a target, not
    a guarantee.

    Example:
        >>> with ImageCompressor() as compressor:
        ...     future = compressor.compress_async(photo)
        ...     upload = future.result()
    """

    def __init__(
        self,
        options: Optional[CompressionOptions] = None,
        executor: Optional[Executor] = None,
        max_workers: int = 2
    ):
        self.options = options or CompressionOptions()
        self._executor = executor
        self._owns_executor = executor is None
        self._max_workers = max_workers
        self._lock = threading.Lock()

    def compress(
        self,
        file: ImageFile,
        options: Optional[CompressionOptions] = None
    ) -> ImageFile:
        """Compress an image file.

        Args:
            file: Encoded image
            options: Overrides the compressor's default options

        Returns:
            Compressed file, or the original if compression failed or
            did not help
        """
        opts = options or self.options
        try:
            result = self._compress(file, opts)
        except Exception as e:
            logger.warning(f"Image compression failed, uploading original: {e}")
            return file

        if result is not file and file.size:
            logger.info(
                f"Image compressed: {file.size / MB:.2f}MB -> {result.size / MB:.2f}MB "
                f"({(file.size - result.size) / file.size * 100:.1f}% saved)"
            )
        return result

    def compress_async(
        self,
        file: ImageFile,
        options: Optional[CompressionOptions] = None
    ) -> Future:
        """Compress off the calling thread when ``use_worker`` is set.

        The returned future always resolves to a file, never an exception.
        """
        opts = options or self.options
        if not opts.use_worker:
            future: Future = Future()
            future.set_result(self.compress(file, opts))
            return future
        return self._get_executor().submit(self.compress, file, opts)

    def _get_executor(self) -> Executor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="compress"
                )
            return self._executor

    def close(self) -> None:
        """Shut down the worker threads this compressor created."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None and self._owns_executor:
            executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _compress(self, file: ImageFile, opts: CompressionOptions) -> ImageFile:
        try:
            with Image.open(io.BytesIO(file.data)) as opened:
                opened.load()
                source_format = FORMAT_ALIASES.get(opened.format, opened.format)
                image = ImageOps.exif_transpose(opened)
        except Exception as e:
            raise CompressionFailed(f"Cannot decode image: {e}", file_name=file.name) from e

        target_format = opts.file_type or (
            source_format if source_format in PRESERVED_FORMATS else "JPEG"
        )
        if target_format not in CONTENT_TYPES:
            raise CompressionFailed(
                f"Unsupported output format: {target_format}",
                file_name=file.name
            )

        new_size = fit_within(image.width, image.height, opts.max_width_or_height)
        resized = new_size != image.size
        if resized:
            image = image.resize(new_size, Image.Resampling.LANCZOS)
        image = _prepare_mode(image, target_format)

        quality = opts.quality
        data = _encode(image, target_format, quality)
        iterations = 1
        while len(data) > opts.max_bytes and iterations < opts.max_iterations:
            if target_format in COMPRESSIBLE_FORMATS and quality > MIN_COMPRESSION_QUALITY:
                quality = max(MIN_COMPRESSION_QUALITY, quality - COMPRESSION_QUALITY_STEP)
            elif max(image.size) > 1:
                image = image.resize(
                    (max(1, round(image.width * COMPRESSION_SCALE_STEP)),
                     max(1, round(image.height * COMPRESSION_SCALE_STEP))),
                    Image.Resampling.LANCZOS
                )
                resized = True
            else:
                break
            data = _encode(image, target_format, quality)
            iterations += 1

        if len(data) > opts.max_bytes:
            logger.debug(
                f"{file.name}: {len(data)} bytes still above target "
                f"{opts.max_bytes} after {iterations} iterations"
            )

        if not resized and target_format == source_format and len(data) >= file.size:
            logger.debug(f"{file.name}: compression did not reduce size; keeping original")
            return file

        name = PurePath(file.name).stem + FORMAT_EXTENSIONS[target_format]
        return ImageFile(name=name, data=data, content_type=CONTENT_TYPES[target_format])


def _prepare_mode(image: Image.Image, fmt: str) -> Image.Image:
    """Convert to a color mode the target format can store."""
    if fmt == "JPEG":
        if image.mode in ("RGB", "L"):
            return image
        if image.mode in ("RGBA", "LA", "P"):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return image.convert("RGB")
    if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        return image.convert("RGBA" if "A" in image.getbands() else "RGB")
    return image


def _encode(image: Image.Image, fmt: str, quality: float) -> bytes:
    buffer = io.BytesIO()
    kwargs: dict = {"optimize": True}
    if fmt in COMPRESSIBLE_FORMATS:
        kwargs["quality"] = max(1, min(100, round(quality * 100)))
    image.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


_DEFAULT_COMPRESSOR: Optional[ImageCompressor] = None
_DEFAULT_LOCK = threading.Lock()


def compress_image(file: ImageFile, options: Optional[CompressionOptions] = None) -> ImageFile:
    """Convenience function: compress with a shared default compressor.

    Args:
        file: Encoded image
        options: Compression options (defaults if None)

    Returns:
        Compressed or original file
    """
    global _DEFAULT_COMPRESSOR
    with _DEFAULT_LOCK:
        if _DEFAULT_COMPRESSOR is None:
            _DEFAULT_COMPRESSOR = ImageCompressor()
        compressor = _DEFAULT_COMPRESSOR
    return compressor.compress(file, options)
