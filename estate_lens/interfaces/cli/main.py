"""Command-line interface for the photo pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import pydantic

from ...config import (
    CAPTURE_CONFIG,
    SUPPORTED_IMAGE_EXTENSIONS,
    FacingMode,
    SubjectType,
)
from ...domain.entities.image import ImageFile, RasterImage
from ...domain.value_objects.config import CaptureOptions, CompressionOptions
from ...domain.value_objects.geometry import Point, Quadrilateral, to_image_space
from ...exceptions import EstateLensError, ValidationError
from ...infrastructure.plugin_registry import PluginRegistry
from ...utils.env import load_pipeline_config, setup_logging

logger = logging.getLogger(__name__)


def parse_point(text: str) -> Point:
    """Parse 'x,y' into a Point."""
    try:
        x, y = text.split(',')
        return Point(float(x), float(y))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected x,y but got '{text}'")


def parse_size(text: str) -> tuple[int, int]:
    """Parse 'WxH' into a positive (width, height)."""
    try:
        width, height = (int(v) for v in text.lower().split('x'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT but got '{text}'")
    if width < 1 or height < 1:
        raise argparse.ArgumentTypeError(f"size must be positive, got '{text}'")
    return width, height


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="estate-lens",
        description="Detect, straighten and compress property photos before upload"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--backend",
        help="Vision backend: auto, opencv, heuristic or a plugin name "
             "(default: $ESTATE_LENS_VISION_BACKEND or auto)"
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # detect
    detect = subparsers.add_parser("detect", help="Print the detected subject as JSON")
    detect.add_argument("input", type=Path, help="Input image")
    _add_subject_type(detect)

    # rectify
    rectify = subparsers.add_parser("rectify", help="Straighten a quadrilateral region")
    rectify.add_argument("input", type=Path, help="Input image")
    rectify.add_argument("-o", "--output", type=Path, required=True, help="Output JPEG file")
    _add_corners(rectify, required=True)
    _add_size(rectify)
    rectify.add_argument(
        "--display-size",
        type=parse_size,
        metavar="WxH",
        help="Size of the preview the corners were picked on"
    )

    # compress
    compress = subparsers.add_parser("compress", help="Shrink an image for upload")
    compress.add_argument("input", type=Path, help="Input image")
    compress.add_argument("-o", "--output", type=Path, required=True, help="Output folder")
    _add_compression(compress)

    # process
    process = subparsers.add_parser(
        "process",
        help="Detect (or use --corners), rectify and compress image(s)"
    )
    process.add_argument("input", type=Path, help="Input image or folder")
    process.add_argument("-o", "--output", type=Path, required=True, help="Output folder")
    _add_corners(process, required=False)
    _add_size(process)
    _add_subject_type(process)
    _add_compression(process)
    process.add_argument(
        "--no-compress",
        action="store_true",
        help="Upload the rectified JPEG as is"
    )
    process.add_argument(
        "-j", "--jobs",
        type=int,
        default=4,
        metavar="N",
        help="Images processed concurrently (default: 4)"
    )

    # capture
    capture = subparsers.add_parser("capture", help="Take a photo with a camera")
    capture.add_argument("-o", "--output", type=Path, required=True, help="Output folder")
    capture.add_argument(
        "--facing",
        choices=[m.value for m in FacingMode],
        default=FacingMode.ENVIRONMENT.value,
        help="Camera facing mode (default: environment)"
    )
    capture.add_argument("--device", type=int, help="Camera device index")
    capture.add_argument(
        "--resolution",
        type=parse_size,
        default=(CAPTURE_CONFIG.default_width, CAPTURE_CONFIG.default_height),
        metavar="WxH",
        help="Requested resolution (default: 1920x1080)"
    )
    capture.add_argument(
        "--process",
        action="store_true",
        help="Run the captured frame through the pipeline"
    )

    return parser


def _add_corners(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument(
        "--corners",
        type=parse_point,
        nargs=4,
        required=required,
        metavar="X,Y",
        help="Four corners of the subject, in any order"
    )


def _add_size(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--size",
        type=parse_size,
        metavar="WxH",
        help="Output size (default: derived from the corners)"
    )


def _add_subject_type(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--subject-type",
        choices=[t.value for t in SubjectType],
        default=SubjectType.BUILDING.value,
        help="Subject type to report (default: building)"
    )


def _add_compression(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("Compression options")
    group.add_argument(
        "--max-size-mb",
        type=float,
        default=1.0,
        help="Target file size in MB (default: 1)"
    )
    group.add_argument(
        "--max-dimension",
        type=int,
        default=1920,
        help="Longest side in pixels (default: 1920)"
    )
    group.add_argument(
        "--quality",
        type=float,
        default=0.8,
        help="Initial quality 0-1 (default: 0.8)"
    )
    group.add_argument(
        "--format",
        dest="file_type",
        choices=["jpeg", "png", "webp"],
        help="Output format (default: keep JPEG/PNG/WEBP, else JPEG)"
    )


def _compression_options(parsed) -> CompressionOptions:
    return CompressionOptions(
        max_size_mb=parsed.max_size_mb,
        max_width_or_height=parsed.max_dimension,
        quality=parsed.quality,
        file_type=parsed.file_type
    )


def collect_images(input_path: Path) -> list[Path]:
    """Return the image files at input_path (a file or a folder)."""
    if input_path.is_file():
        return [input_path]
    files = [
        f for f in input_path.iterdir()
        if f.suffix.lower() in SUPPORTED_IMAGE_EXTENSIONS
    ]
    files.sort()
    return files


def run_detect(parsed) -> int:
    from ...application.services.pipeline import PhotoPipeline

    config = load_pipeline_config(
        vision_backend=parsed.backend,
        subject_type=parsed.subject_type,
        compress=False
    )
    image = RasterImage.from_path(parsed.input)
    with PhotoPipeline(config) as pipeline:
        subject = pipeline.detect(image)

    payload = {
        "image": {"width": image.width, "height": image.height},
        "subject": subject.to_dict() if subject is not None else None,
    }
    print(json.dumps(payload, indent=2))
    return 0


def run_rectify(parsed) -> int:
    from ...application.services.rectifier import PerspectiveRectifier

    image = RasterImage.from_path(parsed.input)
    corners = Quadrilateral.from_points(parsed.corners)
    if parsed.display_size:
        corners = to_image_space(corners, parsed.display_size, image.size)

    backend = PluginRegistry.create_backend(
        load_pipeline_config(vision_backend=parsed.backend).vision_backend
    )
    rectifier = PerspectiveRectifier(backend)
    width, height = parsed.size or (None, None)
    result = rectifier.transform(image, corners, width, height)

    parsed.output.parent.mkdir(parents=True, exist_ok=True)
    parsed.output.write_bytes(result.corrected_image)
    logger.info(
        f"Saved: {parsed.output} ({result.width}x{result.height}"
        + (", approximate" if result.approximate else "") + ")"
    )
    return 0


def run_compress(parsed) -> int:
    from ...application.services.compressor import ImageCompressor

    original = ImageFile.from_path(parsed.input)
    with ImageCompressor() as compressor:
        result = compressor.compress_async(original, _compression_options(parsed)).result()

    parsed.output.mkdir(parents=True, exist_ok=True)
    output_file = result.save(parsed.output / result.name)
    logger.info(f"Saved: {output_file} ({original.size} -> {result.size} bytes)")
    return 0


def run_process(parsed) -> int:
    from ...application.services.pipeline import PhotoPipeline

    if not parsed.input.exists():
        logger.error(f"Input not found: {parsed.input}")
        return 1

    files = collect_images(parsed.input)
    if not files:
        logger.error("No image files found")
        return 1
    if parsed.corners and len(files) > 1:
        raise ValidationError("--corners applies to a single image", field="corners")

    width, height = parsed.size or (None, None)
    config = load_pipeline_config(
        vision_backend=parsed.backend,
        subject_type=parsed.subject_type,
        target_width=width,
        target_height=height,
        compress=not parsed.no_compress,
        compression=_compression_options(parsed)
    )

    parsed.output.mkdir(parents=True, exist_ok=True)
    logger.info(f"Processing {len(files)} image(s)...")
    images = [RasterImage.from_path(f) for f in files]
    corners = [parsed.corners] if parsed.corners else None

    with PhotoPipeline(config) as pipeline:
        results = pipeline.process_many(images, corners, max_workers=parsed.jobs)

    for result in results:
        output_file = result.upload.save(parsed.output / result.upload.name)
        logger.info(
            f"Saved: {output_file.name} ({result.transform.width}x{result.transform.height}, "
            f"{result.upload.size} bytes, {result.processing_time_ms:.0f}ms"
            + (", approximate" if result.approximate else "") + ")"
        )
    logger.info(f"Completed: All {len(files)} images processed successfully")
    return 0


def run_capture(parsed) -> int:
    from ...adapters.camera.opencv_camera import OpenCVCamera
    from ...application.services.pipeline import PhotoPipeline

    width, height = parsed.resolution
    options = CaptureOptions(
        facing_mode=FacingMode(parsed.facing),
        width=width,
        height=height,
        device_index=parsed.device
    )
    camera = OpenCVCamera()
    parsed.output.mkdir(parents=True, exist_ok=True)

    if not parsed.process:
        with camera.acquire_stream(options) as stream:
            photo = stream.capture_photo()
        output_file = photo.save(parsed.output / photo.name)
        logger.info(f"Saved: {output_file}")
        return 0

    config = load_pipeline_config(vision_backend=parsed.backend)
    with PhotoPipeline(config) as pipeline:
        result = pipeline.capture_and_process(camera, options)
    output_file = result.upload.save(parsed.output / result.upload.name)
    logger.info(f"Saved: {output_file}")
    return 0


COMMANDS = {
    "detect": run_detect,
    "rectify": run_rectify,
    "compress": run_compress,
    "process": run_process,
    "capture": run_capture,
}


def main(args: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    setup_logging(logging.DEBUG if parsed.verbose else None, parsed.log_file)

    try:
        return COMMANDS[parsed.command](parsed)
    except pydantic.ValidationError as e:
        logger.error(f"Invalid options: {e}")
        return 2
    except EstateLensError as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
