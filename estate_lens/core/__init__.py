"""Core array-level image operations."""

from .image_ops import (
    ImageArray,
    GrayArray,
    EdgeMap,
    to_grayscale,
    sobel_magnitude,
    sobel_edges,
    pixel_box,
    crop_and_scale,
    downscale,
    fit_within,
    encode_image,
)

__all__ = [
    'ImageArray',
    'GrayArray',
    'EdgeMap',
    'to_grayscale',
    'sobel_magnitude',
    'sobel_edges',
    'pixel_box',
    'crop_and_scale',
    'downscale',
    'fit_within',
    'encode_image',
]
