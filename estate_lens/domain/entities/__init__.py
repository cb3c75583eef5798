"""Entities - objects with identity and lifecycle."""

from .image import RasterImage, ImageFile, DetectedSubject, TransformResult

__all__ = ['RasterImage', 'ImageFile', 'DetectedSubject', 'TransformResult']
