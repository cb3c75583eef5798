"""Ports - interfaces for external dependencies (Dependency Inversion)."""

from .vision_backend import VisionBackend, BackendResult, FailureReason
from .camera import CameraSource, MediaStream
from .event_publisher import EventPublisher, PipelineEvent, SimpleEventPublisher

__all__ = [
    'VisionBackend',
    'BackendResult',
    'FailureReason',
    'CameraSource',
    'MediaStream',
    'EventPublisher',
    'PipelineEvent',
    'SimpleEventPublisher',
]
