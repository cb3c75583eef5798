"""Plugin registry - discovers and creates vision backends."""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Optional

from ..config import VISION_ENTRY_POINT_GROUP, SubjectType, VisionBackendChoice
from ..exceptions import ConfigurationError, VisionLibraryUnavailable
from .vision_loader import VisionLibraryLoader, get_default_loader

if TYPE_CHECKING:
    from ..application.ports.vision_backend import VisionBackend

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Registry for discovering and creating vision backends.

    Built-in names are ``opencv`` and ``heuristic``; ``auto`` picks OpenCV
    when it loads and the heuristic backend otherwise. Third-party
    packages can register more via entry points:

    [project.entry-points."estate_lens.vision"]
    my_backend = "my_package:MyVisionBackend"
    """

    GROUP = VISION_ENTRY_POINT_GROUP

    @classmethod
    @lru_cache(maxsize=1)
    def discover_backends(cls) -> dict[str, type]:
        """Discover third-party vision backends.

        Returns:
            Dict mapping backend names to classes
        """
        backends = {}
        for ep in entry_points().select(group=cls.GROUP):
            if ep.name in cls.builtin_names():
                continue
            try:
                backends[ep.name] = ep.load()
                logger.debug(f"Discovered vision backend: {ep.name}")
            except Exception as e:
                logger.warning(f"Failed to load vision backend {ep.name}: {e}")
        return backends

    @staticmethod
    def builtin_names() -> list[str]:
        return [c.value for c in VisionBackendChoice]

    @classmethod
    def list_available(cls) -> list[str]:
        """List backend names accepted by create_backend."""
        return cls.builtin_names() + sorted(cls.discover_backends())

    @classmethod
    def create_backend(
        cls,
        name: str = VisionBackendChoice.AUTO.value,
        loader: Optional[VisionLibraryLoader] = None,
        subject_type: Optional[SubjectType] = None,
        **kwargs
    ) -> "VisionBackend":
        """Create a vision backend by name.

        Args:
            name: 'auto', 'opencv', 'heuristic' or a registered plugin name
            loader: Loader for the native library (process default if None)
            subject_type: Subject type reported by built-in backends
            **kwargs: Constructor arguments for plugin backends

        Returns:
            VisionBackend instance

        Raises:
            ConfigurationError: If the name is unknown
            VisionLibraryUnavailable: If 'opencv' is requested explicitly
                and cannot be loaded
        """
        from ..adapters.vision.heuristic_backend import HeuristicFallbackBackend
        from ..adapters.vision.opencv_backend import NativeVisionBackend

        loader = loader or get_default_loader()
        extra = {} if subject_type is None else {"subject_type": subject_type}
        name = name.strip().lower()

        if name == VisionBackendChoice.HEURISTIC.value:
            return HeuristicFallbackBackend(**extra)

        if name == VisionBackendChoice.OPENCV.value:
            return NativeVisionBackend(loader.load(), **extra)

        if name == VisionBackendChoice.AUTO.value:
            try:
                return NativeVisionBackend(loader.load(), **extra)
            except VisionLibraryUnavailable:
                logger.info("Native vision unavailable; using heuristic backend")
                return HeuristicFallbackBackend(**extra)

        plugins = cls.discover_backends()
        if name not in plugins:
            available = ", ".join(cls.list_available())
            raise ConfigurationError(
                f"Unknown vision backend: {name}. Available: {available}",
                config_key="vision_backend"
            )
        return plugins[name](**kwargs)
