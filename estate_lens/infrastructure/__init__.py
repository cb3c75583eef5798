"""Infrastructure - library loading and plugin discovery."""

from .plugin_registry import PluginRegistry
from .vision_loader import VisionLibraryLoader, get_default_loader

__all__ = ['PluginRegistry', 'VisionLibraryLoader', 'get_default_loader']
