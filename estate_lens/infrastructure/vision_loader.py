"""One-shot loader for the native vision library."""

from __future__ import annotations

import importlib
import logging
import threading
from concurrent.futures import Future
from types import ModuleType
from typing import Callable, Optional

from ..config import VISION_MODULE_NAME
from ..exceptions import VisionLibraryUnavailable

logger = logging.getLogger(__name__)

# Attributes the backend relies on; a module without them is unusable
REQUIRED_ATTRIBUTES: tuple[str, ...] = (
    "cvtColor",
    "GaussianBlur",
    "Canny",
    "findContours",
    "approxPolyDP",
    "getPerspectiveTransform",
    "warpPerspective",
)


class VisionLibraryLoader:
    """Load the vision module at most once per process.

    The first caller performs the import; callers arriving while it is in
    flight wait on the same Future. A successful load is kept for the
    process lifetime. A failed load is reported to everyone waiting on it
    and then forgotten, so the next call tries again.

    Example:
        >>> loader = VisionLibraryLoader()
        >>> cv2 = loader.load()  # imports
        >>> cv2 is loader.load()  # cached
        True
    """

    def __init__(
        self,
        module_name: str = VISION_MODULE_NAME,
        importer: Callable[[str], ModuleType] = importlib.import_module
    ):
        self.module_name = module_name
        self._importer = importer
        self._module: Optional[ModuleType] = None
        self._pending: Optional[Future] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        with self._lock:
            return self._module is not None

    def load(self) -> ModuleType:
        """Return the vision module, importing it on first use.

        Returns:
            The imported module

        Raises:
            VisionLibraryUnavailable: If the import fails or the module lacks
                required functions
        """
        with self._lock:
            if self._module is not None:
                return self._module
            if self._pending is None:
                self._pending = Future()
                future = self._pending
                owner = True
            else:
                future = self._pending
                owner = False

        if owner:
            self._run_import(future)
        else:
            logger.debug(f"Waiting for in-flight import of {self.module_name}")

        return future.result()

    def _run_import(self, future: Future) -> None:
        """Perform the import and settle the shared future."""
        try:
            module = self._importer(self.module_name)
            missing = [a for a in REQUIRED_ATTRIBUTES if not hasattr(module, a)]
            if missing:
                raise VisionLibraryUnavailable(
                    f"{self.module_name} lacks {', '.join(missing)}",
                    module_name=self.module_name
                )
        except VisionLibraryUnavailable as e:
            self._fail(future, e)
            return
        except Exception as e:
            # ImportError, or OSError from missing shared libraries
            error = VisionLibraryUnavailable(
                f"Failed to load {self.module_name}: {e}",
                module_name=self.module_name
            )
            error.__cause__ = e
            self._fail(future, error)
            return

        version = getattr(module, "__version__", "unknown")
        logger.info(f"{self.module_name} {version} loaded")
        with self._lock:
            self._module = module
            self._pending = None
        future.set_result(module)

    def _fail(self, future: Future, error: VisionLibraryUnavailable) -> None:
        """Report a failed load and allow the next call to retry."""
        logger.warning(f"{error}; heuristic vision will be used")
        with self._lock:
            self._pending = None
        future.set_exception(error)

    def reset(self) -> None:
        """Forget a loaded module (used by tests)."""
        with self._lock:
            self._module = None
            self._pending = None


_DEFAULT_LOADER = VisionLibraryLoader()


def get_default_loader() -> VisionLibraryLoader:
    """Process-wide loader shared by all pipelines."""
    return _DEFAULT_LOADER
