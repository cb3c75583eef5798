"""Custom exceptions for Estate Lens."""

from typing import Optional, Sequence


class EstateLensError(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error description
        error_code: Optional error code for programmatic handling
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(EstateLensError):
    """Error in configuration or settings.

    Attributes:
        config_key: The configuration key that caused the error (if applicable)
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, error_code="CONFIG_ERROR")
        self.config_key = config_key


class ValidationError(EstateLensError):
    """Error validating inputs or parameters.

    Attributes:
        field: The field that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, error_code="VALIDATION_ERROR")
        self.field = field


class CameraUnavailable(EstateLensError):
    """No camera stream could be opened, even with basic constraints.

    Callers should offer file selection instead.

    Attributes:
        device_index: The device that was tried last (if known)
    """

    def __init__(self, message: str, device_index: Optional[int] = None):
        super().__init__(message, error_code="CAMERA_UNAVAILABLE")
        self.device_index = device_index


class VisionLibraryUnavailable(EstateLensError):
    """The native vision library could not be loaded.

    Signals the fallback path; never surfaced to end users.

    Attributes:
        module_name: Name of the module that failed to import
    """

    def __init__(self, message: str, module_name: Optional[str] = None):
        super().__init__(message, error_code="VISION_UNAVAILABLE")
        self.module_name = module_name


class InvalidGeometry(EstateLensError):
    """Corners describe a region that cannot be rectified.

    Callers should ask the user to re-adjust the corners.

    Attributes:
        corners: The offending corner coordinates as (x, y) pairs
    """

    def __init__(
        self,
        message: str,
        corners: Optional[Sequence[tuple[float, float]]] = None
    ):
        super().__init__(message, error_code="INVALID_GEOMETRY")
        self.corners = list(corners) if corners is not None else None


class CompressionFailed(EstateLensError):
    """Error while compressing an image.

    Internal only: the compressor returns the original file instead.

    Attributes:
        file_name: Name of the file being compressed
    """

    def __init__(self, message: str, file_name: Optional[str] = None):
        super().__init__(message, error_code="COMPRESSION_ERROR")
        self.file_name = file_name

    def __str__(self) -> str:
        if self.file_name:
            return f"{super().__str__()} (file: {self.file_name})"
        return super().__str__()


class SubjectNotFoundError(EstateLensError):
    """No subject was detected and no corners were supplied.

    Callers should ask the user to draw the quadrilateral manually.
    """

    def __init__(self, message: str = "No subject detected; corners required"):
        super().__init__(message, error_code="NO_SUBJECT")
