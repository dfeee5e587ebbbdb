"""
Custom exception hierarchy for NITRALINK.

ARCHITECTURE:
- NitraLinkError: Base class carrying a message and a context dictionary
- Domain-specific exceptions: validation, spatial, analysis and worker errors
- error_payload(): turns any exception into the structured mapping used in
  error notifications
"""

from typing import Optional, Dict, Any, List


class NitraLinkError(Exception):
    """
    Base exception class for all NITRALINK errors.

    Features:
    - Human-readable message
    - Structured error details (context dictionary)
    - Consistent dictionary form for error notifications and logs
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize NITRALINK error.

        Args:
            message: Human-readable error message
            details: Additional context (field names, values, etc.)
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation used in error notifications."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        """String representation for logging."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ============================================================================
# DATA VALIDATION ERRORS
# ============================================================================

class DataValidationError(NitraLinkError):
    """Input data failed validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message=message, details=details)


class InvalidInputError(DataValidationError):
    """Analysis request is missing a dataset, the bounding box or the power."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        details = {}
        if errors:
            details["errors"] = errors

        super().__init__(
            message=f"Invalid input data: {message}",
            details=details,
        )


# ============================================================================
# SPATIAL OPERATION ERRORS
# ============================================================================

class SpatialOperationError(NitraLinkError):
    """Spatial computation or geometry operation failed."""

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[Dict] = None):
        details = details or {}
        if operation:
            details["operation"] = operation

        super().__init__(message=message, details=details)


class InvalidGeometryError(SpatialOperationError):
    """Invalid or malformed geometry data."""

    def __init__(self, message: str, geometry_type: Optional[str] = None, details: Optional[Dict] = None):
        details = details or {}
        if geometry_type:
            details["geometry_type"] = geometry_type

        super().__init__(
            message=message,
            operation="geometry_validation",
            details=details,
        )


class InterpolationError(SpatialOperationError):
    """IDW interpolation could not be computed."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            operation="idw_interpolation",
            details=details,
        )


# ============================================================================
# ANALYSIS / WORKER ERRORS
# ============================================================================

class AnalysisError(NitraLinkError):
    """A pipeline stage failed."""

    def __init__(self, message: str, stage: Optional[str] = None, details: Optional[Dict] = None):
        details = details or {}
        if stage:
            details["stage"] = stage

        super().__init__(message=message, details=details)


class WorkerBusyError(NitraLinkError):
    """A run was posted while another run owns the worker."""

    def __init__(self, message: str = "Analysis worker is already running a request"):
        super().__init__(message=message)


class WorkerCrashedError(NitraLinkError):
    """The background process exited without a terminal notification."""

    def __init__(self, exitcode: Optional[int] = None):
        super().__init__(
            message=f"Analysis worker exited unexpectedly (exit code {exitcode})",
            details={"exitcode": exitcode},
        )


# ============================================================================
# ERROR PAYLOAD (for error notifications)
# ============================================================================

def error_payload(exc: BaseException) -> Dict[str, Any]:
    """
    Convert any exception into the structured error mapping.

    NitraLinkError subclasses keep their own message and details; anything
    else is reported with its class name so the caller still gets a
    descriptive message.
    """
    if isinstance(exc, NitraLinkError):
        return exc.to_dict()

    message = str(exc) or exc.__class__.__name__
    return {
        "error": exc.__class__.__name__,
        "message": message,
        "details": {},
    }
