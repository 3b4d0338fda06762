"""
Custom Exception Classes for the Score Analysis API
"""
from enum import Enum
from typing import Dict, Any

from fastapi import HTTPException


class ScoringBaseException(Exception):
    """Base exception for the Score Analysis API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(ScoringBaseException):
    """Raised when request data is missing or invalid"""

    def __init__(self, message: str, field: str = None, value: Any = None, error_code: str = "VALIDATION_ERROR", **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class MissingCandidateDocument(ValidationError):
    """Raised when neither a resume nor a network profile yields usable text"""

    def __init__(self, message: str = None, tried: list = None, **kwargs):
        details = kwargs.pop('details', {})
        details['tried'] = tried or []
        super().__init__(
            message or "No valid documents found for analysis. Please upload at least one document.",
            error_code="MISSING_CANDIDATE_DOCUMENT",
            details=details,
            **kwargs
        )


class ResourceNotFound(ScoringBaseException):
    """Raised when a referenced resource does not exist"""

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        super().__init__(message, error_code="RESOURCE_NOT_FOUND", details=details, **kwargs)


class ExtractionErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_FORMAT = "InvalidFormat"
    EMPTY_CONTENT = "EmptyContent"
    UNAVAILABLE = "Unavailable"


class ExtractionError(ScoringBaseException):
    """Raised when a document cannot be turned into usable text"""

    def __init__(self, message: str, kind: ExtractionErrorKind, locator: str = None, attempts: int = None, **kwargs):
        self.kind = kind
        self.attempts = attempts
        details = kwargs.pop('details', {})
        details['kind'] = kind.value
        if locator:
            details['locator'] = locator
        if attempts is not None:
            details['attempts'] = attempts
        super().__init__(message, error_code="EXTRACTION_ERROR", details=details, **kwargs)

    @property
    def transient(self) -> bool:
        return self.kind == ExtractionErrorKind.UNAVAILABLE


class GenerationErrorKind(str, Enum):
    UNAVAILABLE = "Unavailable"
    RATE_LIMITED = "RateLimited"
    TIMEOUT = "Timeout"
    UNKNOWN = "Unknown"


class GenerationError(ScoringBaseException):
    """Raised when the text-generation service fails"""

    def __init__(self, message: str, kind: GenerationErrorKind, stage: str = None, status_code: int = None, **kwargs):
        self.kind = kind
        details = kwargs.pop('details', {})
        details['kind'] = kind.value
        if stage:
            details['stage'] = stage
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="GENERATION_ERROR", details=details, **kwargs)


class PersistenceError(ScoringBaseException):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="PERSISTENCE_ERROR", details=details, **kwargs)


class ConfigurationError(ScoringBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


# Ordered most specific first; lookup walks the list with isinstance
STATUS_CODE_MAPPING = [
    (ValidationError, 400),
    (ExtractionError, 400),
    (ResourceNotFound, 404),
    (GenerationError, 500),
    (PersistenceError, 500),
    (ConfigurationError, 500),
]


def status_code_for(exc: ScoringBaseException) -> int:
    for exc_type, status_code in STATUS_CODE_MAPPING:
        if isinstance(exc, exc_type):
            return status_code
    return 500


# HTTP Exception Mapping
def map_to_http_exception(exc: ScoringBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""
    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code_for(exc), detail=detail)


# Exception context manager for better error handling
class ExceptionContext:
    """Context manager that logs an operation and wraps foreign exceptions"""

    def __init__(self, operation: str, logger=None, wrap_as=PersistenceError, **context):
        self.operation = operation
        self.logger = logger
        self.wrap_as = wrap_as
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            if self.logger:
                self.logger.error(
                    f"Operation failed: {self.operation} - {exc_val}",
                    extra={**self.context, "exception_type": exc_type.__name__}
                )

            # Re-raise custom exceptions as-is
            if isinstance(exc_val, ScoringBaseException):
                return False

            if not isinstance(exc_val, Exception):
                return False

            wrapped_exc = self.wrap_as(
                f"{self.operation} failed: {str(exc_val)}",
                details=dict(self.context),
                cause=exc_val
            )
            raise wrapped_exc from exc_val
        else:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)

        return False
