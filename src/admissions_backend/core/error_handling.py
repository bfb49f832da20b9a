"""Error taxonomy for the admissions workflow and its mapping onto HTTP responses."""

from typing import Any, Dict, Optional
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass, asdict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .logging import get_logger


STORAGE_FAILURE_NOTICE = "Storage is unavailable, please retry the action"
GENERIC_FAILURE_NOTICE = "Something went wrong, please retry the action"


class ErrorSeverity(Enum):
    """Error severity levels for classification and handling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification and routing."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    DATABASE = "database"
    BUSINESS_LOGIC = "business_logic"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for error handling and logging."""
    operation: str
    component: str
    user_id: Optional[str] = None
    actor: Optional[str] = None
    additional_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AdmissionsError(Exception):
    """Base exception class for admissions workflow errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging and API responses."""
        return {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "original_error": str(self.original_error) if self.original_error else None,
            "original_error_type": type(self.original_error).__name__ if self.original_error else None,
        }

    def to_response(self) -> Dict[str, Any]:
        """Client-facing body; driver details stay in the log."""
        if self.category == ErrorCategory.DATABASE:
            return {"message": STORAGE_FAILURE_NOTICE, "category": self.category.value}
        if self.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            return {"message": GENERIC_FAILURE_NOTICE, "category": self.category.value}
        data = self.to_dict()
        data.pop("original_error")
        data.pop("original_error_type")
        return data


class ValidationError(AdmissionsError):
    """Required input missing or malformed; raised before any write."""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        super().__init__(
            message,
            ErrorCategory.VALIDATION,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class InvalidStateError(AdmissionsError):
    """Transition not permitted from the record's current state."""

    def __init__(self, message: str, current_status: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCategory.BUSINESS_LOGIC,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.current_status = current_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["current_status"] = self.current_status
        return data


class NotFoundError(AdmissionsError):
    """Requested application record does not exist."""

    def __init__(self, message: str = "Application not found", user_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCategory.NOT_FOUND,
            ErrorSeverity.LOW,
            **kwargs
        )
        self.user_id = user_id


class StorageError(AdmissionsError):
    """Underlying document store call failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            ErrorCategory.DATABASE,
            ErrorSeverity.HIGH,
            **kwargs
        )


class AuthenticationError(AdmissionsError):
    """Error for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            ErrorCategory.AUTHENTICATION,
            ErrorSeverity.MEDIUM,
            **kwargs
        )


class AuthorizationError(AdmissionsError):
    """Error for authorization failures."""

    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(
            message,
            ErrorCategory.AUTHORIZATION,
            ErrorSeverity.MEDIUM,
            **kwargs
        )


HTTP_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCategory.BUSINESS_LOGIC: status.HTTP_409_CONFLICT,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.DATABASE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorCategory.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorCategory.SYSTEM: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ErrorHandler:
    """Centralized error classification and logging."""

    def __init__(self):
        self.logger = get_logger("error_handler")

    def handle_error(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None
    ) -> AdmissionsError:
        """Classify an exception and log it at a level matching its severity.

        Args:
            error: The original exception
            context: Error context information

        Returns:
            Classified admissions error
        """
        if isinstance(error, AdmissionsError):
            admissions_error = error
        else:
            admissions_error = self._classify_error(error, context)

        self._log_error(admissions_error)
        return admissions_error

    def _classify_error(self, error: Exception, context: Optional[ErrorContext]) -> AdmissionsError:
        """Classify generic exceptions into admissions errors."""
        if isinstance(error, SQLAlchemyError):
            return StorageError(
                f"Database operation failed: {error}",
                context=context,
                original_error=error
            )

        return AdmissionsError(
            f"Unexpected error: {error}",
            ErrorCategory.SYSTEM,
            ErrorSeverity.CRITICAL,
            context=context,
            original_error=error
        )

    def _log_error(self, error: AdmissionsError):
        """Log error with appropriate level and context."""
        log_data = error.to_dict()
        message = log_data.pop("message")

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(message, **log_data)
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(message, **log_data)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(message, **log_data)
        else:
            self.logger.info(message, **log_data)


error_handler = ErrorHandler()


def http_status_for(error: AdmissionsError) -> int:
    """HTTP status code for a classified error."""
    return HTTP_STATUS_BY_CATEGORY.get(error.category, status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers that turn the error taxonomy into JSON responses."""

    @app.exception_handler(AdmissionsError)
    async def handle_admissions_error(request: Request, exc: AdmissionsError):
        error = error_handler.handle_error(exc)
        return JSONResponse(
            status_code=http_status_for(error),
            content={"error": error.to_response()},
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        error = error_handler.handle_error(
            exc, ErrorContext(operation=request.url.path, component="api")
        )
        return JSONResponse(
            status_code=http_status_for(error),
            content={"error": error.to_response()},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        error = error_handler.handle_error(
            exc, ErrorContext(operation=request.url.path, component="api")
        )
        return JSONResponse(
            status_code=http_status_for(error),
            content={"error": error.to_response()},
        )
