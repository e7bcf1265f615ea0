"""
Standardized exception hierarchy for the journal API
Provides rich context, consistent logging, and user-facing error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class JournalError(Exception):
    """
    Base exception for all journal errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-facing messages
    - Structured context
    - Automatic logging

    Example:
        raise JournalError(
            message="Failed to save entry",
            user_id="abc-123",
            operation="save_entry",
            context={"date": "2024-05-01"}
        )
    """

    status_code: int = 500
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or message
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' is reserved by logging
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "message": self.user_message,
            "error": self.__class__.__name__,
            "requestId": self.request_id,
        }


# ==========================================
# Request Errors
# ==========================================

class ValidationError(JournalError):
    """
    Raised when a request body fails validation before any store access

    Example:
        raise ValidationError(
            message="Duplicate value for field type",
            field="values",
            value="ft-1"
        )
    """

    status_code = 400
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


class StaleReferenceError(JournalError):
    """
    An action or value points at a field / field type that no longer
    exists in the current structure version
    """

    status_code = 400
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        action_id: Optional[str] = None,
        field_id: Optional[str] = None,
        field_type_id: Optional[str] = None,
        **kwargs
    ):
        self.action_id = action_id
        self.field_id = field_id
        self.field_type_id = field_type_id
        super().__init__(
            message=message,
            user_message=(
                "This action refers to a field that is no longer part of your journal. "
                "Edit or remove the action."
            ),
            context={
                "action_id": action_id,
                "field_id": field_id,
                "field_type_id": field_type_id,
            },
            **kwargs
        )


class RecordNotFoundError(JournalError):
    """Requested record does not exist"""

    status_code = 404
    log_level = logging.INFO

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        kwargs.setdefault("user_message", message)
        super().__init__(
            message=message,
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# Store Errors
# ==========================================

class StoreError(JournalError):
    """
    Base class for key-value store failures
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("user_message", "We encountered an issue accessing your journal. Please try again.")
        super().__init__(message=message, **kwargs)


class StoreConnectionError(StoreError):
    """Store connection failed"""

    status_code = 503

    def __init__(self, message: str = "Store connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(StoreError):
    """Store query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            context={"query": query},
            **kwargs
        )


class ConditionFailedError(StoreError):
    """A conditional update found the record in an unexpected state"""

    status_code = 409
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        key: Optional[tuple[str, str]] = None,
        condition: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.key = key
        self.condition = condition
        super().__init__(
            message=message,
            user_message="Your journal was changed by another request. Please reload and try again.",
            context={"key": key, "condition": condition},
            **kwargs
        )


# ==========================================
# Authentication & Configuration
# ==========================================

class AuthenticationError(JournalError):
    """Identity token missing or rejected"""

    status_code = 401
    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Authentication failed",
        **kwargs
    ):
        super().__init__(
            message=message,
            user_message="Unauthorized: invalid or missing token.",
            **kwargs
        )


class ConfigurationError(JournalError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The service is not properly configured.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_store_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> JournalError:
    """
    Wrap driver exceptions (psycopg, pool timeouts) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate StoreError subclass

    Example:
        try:
            await cur.execute(query, params)
        except psycopg.Error as e:
            raise wrap_store_exception(e, operation="put", context={"pk": pk})
    """
    import psycopg
    from psycopg_pool import PoolTimeout

    if isinstance(error, JournalError):
        return error

    if isinstance(error, (psycopg.OperationalError, PoolTimeout)):
        return StoreConnectionError(
            message=f"Store connection failed: {error}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    if isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Store query failed: {error}",
            query=operation,
            user_id=user_id,
            operation=operation,
            cause=error
        )

    return StoreError(
        message=f"{operation} failed: {error}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
