"""
Global Exception Handling

Provides the error taxonomy for the photo editor and the FastAPI handlers
that render it as structured JSON responses.
"""

import traceback
from typing import Optional, Dict, Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.logging import get_logger, request_id_var, utc_timestamp

logger = get_logger(__name__)


class ErrorCategory:
    """Caller-visible error categories."""
    INVALID_REQUEST = "invalid_request"
    INVALID_ACTION = "invalid_action"
    INVALID_PARAMETERS = "invalid_parameters"
    NOT_FOUND = "not_found"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    INTERNAL = "internal"


# =============================================================================
# Custom Exceptions
# =============================================================================

class PhotoEditorError(Exception):
    """Base exception for the photo editor."""

    category = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        code: int = 500,
        action: Optional[str] = None,
        index: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.action = action
        self.index = index
        self.request_id = request_id or request_id_var.get()
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Render the error in the outbound wire shape."""
        body: Dict[str, Any] = {
            "status": "error",
            "error": self.message,
            "category": self.category,
            "request_id": self.request_id or request_id_var.get(),
            "timestamp": utc_timestamp(),
        }
        if self.action is not None:
            body["action"] = self.action
        if self.index is not None:
            body["index"] = self.index
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PhotoEditorError):
    """Raised when the request or an action fails schema-level checks."""

    category = ErrorCategory.INVALID_REQUEST

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, code=400, **kwargs)
        self.field = field
        if field:
            self.details["field"] = field


class DecodeError(PhotoEditorError):
    """Raised when an action's params cannot be decoded into its typed shape."""

    category = ErrorCategory.INVALID_ACTION

    def __init__(self, message: str, action: str, **kwargs):
        super().__init__(message, code=400, action=action, **kwargs)


class UnknownActionError(PhotoEditorError):
    """Raised when an action kind is not one of the supported kinds."""

    category = ErrorCategory.INVALID_ACTION

    def __init__(self, action: str, **kwargs):
        super().__init__(f"field {action} is not valid", code=400, action=action, **kwargs)


class TransformError(PhotoEditorError):
    """Raised when a transform rejects its parameters or fails on the image."""

    category = ErrorCategory.INVALID_PARAMETERS

    def __init__(self, reason: str, action: str, **kwargs):
        super().__init__(
            f"failed to perform action {action}: {reason}",
            code=400,
            action=action,
            **kwargs
        )
        self.reason = reason


class NameGenerationError(PhotoEditorError):
    """Raised when no randomness source is available to name an image."""

    def __init__(self, message: str = "failed to generate name", **kwargs):
        super().__init__(message, code=500, **kwargs)


class NotFoundError(PhotoEditorError):
    """Raised when an image cannot be located by name or key."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=404, **kwargs)


class ImageLoadError(PhotoEditorError):
    """Raised when stored bytes cannot be decoded into an image."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, message: str = "failed to load image", **kwargs):
        super().__init__(message, code=404, **kwargs)


class PersistError(PhotoEditorError):
    """Raised when the final image cannot be encoded or written."""

    category = ErrorCategory.UNSUPPORTED_MEDIA_TYPE

    def __init__(self, message: str = "failed to save image", **kwargs):
        super().__init__(message, code=415, **kwargs)


class UploadError(PhotoEditorError):
    """Raised when an uploaded file is rejected."""

    category = ErrorCategory.UNSUPPORTED_MEDIA_TYPE

    def __init__(self, message: str, code: int = 415, **kwargs):
        super().__init__(message, code=code, **kwargs)
        if code == 413:
            self.category = ErrorCategory.PAYLOAD_TOO_LARGE
        elif code == 400:
            self.category = ErrorCategory.INVALID_REQUEST


# =============================================================================
# Exception Handlers
# =============================================================================

def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(PhotoEditorError)
    async def photo_editor_exception_handler(request: Request, exc: PhotoEditorError):
        logger.error(
            "photo_editor_exception",
            error=exc.message,
            error_type=type(exc).__name__,
            code=exc.code,
            category=exc.category,
            failed_action=exc.action,
            index=exc.index,
            details=exc.details
        )

        return JSONResponse(status_code=exc.code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        # Runs outside the request-ID middleware, so the context var is unset
        request_id = getattr(request.state, "request_id", None) or request_id_var.get()

        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            request_id=request_id,
            traceback=traceback.format_exc()
        )

        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": "Internal server error",
                "category": ErrorCategory.INTERNAL,
                "request_id": request_id,
                "timestamp": utc_timestamp()
            },
            headers={"X-Request-ID": request_id} if request_id else None
        )
