import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


class LanMonitorError(Exception):
    """Base exception for LAN Monitor API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status: int = 500,
        details: dict | None = None,
    ):
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class NotFoundError(LanMonitorError):
    def __init__(self, message: str = "Resource not found.", details: dict | None = None):
        super().__init__(code="not_found", message=message, status=404, details=details)


class ValidationError(LanMonitorError):
    """Rejected write. ``errors`` is the human-readable reason list."""

    def __init__(self, errors: list[str], message: str = "Validation failed."):
        self.errors = list(errors)
        super().__init__(code="validation_failed", message=message, status=400, details={"errors": self.errors})


class ConflictError(LanMonitorError):
    def __init__(self, message: str = "Resource is in a conflicting state.", details: dict | None = None):
        super().__init__(code="conflict", message=message, status=409, details=details)


class BackendUnavailableError(LanMonitorError):
    def __init__(self, message: str = "Inference backend is unavailable.", details: dict | None = None):
        super().__init__(code="backend_unavailable", message=message, status=503, details=details)


class StorageError(LanMonitorError):
    def __init__(self, message: str = "Storage operation failed.", details: dict | None = None):
        super().__init__(code="storage_error", message=message, status=500, details=details)


async def lanmon_error_handler(request: Request, exc: LanMonitorError) -> JSONResponse:
    """Global exception handler for LanMonitorError and subclasses."""
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


def _describe_validation_error(err: dict) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    message = err.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and query params as 400 with a reason list."""
    error = ValidationError([_describe_validation_error(e) for e in exc.errors()])
    return JSONResponse(status_code=error.status, content=error.to_dict())


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage_error", path=request.url.path, error=str(exc))
    error = StorageError()
    return JSONResponse(status_code=error.status, content=error.to_dict())
