"""Domain error taxonomy and its HTTP mapping."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger(__name__)


class PipelineError(Exception):
    """Base class for errors raised by pipeline services."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "pipeline_error"

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__doc__ or self.error_type


class AuthenticationError(PipelineError):
    """Missing or invalid identity."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"


class AuthorizationError(PipelineError):
    """Role or ownership does not permit this action."""

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "authorization_error"


class ValidationError(PipelineError):
    """A required field is missing or malformed."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"

    def __init__(self, detail: str = "", field: str = None):
        super().__init__(detail)
        self.field = field


class ConflictError(PipelineError):
    """The request conflicts with current state."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict_error"


class InvalidTransitionError(ConflictError):
    """No stage edge leads from the current stage to the requested one."""

    error_type = "invalid_transition"


class RejectionLockError(ConflictError):
    """A prior application to this company was rejected."""

    error_type = "rejection_lock"


class NotFoundError(PipelineError):
    """The requested entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Render a PipelineError as a typed JSON error body."""
    content = {"detail": exc.detail, "error": exc.error_type}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field

    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    logger.info(
        "pipeline_error",
        error=exc.error_type,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PipelineError, pipeline_error_handler)
