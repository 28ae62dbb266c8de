"""Map CRM domain exceptions to HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from filali_crm.core.logging import get_logger
from filali_crm.crm.errors import (
    ClientConflictError,
    ClientNotFoundError,
    CollaboratorError,
    SubmissionInProgressError,
    ValidationFailedError,
)

logger = get_logger(__name__)

GENERIC_FAILURE = "Something went wrong. Please try again."


async def _not_found(request: Request, exc: ClientNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _conflict(request: Request, exc: ClientConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": exc.message, "field": exc.field.value},
    )


async def _validation(request: Request, exc: ValidationFailedError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation failed", "errors": exc.errors},
    )


async def _in_flight(request: Request, exc: SubmissionInProgressError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


async def _collaborator(request: Request, exc: CollaboratorError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": exc.detail, "source": exc.source},
    )


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_FAILURE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on the application."""
    app.add_exception_handler(ClientNotFoundError, _not_found)
    app.add_exception_handler(ClientConflictError, _conflict)
    app.add_exception_handler(ValidationFailedError, _validation)
    app.add_exception_handler(SubmissionInProgressError, _in_flight)
    app.add_exception_handler(CollaboratorError, _collaborator)
    app.add_exception_handler(Exception, _unexpected)
