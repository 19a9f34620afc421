"""Error taxonomy and its single translation to HTTP responses.

Every subsystem raises subclasses of ``PolytagError``. Each error class carries an
``ErrorKind``; the kind (never the class) decides the HTTP status, through
``STATUS_BY_KIND``. ``register_error_handlers`` installs the one place where errors are
rendered as ``{"error": message}``.
"""
import enum
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    BAD_REQUEST = "bad_request"
    DEPENDENCY = "dependency"
    STREAM = "stream"


STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 422,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.DEPENDENCY: 500,
    ErrorKind.STREAM: 500,
}

# Kinds whose message is replaced in production responses
_INTERNAL_KINDS = {ErrorKind.DEPENDENCY, ErrorKind.STREAM}
INTERNAL_ERROR_MESSAGE = "internal server error"


class PolytagError(Exception):
    """Base class for every error this service reports to clients."""

    kind: ErrorKind = ErrorKind.DEPENDENCY

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class NotFoundError(PolytagError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(PolytagError):
    kind = ErrorKind.CONFLICT


class ValidationError(PolytagError):
    kind = ErrorKind.VALIDATION


class BadRequestError(PolytagError):
    kind = ErrorKind.BAD_REQUEST


class DependencyError(PolytagError):
    kind = ErrorKind.DEPENDENCY


class StreamError(PolytagError):
    kind = ErrorKind.STREAM


class DatabaseError(DependencyError):
    """Relational store or connection pool failure."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__("database error")


def error_message(error: PolytagError, production: bool) -> str:
    """Message sent to the client; internal detail only outside production."""
    if error.kind in _INTERNAL_KINDS:
        if production:
            return INTERNAL_ERROR_MESSAGE
        cause = error.__cause__ or getattr(error, "cause", None)
        if cause is not None:
            return f"{error}: {type(cause).__name__}: {cause}"
    return str(error)


def render_error(error: PolytagError, production: bool) -> JSONResponse:
    if error.kind is ErrorKind.STREAM:
        logger.warning(f"stream failure: {error!r} (cause: {error.__cause__!r})")
    elif error.kind is ErrorKind.DEPENDENCY:
        logger.error(f"dependency failure: {error!r}", exc_info=error)
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error_message(error, production)},
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or "invalid request"


def register_error_handlers(app: FastAPI, production: bool) -> None:
    """Install the central error-to-response translation on ``app``."""

    @app.exception_handler(PolytagError)
    async def handle_polytag_error(request: Request, exc: PolytagError):
        return render_error(exc, production)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=STATUS_BY_KIND[ErrorKind.VALIDATION],
            content={"error": _describe_validation_errors(exc)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        error = DatabaseError(exc)
        error.__cause__ = exc
        return render_error(error, production)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        error = DependencyError("unexpected error")
        error.__cause__ = exc
        return render_error(error, production)
