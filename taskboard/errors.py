"""Error taxonomy and the JSON error handlers installed on the app.

Every error response carries a JSON body with at least a ``message`` field.
Validation failures add field-level detail under ``errors``; everything else
is a flat message. Unexpected exceptions are logged and reported as a
generic 500 so no internals reach the client.
"""

from collections import defaultdict
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .middleware import request_id_headers

logger = structlog.get_logger()


class ApiError(Exception):
    """Base class for errors surfaced to the client."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class BadRequest(ApiError):
    status_code = 400
    default_message = "Bad request"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class InternalError(ApiError):
    status_code = 500


def flatten_validation_errors(errors: list[dict[str, Any]]) -> dict[str, Any]:
    """Group pydantic errors by field name.

    ``loc`` is ``("body", "name")`` or ``("query", "page")``; errors without
    a field (e.g. a body that is not an object) go to ``formErrors``.
    """
    field_errors: dict[str, list[str]] = defaultdict(list)
    form_errors: list[str] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        if loc:
            field_errors[".".join(loc)].append(err.get("msg", "Invalid value"))
        else:
            form_errors.append(err.get("msg", "Invalid value"))
    return {"formErrors": form_errors, "fieldErrors": dict(field_errors)}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "message": "Invalid request data",
            "errors": flatten_validation_errors(exc.errors()),
        },
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request.unhandled_error",
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content={"message": InternalError.default_message},
        headers=request_id_headers(request),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
