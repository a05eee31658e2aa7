"""Exception handlers: one JSON error envelope for every failure.

Learn: Handlers turn exceptions into responses shaped like

    {"status": "fail", "message": "You are not a member of this project"}

- AppError subclasses are operational: status + message go out verbatim.
- Request validation, unknown routes and ORM errors are translated into
  the same taxonomy instead of leaking framework/driver specifics.
- Anything else is a bug: logged with structlog, and reduced to
  "Something went wrong" unless running in development, where the real
  message and stack trace are returned to speed up debugging.
"""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from crewboard.errors import AppError

logger = structlog.get_logger()


def error_response(
    status_code: int, message: str, headers: dict | None = None, **extra
) -> JSONResponse:
    status = "fail" if 400 <= status_code < 500 else "error"
    return JSONResponse(
        status_code=status_code,
        content={"status": status, "message": message, **extra},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(exc.status_code, exc.message, headers=headers)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]
    return error_response(400, f"Invalid input: {' | '.join(messages)}")


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("db.integrity_error", path=request.url.path, error=str(exc.orig))
    return error_response(409, "Duplicate field value")


async def no_result_handler(request: Request, exc: NoResultFound) -> JSONResponse:
    return error_response(404, "Record not found")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request.unhandled_error",
        path=request.url.path,
        method=request.method,
        error=repr(exc),
        exc_info=exc,
    )
    if request.app.state.settings.is_development:
        return error_response(
            500,
            str(exc) or exc.__class__.__name__,
            stack="".join(traceback.format_exception(exc)),
        )
    return error_response(500, "Something went wrong")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(NoResultFound, no_result_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
