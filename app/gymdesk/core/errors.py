import logging
from decimal import Decimal

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.gymdesk.core.error_catalog import AppError, ErrorCatalog, ErrorCategory
from app.gymdesk.core.metrics import metrics

logger = logging.getLogger("gymdesk.errors")


_HTTP_STATUS_CODES = {
    400: ("BAD_REQUEST", ErrorCategory.VALIDATION),
    401: ("UNAUTHORIZED", ErrorCategory.UNAUTHORIZED),
    403: ("FORBIDDEN", ErrorCategory.FORBIDDEN),
    404: ("NOT_FOUND", ErrorCategory.NOT_FOUND),
    405: ("METHOD_NOT_ALLOWED", ErrorCategory.VALIDATION),
    409: ("CONFLICT", ErrorCategory.CONFLICT),
}


def _set_error_context(request: Request, code: str, exc: Exception | None = None) -> None:
    request.state.error_code = code
    if exc is not None:
        request.state.error_class = exc.__class__.__name__


def _is_lock_timeout(exc: Exception) -> bool:
    if isinstance(exc, OperationalError):
        message = str(exc).lower()
        return any(
            token in message
            for token in (
                "lock timeout",
                "deadlock detected",
                "database is locked",
                "could not obtain lock",
            )
        )
    return False


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "")


def _record_idempotency_failure(request: Request, status_code: int, response_body: dict) -> None:
    context = getattr(request.state, "idempotency", None)
    if context is None:
        return
    context.record_failure(status_code=status_code, response_body=response_body)


def _json_safe(value):
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, Exception):
        return str(value)
    return value


def _validation_error_details(exc: RequestValidationError) -> dict:
    errors = []
    for error in exc.errors():
        loc = list(error.get("loc", []))
        field = ".".join(str(item) for item in loc if item not in {"body", "query", "path", "header"}) or None
        errors.append(
            {
                "field": field,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "validation_error"),
                "loc": loc,
                "input": _json_safe(error.get("input")),
                "ctx": _json_safe(error.get("ctx")),
            }
        )
    return {"errors": errors}


def _payload(request: Request, *, code: str, message: str, category: str, details: object) -> dict:
    return {
        "code": code,
        "message": message,
        "category": category,
        "details": _json_safe(details),
        "trace_id": _trace_id(request),
    }


def error_response(
    code: str,
    message: str,
    details: object,
    trace_id: str,
    status_code: int,
    category: str = ErrorCategory.INTERNAL,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "category": category,
            "details": details,
            "trace_id": trace_id,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        _set_error_context(request, exc.error.code, exc)
        if exc.error.category == ErrorCategory.FORBIDDEN:
            metrics.increment_permission_denied()
        payload = _payload(
            request,
            code=exc.error.code,
            message=exc.error.message,
            category=exc.error.category,
            details=exc.details,
        )
        _record_idempotency_failure(request, exc.error.status_code, payload)
        return JSONResponse(status_code=exc.error.status_code, content=payload)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code, category = _HTTP_STATUS_CODES.get(exc.status_code, ("HTTP_ERROR", ErrorCategory.INTERNAL))
        payload = _payload(
            request,
            code=code,
            message=str(exc.detail) if exc.detail is not None else "HTTP error",
            category=category,
            details=None,
        )
        _set_error_context(request, code, exc)
        _record_idempotency_failure(request, exc.status_code, payload)
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        _set_error_context(request, ErrorCatalog.VALIDATION_ERROR.code, exc)
        payload = _payload(
            request,
            code=ErrorCatalog.VALIDATION_ERROR.code,
            message=ErrorCatalog.VALIDATION_ERROR.message,
            category=ErrorCatalog.VALIDATION_ERROR.category,
            details=_validation_error_details(exc),
        )
        _record_idempotency_failure(request, ErrorCatalog.VALIDATION_ERROR.status_code, payload)
        return JSONResponse(status_code=ErrorCatalog.VALIDATION_ERROR.status_code, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        error = ErrorCatalog.LOCK_TIMEOUT if _is_lock_timeout(exc) else ErrorCatalog.INTERNAL_ERROR
        if error is ErrorCatalog.LOCK_TIMEOUT:
            metrics.increment_lock_wait_timeout()
        else:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        _set_error_context(request, error.code, exc)
        payload = _payload(
            request,
            code=error.code,
            message=error.message,
            category=error.category,
            details={"type": exc.__class__.__name__},
        )
        _record_idempotency_failure(request, error.status_code, payload)
        return JSONResponse(status_code=error.status_code, content=payload)
