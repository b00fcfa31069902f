"""
API error taxonomy and the handlers that render it.

Every error a handler raises on purpose is an ApiError; the handlers below turn
it into `{"error": message}` with the matching status. Anything else is a 500.
"""

from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.logging import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ApiError(HTTPException):
    status_code = 500
    default_message = INTERNAL_ERROR_MESSAGE

    def __init__(self, message: str | None = None, *, detail: Any = None, headers: dict | None = None):
        self.message = message or self.default_message
        self.extra_detail = detail
        super().__init__(status_code=self.status_code, detail=self.message, headers=headers)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class InvalidRetailerError(ValidationError):
    default_message = 'Invalid retailer. Expected "tesco" or "sainsburys"'


class AuthError(ApiError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Invalid or expired token"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class QuotaExceededError(ApiError):
    status_code = 429
    default_message = "Message limit reached"


class PayloadTooLargeError(ApiError):
    status_code = 413
    default_message = "Request body too large"


class UpstreamError(ApiError):
    status_code = 502
    default_message = "Model gateway error"
    retryable = False


class GatewayUnavailableError(UpstreamError):
    status_code = 503
    default_message = "Model gateway is not configured"


class GatewayTimeoutError(UpstreamError):
    status_code = 503
    default_message = "Model gateway timed out"
    retryable = True


def _expose_detail(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is None or settings.expose_error_detail)


def _error_body(request: Request, message: str, detail: Any = None) -> dict:
    body: dict[str, Any] = {"error": message}
    if detail is not None and _expose_detail(request):
        body["detail"] = detail
    return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "http.error method=%s path=%s status=%s error=%s detail=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
            exc.extra_detail,
        )
    else:
        logger.info(
            "http.rejected method=%s path=%s status=%s error=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.message, exc.extra_detail),
        headers=exc.headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised HTTP errors (404 route, 405 method) in the same shape."""
    message = exc.detail if isinstance(exc.detail, str) else INTERNAL_ERROR_MESSAGE
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "")})
    logger.info("http.invalid_request method=%s path=%s fields=%s", request.method, request.url.path, fields)
    return JSONResponse(status_code=400, content=_error_body(request, "Invalid request", fields))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http.unhandled method=%s path=%s", request.method, request.url.path)
    detail = str(exc) if _expose_detail(request) else None
    return JSONResponse(status_code=500, content=_error_body(request, INTERNAL_ERROR_MESSAGE, detail))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
