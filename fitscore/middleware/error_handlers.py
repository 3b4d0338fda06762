"""
Exception handlers and request middleware for the Score Analysis API
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from fitscore.utils.exceptions import ScoringBaseException, map_to_http_exception
from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
PROCESSING_TIME_HEADER = "X-Processing-Time"


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


def create_error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    """Error body shared by every failure: envelope fields plus the mapped detail"""
    body = detail if isinstance(detail, dict) else {"message": str(detail)}
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "timestamp": datetime.utcnow().isoformat(),
            "request_id": request_id,
            "status_code": status_code,
            **body,
        },
        headers={REQUEST_ID_HEADER: request_id},
    )


async def scoring_exception_handler(request: Request, exc: ScoringBaseException) -> JSONResponse:
    request_id = _request_id(request)
    http_exc = map_to_http_exception(exc)
    log = logger.warning if http_exc.status_code < 500 else logger.error
    log(
        f"{exc.__class__.__name__} in {request.method} {request.url.path}: {exc.message}",
        extra={
            "request_id": request_id,
            "error_code": exc.error_code,
            "details": exc.details,
            "status_code": http_exc.status_code,
        }
    )
    return create_error_response(request_id, http_exc.status_code, http_exc.detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    request_id = _request_id(request)
    logger.warning(
        f"Validation error in {request.method} {request.url.path}: {exc}",
        extra={"request_id": request_id, "validation_errors": exc.errors()}
    )
    validation_details = {
        "error": "Validation failed",
        "message": "Request data validation failed",
        "validation_errors": exc.errors(),
    }
    return create_error_response(request_id, 422, validation_details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    request_id = _request_id(request)
    logger.warning(
        f"HTTP exception in {request.method} {request.url.path}: {exc.detail}",
        extra={"request_id": request_id, "status_code": exc.status_code}
    )
    return create_error_response(request_id, exc.status_code, exc.detail)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(ScoringBaseException, scoring_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)


def _context(request: Request, **extra) -> dict:
    return {
        "request_id": getattr(request.state, "request_id", None),
        "method": request.method,
        "path": request.url.path,
        **extra,
    }


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost middleware: request ids, request logging, generic 500 for anything unhandled"""

    async def dispatch(self, request: Request, call_next):
        request_id = _request_id(request)
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"--> {request.method} {request.url.path}", extra=_context(request, client_ip=client_ip))

        try:
            response = await call_next(request)
        except ScoringBaseException as exc:
            return await scoring_exception_handler(request, exc)
        except Exception as exc:
            logger.error(
                f"Unhandled {exc.__class__.__name__} in {request.method} {request.url.path}: {exc}",
                extra=_context(request, traceback=traceback.format_exc()),
                exc_info=True
            )
            # internal details stay in the logs
            return create_error_response(request_id, 500, {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            })

        logger.info(f"<-- {request.method} {request.url.path} {response.status_code}",
                    extra=_context(request, status_code=response.status_code))
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Adds the processing-time header and flags slow requests (scoring runs take several LLM calls)"""

    def __init__(self, app, slow_request_threshold: float = 30.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        if elapsed > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {elapsed:.3f}s",
                extra=_context(request, processing_time=elapsed, threshold=self.slow_request_threshold)
            )
        else:
            logger.debug(f"{request.method} {request.url.path} took {elapsed:.3f}s")

        response.headers[PROCESSING_TIME_HEADER] = f"{elapsed:.3f}"
        return response
