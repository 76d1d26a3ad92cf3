"""Middleware for error handling and request logging."""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import (
    WorkflowDesignerError,
    WorkflowImportError,
    NodeNotFoundError,
    EdgeRejectedError,
    NodeConfigError,
    SimulationError,
    create_error_response,
)
from .logging import get_logger, set_logging_context, clear_logging_context


logger = get_logger(__name__)


def status_code_for_error(error: WorkflowDesignerError) -> int:
    """Map a designer error to the HTTP status code reported to clients."""
    if isinstance(error, WorkflowImportError):
        return 400
    elif isinstance(error, NodeNotFoundError):
        return 404
    elif isinstance(error, EdgeRejectedError):
        return 409
    elif isinstance(error, NodeConfigError):
        return 422
    elif isinstance(error, SimulationError):
        return 502
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and turns uncaught errors into JSON."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Tag the request for tracing
        request_id = str(uuid.uuid4())
        start_time = time.time()

        context_token = set_logging_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown"
        )

        try:
            # Log request start
            logger.info(f"Request started: {request.method} {request.url.path}")

            # Process request
            response = await call_next(request)
            duration = time.time() - start_time

            logger.info(
                f"Request completed: {request.method} {request.url.path} - "
                f"Status: {response.status_code} - Duration: {duration:.3f}s"
            )

            # Add request ID to response headers
            response.headers["X-Request-ID"] = request_id
            return response

        except WorkflowDesignerError as e:
            # Known designer errors map to their own status codes
            duration = time.time() - start_time
            logger.warning(
                f"Workflow designer error: {request.method} {request.url.path} - "
                f"Error: {e.error_code} - Duration: {duration:.3f}s",
                extra={"error_details": e.to_dict()}
            )
            return JSONResponse(
                status_code=status_code_for_error(e),
                content=create_error_response(e),
                headers={"X-Request-ID": request_id}
            )

        except Exception as e:
            # Anything else is reported without internals
            duration = time.time() - start_time
            logger.error(
                f"Unexpected error: {request.method} {request.url.path} - "
                f"Error: {str(e)} - Duration: {duration:.3f}s",
                exc_info=True
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "InternalServerError",
                    "message": "An unexpected error occurred",
                    "details": {
                        "error_type": type(e).__name__,
                        "timestamp": datetime.now(timezone.utc).isoformat()
                    },
                    "request_id": request_id
                },
                headers={"X-Request-ID": request_id}
            )

        finally:
            clear_logging_context(context_token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Debug-level request and response details."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        # Log request details
        logger.debug(
            f"Request details: {request.method} {request.url} - "
            f"Query params: {dict(request.query_params)}"
        )

        response = await call_next(request)

        duration = time.time() - start_time
        logger.debug(
            f"Response details: Status {response.status_code} - "
            f"Duration: {duration:.3f}s"
        )
        return response


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """Flags slow requests and reports response time in a header."""

    def __init__(self, app, slow_request_threshold: float = 5.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        # Log slow requests
        if duration > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} - "
                f"Duration: {duration:.3f}s (threshold: {self.slow_request_threshold}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response
