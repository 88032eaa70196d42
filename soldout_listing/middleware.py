from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import random
import time
import uuid
from typing import Callable
from structlog import get_logger

from .config import get_settings
from .exceptions import AppBaseException

logger = get_logger(__name__)

settings = get_settings()

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, sample_rate: float = settings.SAMPLE_RATE):
        super().__init__(app)
        self.sample_rate = sample_rate

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        # Generate request ID
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        # Add request ID to request state
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            # Log only sample of successful requests
            if random.random() < self.sample_rate:
                process_time = time.time() - start_time
                logger.info(
                    "request_processed",
                    request_id=request_id,
                    method=request.method,
                    url=str(request.url),
                    status_code=response.status_code,
                    processing_time=f"{process_time:.3f}s"
                )

            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "request_failed",
                request_id=request_id,
                method=request.method,
                url=str(request.url),
                error=str(e),
                processing_time=f"{process_time:.3f}s"
            )
            raise

class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except AppBaseException as e:
            # Log custom exceptions
            logger.warning(
                "application_error",
                error_type=e.__class__.__name__,
                detail=e.detail,
                status_code=e.status_code
            )
            raise
        except Exception as e:
            # Log unexpected exceptions
            logger.error(
                "unexpected_error",
                error=str(e),
                error_type=e.__class__.__name__
            )
            raise
