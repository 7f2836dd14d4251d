"""
API Errors
==========

Exception types raised by the HTTP layer and the handlers that render them.

Every failure leaves the API as a JSON body of the shape
``{"error": str, "details"?: any, "message"?: str}`` with a non-2xx status.

Taxonomy:
    - ConfigurationError: a required secret/identifier is absent (500).
      Raised before any client is built, so no outbound call is made.
    - InvalidPayloadError: request body is malformed (400).
    - UpstreamApiError: Meta or Google Sheets answered with an error. The
      upstream status and error object are passed through. Never retried.

Partial enrichment failures (one ad's creative or insight lookup) are NOT
errors at this level; the aggregation service degrades that record instead.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class MetaboardError(Exception):
    """Base class for errors rendered as ``{error, details, message}``."""

    status_code = 500

    def __init__(
        self,
        error: str,
        *,
        details: Any = None,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(error)
        self.error = error
        self.details = details
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        if self.message is not None:
            body["message"] = self.message
        return body


class ConfigurationError(MetaboardError):
    """Required configuration is missing."""

    status_code = 500


class InvalidPayloadError(MetaboardError):
    """Request payload failed validation."""

    status_code = 400


class UpstreamApiError(MetaboardError):
    """An external API (Meta, Google Sheets) returned an error."""

    def __init__(self, error: str, *, status_code: Optional[int] = None, details: Any = None):
        # Upstream statuses outside the error range would read as success.
        if status_code is None or status_code < 400:
            status_code = 502
        super().__init__(error, details=details, status_code=status_code)


async def metaboard_error_handler(request: Request, exc: MetaboardError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("[API] %s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        content = {"error": "Method not allowed"}
    else:
        content = {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[API] Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MetaboardError, metaboard_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
