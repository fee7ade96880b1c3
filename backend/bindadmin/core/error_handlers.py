"""
Exception handlers for the BIND control plane API
"""

import logging
import traceback
from datetime import datetime, timezone

from fastapi import Request, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import DNSServerException, create_validation_error_response

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


async def dns_server_exception_handler(request: Request, exc: DNSServerException) -> JSONResponse:
    """Handle custom DNS server exceptions"""
    logger.error(f"DNS Server Exception: {exc.message}", extra={
        "details": exc.details,
        "path": request.url.path,
        "method": request.method
    })

    error_response = {
        "message": exc.message,
        "error_code": type(exc).__name__.upper(),
        "details": exc.details,
        "suggestions": exc.suggestions,
        "timestamp": _utcnow(),
        "path": request.url.path,
        "method": request.method
    }

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_response)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions with enhanced error information"""

    # If the detail is already a dict (from create_http_exception), use it
    if isinstance(exc.detail, dict):
        error_response = exc.detail.copy()
        error_response["timestamp"] = _utcnow()
        error_response["path"] = request.url.path
        error_response["method"] = request.method
    else:
        error_response = {
            "message": str(exc.detail),
            "error_code": f"HTTP_{exc.status_code}",
            "details": {},
            "suggestions": _get_default_suggestions_for_status(exc.status_code),
            "timestamp": _utcnow(),
            "path": request.url.path,
            "method": request.method
        }

    logger.warning(f"HTTP Exception {exc.status_code}: {error_response.get('message')}", extra={
        "status_code": exc.status_code,
        "path": request.url.path,
        "method": request.method
    })

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_response),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI request validation errors"""
    context = _get_context_from_path(request.url.path)
    http_exc = create_validation_error_response(list(exc.errors()), context)
    return await http_exception_handler(request, http_exc)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""

    logger.error(f"Unexpected error: {str(exc)}", extra={
        "path": request.url.path,
        "method": request.method,
        "exception_type": type(exc).__name__,
        "traceback": traceback.format_exc()
    })

    # Don't expose internal error details
    error_response = {
        "message": "An unexpected error occurred",
        "error_code": "INTERNAL_SERVER_ERROR",
        "details": {"error_type": type(exc).__name__},
        "suggestions": _get_default_suggestions_for_status(500),
        "timestamp": _utcnow(),
        "path": request.url.path,
        "method": request.method
    }

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response
    )


def _get_context_from_path(path: str) -> str:
    """Extract context from request path for better error messages"""
    if "/named-conf/zones" in path:
        return "zone"
    elif "/named-conf" in path:
        return "named-conf"
    return "request"


def _get_default_suggestions_for_status(status_code: int) -> list[str]:
    """Get default suggestions based on HTTP status code"""
    suggestions_map = {
        400: [
            "Check that all required fields are provided",
            "Verify that all data is in the correct format"
        ],
        401: [
            "Check that your authentication token is valid",
            "Try logging in again"
        ],
        403: [
            "Verify that you have permission for this operation"
        ],
        404: [
            "Verify that the resource exists",
            "Check that the URL is correct"
        ],
        409: [
            "Check for existing resources with the same name"
        ],
        422: [
            "Check that all data is valid",
            "Verify required fields are provided"
        ],
        429: [
            "Wait before making another request"
        ],
        500: [
            "Try the operation again",
            "Contact support if the problem persists"
        ],
        503: [
            "Wait a moment and try again",
            "Check service status"
        ]
    }

    return suggestions_map.get(status_code, [
        "Review your request and try again"
    ])
