"""
Setup error handling for the FastAPI application
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import DNSServerException
from .error_handlers import (
    dns_server_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)


def setup_error_handlers(app: FastAPI) -> None:
    """
    Setup all error handlers for the FastAPI application

    Args:
        app: FastAPI application instance
    """

    # Custom DNS server exceptions, including the named.conf lifecycle errors
    app.add_exception_handler(DNSServerException, dns_server_exception_handler)

    # FastAPI validation errors
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Structured HTTP errors
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Generic exception handler (catch-all)
    app.add_exception_handler(Exception, generic_exception_handler)
