"""
Custom exceptions and error helpers for the BIND control plane
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class DNSServerException(Exception):
    """Base exception for DNS server operations"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None
    ):
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []
        super().__init__(self.message)


class BindException(DNSServerException):
    """Exception for BIND9 service operations"""
    pass


class NamedConfException(DNSServerException):
    """Exception for named.conf lifecycle operations"""
    pass


class ParseError(NamedConfException):
    """A named.conf line could not be parsed"""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    cause = "malformed-line"

    def __init__(
        self,
        message: str,
        line_number: int,
        path: Optional[str] = None,
        cause: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.line_number = line_number
        self.path = path
        if cause:
            self.cause = cause
        location = f"{path}:{line_number}" if path else f"line {line_number}"
        error_details = {"line": line_number, "path": path, "cause": self.cause}
        error_details.update(details or {})
        super().__init__(
            f"{message} ({location})",
            details=error_details,
            suggestions=["Check the syntax of the reported line"]
        )


class UnterminatedBlock(ParseError):
    """End of input reached with an open block"""
    cause = "unterminated-block"


class IncludeIOError(ParseError):
    """An included file could not be read"""
    cause = "include-unreadable"

    def __init__(self, include_path: str, line_number: int, path: Optional[str] = None, reason: str = ""):
        self.include_path = include_path
        message = f"Cannot read included file {include_path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, line_number, path, details={"include_path": include_path})


class IncludeDepthExceeded(ParseError):
    """Include nesting went past the configured limit (usually a cycle)"""
    cause = "include-depth"


class NilRoot(NamedConfException):
    """The generator was given no tree"""
    status_code = status.HTTP_400_BAD_REQUEST


class SourceMissing(NamedConfException):
    """The file to snapshot does not exist"""
    status_code = status.HTTP_404_NOT_FOUND


class BackupMissing(NamedConfException):
    """The requested snapshot does not exist"""
    status_code = status.HTTP_404_NOT_FOUND


class ConfigIOError(NamedConfException):
    """Filesystem failure while handling configuration files"""
    pass


class ExecLaunchError(NamedConfException):
    """The configuration checker could not be started"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ConfigRejected(NamedConfException):
    """The checker refused the candidate configuration; nothing was written"""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, result):
        self.result = result
        super().__init__(
            f"Configuration validation failed: {result.error}",
            details={"validation": result.to_dict()},
            suggestions=["Fix the reported errors and validate again before saving"]
        )


class ReloadAfterWriteFailed(NamedConfException):
    """The new configuration was written but the daemon did not reload"""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, path: str, backup_path: Optional[str] = None, reason: str = ""):
        self.path = path
        self.backup_path = backup_path
        super().__init__(
            f"Configuration written to {path} but BIND reload failed",
            details={"path": path, "backup_path": backup_path, "written": True, "reason": reason},
            suggestions=[
                "Retry the reload once the daemon is healthy",
                "Restore the pre-change backup if the new configuration is at fault"
            ]
        )


class ZoneExists(NamedConfException):
    """A zone stanza with this name is already declared"""
    status_code = status.HTTP_409_CONFLICT


class ZoneNotFound(NamedConfException):
    """No zone stanza with this name is declared"""
    status_code = status.HTTP_404_NOT_FOUND


def create_http_exception(
    status_code: int,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    suggestions: Optional[List[str]] = None,
    error_code: Optional[str] = None
) -> HTTPException:
    """
    Create a standardized HTTP exception with helpful error information

    Args:
        status_code: HTTP status code
        message: Main error message
        details: Additional error details
        suggestions: List of suggestions to fix the error
        error_code: Internal error code for debugging

    Returns:
        HTTPException with structured error response
    """
    error_detail = {
        "message": message,
        "error_code": error_code,
        "details": details or {},
        "suggestions": suggestions or [],
        "timestamp": None  # Will be set by the handler
    }

    return HTTPException(status_code=status_code, detail=error_detail)


def create_validation_error_response(
    validation_errors: List[Dict[str, Any]],
    context: Optional[str] = None
) -> HTTPException:
    """
    Convert pydantic validation errors to a helpful HTTP exception

    Args:
        validation_errors: Error dicts as returned by ValidationError.errors()
        context: Additional context about what was being validated

    Returns:
        HTTPException with detailed validation error information
    """
    errors = []
    suggestions = []

    for error in validation_errors:
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        error_msg = error["msg"]
        error_type = error["type"]

        if error_type == "value_error":
            # Custom validation errors are already user-friendly
            friendly_msg = error_msg
        elif error_type == "missing":
            friendly_msg = f"The field '{field_path}' is required but was not provided"
            suggestions.append(f"Please provide a value for '{field_path}'")
        elif error_type == "string_too_short":
            min_length = error.get("ctx", {}).get("min_length", "minimum")
            friendly_msg = f"The field '{field_path}' is too short. Minimum length is {min_length}"
            suggestions.append(f"Please provide at least {min_length} characters for '{field_path}'")
        elif error_type == "string_too_long":
            max_length = error.get("ctx", {}).get("max_length", "maximum")
            friendly_msg = f"The field '{field_path}' is too long. Maximum length is {max_length}"
            suggestions.append(f"Please limit '{field_path}' to {max_length} characters or less")
        else:
            friendly_msg = f"The field '{field_path}': {error_msg}"

        errors.append({
            "field": field_path,
            "message": friendly_msg,
            "type": error_type,
            "input": error.get("input")
        })

    if context == "zone":
        suggestions.extend([
            "Ensure zone names follow DNS naming conventions (e.g., example.com)",
            "Zone file names must not contain quotes or path traversal"
        ])
    elif context == "named-conf":
        suggestions.append("Send the configuration text in the 'content' field")

    # Remove duplicate suggestions
    suggestions = list(dict.fromkeys(suggestions))

    main_message = f"Validation failed for {context or 'input data'}"
    if len(errors) == 1:
        main_message = errors[0]["message"]

    return create_http_exception(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message=main_message,
        details={"validation_errors": errors},
        suggestions=suggestions,
        error_code="VALIDATION_ERROR"
    )
