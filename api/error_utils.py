"""
Standardized error handling utilities for EcoQuiz API endpoints.
Provides the exception taxonomy raised by the AI gateways and the quiz session,
plus consistent error formats, HTTP status codes, and error codes across all endpoints.
"""

import logging
from flask import jsonify
from typing import Dict, Any, Optional

# Standard error codes for consistent API responses
ERROR_CODES = {
    "NOT_FOUND": "Resource not found",
    "SESSION_NOT_FOUND": "Quiz session not found or already closed",

    # Validation errors (400-499)
    "INVALID_REQUEST": "Invalid request body or parameters",
    "VALIDATION_ERROR": "Request validation failed",
    "INVALID_TRANSITION": "Action not allowed in the current quiz state",
    "RATE_LIMITED": "Too many requests",

    # System errors (500-599)
    "SERVER_ERROR": "Internal server error",
    "EXTERNAL_SERVICE_ERROR": "External AI service unavailable",
    "UPSTREAM_PARSE_ERROR": "Could not parse the AI service response",
    "IMAGE_GENERATION_ERROR": "The AI service did not return an image",
}


class EcoQuizError(Exception):
    """Base class for every error the backend reports to its callers."""
    error_code = "SERVER_ERROR"
    status_code = 500


class InvalidInput(EcoQuizError, ValueError):
    """Caller error, e.g. a missing image or an unknown answer option."""
    error_code = "INVALID_REQUEST"
    status_code = 400


class UpstreamError(EcoQuizError):
    """Transport or provider-side failure of an AI service."""
    error_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 500


class UpstreamParseError(UpstreamError):
    """The AI service answered, but not with the expected shape."""
    error_code = "UPSTREAM_PARSE_ERROR"


class ImageGenerationError(UpstreamError):
    """The image model answered without any inline image data."""
    error_code = "IMAGE_GENERATION_ERROR"


class InvalidTransition(EcoQuizError):
    error_code = "INVALID_TRANSITION"
    status_code = 409


class SessionNotFound(EcoQuizError):
    error_code = "SESSION_NOT_FOUND"
    status_code = 404


def create_error_response(
    error_code: str,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    status_code: int = 500
) -> tuple:
    """
    Create a standardized error response with consistent format.

    Args:
        error_code: One of the standard ERROR_CODES keys
        message: Optional custom message (defaults to standard message)
        details: Optional additional error details
        status_code: HTTP status code

    Returns:
        Tuple of (JSON response, HTTP status code)
    """
    if error_code not in ERROR_CODES:
        logging.warning(f"Unknown error code used: {error_code}")
        error_code = "SERVER_ERROR"

    error_message = message or ERROR_CODES[error_code]

    response_data = {
        "error_code": error_code,
        "message": error_message
    }

    if details:
        response_data["details"] = details

    logging.error(f"API Error [{error_code}]: {error_message} - Status: {status_code}")

    return jsonify(response_data), status_code


def error_response_from(e: EcoQuizError, context: str = "API endpoint") -> tuple:
    """Turn one of our own exceptions into a standardized response."""
    details = None
    if isinstance(e, UpstreamError):
        # Provider messages are surfaced verbatim so the client can show them.
        details = {"context": context, "upstream_message": str(e)}
    return create_error_response(
        error_code=e.error_code,
        message=None if isinstance(e, UpstreamError) else (str(e) or None),
        details=details,
        status_code=e.status_code
    )


def handle_exception(e: Exception, context: str = "API endpoint") -> tuple:
    """
    Handle unexpected exceptions with standardized error response.

    Args:
        e: The exception that occurred
        context: Context information for logging

    Returns:
        Tuple of (JSON response, HTTP status code)
    """
    if isinstance(e, EcoQuizError):
        return error_response_from(e, context)

    error_type = type(e).__name__
    error_message = str(e)

    logging.error(f"Unexpected error in {context}: {error_type} - {error_message}", exc_info=True)

    return create_error_response(
        error_code="SERVER_ERROR",
        message="An unexpected error occurred",
        details={"error_type": error_type, "error_message": error_message},
        status_code=500
    )

# Common error response shortcuts
def validation_error(message: Optional[str] = None, details: Optional[Dict] = None) -> tuple:
    return create_error_response("VALIDATION_ERROR", message, details, status_code=400)

def bad_request_error(message: Optional[str] = None) -> tuple:
    return create_error_response("INVALID_REQUEST", message, status_code=400)
