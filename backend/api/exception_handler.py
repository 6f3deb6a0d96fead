"""
Custom exception handler for Django REST Framework.

Sanitizes error responses to prevent information leakage while keeping the
details in the server logs.
"""

import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import BaseUptimeException
from .logging_utils import sanitize_log_value

logger = logging.getLogger("api")

_GENERIC_ERROR = {
    "error": {
        "code": "internal_server_error",
        "message": "An unexpected error occurred. Please try again later.",
    }
}

_SAFE_EXCEPTIONS = (
    BaseUptimeException,
    exceptions.ValidationError,
    exceptions.ParseError,
    exceptions.Throttled,
    exceptions.AuthenticationFailed,
    exceptions.NotAuthenticated,
    exceptions.PermissionDenied,
    exceptions.NotFound,
    exceptions.MethodNotAllowed,
    PermissionDenied,
    Http404,
)


def custom_exception_handler(exc, context):
    """
    Return DRF's response for known API errors and a generic 500 otherwise.

    - In DEBUG mode: unsafe details stay in the response for development
    - In production: anything that is not a known API error becomes a generic message
    """
    response = drf_exception_handler(exc, context)

    if response is None:
        response = Response(dict(_GENERIC_ERROR), status=500)

    log_exception(exc, context, response)

    if not settings.DEBUG:
        response = sanitize_error_response(response, exc)

    return response


def sanitize_error_response(response, exc):
    """Collapse anything that is not a known API error into a generic body."""

    if isinstance(exc, _SAFE_EXCEPTIONS):
        return response

    if response.status_code >= 500:
        response.data = dict(_GENERIC_ERROR)

    return response


def log_exception(exc, context, response):
    """
    Log exception details for debugging.

    - 5xx errors: ERROR level with traceback
    - Throttling: INFO level
    - Other 4xx errors: WARNING level
    """
    request = context.get("request")
    view = context.get("view")

    if response.status_code >= 500:
        log_level = logging.ERROR
    elif isinstance(exc, exceptions.Throttled):
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    view_name = view.__class__.__name__ if view else "Unknown"
    message = sanitize_log_value(f"{type(exc).__name__} in {view_name}: {exc}")

    logger.log(
        log_level,
        message,
        exc_info=log_level == logging.ERROR,
        extra={
            "exception_type": type(exc).__name__,
            "request_path": sanitize_log_value(request.path if request else None),
            "request_method": request.method if request else None,
            "status_code": response.status_code,
        },
    )
