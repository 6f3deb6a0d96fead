"""
Request/Response logging middleware for UptimeDispatch.

Logs every API request and response with timing and caller context.
"""

import logging
import time
import uuid

from api.logging_utils import sanitize_log_value
from django.utils.deprecation import MiddlewareMixin

request_logger = logging.getLogger("api.requests")


class RequestIDMiddleware(MiddlewareMixin):
    """Attach a request id to ``request.id`` and echo it as ``X-Request-ID``."""

    def process_request(self, request):
        request.id = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())

    def process_response(self, request, response):
        if hasattr(request, "id"):
            response["X-Request-ID"] = request.id
        return response


class RequestLoggingMiddleware(MiddlewareMixin):
    """
    Log API requests and responses with timing information.

    The authenticated user id is only known after DRF authentication runs,
    so it is read on the way out.
    """

    def process_request(self, request):
        request._start_time = time.monotonic()

        request_logger.info(
            "Incoming request",
            extra={
                "request_id": getattr(request, "id", None),
                "method": request.method,
                "path": sanitize_log_value(request.path),
                "ip_address": self._get_client_ip(request),
                "user_agent": request.META.get("HTTP_USER_AGENT", ""),
            },
        )

    def process_response(self, request, response):
        started = getattr(request, "_start_time", None)
        duration_ms = (time.monotonic() - started) * 1000 if started is not None else 0

        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        user = getattr(request, "user", None)

        request_logger.log(
            log_level,
            "Request completed",
            extra={
                "request_id": getattr(request, "id", None),
                "method": request.method,
                "path": sanitize_log_value(request.path),
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "user_id": getattr(user, "id", None),
            },
        )

        return response

    @staticmethod
    def _get_client_ip(request):
        x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
        if x_forwarded_for:
            return x_forwarded_for.split(",")[0].strip()
        return request.META.get("REMOTE_ADDR", "unknown")
