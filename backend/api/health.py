"""Health check endpoint for load balancers and uptime checks of the service itself."""

import logging

from django.db import connection
from django.utils import timezone
from modules.dispatch.exceptions import QueueError
from modules.dispatch.queue import get_queue
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from api.logging_utils import sanitize_log_value

logger = logging.getLogger("api.health")


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    """
    Lightweight health check.

    Returns 200 OK when both the database and the dispatch queue answer,
    503 Service Unavailable otherwise.
    """
    checks = {
        "status": "healthy",
        "message": "UpTime Monitor API is running",
        "timestamp": timezone.now().isoformat(),
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        checks["database"] = "ok"
    except Exception as exc:  # noqa: BLE001
        logger.error("Health check database failure: %s", sanitize_log_value(str(exc)))
        checks["database"] = "error"
        checks["status"] = "unhealthy"

    try:
        get_queue().ping()
        checks["queue"] = "ok"
    except QueueError as exc:
        logger.error("Health check queue failure: %s", sanitize_log_value(str(exc)))
        checks["queue"] = "error"
        checks["status"] = "unhealthy"

    http_status = (
        status.HTTP_200_OK if checks["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    )

    logger.info(
        "Health check completed",
        extra={
            "status_code": http_status,
            "result": sanitize_log_value(checks),
        },
    )

    return Response(checks, status=http_status)
