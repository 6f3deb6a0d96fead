"""
Tests for the health check endpoint.

Load balancers poll ``/health/`` and ``/healthz``; both must report the
database and the dispatch queue and answer 503 when either is down.
"""

from unittest.mock import MagicMock, Mock, patch

import pytest
from django.test import RequestFactory
from modules.dispatch.exceptions import QueueError
from rest_framework import status

pytestmark = pytest.mark.django_db


@pytest.fixture
def request_factory():
    return RequestFactory()


class TestHealthCheck:
    """Test suite for health_check endpoint."""

    @pytest.mark.parametrize("path", ["/health/", "/healthz"])
    def test_routes_are_public(self, anonymous_client, path):
        response = anonymous_client.get(path)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "healthy"

    def test_all_services_healthy_returns_200(self, request_factory):
        """
        Verifies:
        - Returns 200 OK with 'status': 'healthy'
        - Database and queue checks pass
        - Timestamp is present
        """
        from api.health import health_check

        response = health_check(request_factory.get("/health/"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["database"] == "ok"
        assert response.data["queue"] == "ok"
        assert "timestamp" in response.data

    def test_database_down_returns_503(self, request_factory):
        """The queue is still checked when the database fails."""
        with patch("django.db.connection.cursor") as mock_cursor:
            mock_cursor.side_effect = Exception("Database connection failed")

            from api.health import health_check

            response = health_check(request_factory.get("/health/"))

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data["status"] == "unhealthy"
        assert response.data["database"] == "error"
        assert response.data["queue"] == "ok"

    def test_queue_down_returns_503(self, request_factory):
        broken = MagicMock()
        broken.ping = Mock(side_effect=QueueError("Redis connection refused"))

        with patch("api.health.get_queue", return_value=broken):
            from api.health import health_check

            response = health_check(request_factory.get("/health/"))

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data["status"] == "unhealthy"
        assert response.data["database"] == "ok"
        assert response.data["queue"] == "error"
