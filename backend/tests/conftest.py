"""
Pytest configuration for the dispatch and catalog test suites.

Every test runs against the in-process queue backend, rebuilt per test so no
entries or consumer groups leak between tests.
"""

import logging
import uuid

import pytest


def pytest_configure(config):
    """Configure test environment before tests run."""
    from django.conf import settings

    # Persistent connections are pointless for short-lived test transactions
    if hasattr(settings, "DATABASES"):
        for db_config in settings.DATABASES.values():
            db_config["CONN_MAX_AGE"] = 0
            db_config["CONN_HEALTH_CHECKS"] = False


@pytest.fixture(autouse=True)
def memory_queue(settings):
    """Force a fresh ``MemoryQueue`` with baseline dispatch settings."""
    from modules.dispatch.queue import get_queue, reset_queue

    settings.DISPATCH_QUEUE_BACKEND = "memory"
    settings.DISPATCH_BATCH_SIZE = 10
    settings.DISPATCH_MAX_CONCURRENCY = 10
    settings.DISPATCH_RECLAIM_IDLE_MS = 0
    settings.DISPATCH_ACK_FAILED_ENTRIES = True
    settings.DISPATCH_IDLE_SLEEP_SECONDS = 0

    reset_queue()
    yield get_queue()
    reset_queue()


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(
        username=f"owner-{uuid.uuid4().hex[:8]}",
        email="owner@example.com",
        password="SecurePass123!",
    )


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(
        username=f"other-{uuid.uuid4().hex[:8]}",
        email="other@example.com",
        password="SecurePass123!",
    )


@pytest.fixture
def api_client(user):
    """APIClient carrying a real JWT access token for ``user``."""
    from rest_framework.test import APIClient
    from rest_framework_simplejwt.tokens import RefreshToken

    client = APIClient()
    token = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


@pytest.fixture
def anonymous_client():
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def region(db):
    from monitors.models import Region

    return Region.objects.create(name="us-east")


@pytest.fixture
def website_factory(db, user):
    """Create websites for ``user`` (or another owner)."""
    from monitors.models import Website

    def _create(url: str, owner=None):
        return Website.objects.create(owner=owner or user, url=url)

    return _create


@pytest.fixture
def tick_factory(db):
    from monitors.models import Tick, TickStatus

    def _create(website, region, status=TickStatus.UP, response_time_ms=42, **extra):
        return Tick.objects.create(
            website=website,
            region=region,
            status=status,
            response_time_ms=response_time_ms,
            **extra,
        )

    return _create


@pytest.fixture
def probe_result():
    """Build ``ProbeResult`` objects without touching the network."""
    from modules.dispatch.probe import ProbeResult

    def _build(url: str, status: str = "Up", response_time_ms: int = 12, label: str = "HTTP 200"):
        return ProbeResult(
            status=status,
            response_time_ms=response_time_ms,
            label=label,
            url=f"https://{url}",
        )

    return _build


@pytest.fixture
def capture_logger(caplog):
    """Attach caplog to a non-propagating project logger."""

    attached: list[logging.Logger] = []

    def _capture(name: str, level=logging.DEBUG):
        logger = logging.getLogger(name)
        logger.addHandler(caplog.handler)
        caplog.set_level(level, logger=name)
        attached.append(logger)
        return caplog

    yield _capture

    for logger in attached:
        logger.removeHandler(caplog.handler)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Log failing test details to the Django error logger for debugging."""

    outcome = yield
    report = outcome.get_result()

    if not report.failed:
        return

    logger = logging.getLogger("django")
    longrepr = getattr(report, "longreprtext", None)
    detail = longrepr if isinstance(longrepr, str) else str(report.longrepr)
    logger.error(
        "Pytest failure | phase=%s | nodeid=%s\n%s",
        report.when,
        report.nodeid,
        detail,
    )
