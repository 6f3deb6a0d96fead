"""Append-only tick writes and latest-status reads."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any

from django.db.models import Prefetch, QuerySet
from django.utils import timezone
from monitors.models import Tick, TickStatus, Website

from .probe import ProbeResult

LATEST_TICKS_ATTR = "latest_ticks"


def record_tick(website_id: Any, region_id: Any, result: ProbeResult) -> Tick:
    """Insert one tick. Re-probing the same website always adds another row."""

    return Tick.objects.create(
        website_id=website_id,
        region_id=region_id,
        status=result.status,
        response_time_ms=max(0, int(result.response_time_ms)),
    )


def annotate_latest_ticks(queryset: QuerySet[Website]) -> QuerySet[Website]:
    """Prefetch each website's most recent tick into ``latest_ticks`` (0 or 1 items)."""

    return queryset.prefetch_related(
        Prefetch(
            "ticks",
            queryset=Tick.objects.order_by("-created_at")[:1],
            to_attr=LATEST_TICKS_ATTR,
        )
    )


def latest_tick(website: Website) -> Tick | None:
    prefetched = getattr(website, LATEST_TICKS_ATTR, None)
    if prefetched is not None:
        return prefetched[0] if prefetched else None
    return website.ticks.order_by("-created_at").first()


def latest_status(website: Website) -> str:
    """Status of the latest tick, or ``Unknown`` for a website never probed."""

    tick = latest_tick(website)
    return tick.status if tick is not None else TickStatus.UNKNOWN


def _format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    if timezone.is_naive(value):
        value = timezone.make_aware(value, dt_timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


def tick_to_dict(tick: Tick) -> dict[str, Any]:
    """External tick shape shared by the catalog API and the dispatch logs."""

    return {
        "response_time_ms": tick.response_time_ms,
        "status": tick.status,
        "region_id": str(tick.region_id),
        "website_id": str(tick.website_id),
        "createdAt": _format_datetime(tick.created_at),
    }


__all__ = [
    "annotate_latest_ticks",
    "latest_status",
    "latest_tick",
    "record_tick",
    "tick_to_dict",
]
