"""Seed a caller's never-probed websites into the region queues."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from django.db.models import Exists, OuterRef
from monitors.models import Region, Tick, Website

from .queue import QueueItem, RegionQueue, get_queue

logger = logging.getLogger("dispatch")
audit_logger = logging.getLogger("dispatch.audit")


@dataclass(slots=True, frozen=True)
class PushReport:
    message: str
    count: int
    total: int
    unchecked: int
    regions: Sequence[str] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "message": self.message,
            "count": self.count,
            "total": self.total,
            "unchecked": self.unchecked,
        }
        if self.regions:
            payload["regions"] = list(self.regions)
        return payload


def unchecked_websites(user) -> list[Website]:
    """The caller's websites that have no tick at all, oldest first."""

    has_ticks = Tick.objects.filter(website=OuterRef("pk"))
    return list(
        Website.objects.filter(owner=user)
        .annotate(has_ticks=Exists(has_ticks))
        .filter(has_ticks=False)
        .order_by("created_at", "id")
    )


def push_unchecked_websites(
    user,
    *,
    region: Region | None = None,
    queue: RegionQueue | None = None,
) -> PushReport:
    """
    Enqueue every website of ``user`` that was never probed.

    With ``region`` the entries go to that region's log only; otherwise each
    region gets its own copy. Websites already ticked are never re-enqueued;
    periodic re-probing is left to the scheduler.
    """

    total = Website.objects.filter(owner=user).count()
    if total == 0:
        return PushReport(
            message="No websites found. Add some websites first!",
            count=0,
            total=0,
            unchecked=0,
        )

    pending = unchecked_websites(user)
    if not pending:
        return PushReport(
            message=(
                f"All {total} websites have already been checked. "
                "Add new websites to monitor more!"
            ),
            count=0,
            total=total,
            unchecked=0,
        )

    regions = [region] if region is not None else list(Region.objects.order_by("name"))
    if not regions:
        return PushReport(
            message="No regions found. Create a region first!",
            count=0,
            total=total,
            unchecked=len(pending),
        )

    queue = queue or get_queue()
    items = [QueueItem(url=website.url, website_id=str(website.id)) for website in pending]
    for target in regions:
        entry_ids = queue.append_bulk(str(target.id), items)
        audit_logger.info(
            "Websites pushed to region queue",
            extra={
                "user_id": getattr(user, "id", None),
                "region_id": str(target.id),
                "region_name": target.name,
                "entries": len(entry_ids),
            },
        )

    count = len(pending)
    logger.info(
        "Pusher run completed",
        extra={
            "user_id": getattr(user, "id", None),
            "pushed": count,
            "total": total,
            "regions": len(regions),
        },
    )
    return PushReport(
        message=(
            f"Successfully pushed {count} new websites to monitoring queue "
            f"({total - count} already monitored)"
        ),
        count=count,
        total=total,
        unchecked=count,
        regions=tuple(target.name for target in regions),
    )


__all__ = ["PushReport", "push_unchecked_websites", "unchecked_websites"]
