"""Celery tasks for scheduler-driven dispatch."""

from __future__ import annotations

import logging

from celery import shared_task
from django.core.exceptions import ValidationError
from monitors.models import Region

from .exceptions import QueueError
from .queue import get_queue
from .worker import RegionWorker

logger = logging.getLogger("dispatch")
audit_logger = logging.getLogger("dispatch.audit")


@shared_task(
    name="dispatch.tasks.run_region_batch",
    bind=True,
    autoretry_for=(QueueError,),
    retry_backoff=30,
    retry_kwargs={"max_retries": 3},
)
def run_region_batch(self, region_id: str, worker_id: str) -> dict | None:
    """Process one batch for ``region_id`` as consumer ``worker_id``."""

    try:
        region = Region.objects.get(pk=region_id)
    except (Region.DoesNotExist, ValidationError):
        logger.warning(
            "Region %s no longer exists; skipping batch",
            region_id,
        )
        return None

    queue = get_queue()
    queue.create_group(str(region.id))
    report = RegionWorker(queue).run_batch(region, worker_id)

    logger.info(
        "Scheduled region batch completed",
        extra={
            "region_id": str(region.id),
            "worker_id": worker_id,
            "processed": report.processed,
            "total": report.total,
            "task_id": getattr(self.request, "id", None),
        },
    )
    return report.to_dict()


@shared_task(name="dispatch.tasks.ensure_consumer_groups")
def ensure_consumer_groups() -> int:
    """Create any missing consumer group; returns how many were created."""

    queue = get_queue()
    created = 0
    for region in Region.objects.order_by("name"):
        if queue.create_group(str(region.id)):
            created += 1
            audit_logger.info(
                "Consumer group created for region",
                extra={"region_id": str(region.id), "region_name": region.name},
            )
    return created


__all__ = ["ensure_consumer_groups", "run_region_batch"]
