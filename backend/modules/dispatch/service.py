"""Dispatch workflows behind the HTTP endpoints and Celery tasks."""

from __future__ import annotations

import logging
from typing import Any

from api.exceptions import (
    ConsumerGroupMissingError,
    QueueUnavailableError,
    RegionNotFoundError,
)
from django.core.exceptions import ValidationError as DjangoValidationError
from monitors.models import Region

from .exceptions import GroupMissingError, QueueError
from .pusher import PushReport, push_unchecked_websites
from .queue import RegionQueue, get_queue
from .worker import BatchReport, RegionWorker

logger = logging.getLogger("dispatch")
audit_logger = logging.getLogger("dispatch.audit")


def get_region(region_id: Any) -> Region:
    """Load a region by id; unknown and malformed ids both raise ``RegionNotFoundError``."""

    try:
        return Region.objects.get(pk=region_id)
    except (Region.DoesNotExist, DjangoValidationError, ValueError):
        raise RegionNotFoundError() from None


class DispatchService:
    """Region group setup, pushing and batch processing with API error mapping."""

    def __init__(self, queue: RegionQueue | None = None) -> None:
        self._queue = queue

    @property
    def queue(self) -> RegionQueue:
        return self._queue or get_queue()

    def create_group(self, *, region_id: Any, user_id: Any = None) -> dict[str, Any]:
        region = get_region(region_id)
        try:
            created = self.queue.create_group(str(region.id))
        except QueueError as exc:
            self._log_queue_failure("create_group", exc, region_id=str(region.id))
            raise QueueUnavailableError() from exc

        audit_logger.info(
            "Consumer group ensured",
            extra={
                "region_id": str(region.id),
                "region_name": region.name,
                "created": created,
                "user_id": user_id,
            },
        )
        if created:
            message = f"Consumer group created for region '{region.name}' ({region.id})"
        else:
            message = f"Consumer group already exists for region '{region.name}' ({region.id})"
        return {
            "message": message,
            "regionId": str(region.id),
            "regionName": region.name,
            "created": created,
        }

    def trigger_pusher(self, *, user, region_id: Any = None) -> PushReport:
        region = get_region(region_id) if region_id else None
        try:
            return push_unchecked_websites(user, region=region, queue=self.queue)
        except QueueError as exc:
            self._log_queue_failure(
                "trigger_pusher",
                exc,
                region_id=str(region.id) if region else None,
                user_id=getattr(user, "id", None),
            )
            raise QueueUnavailableError() from exc

    def trigger_worker(self, *, region_id: Any, worker_id: str) -> BatchReport:
        region = get_region(region_id)
        worker = RegionWorker(self.queue)
        try:
            report = worker.run_batch(region, worker_id)
        except GroupMissingError as exc:
            logger.warning(
                "Worker triggered before the consumer group exists",
                extra={"region_id": str(region.id), "worker_id": worker_id},
            )
            raise ConsumerGroupMissingError() from exc
        except QueueError as exc:
            self._log_queue_failure(
                "trigger_worker",
                exc,
                region_id=str(region.id),
                worker_id=worker_id,
            )
            raise QueueUnavailableError() from exc

        audit_logger.info(
            "Worker batch triggered",
            extra={
                "region_id": str(region.id),
                "worker_id": worker_id,
                "processed": report.processed,
                "total": report.total,
            },
        )
        return report

    @staticmethod
    def _log_queue_failure(operation: str, exc: QueueError, **context: Any) -> None:
        logger.error(
            "Dispatch queue operation failed",
            extra={
                "operation": operation,
                "error": str(exc),
                "error_type": type(exc).__name__,
                **context,
            },
            exc_info=True,
        )


dispatch_service = DispatchService()

__all__ = ["DispatchService", "dispatch_service", "get_region"]
