"""Region worker: claim a batch, probe it, record ticks, acknowledge."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction
from monitors.models import Region, Website

from .exceptions import QueueError
from .probe import ProbeResult, probe_website
from .queue import QueueMessage, RegionQueue, get_queue
from .recorder import record_tick

logger = logging.getLogger("dispatch")
audit_logger = logging.getLogger("dispatch.audit")
performance_logger = logging.getLogger("dispatch.performance")

Prober = Callable[[str], ProbeResult]


@dataclass(slots=True)
class BatchReport:
    """Outcome of one batch. ``processed`` counts ticks written."""

    region_id: str
    region_name: str
    worker_id: str
    total: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    acknowledged: int = 0

    @property
    def message(self) -> str:
        if self.total == 0:
            return f"No websites in queue for region '{self.region_name}' to process"
        return (
            f"Successfully processed {self.processed} websites in region "
            f"'{self.region_name}' with worker '{self.worker_id}'"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "processed": self.processed,
            "total": self.total,
            "skipped": self.skipped,
            "failed": self.failed,
            "regionName": self.region_name,
            "workerId": self.worker_id,
        }


class RegionWorker:
    """Drains one region's queue for a named consumer."""

    def __init__(
        self,
        queue: RegionQueue | None = None,
        *,
        prober: Prober | None = None,
        batch_size: int | None = None,
        max_concurrency: int | None = None,
        reclaim_idle_ms: int | None = None,
        ack_failed_entries: bool | None = None,
        idle_sleep_seconds: float | None = None,
    ) -> None:
        self.queue = queue or get_queue()
        self.prober = prober or probe_website
        self.batch_size = _setting(batch_size, "DISPATCH_BATCH_SIZE")
        self.max_concurrency = max(1, _setting(max_concurrency, "DISPATCH_MAX_CONCURRENCY"))
        self.reclaim_idle_ms = _setting(reclaim_idle_ms, "DISPATCH_RECLAIM_IDLE_MS")
        self.ack_failed_entries = _setting(ack_failed_entries, "DISPATCH_ACK_FAILED_ENTRIES")
        self.idle_sleep_seconds = _setting(idle_sleep_seconds, "DISPATCH_IDLE_SLEEP_SECONDS")

    def claim(self, region_id: str, consumer_id: str) -> list[QueueMessage]:
        """Reclaimed idle entries first (when enabled), then new ones up to the batch size."""

        messages: list[QueueMessage] = []
        if self.reclaim_idle_ms > 0:
            messages = self.queue.reclaim(
                region_id,
                consumer_id,
                self.reclaim_idle_ms,
                count=self.batch_size,
            )
            if messages:
                audit_logger.warning(
                    "Reclaimed idle queue entries",
                    extra={
                        "region_id": region_id,
                        "worker_id": consumer_id,
                        "reclaimed": len(messages),
                        "min_idle_ms": self.reclaim_idle_ms,
                    },
                )

        room = self.batch_size - len(messages)
        if room > 0:
            messages.extend(self.queue.read_group(region_id, consumer_id, count=room))
        return messages

    def run_batch(self, region: Region, consumer_id: str) -> BatchReport:
        region_id = str(region.id)
        report = BatchReport(region_id=region_id, region_name=region.name, worker_id=consumer_id)
        started = time.monotonic()

        messages = self.claim(region_id, consumer_id)
        report.total = len(messages)
        if not messages:
            logger.info(
                "No queue entries to process",
                extra={"region_id": region_id, "worker_id": consumer_id},
            )
            return report

        acknowledged: list[str] = []
        targets: list[tuple[QueueMessage, Website]] = []
        websites = self._load_websites(messages)
        for message in messages:
            website = websites.get(message.entry_id)
            if website is None:
                logger.info(
                    "Skipping queue entry for missing website",
                    extra={
                        "region_id": region_id,
                        "entry_id": message.entry_id,
                        "website_id": message.website_id,
                    },
                )
                report.skipped += 1
                acknowledged.append(message.entry_id)
                continue
            targets.append((message, website))

        if targets:
            acknowledged.extend(self._probe_and_record(region, consumer_id, targets, report))

        # A failing ack raises QueueError; the entries stay pending for reclaim.
        report.acknowledged = self.queue.ack_bulk(region_id, acknowledged)

        performance_logger.info(
            "Region batch completed",
            extra={
                "region_id": region_id,
                "region_name": region.name,
                "worker_id": consumer_id,
                "total": report.total,
                "processed": report.processed,
                "skipped": report.skipped,
                "failed": report.failed,
                "acknowledged": report.acknowledged,
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return report

    def run_forever(
        self,
        region: Region,
        consumer_id: str,
        *,
        sleep: Callable[[float], None] = time.sleep,
        should_stop: Callable[[], bool] = lambda: False,
        max_batches: int | None = None,
    ) -> int:
        """Loop batches back to back, sleeping only when the queue is empty."""

        batches = 0
        while not should_stop():
            try:
                report = self.run_batch(region, consumer_id)
            except QueueError as exc:
                logger.error(
                    "Region batch failed on queue error",
                    extra={
                        "region_id": str(region.id),
                        "worker_id": consumer_id,
                        "error": str(exc),
                    },
                    exc_info=True,
                )
                report = None

            batches += 1
            if max_batches is not None and batches >= max_batches:
                break
            if report is None or report.total == 0:
                sleep(self.idle_sleep_seconds)
        return batches

    def _load_websites(self, messages: list[QueueMessage]) -> dict[str, Website]:
        """Map entry id to its website; unknown and unparsable ids are left out."""

        ids: dict[str, uuid.UUID] = {}
        for message in messages:
            try:
                ids[message.entry_id] = uuid.UUID(message.website_id)
            except ValueError:
                logger.warning(
                    "Queue entry carries an invalid website id",
                    extra={"entry_id": message.entry_id, "website_id": message.website_id},
                )

        found = Website.objects.in_bulk(list(set(ids.values())))
        return {
            entry_id: found[website_id]
            for entry_id, website_id in ids.items()
            if website_id in found
        }

    def _probe_and_record(
        self,
        region: Region,
        consumer_id: str,
        targets: list[tuple[QueueMessage, Website]],
        report: BatchReport,
    ) -> list[str]:
        """Probe in a bounded pool; ticks are written here, on the calling thread."""

        acknowledged: list[str] = []
        workers = min(self.max_concurrency, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe") as executor:
            futures = {
                executor.submit(self.prober, website.url): (message, website)
                for message, website in targets
            }
            for future in as_completed(futures):
                message, website = futures[future]
                try:
                    result = future.result()
                    with transaction.atomic():
                        record_tick(website.id, region.id, result)
                except IntegrityError:
                    logger.info(
                        "Website deleted while probing; no tick recorded",
                        extra={"entry_id": message.entry_id, "website_id": message.website_id},
                    )
                    report.skipped += 1
                    acknowledged.append(message.entry_id)
                    continue
                except Exception as exc:  # noqa: BLE001
                    logger.error(
                        "Queue entry failed",
                        extra={
                            "region_id": str(region.id),
                            "worker_id": consumer_id,
                            "entry_id": message.entry_id,
                            "website_id": message.website_id,
                            "error": str(exc),
                            "error_type": type(exc).__name__,
                        },
                        exc_info=True,
                    )
                    report.failed += 1
                    if self.ack_failed_entries:
                        acknowledged.append(message.entry_id)
                    continue

                report.processed += 1
                acknowledged.append(message.entry_id)
                audit_logger.debug(
                    "Tick recorded",
                    extra={
                        "region_id": str(region.id),
                        "worker_id": consumer_id,
                        "website_id": message.website_id,
                        "url": result.url,
                        "status": result.status,
                        "label": result.label,
                        "response_time_ms": result.response_time_ms,
                    },
                )
        return acknowledged


def _setting(value, name: str):
    return getattr(settings, name) if value is None else value


__all__ = ["BatchReport", "RegionWorker"]
