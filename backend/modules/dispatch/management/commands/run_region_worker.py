"""Long-running region worker."""

from __future__ import annotations

import logging
import signal
import threading

from api.exceptions import RegionNotFoundError
from django.core.management.base import BaseCommand, CommandError

from modules.dispatch.exceptions import QueueError
from modules.dispatch.queue import get_queue
from modules.dispatch.service import get_region
from modules.dispatch.worker import RegionWorker

logger = logging.getLogger("dispatch")


class Command(BaseCommand):
    help = (
        "Consume one region's queue as a named worker until interrupted. "
        "Batches run back to back and the worker sleeps only while the queue is empty."
    )

    def add_arguments(self, parser) -> None:  # pragma: no cover - CLI plumbing
        parser.add_argument("--region", required=True, help="Region id to consume.")
        parser.add_argument("--worker", required=True, help="Consumer name within the region group.")
        parser.add_argument(
            "--max-batches",
            type=int,
            default=None,
            help="Stop after this many batches (default: run until interrupted).",
        )

    def handle(self, *args, **options):
        try:
            region = get_region(options["region"])
        except RegionNotFoundError as exc:
            raise CommandError(f"Region {options['region']} not found") from exc

        queue = get_queue()
        try:
            queue.create_group(str(region.id))
        except QueueError as exc:
            raise CommandError(f"Queue unavailable: {exc}") from exc

        stop = threading.Event()
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, lambda *_: stop.set())

        self.stdout.write(
            self.style.SUCCESS(
                f"Worker '{options['worker']}' consuming region '{region.name}' ({region.id})"
            )
        )
        logger.info(
            "Region worker started",
            extra={"region_id": str(region.id), "worker_id": options["worker"]},
        )

        worker = RegionWorker(queue)
        try:
            batches = worker.run_forever(
                region,
                options["worker"],
                sleep=stop.wait,
                should_stop=stop.is_set,
                max_batches=options["max_batches"],
            )
        except KeyboardInterrupt:
            batches = None

        logger.info(
            "Region worker stopped",
            extra={"region_id": str(region.id), "worker_id": options["worker"], "batches": batches},
        )
        self.stdout.write(self.style.WARNING("Worker stopped"))
