"""Region worker batches: probing, tick writes and acknowledgement."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import pytest
from modules.dispatch.exceptions import QueueError
from modules.dispatch.queue import MemoryQueue, QueueItem
from modules.dispatch.worker import RegionWorker
from monitors.models import Tick, TickStatus, Website

pytestmark = pytest.mark.django_db


@pytest.fixture
def seeded(region, website_factory, memory_queue):
    """Three websites queued for ``region`` in a known order."""

    websites = [website_factory(f"site{i}.example.com") for i in range(3)]
    memory_queue.create_group(str(region.id))
    entry_ids = memory_queue.append_bulk(
        str(region.id),
        [QueueItem(url=w.url, website_id=str(w.id)) for w in websites],
    )
    return websites, entry_ids


def _prober(probe_result, status=TickStatus.UP):
    return lambda url: probe_result(url, status=status)


def test_deleted_website_is_skipped_and_acknowledged(region, seeded, memory_queue, probe_result):
    websites, _ = seeded
    websites[1].delete()

    report = RegionWorker(memory_queue, prober=_prober(probe_result)).run_batch(region, "worker-1")

    assert report.processed == 2
    assert report.skipped == 1
    assert report.failed == 0
    assert report.total == 3
    assert report.acknowledged == 3
    assert Tick.objects.count() == 2
    assert set(Tick.objects.values_list("website_id", flat=True)) == {
        websites[0].id,
        websites[2].id,
    }
    assert memory_queue.pending_count(str(region.id)) == 0
    assert report.to_dict() == {
        "message": "Successfully processed 2 websites in region 'us-east' with worker 'worker-1'",
        "processed": 2,
        "total": 3,
        "skipped": 1,
        "failed": 0,
        "regionName": "us-east",
        "workerId": "worker-1",
    }


@pytest.mark.django_db(transaction=True)
def test_website_deleted_while_probing_is_skipped(region, website_factory, memory_queue, probe_result):
    kept = website_factory("kept.example.com")
    doomed = website_factory("doomed.example.com")
    memory_queue.create_group(str(region.id))
    memory_queue.append_bulk(
        str(region.id),
        [QueueItem(url=w.url, website_id=str(w.id)) for w in (kept, doomed)],
    )

    def prober(url):
        if url == doomed.url:
            Website.objects.filter(id=doomed.id).delete()
        return probe_result(url)

    report = RegionWorker(memory_queue, prober=prober).run_batch(region, "worker-1")

    assert report.total == 2
    assert report.processed == 1
    assert report.skipped == 1
    assert report.failed == 0
    assert report.acknowledged == 2
    assert list(Tick.objects.values_list("website_id", flat=True)) == [kept.id]
    assert memory_queue.pending_count(str(region.id)) == 0


def test_ticks_carry_region_status_and_timing(region, seeded, memory_queue, probe_result):
    prober = lambda url: probe_result(url, status=TickStatus.DOWN, response_time_ms=30000)  # noqa: E731

    RegionWorker(memory_queue, prober=prober).run_batch(region, "worker-1")

    ticks = list(Tick.objects.all())
    assert len(ticks) == 3
    assert {tick.status for tick in ticks} == {"Down"}
    assert {tick.region_id for tick in ticks} == {region.id}
    assert {tick.response_time_ms for tick in ticks} == {30000}


def test_empty_queue_reports_nothing_to_process(region, memory_queue):
    memory_queue.create_group(str(region.id))

    report = RegionWorker(memory_queue).run_batch(region, "worker-1")

    assert report.total == 0
    assert report.processed == 0
    assert report.message == "No websites in queue for region 'us-east' to process"


def test_unexpected_errors_are_counted_and_acknowledged(region, seeded, memory_queue, probe_result):
    websites, _ = seeded
    broken_url = websites[0].url

    def prober(url):
        if url == broken_url:
            raise RuntimeError("prober crashed")
        return probe_result(url)

    report = RegionWorker(memory_queue, prober=prober).run_batch(region, "worker-1")

    assert (report.processed, report.failed, report.acknowledged) == (2, 1, 3)
    assert Tick.objects.count() == 2
    assert memory_queue.pending_count(str(region.id)) == 0


def test_failed_entries_can_stay_pending(region, seeded, memory_queue, probe_result):
    websites, _ = seeded
    broken_url = websites[2].url

    def prober(url):
        if url == broken_url:
            raise RuntimeError("prober crashed")
        return probe_result(url)

    worker = RegionWorker(memory_queue, prober=prober, ack_failed_entries=False)
    report = worker.run_batch(region, "worker-1")

    assert (report.processed, report.failed, report.acknowledged) == (2, 1, 2)
    pending = memory_queue.pending_entries(str(region.id))
    assert len(pending) == 1


def test_ack_failure_propagates_and_leaves_entries_pending(region, seeded, memory_queue, probe_result):
    failing_queue = MagicMock(wraps=memory_queue)
    failing_queue.ack_bulk.side_effect = QueueError("redis went away")

    worker = RegionWorker(failing_queue, prober=_prober(probe_result))
    with pytest.raises(QueueError):
        worker.run_batch(region, "worker-1")

    assert Tick.objects.count() == 3
    assert memory_queue.pending_count(str(region.id)) == 3


def test_batch_size_limits_each_read(region, seeded, memory_queue, probe_result):
    worker = RegionWorker(memory_queue, prober=_prober(probe_result), batch_size=2)

    first = worker.run_batch(region, "worker-1")
    second = worker.run_batch(region, "worker-1")
    third = worker.run_batch(region, "worker-1")

    assert (first.total, second.total, third.total) == (2, 1, 0)
    assert Tick.objects.count() == 3


def test_probes_respect_concurrency_cap(region, website_factory, memory_queue, probe_result):
    websites = [website_factory(f"cap{i}.example.com") for i in range(6)]
    memory_queue.create_group(str(region.id))
    memory_queue.append_bulk(
        str(region.id), [QueueItem(url=w.url, website_id=str(w.id)) for w in websites]
    )

    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def prober(url):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.05)
        with lock:
            state["active"] -= 1
        return probe_result(url)

    report = RegionWorker(memory_queue, prober=prober, max_concurrency=2).run_batch(
        region, "worker-1"
    )

    assert report.processed == 6
    assert 1 <= state["peak"] <= 2


def test_reclaims_idle_entries_from_crashed_consumer(region, website_factory, probe_result):
    now = [0.0]
    queue = MemoryQueue(clock=lambda: now[0])
    queue.create_group(str(region.id))
    website = website_factory("orphan.example.com")
    queue.append_bulk(str(region.id), [QueueItem(url=website.url, website_id=str(website.id))])
    queue.read_group(str(region.id), "crashed-worker")

    now[0] += 120
    worker = RegionWorker(queue, prober=_prober(probe_result), reclaim_idle_ms=60_000)
    report = worker.run_batch(region, "rescuer")

    assert (report.total, report.processed, report.acknowledged) == (1, 1, 1)
    assert queue.pending_count(str(region.id)) == 0


def test_run_forever_sleeps_only_when_idle(region, seeded, memory_queue, probe_result):
    sleeps: list[float] = []
    worker = RegionWorker(memory_queue, prober=_prober(probe_result), idle_sleep_seconds=0.25)

    batches = worker.run_forever(region, "worker-1", sleep=sleeps.append, max_batches=3)

    assert batches == 3
    assert sleeps == [0.25]
    assert Tick.objects.count() == 3


def test_run_forever_survives_queue_errors(region, memory_queue):
    broken = MagicMock(wraps=memory_queue)
    broken.read_group.side_effect = QueueError("down")
    sleeps: list[float] = []
    worker = RegionWorker(broken, idle_sleep_seconds=1.0)

    batches = worker.run_forever(region, "worker-1", sleep=sleeps.append, max_batches=2)

    assert batches == 2
    assert sleeps == [1.0]


def test_run_forever_stops_when_asked(region, memory_queue):
    memory_queue.create_group(str(region.id))
    worker = RegionWorker(memory_queue)

    assert worker.run_forever(region, "worker-1", should_stop=lambda: True) == 0
