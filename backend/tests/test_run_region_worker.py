"""The ``run_region_worker`` management command."""

from __future__ import annotations

import uuid
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from modules.dispatch.queue import QueueItem
from monitors.models import Tick

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def no_signal_handlers(monkeypatch):
    monkeypatch.setattr("signal.signal", lambda *args: None)


def test_unknown_region_is_a_command_error():
    with pytest.raises(CommandError, match="not found"):
        call_command("run_region_worker", region=str(uuid.uuid4()), worker="w1", max_batches=1)


def test_consumes_until_max_batches(region, website_factory, memory_queue, probe_result, monkeypatch):
    monkeypatch.setattr(
        "modules.dispatch.worker.probe_website", lambda url, **kwargs: probe_result(url)
    )
    memory_queue.create_group(str(region.id))
    websites = [website_factory(url) for url in ("a.com", "b.com")]
    memory_queue.append_bulk(
        str(region.id), [QueueItem(url=w.url, website_id=str(w.id)) for w in websites]
    )
    out = StringIO()

    call_command(
        "run_region_worker",
        "--region",
        str(region.id),
        "--worker",
        "cli-1",
        "--max-batches",
        "2",
        stdout=out,
    )

    assert Tick.objects.count() == 2
    assert memory_queue.pending_count(str(region.id)) == 0
    assert "Worker 'cli-1' consuming region 'us-east'" in out.getvalue()
    assert "Worker stopped" in out.getvalue()
