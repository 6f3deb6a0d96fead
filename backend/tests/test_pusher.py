"""Pusher: only never-probed websites are enqueued."""

from __future__ import annotations

import pytest
from modules.dispatch.pusher import push_unchecked_websites
from monitors.models import Region

pytestmark = pytest.mark.django_db


def test_pushes_only_unprobed_websites(user, region, website_factory, tick_factory, memory_queue):
    w1 = website_factory("one.example.com")
    w2 = website_factory("two.example.com")
    w3 = website_factory("three.example.com")
    tick_factory(w1, region)
    memory_queue.create_group(str(region.id))

    report = push_unchecked_websites(user)

    assert (report.count, report.total, report.unchecked) == (2, 3, 2)
    assert report.message == (
        "Successfully pushed 2 new websites to monitoring queue (1 already monitored)"
    )
    delivered = memory_queue.read_group(str(region.id), "c1")
    assert {m.website_id for m in delivered} == {str(w2.id), str(w3.id)}
    assert {m.url for m in delivered} == {"two.example.com", "three.example.com"}


def test_no_websites(user, region):
    report = push_unchecked_websites(user)

    assert report.to_dict() == {
        "message": "No websites found. Add some websites first!",
        "count": 0,
        "total": 0,
        "unchecked": 0,
    }


def test_all_websites_already_checked(user, region, website_factory, tick_factory, memory_queue):
    for url in ("a.com", "b.com"):
        tick_factory(website_factory(url), region)
    memory_queue.create_group(str(region.id))

    report = push_unchecked_websites(user)

    assert report.to_dict() == {
        "message": "All 2 websites have already been checked. Add new websites to monitor more!",
        "count": 0,
        "total": 2,
        "unchecked": 0,
    }
    assert memory_queue.read_group(str(region.id), "c1") == []


def test_no_regions_enqueues_nothing(user, website_factory):
    website_factory("a.com")

    report = push_unchecked_websites(user)

    assert report.count == 0
    assert report.unchecked == 1
    assert "Create a region first" in report.message


def test_fans_out_to_every_region(user, website_factory, memory_queue):
    west = Region.objects.create(name="eu-west")
    east = Region.objects.create(name="ap-east")
    website = website_factory("a.com")
    for target in (west, east):
        memory_queue.create_group(str(target.id))

    report = push_unchecked_websites(user)

    assert list(report.regions) == ["ap-east", "eu-west"]
    for target in (west, east):
        delivered = memory_queue.read_group(str(target.id), "c1")
        assert [m.website_id for m in delivered] == [str(website.id)]


def test_single_region_target(user, website_factory, memory_queue):
    chosen = Region.objects.create(name="chosen")
    ignored = Region.objects.create(name="ignored")
    for target in (chosen, ignored):
        memory_queue.create_group(str(target.id))
    website_factory("a.com")

    report = push_unchecked_websites(user, region=chosen)

    assert report.to_dict()["regions"] == ["chosen"]
    assert len(memory_queue.read_group(str(chosen.id), "c1")) == 1
    assert memory_queue.read_group(str(ignored.id), "c1") == []


def test_other_owners_websites_are_ignored(user, other_user, region, website_factory, memory_queue):
    website_factory("mine.com")
    website_factory("theirs.com", owner=other_user)
    memory_queue.create_group(str(region.id))

    report = push_unchecked_websites(user)

    assert (report.count, report.total) == (1, 1)
    assert [m.url for m in memory_queue.read_group(str(region.id), "c1")] == ["mine.com"]
