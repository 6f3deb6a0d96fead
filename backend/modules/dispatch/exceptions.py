"""Errors raised by the dispatch pipeline."""

from __future__ import annotations


class QueueError(Exception):
    """The queue backend failed to append, read, acknowledge or inspect."""


class GroupMissingError(QueueError):
    """A read or acknowledge targeted a consumer group that was never created."""

    def __init__(self, region_id: str, group: str) -> None:
        super().__init__(f"Consumer group '{group}' does not exist for region '{region_id}'")
        self.region_id = region_id
        self.group = group


class MalformedEntryError(ValueError):
    """A queue item or stored entry is missing its url or website id."""


__all__ = ["GroupMissingError", "MalformedEntryError", "QueueError"]
