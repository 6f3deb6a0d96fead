"""Region-keyed work log with competing-consumer group delivery.

Each region owns one ordered log and one consumer group named after the
region. ``read_group`` hands every entry to exactly one consumer of a group and
keeps it pending until ``ack_bulk``; entries that are never acknowledged stay
pending until ``reclaim`` moves them to another read.

Two backends share this contract:

* ``RedisStreamQueue`` maps it onto Redis Streams (XADD, XGROUP CREATE,
  XREADGROUP, XACK, XAUTOCLAIM). This is the durable production backend.
* ``MemoryQueue`` keeps the same state in-process, one lock per region. It is
  used in development and tests and is lost when the process exits.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import redis
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .exceptions import GroupMissingError, MalformedEntryError, QueueError

logger = logging.getLogger("dispatch.queue")


@dataclass(slots=True, frozen=True)
class QueueItem:
    """Work to enqueue: a website to probe."""

    url: str
    website_id: str

    def __post_init__(self) -> None:
        if not self.url or not str(self.url).strip():
            raise MalformedEntryError("Queue item is missing its url")
        if not self.website_id or not str(self.website_id).strip():
            raise MalformedEntryError("Queue item is missing its website id")

    @classmethod
    def coerce(cls, value: QueueItem | Mapping[str, Any]) -> QueueItem:
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(url=value.get("url", ""), website_id=str(value.get("id") or ""))
        raise MalformedEntryError(f"Unsupported queue item: {value!r}")

    def to_fields(self) -> dict[str, str]:
        return {"url": str(self.url), "id": str(self.website_id)}


@dataclass(slots=True, frozen=True)
class QueueMessage:
    """An entry delivered to a consumer, identified by its log entry id."""

    entry_id: str
    url: str
    website_id: str

    @classmethod
    def from_fields(cls, entry_id: str, fields: Mapping[str, Any] | None) -> QueueMessage:
        fields = fields or {}
        url = fields.get("url")
        website_id = fields.get("id")
        if not url or not website_id:
            raise MalformedEntryError(f"Entry {entry_id} is missing its url or website id")
        return cls(entry_id=str(entry_id), url=str(url), website_id=str(website_id))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.entry_id, "message": {"id": self.website_id, "url": self.url}}


@dataclass(slots=True)
class PendingEntry:
    entry_id: str
    consumer: str
    delivered_at: float
    delivery_count: int = 1


class RegionQueue(ABC):
    """Queue contract shared by every backend. ``group`` defaults to the region id."""

    @abstractmethod
    def create_group(self, region_id: str, group: str | None = None) -> bool:
        """Create the group at the start of the log; ``False`` if it already existed."""

    @abstractmethod
    def append_bulk(
        self,
        region_id: str,
        items: Iterable[QueueItem | Mapping[str, Any]],
    ) -> list[str]:
        """Append items in call order and return their entry ids."""

    @abstractmethod
    def read_group(
        self,
        region_id: str,
        consumer_id: str,
        count: int | None = None,
        group: str | None = None,
    ) -> list[QueueMessage]:
        """Claim up to ``count`` never-delivered entries for ``consumer_id``."""

    @abstractmethod
    def ack_bulk(
        self,
        region_id: str,
        entry_ids: Iterable[str],
        group: str | None = None,
    ) -> int:
        """Drop entries from the pending set; unknown ids are ignored."""

    @abstractmethod
    def reclaim(
        self,
        region_id: str,
        consumer_id: str,
        min_idle_ms: int,
        count: int | None = None,
        group: str | None = None,
    ) -> list[QueueMessage]:
        """Re-deliver entries pending for at least ``min_idle_ms`` to ``consumer_id``."""

    @abstractmethod
    def pending_count(self, region_id: str, group: str | None = None) -> int:
        """Number of delivered but unacknowledged entries."""

    @abstractmethod
    def ping(self) -> None:
        """Raise ``QueueError`` when the backend cannot be reached."""

    @staticmethod
    def group_name(region_id: str, group: str | None = None) -> str:
        return str(group or region_id)

    @staticmethod
    def resolve_count(count: int | None) -> int:
        return settings.DISPATCH_BATCH_SIZE if count is None else int(count)

    @staticmethod
    def coerce_items(items: Iterable[QueueItem | Mapping[str, Any]]) -> list[QueueItem]:
        # Validate everything before the first write so a bad item appends nothing.
        return [QueueItem.coerce(item) for item in items]


# ---------------------------------------------------------------------------
# In-process backend
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _GroupState:
    # Position in the log of the next entry this group has never seen.
    cursor: int = 0
    pending: OrderedDict[str, PendingEntry] = field(default_factory=OrderedDict)


@dataclass(slots=True)
class _RegionLog:
    entries: list[tuple[str, dict[str, str]]] = field(default_factory=list)
    positions: dict[str, int] = field(default_factory=dict)
    groups: dict[str, _GroupState] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_ms: int = 0
    sequence: int = 0

    def next_entry_id(self) -> str:
        now_ms = int(time.time() * 1000)
        if now_ms > self.last_ms:
            self.last_ms, self.sequence = now_ms, 0
        else:
            self.sequence += 1
        return f"{self.last_ms}-{self.sequence}"


class MemoryQueue(RegionQueue):
    """In-process queue. All state for a region is guarded by that region's lock."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._logs: dict[str, _RegionLog] = {}
        self._registry_lock = threading.Lock()
        self._clock = clock

    def _log(self, region_id: str, *, create: bool = False) -> _RegionLog | None:
        key = str(region_id)
        with self._registry_lock:
            log = self._logs.get(key)
            if log is None and create:
                log = self._logs[key] = _RegionLog()
            return log

    def create_group(self, region_id: str, group: str | None = None) -> bool:
        name = self.group_name(region_id, group)
        log = self._log(region_id, create=True)
        with log.lock:
            if name in log.groups:
                logger.info(
                    "Consumer group already exists",
                    extra={"region_id": str(region_id), "group": name},
                )
                return False
            log.groups[name] = _GroupState()
        logger.info("Consumer group created", extra={"region_id": str(region_id), "group": name})
        return True

    def append_bulk(self, region_id, items):
        queue_items = self.coerce_items(items)
        if not queue_items:
            return []

        log = self._log(region_id, create=True)
        entry_ids: list[str] = []
        with log.lock:
            for item in queue_items:
                entry_id = log.next_entry_id()
                log.positions[entry_id] = len(log.entries)
                log.entries.append((entry_id, item.to_fields()))
                entry_ids.append(entry_id)
        return entry_ids

    def read_group(self, region_id, consumer_id, count=None, group=None):
        name = self.group_name(region_id, group)
        count = self.resolve_count(count)
        log = self._log(region_id)
        if log is None:
            raise GroupMissingError(str(region_id), name)

        messages: list[QueueMessage] = []
        with log.lock:
            state = log.groups.get(name)
            if state is None:
                raise GroupMissingError(str(region_id), name)
            if count <= 0:
                return []

            batch = log.entries[state.cursor : state.cursor + count]
            state.cursor += len(batch)
            now = self._clock()
            for entry_id, fields in batch:
                try:
                    message = QueueMessage.from_fields(entry_id, fields)
                except MalformedEntryError as exc:
                    # Never marked pending, so it is dropped for this group.
                    logger.error(
                        "Dropping malformed queue entry",
                        extra={"region_id": str(region_id), "entry_id": entry_id, "error": str(exc)},
                    )
                    continue
                state.pending[entry_id] = PendingEntry(
                    entry_id=entry_id,
                    consumer=str(consumer_id),
                    delivered_at=now,
                )
                messages.append(message)
        return messages

    def ack_bulk(self, region_id, entry_ids, group=None):
        name = self.group_name(region_id, group)
        log = self._log(region_id)
        if log is None:
            return 0

        acknowledged = 0
        with log.lock:
            state = log.groups.get(name)
            if state is None:
                return 0
            for entry_id in entry_ids:
                if state.pending.pop(str(entry_id), None) is not None:
                    acknowledged += 1
        return acknowledged

    def reclaim(self, region_id, consumer_id, min_idle_ms, count=None, group=None):
        name = self.group_name(region_id, group)
        count = self.resolve_count(count)
        log = self._log(region_id)
        if log is None:
            raise GroupMissingError(str(region_id), name)

        messages: list[QueueMessage] = []
        with log.lock:
            state = log.groups.get(name)
            if state is None:
                raise GroupMissingError(str(region_id), name)

            now = self._clock()
            for pending in state.pending.values():
                if len(messages) >= count:
                    break
                if (now - pending.delivered_at) * 1000 < min_idle_ms:
                    continue
                entry_id, fields = log.entries[log.positions[pending.entry_id]]
                pending.consumer = str(consumer_id)
                pending.delivered_at = now
                pending.delivery_count += 1
                messages.append(QueueMessage.from_fields(entry_id, fields))
        return messages

    def pending_count(self, region_id, group=None):
        name = self.group_name(region_id, group)
        log = self._log(region_id)
        if log is None:
            raise GroupMissingError(str(region_id), name)
        with log.lock:
            state = log.groups.get(name)
            if state is None:
                raise GroupMissingError(str(region_id), name)
            return len(state.pending)

    def pending_entries(self, region_id: str, group: str | None = None) -> list[PendingEntry]:
        """Snapshot of the pending set, in log order."""

        name = self.group_name(region_id, group)
        log = self._log(region_id)
        if log is None:
            return []
        with log.lock:
            state = log.groups.get(name)
            if state is None:
                return []
            return [
                PendingEntry(p.entry_id, p.consumer, p.delivered_at, p.delivery_count)
                for p in state.pending.values()
            ]

    def ping(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Redis Streams backend
# ---------------------------------------------------------------------------


class RedisStreamQueue(RegionQueue):
    """One stream per region (``<prefix>:<region id>``), one group per region."""

    def __init__(
        self,
        client: redis.Redis | None = None,
        *,
        url: str | None = None,
        prefix: str | None = None,
        block_ms: int | None = None,
    ) -> None:
        self._client = client or redis.Redis.from_url(
            url or settings.DISPATCH_REDIS_URL,
            decode_responses=True,
        )
        self._prefix = prefix or settings.DISPATCH_STREAM_PREFIX
        self._block_ms = block_ms if block_ms is not None else settings.DISPATCH_READ_BLOCK_MS

    def stream_key(self, region_id: str) -> str:
        return f"{self._prefix}:{region_id}"

    def create_group(self, region_id, group=None):
        name = self.group_name(region_id, group)
        key = self.stream_key(region_id)
        try:
            self._client.xgroup_create(key, name, id="0", mkstream=True)
        except redis.ResponseError as exc:
            if "BUSYGROUP" in str(exc):
                logger.info(
                    "Consumer group already exists",
                    extra={"region_id": str(region_id), "group": name, "stream": key},
                )
                return False
            raise QueueError(f"Failed to create consumer group for region {region_id}") from exc
        except redis.RedisError as exc:
            raise QueueError(f"Failed to create consumer group for region {region_id}") from exc

        logger.info(
            "Consumer group created",
            extra={"region_id": str(region_id), "group": name, "stream": key},
        )
        return True

    def append_bulk(self, region_id, items):
        queue_items = self.coerce_items(items)
        if not queue_items:
            return []

        key = self.stream_key(region_id)
        try:
            pipe = self._client.pipeline(transaction=True)
            for item in queue_items:
                pipe.xadd(key, item.to_fields())
            entry_ids = pipe.execute()
        except redis.RedisError as exc:
            raise QueueError(f"Failed to append {len(queue_items)} entries to {key}") from exc
        return [str(entry_id) for entry_id in entry_ids]

    def read_group(self, region_id, consumer_id, count=None, group=None):
        name = self.group_name(region_id, group)
        key = self.stream_key(region_id)
        count = self.resolve_count(count)
        if count <= 0:
            return []

        try:
            response = self._client.xreadgroup(
                name,
                str(consumer_id),
                {key: ">"},
                count=count,
                block=self._block_ms,
            )
        except redis.ResponseError as exc:
            if "NOGROUP" in str(exc):
                raise GroupMissingError(str(region_id), name) from exc
            raise QueueError(f"Failed to read from {key}") from exc
        except redis.RedisError as exc:
            raise QueueError(f"Failed to read from {key}") from exc

        return self._decode_entries(region_id, name, _stream_entries(response, key))

    def ack_bulk(self, region_id, entry_ids, group=None):
        name = self.group_name(region_id, group)
        ids = list(dict.fromkeys(str(entry_id) for entry_id in entry_ids))
        if not ids:
            return 0

        key = self.stream_key(region_id)
        try:
            return int(self._client.xack(key, name, *ids))
        except redis.RedisError as exc:
            raise QueueError(f"Failed to acknowledge {len(ids)} entries on {key}") from exc

    def reclaim(self, region_id, consumer_id, min_idle_ms, count=None, group=None):
        name = self.group_name(region_id, group)
        key = self.stream_key(region_id)
        try:
            result = self._client.xautoclaim(
                key,
                name,
                str(consumer_id),
                min_idle_time=int(min_idle_ms),
                start_id="0-0",
                count=self.resolve_count(count),
            )
        except redis.ResponseError as exc:
            if "NOGROUP" in str(exc):
                raise GroupMissingError(str(region_id), name) from exc
            raise QueueError(f"Failed to reclaim entries on {key}") from exc
        except redis.RedisError as exc:
            raise QueueError(f"Failed to reclaim entries on {key}") from exc

        claimed = result[1] if result and len(result) > 1 else []
        return self._decode_entries(region_id, name, claimed)

    def pending_count(self, region_id, group=None):
        name = self.group_name(region_id, group)
        key = self.stream_key(region_id)
        try:
            summary = self._client.xpending(key, name)
        except redis.ResponseError as exc:
            if "NOGROUP" in str(exc):
                raise GroupMissingError(str(region_id), name) from exc
            raise QueueError(f"Failed to inspect pending entries on {key}") from exc
        except redis.RedisError as exc:
            raise QueueError(f"Failed to inspect pending entries on {key}") from exc
        return int(summary.get("pending", 0)) if summary else 0

    def ping(self) -> None:
        try:
            self._client.ping()
        except redis.RedisError as exc:
            raise QueueError("Redis is unreachable") from exc

    def _decode_entries(
        self,
        region_id: str,
        group: str,
        entries: Sequence[tuple[str, Mapping[str, Any] | None]],
    ) -> list[QueueMessage]:
        messages: list[QueueMessage] = []
        malformed: list[str] = []
        for entry_id, fields in entries:
            try:
                messages.append(QueueMessage.from_fields(entry_id, fields))
            except MalformedEntryError as exc:
                logger.error(
                    "Dropping malformed queue entry",
                    extra={"region_id": str(region_id), "entry_id": str(entry_id), "error": str(exc)},
                )
                malformed.append(str(entry_id))

        if malformed:
            self.ack_bulk(region_id, malformed, group=group)
        return messages


def _stream_entries(response: Any, key: str) -> list[tuple[str, Mapping[str, Any] | None]]:
    """Flatten an XREADGROUP reply (RESP2 list or RESP3 dict) for one stream."""

    if not response:
        return []
    if isinstance(response, Mapping):
        streams = response.items()
    else:
        streams = ((stream, entries) for stream, entries in response)

    flattened: list[tuple[str, Mapping[str, Any] | None]] = []
    for stream, entries in streams:
        if stream != key:
            continue
        for entry in entries:
            if not entry:
                continue
            # RESP3 nests each stream's entries one level deeper.
            if isinstance(entry[0], (list, tuple)):
                flattened.extend((entry_id, fields) for entry_id, fields in entry)
            else:
                flattened.append((entry[0], entry[1]))
    return flattened


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------

_queue: RegionQueue | None = None
_queue_lock = threading.Lock()


def build_queue(backend: str | None = None) -> RegionQueue:
    backend = (backend or settings.DISPATCH_QUEUE_BACKEND).lower()
    if backend == "memory":
        return MemoryQueue()
    if backend == "redis":
        return RedisStreamQueue()
    raise ImproperlyConfigured(f"Unknown DISPATCH_QUEUE_BACKEND: {backend!r}")


def get_queue() -> RegionQueue:
    """Process-wide queue for the configured backend."""

    global _queue
    with _queue_lock:
        if _queue is None:
            _queue = build_queue()
        return _queue


def reset_queue() -> None:
    global _queue
    with _queue_lock:
        _queue = None


__all__ = [
    "MemoryQueue",
    "PendingEntry",
    "QueueItem",
    "QueueMessage",
    "RedisStreamQueue",
    "RegionQueue",
    "build_queue",
    "get_queue",
    "reset_queue",
]
