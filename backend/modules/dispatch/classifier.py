"""Turn the outcome of one HTTP probe into a tick status.

Reachability is what counts: any HTTP answer below 500 means the server is up,
5xx and every transport failure mean it is down. ``Unknown`` is never returned
here; it is the display status of a website that has no tick yet.
"""

from __future__ import annotations

import socket
from collections.abc import Iterator
from dataclasses import dataclass

import requests
from monitors.models import TickStatus

CONNECTION_REFUSED = "Connection Refused"
DNS_FAILURE = "DNS Resolution Failed"
CONNECTION_RESET = "Connection Reset"
TIMEOUT = "Timeout"
TOO_MANY_REDIRECTS = "Too Many Redirects"
NETWORK_ERROR = "Unknown/Network Error"

# Fallback when urllib3 only leaves a message behind.
_MESSAGE_MARKERS = (
    ("name or service not known", DNS_FAILURE),
    ("nodename nor servname", DNS_FAILURE),
    ("failed to resolve", DNS_FAILURE),
    ("getaddrinfo failed", DNS_FAILURE),
    ("connection refused", CONNECTION_REFUSED),
    ("connection reset", CONNECTION_RESET),
    ("timed out", TIMEOUT),
    ("timeout", TIMEOUT),
)


@dataclass(slots=True, frozen=True)
class ProbeOutcome:
    """Status to persist plus a human label used only for logging."""

    status: str
    label: str


def classify_status_code(status_code: int) -> ProbeOutcome:
    if 200 <= status_code < 500:
        return ProbeOutcome(TickStatus.UP, f"HTTP {status_code}")
    if 500 <= status_code < 600:
        return ProbeOutcome(TickStatus.DOWN, f"Server Error {status_code}")
    return ProbeOutcome(TickStatus.DOWN, f"Unexpected Status {status_code}")


def classify_exception(exc: BaseException) -> ProbeOutcome:
    """Map a transport failure (no HTTP response) to ``Down`` with a cause label."""

    return ProbeOutcome(TickStatus.DOWN, transport_failure_label(exc))


def transport_failure_label(exc: BaseException) -> str:
    if isinstance(exc, requests.Timeout):
        return TIMEOUT
    if isinstance(exc, requests.TooManyRedirects):
        return TOO_MANY_REDIRECTS

    for cause in _iter_causes(exc):
        if isinstance(cause, ConnectionRefusedError):
            return CONNECTION_REFUSED
        if isinstance(cause, socket.gaierror):
            return DNS_FAILURE
        if isinstance(cause, ConnectionResetError):
            return CONNECTION_RESET
        if isinstance(cause, (TimeoutError, socket.timeout)):
            return TIMEOUT

    message = str(exc).lower()
    for marker, label in _MESSAGE_MARKERS:
        if marker in message:
            return label
    return NETWORK_ERROR


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Walk requests -> urllib3 -> socket wrappers breadth-first, once each."""

    seen: set[int] = set()
    queue: list[BaseException] = [exc]
    while queue:
        current = queue.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        linked = [current.__cause__, current.__context__, getattr(current, "reason", None)]
        linked.extend(arg for arg in current.args if isinstance(arg, BaseException))
        queue.extend(item for item in linked if isinstance(item, BaseException))


__all__ = [
    "ProbeOutcome",
    "classify_exception",
    "classify_status_code",
    "transport_failure_label",
]
