"""Bounded HTTP probe of one website."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import requests
from django.conf import settings
from monitors.models import TickStatus

from .classifier import TIMEOUT, ProbeOutcome, classify_exception, classify_status_code

logger = logging.getLogger("dispatch")


@dataclass(slots=True, frozen=True)
class ProbeResult:
    status: str
    response_time_ms: int
    label: str
    url: str


def normalize_probe_url(url: str) -> str:
    """Stored URLs carry no scheme; probe them over HTTPS."""

    url = url.strip()
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def build_session(
    *,
    user_agent: str | None = None,
    max_redirects: int | None = None,
) -> requests.Session:
    session = requests.Session()
    session.max_redirects = (
        settings.DISPATCH_MAX_REDIRECTS if max_redirects is None else max_redirects
    )
    session.headers["User-Agent"] = user_agent or settings.DISPATCH_USER_AGENT
    return session


def _remaining(deadline: float) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise requests.Timeout("Probe budget exhausted")
    return remaining


def _fetch(session: requests.Session, url: str, deadline: float) -> requests.Response:
    """Follow redirects by hand so each hop only gets what is left of the budget."""

    response = session.get(
        url, timeout=_remaining(deadline), stream=True, allow_redirects=False
    )
    hops = 0
    while response.is_redirect and response.next is not None:
        next_request = response.next
        response.close()
        hops += 1
        if hops > session.max_redirects:
            raise requests.TooManyRedirects(
                f"Exceeded {session.max_redirects} redirects.", request=next_request
            )
        response = session.send(
            next_request,
            timeout=_remaining(deadline),
            stream=True,
            allow_redirects=False,
        )
    return response


def probe_website(
    url: str,
    *,
    timeout: float | None = None,
    session: requests.Session | None = None,
) -> ProbeResult:
    """
    GET the website once and classify the result.

    Network failures are returned as ``Down`` results, never raised. ``timeout``
    is the total budget for the whole attempt, redirects included; an attempt
    that overruns it is a ``Down`` timeout even if an answer arrived. The body
    is streamed and discarded.
    """

    target = normalize_probe_url(url)
    budget = settings.DISPATCH_PROBE_TIMEOUT_SECONDS if timeout is None else timeout
    owns_session = session is None
    session = session or build_session()

    started_at = time.monotonic()
    deadline = started_at + budget
    try:
        with _fetch(session, target, deadline) as response:
            outcome: ProbeOutcome = classify_status_code(response.status_code)
    except requests.RequestException as exc:
        outcome = classify_exception(exc)
        logger.info(
            "Probe transport failure",
            extra={"url": target, "label": outcome.label, "error": str(exc)},
        )
    finally:
        if owns_session:
            session.close()
    finished_at = time.monotonic()

    if finished_at > deadline and outcome.status != TickStatus.DOWN:
        logger.info(
            "Probe exceeded its budget",
            extra={"url": target, "label": TIMEOUT, "budget_seconds": budget},
        )
        outcome = ProbeOutcome(TickStatus.DOWN, TIMEOUT)

    return ProbeResult(
        status=outcome.status,
        response_time_ms=max(0, int((finished_at - started_at) * 1000)),
        label=outcome.label,
        url=target,
    )


__all__ = ["ProbeResult", "build_session", "normalize_probe_url", "probe_website"]
