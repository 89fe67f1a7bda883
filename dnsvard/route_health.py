"""Health checks for HTTP route targets and fallback to last healthy targets."""

from __future__ import annotations

import dataclasses
import socket
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Callable, Iterable, MutableMapping, Optional, Sequence
from urllib.parse import urlsplit

HEALTHY_CACHE_TTL = 45.0
UNHEALTHY_CACHE_TTL = 3.0
HEALTH_CACHE_MAX_AGE = 180.0

_DIAL_TIMEOUT = 0.2
_REQUEST_TIMEOUT = 0.3

Probe = Callable[[str], bool]


@dataclass(frozen=True)
class HttpRoute:
    """An HTTP hostname routed to an upstream target URL."""

    hostname: str
    target: str


@dataclass(frozen=True)
class HealthCacheEntry:
    """Result of one health probe; checked_at is a timestamp in seconds."""

    checked_at: float
    healthy: bool


HealthCache = MutableMapping[str, HealthCacheEntry]


def route_targets_by_host(routes: Iterable[HttpRoute]) -> dict[str, str]:
    """Map lower-cased hostnames to their targets, skipping incomplete routes."""
    out: dict[str, str] = {}
    for route in routes:
        host = (route.hostname or "").strip().lower()
        target = (route.target or "").strip()
        if host and target:
            out[host] = target
    return out


def is_http_route_healthy(target: str) -> bool:
    """Probe a target: it must accept TCP and answer HEAD with a status below 500."""
    target = (target or "").strip()
    try:
        parts = urlsplit(target)
        port = parts.port
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False
    host = parts.hostname
    if not parts.netloc.strip() or not host or port is None:
        return False
    try:
        with socket.create_connection((host, port), timeout=_DIAL_TIMEOUT):
            pass
    except OSError:
        return False

    request = urllib.request.Request(target, method="HEAD")
    try:
        with urllib.request.urlopen(request, timeout=_REQUEST_TIMEOUT) as response:
            status = response.status
    except urllib.error.HTTPError as exc:
        status = exc.code
    except (OSError, ValueError):
        return False
    return status < 500


def is_http_route_healthy_cached(
    target: str,
    cache: Optional[HealthCache],
    now: Optional[float] = None,
    probe: Probe = is_http_route_healthy,
) -> bool:
    """Return a cached health result while fresh, otherwise probe and cache it."""
    target = (target or "").strip()
    if not target:
        return False
    if now is None:
        now = time.time()
    if cache is not None:
        entry = cache.get(target)
        if entry is not None:
            ttl = HEALTHY_CACHE_TTL if entry.healthy else UNHEALTHY_CACHE_TTL
            if now - entry.checked_at < ttl:
                return entry.healthy
    healthy = bool(probe(target))
    if cache is not None:
        cache[target] = HealthCacheEntry(checked_at=now, healthy=healthy)
    return healthy


def prune_http_route_health_cache(cache: Optional[HealthCache], now: Optional[float] = None) -> None:
    """Drop cache entries older than the maximum age."""
    if cache is None:
        return
    if now is None:
        now = time.time()
    for target in [t for t, entry in cache.items() if now - entry.checked_at > HEALTH_CACHE_MAX_AGE]:
        del cache[target]


def preserve_last_healthy_http_routes(
    routes: Sequence[HttpRoute],
    previous: Optional[MutableMapping[str, str]],
    cache: Optional[HealthCache],
    now: Optional[float] = None,
    probe: Probe = is_http_route_healthy,
) -> tuple[list[HttpRoute], int]:
    """Keep a host's previous target while its new target is unhealthy.

    Returns the routes to apply and how many fell back to a previous target.
    """
    if not previous or not routes:
        return list(routes), 0
    if now is None:
        now = time.time()
    prune_http_route_health_cache(cache, now)

    def healthy(target: str) -> bool:
        return is_http_route_healthy_cached(target, cache, now, probe)

    out: list[HttpRoute] = []
    fallbacks = 0
    for route in routes:
        host = (route.hostname or "").strip().lower()
        target = (route.target or "").strip()
        if not host or not target or healthy(target):
            out.append(route)
            continue
        previous_target = previous.get(host, "")
        if previous_target and previous_target != target and healthy(previous_target):
            route = dataclasses.replace(route, target=previous_target)
            fallbacks += 1
        out.append(route)
    return out, fallbacks