"""Self-heal actions, their cooldowns, and failure-burst detection for the daemon."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional


class HealActionId(str, Enum):
    """Identifiers of the self-heal actions the daemon can take."""

    PROXY_RECONCILE = "proxy_reconcile"
    HTTP_ROUTER_RESET = "http_router_reset"
    DOCKER_WATCH_RESTART = "docker_watch_restart"
    PLATFORM_DAEMON_REPAIR = "platform_daemon_repair"
    RESOLVER_DRIFT_RECONCILE = "resolver_drift_reconcile"
    HTTP_ROUTE_PROMOTION = "http_route_promotion"


class HealDetector(str, Enum):
    """Sources that detect a condition needing a self-heal action."""

    HTTP_PROXY = "http_proxy"
    DOCKER_WATCH = "docker_watch"
    TIMER = "timer"


@dataclass(frozen=True)
class HealActionSpec:
    """Static description of a self-heal action; cooldown is in seconds."""

    component: str
    detector: Optional[HealDetector]
    trigger: str
    action: str
    cooldown: float = 0.0


@dataclass(frozen=True)
class HealEvent:
    """A request to run a self-heal action."""

    detector: Optional[HealDetector]
    action_id: HealActionId
    detail: str = ""


HEAL_MATRIX: dict[HealActionId, HealActionSpec] = {
    HealActionId.PROXY_RECONCILE: HealActionSpec(
        component="route_reconcile",
        detector=HealDetector.HTTP_PROXY,
        trigger="http_proxy_error",
        action="reconcile",
        cooldown=0.0,
    ),
    HealActionId.HTTP_ROUTER_RESET: HealActionSpec(
        component="http_router",
        detector=HealDetector.HTTP_PROXY,
        trigger="http_proxy_error",
        action="http_router_reset",
        cooldown=120.0,
    ),
    HealActionId.DOCKER_WATCH_RESTART: HealActionSpec(
        component="docker_watch",
        detector=HealDetector.DOCKER_WATCH,
        trigger="docker_watch",
        action="restart",
        cooldown=5.0,
    ),
    HealActionId.PLATFORM_DAEMON_REPAIR: HealActionSpec(
        component="platform_daemon",
        detector=HealDetector.TIMER,
        trigger="platform_daemon",
        action="auto_repair",
        cooldown=120.0,
    ),
    HealActionId.RESOLVER_DRIFT_RECONCILE: HealActionSpec(
        component="resolver_drift",
        detector=HealDetector.TIMER,
        trigger="resolver_drift",
        action="ensure_resolver",
        cooldown=30.0,
    ),
    HealActionId.HTTP_ROUTE_PROMOTION: HealActionSpec(
        component="http_router",
        detector=HealDetector.TIMER,
        trigger="http_route_promotion",
        action="fallback_previous_target",
        cooldown=0.0,
    ),
}


class HealCoordinator:
    """Gates self-heal actions by detector and per-action cooldown."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._last: dict[HealActionId, float] = {}

    def emit(
        self,
        event: HealEvent,
        mark_self_heal: Callable[[HealActionSpec, HealEvent], None],
    ) -> bool:
        """Run the mark callback for the event unless it is filtered or cooling down."""
        spec = HEAL_MATRIX.get(event.action_id)
        if spec is None:
            return False
        if spec.detector and event.detector and spec.detector != event.detector:
            return False
        now = self._clock()
        with self._lock:
            last_run = self._last.get(event.action_id)
            if spec.cooldown > 0 and last_run is not None and now - last_run < spec.cooldown:
                return False
            self._last[event.action_id] = now
        mark_self_heal(spec, event)
        return True


_BURST_WINDOW = 30.0
_BURST_THRESHOLD = 6
_BURST_ESCALATION_COOLDOWN = 120.0


@dataclass
class ProxyUnreachableBurst:
    """Counts proxy unreachable errors to spot a persistent outage."""

    window_start: Optional[float] = None
    count: int = 0
    last_escalation: Optional[float] = None

    def record(self, now: float) -> bool:
        """Record one error at `now`; return True when a router reset should be escalated."""
        if self.window_start is None or now - self.window_start > _BURST_WINDOW:
            self.window_start = now
            self.count = 0
        self.count += 1
        if self.count < _BURST_THRESHOLD:
            return False
        if (
            self.last_escalation is not None
            and now - self.last_escalation <= _BURST_ESCALATION_COOLDOWN
        ):
            return False
        self.last_escalation = now
        self.count = 0
        return True


_TARGET_WINDOW = 20.0
_TARGET_FAILURE_THRESHOLD = 3
_TARGET_QUARANTINE = 45.0


@dataclass
class _TargetState:
    window_start: Optional[float] = None
    failure_count: int = 0
    quarantined_until: Optional[float] = None


class UnreachableTargetTracker:
    """Quarantines HTTP targets that repeatedly fail for a hostname."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str], _TargetState] = {}

    def record(self, hostname: str, target: str, now: Optional[float] = None) -> None:
        """Record an unreachable failure of `target` serving `hostname`."""
        host = (hostname or "").strip().lower()
        target = (target or "").strip()
        if not host or not target:
            return
        if now is None:
            now = time.time()
        with self._lock:
            state = self._entries.setdefault((host, target), _TargetState())
            if state.window_start is None or now - state.window_start > _TARGET_WINDOW:
                state.window_start = now
                state.failure_count = 0
            state.failure_count += 1
            if state.failure_count >= _TARGET_FAILURE_THRESHOLD:
                state.quarantined_until = now + _TARGET_QUARANTINE
                state.failure_count = 0
                state.window_start = now

    def snapshot_active(self, now: Optional[float] = None) -> dict[str, float]:
        """Return quarantined targets mapped to their latest expiry; drop inactive entries."""
        if now is None:
            now = time.time()
        active: dict[str, float] = {}
        with self._lock:
            for key, state in list(self._entries.items()):
                until = state.quarantined_until
                if until is None or now >= until:
                    del self._entries[key]
                    continue
                target = key[1]
                if target not in active or active[target] < until:
                    active[target] = until
        return active


@dataclass(frozen=True)
class ReconcileAppliedSummary:
    """Route changes and warnings produced by one reconcile pass."""

    dns_added: int = 0
    dns_removed: int = 0
    http_added: int = 0
    http_removed: int = 0
    tcp_added: int = 0
    tcp_removed: int = 0
    warnings: int = 0


def should_log_reconcile_applied(summary: ReconcileAppliedSummary) -> bool:
    """Report whether a reconcile pass changed anything worth logging."""
    if summary.warnings > 0:
        return True
    return any(
        (
            summary.dns_added,
            summary.dns_removed,
            summary.http_added,
            summary.http_removed,
            summary.tcp_added,
            summary.tcp_removed,
        )
    )


def detect_docker_watch_restart(previous: int, current: int) -> bool:
    """Report whether the docker watch restart counter advanced."""
    return current > previous


def is_route_unreachable_error(detail: str, error: Optional[BaseException]) -> bool:
    """Report whether the error text means the upstream host cannot be reached."""
    parts = [detail or ""]
    if error is not None:
        parts.append(str(error))
    lower = " ".join(parts).lower()
    return (
        "no route to host" in lower
        or "network is unreachable" in lower
        or "host is down" in lower
    )


def is_address_in_use_error(error: Optional[BaseException]) -> bool:
    """Report whether a listen error means the address is already taken."""
    if error is None:
        return False
    lower = str(error).strip().lower()
    return "address already in use" in lower or "eaddrinuse" in lower