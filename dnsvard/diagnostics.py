"""Startup failure reports, self-heal problem reports and their fix hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence, Union

from dnsvard.healing import HEAL_MATRIX, HealActionId

_MAX_ERROR_TEXT = 400
_DEFAULT_STARTUP_FIX = "run `dnsvard doctor` for targeted diagnostics and fix steps"

ErrorLike = Union[BaseException, str, None]


def _error_text(error: ErrorLike) -> str:
    return "" if error is None else str(error).strip()


def dedupe_strings(values: Iterable[str]) -> list[str]:
    """Trim values, drop blanks and keep the first occurrence of each."""
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        trimmed = (value or "").strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        out.append(trimmed)
    return out


def truncate_reconcile_error(text: str) -> str:
    """Trim error text and cut it to a bounded length."""
    text = (text or "").strip()
    if len(text) <= _MAX_ERROR_TEXT:
        return text
    return text[:_MAX_ERROR_TEXT] + "..."


class StartupProblem(Exception):
    """A daemon startup failure with a problem code, a cause and fix steps."""

    def __init__(self, code: str, reason: str, fixes: Sequence[str]) -> None:
        self.code = code
        self.reason = reason
        self.fixes = list(fixes)
        lines = [f"startup problem: {code}", f"why: {reason}"]
        lines.extend(f"fix: {fix}" for fix in self.fixes)
        super().__init__("\n".join(lines))


def startup_failure(problem_code: str, error: ErrorLike, *args: str) -> StartupProblem:
    """Build a startup problem; extra arguments are fix steps."""
    code = (problem_code or "").strip() or "startup_failed"
    reason = _error_text(error) if error is not None else "unknown startup failure"
    fixes = dedupe_strings(args) or [_DEFAULT_STARTUP_FIX]
    return StartupProblem(code, reason, fixes)


def startup_build_routes_error(error: ErrorLike) -> Optional[StartupProblem]:
    """Classify a route-building failure at startup; None when there is no error."""
    if error is None:
        return None
    lower = _error_text(error).lower()
    if "workspace scope requires project/workspace labels" in lower:
        return startup_failure(
            "config_scope_labels",
            error,
            "fix: set `dnsvard.project` and `dnsvard.workspace` labels on ambiguous containers",
            "fix: or set explicit routing labels (`dnsvard.hosts`, `dnsvard.http_port`) and rerun",
        )
    if "suffix" in lower or "host_pattern" in lower:
        return startup_failure(
            "config_suffix_or_host_pattern",
            error,
            "fix: resolve suffix/host_pattern conflict in config and rerun `dnsvard daemon start`",
        )
    if "docker discover failed" in lower:
        return startup_failure(
            "docker_discovery",
            error,
            "fix: start Docker, or set `docker_discovery_mode: optional` if Docker should be non-blocking",
        )
    return startup_failure(
        "route_build",
        error,
        "fix: run `dnsvard doctor --probe-routing` for per-route diagnostics",
    )


def resolver_status_failure_detail(error: ErrorLike) -> str:
    """Describe a resolver status check failure with a fix hint where one applies."""
    if error is None:
        return "resolver status unavailable"
    text = _error_text(error)
    lower = text.lower()
    if "permission denied" in lower or "operation not permitted" in lower:
        return f"resolver permission check failed: {text}; run `sudo dnsvard bootstrap --force`"
    if "resolver" in lower:
        return f"resolver check failed: {text}; run `sudo dnsvard bootstrap --force`"
    return text


def port_conflict_hints(listeners: Optional[Iterable[str]], port: int, key: str) -> list[str]:
    """Hints for a port that could not be bound; listeners may be None if unknown."""
    hints = [f"listener: {item.strip()}" for item in (listeners or ())]
    hints.append(f"fix: stop the process listening on {port}, or set {key} to a different port")
    if port < 1024:
        hints.append(
            f"fix: port {port} is privileged; use an unprivileged port "
            "or run `dnsvard bootstrap -f` for privileged setup"
        )
    return hints


def _rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.replace(microsecond=0).isoformat()
    if moment.utcoffset() == timezone.utc.utcoffset(None):
        text = text[: -len("+00:00")] + "Z"
    return text


@dataclass
class SelfHealProblem:
    """A self-heal action that keeps failing, with fix steps."""

    action_id: str
    code: str
    component: str
    message: str
    failure_count: int = 0
    blocked_until: Optional[datetime] = None
    fixes: list[str] = field(default_factory=list)


def self_heal_problem_lines(problem: SelfHealProblem) -> list[str]:
    """Render a self-heal problem as status output lines."""
    blocked = "none" if problem.blocked_until is None else _rfc3339(problem.blocked_until)
    lines = [
        f"- self_heal_problem: action_id={problem.action_id} component={problem.component} "
        f"code={problem.code} failure_count={problem.failure_count} blocked_until={blocked}",
        f"- self_heal_problem_detail: {problem.message}",
    ]
    lines.extend(f"- self_heal_fix: {hint}" for hint in problem.fixes)
    return lines


def self_heal_resolution_by_action(
    action_id: str, detail: str, port_hints: Sequence[str] = ()
) -> tuple[str, list[str]]:
    """Return the problem code and fix hints for a failing self-heal action."""
    action_id = (action_id or "").strip()
    lower = (detail or "").strip().lower()
    hints: list[str] = []
    if action_id == HealActionId.PROXY_RECONCILE.value:
        code = "self_heal_proxy_reconcile_failed"
        hints.append("run `dnsvard doctor --probe-routing` to inspect route health and host reachability")
    elif action_id == HealActionId.HTTP_ROUTER_RESET.value:
        code = "self_heal_http_router_reset_failed"
        hints.extend(port_hints)
        hints.append("verify the target service is running and listening on the configured container/host port")
    elif action_id == HealActionId.DOCKER_WATCH_RESTART.value:
        code = "self_heal_docker_watch_failed"
        hints.append("ensure Docker daemon is healthy (`docker ps` should succeed)")
        hints.append("if Docker is running but watch keeps failing, restart Docker Desktop/engine")
    elif action_id == HealActionId.PLATFORM_DAEMON_REPAIR.value:
        code = "self_heal_platform_daemon_repair_failed"
        hints.append("run `dnsvard bootstrap -f` to reinstall platform daemon manager integration")
        hints.append("if bootstrap is blocked by permissions, rerun with sudo")
    elif action_id == HealActionId.RESOLVER_DRIFT_RECONCILE.value:
        code = "self_heal_resolver_reconcile_failed"
        hints.append("run `dnsvard bootstrap -f` to reconcile resolver permissions and managed resolver files")
    elif action_id == HealActionId.HTTP_ROUTE_PROMOTION.value:
        code = "self_heal_http_route_promotion_failed"
        hints.append("check upstream container health and keep at least one healthy target for each routed hostname")
    else:
        code = "self_heal_unknown"
        hints.append("run `dnsvard doctor --probe-routing` and inspect self-heal metadata for targeted repair")
    if "no route to host" in lower:
        hints.append("check container/service network reachability and restart the affected service if needed")
    if "permission denied" in lower:
        hints.append("grant required OS permissions and rerun `dnsvard bootstrap -f`")
    if not hints:
        hints.append("inspect daemon logs (`dnsvard daemon logs`) for exact failing component details")
    return code, dedupe_strings(hints)


def component_for_action(action_id: str) -> str:
    """Return the component an action belongs to, or "self_heal" if unknown."""
    try:
        spec = HEAL_MATRIX.get(HealActionId((action_id or "").strip()))
    except ValueError:
        spec = None
    return spec.component.strip() if spec and spec.component.strip() else "self_heal"


def copy_string_map(values: Optional[Mapping[str, str]]) -> Optional[dict[str, str]]:
    """Copy a mapping with trimmed keys and values, dropping blanks; None if empty."""
    if not values:
        return None
    out: dict[str, str] = {}
    for key, value in values.items():
        k = (key or "").strip()
        v = (value or "").strip()
        if k and v:
            out[k] = v
    return out or None