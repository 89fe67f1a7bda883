"""Daemon restart: try the managed path first, then restart the process directly."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable, Optional, TextIO, Tuple, Union

_KILL_WAIT_ATTEMPTS = 20
_KILL_WAIT_INTERVAL = 0.1
_PID_WAIT_TIMEOUT = 2.0


class DaemonRestartError(RuntimeError):
    """Raised when a restart does not leave a daemon running."""


@dataclass(frozen=True)
class DaemonProcessState:
    """The daemon process recorded in the state directory, if it is running."""

    pid: int = 0
    running: bool = False


@dataclass(frozen=True)
class RestartDeps:
    """Process operations a restart needs; injected so they can be replaced.

    read_pid raises OSError or ValueError when no pid is recorded.
    run_background starts a background daemon and raises on failure.
    wait_for_pid waits up to a timeout in seconds for a running daemon.
    """

    read_pid: Callable[[str], int]
    process_running: Callable[[int], bool]
    kill_pid: Callable[[int], None]
    sleep: Callable[[float], None]
    run_background: Callable[[bool], None]
    wait_for_pid: Callable[[str, float], bool]


def read_daemon_process_state(state_dir: str, deps: RestartDeps) -> DaemonProcessState:
    """Return the running daemon's pid, or an empty state when none is running."""
    try:
        pid = deps.read_pid(state_dir)
    except (OSError, ValueError):
        return DaemonProcessState()
    if not deps.process_running(pid):
        return DaemonProcessState()
    return DaemonProcessState(pid=pid, running=True)


def direct_restart_plan(before: DaemonProcessState, after: DaemonProcessState) -> Tuple[int, bool]:
    """Decide the direct restart: (pid to stop or 0, whether to skip restarting)."""
    if after.running and (not before.running or after.pid != before.pid):
        return 0, True
    if before.running and after.running and before.pid == after.pid:
        return after.pid, False
    return 0, False


def is_daemon_already_running_error(error: Union[BaseException, str, None]) -> bool:
    """Report whether an error says a daemon is already running."""
    if error is None:
        return False
    return "daemon already running" in str(error).lower()


def _stop_process(pid: int, deps: RestartDeps) -> None:
    try:
        deps.kill_pid(pid)
    except OSError:
        pass
    for _ in range(_KILL_WAIT_ATTEMPTS):
        if not deps.process_running(pid):
            break
        deps.sleep(_KILL_WAIT_INTERVAL)


def restart_daemon_with_deps(
    state_dir: str,
    quiet: bool,
    deps: RestartDeps,
    managed_restart: Callable[[], bool],
    out: Optional[TextIO] = None,
) -> None:
    """Restart the daemon, preferring the platform-managed restart.

    managed_restart returns True when it restarted the daemon and may raise;
    a failure is reported and the direct process restart is used instead.
    """
    if out is None:
        out = sys.stdout

    def announce() -> None:
        if not quiet:
            print("daemon restarted", file=out)

    before = read_daemon_process_state(state_dir, deps)
    try:
        restarted_managed = managed_restart()
    except Exception as exc:  # noqa: BLE001 - any failure falls back to direct restart
        print(
            f"warning: managed daemon restart failed; falling back to direct process restart: {exc}",
            file=out,
        )
        restarted_managed = False
    if restarted_managed:
        return

    after = read_daemon_process_state(state_dir, deps)
    kill_pid, skip = direct_restart_plan(before, after)
    if skip:
        announce()
        return
    if kill_pid > 0:
        _stop_process(kill_pid, deps)

    try:
        deps.run_background(quiet)
    except Exception as exc:
        if is_daemon_already_running_error(exc) and deps.wait_for_pid(state_dir, _PID_WAIT_TIMEOUT):
            announce()
            return
        raise
    if not deps.wait_for_pid(state_dir, _PID_WAIT_TIMEOUT):
        raise DaemonRestartError(
            "daemon restart did not result in a running daemon; run `dnsvard daemon logs`"
        )
    announce()