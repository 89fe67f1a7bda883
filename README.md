# dnsvard

Building blocks for a local development DNS daemon. Everything runs on the
standard library alone.

## Modules

### `dnsvard.completion`

Works out where shell completion hooks belong.

- `completion_shell_from_value(value)` normalises a shell name. It returns
  `""` for `""` or `"auto"`, and maps `pwsh` and `powershell.exe` to
  `powershell`. It raises `ValueError` for any other unknown name.
- `resolved_completion_shell(value)` falls back to `$SHELL` when no shell is
  given. It raises `ValueError` when no shell can be detected.
- `completion_install_target(shell, home)` returns a frozen
  `CompletionTarget` with the fields `shell`, `script_path`, `rc_paths` and
  `rc_block`:
  - bash and zsh get an `eval` hook block for an rc file;
  - fish gets a script path under `~/.config/fish/completions/`;
  - powershell raises `ValueError`.
- `bash_completion_rc_path(home)` picks the bash rc file:
  - `.bashrc` when `.bash_profile` sources it;
  - otherwise `.bash_profile` when that file exists;
  - otherwise `.bashrc` when that file exists;
  - otherwise `.bash_profile`.
- Related helpers:
  - `bash_profile_sources_bashrc(path)`
  - `bash_uses_bashrc(paths)`
  - `completion_uninstall_rc_paths(shell, home, rc_paths)`
- The markers `COMPLETION_BLOCK_BEGIN` and `COMPLETION_BLOCK_END` delimit the
  managed block.

### `dnsvard.managed_block`

Keeps one tool-owned block of text, between two marker lines, inside a user
file.

- `upsert_managed_block(path, begin, end, block)` inserts the block, or
  replaces an existing one. It returns whether the file changed, so a second
  identical call returns `False`. Empty markers or an empty block raise
  `ValueError`.
- `remove_managed_block(path, begin, end)` removes the block.
- `has_managed_block(path, begin, end)` reports whether the block is present.
- Text-level helpers:
  - `replace_managed_block`
  - `remove_managed_block_text`
  - `normalize_text_for_write`
- File helpers:
  - `read_text_file_or_empty`
  - `write_text_file`, which creates parent directories
  - `remove_file_if_exists`

### `dnsvard.healing`

- `HealActionId` and `HealDetector` are string enums.
- `HEAL_MATRIX` maps each action to a `HealActionSpec`, which holds the
  component, detector, trigger, action and cooldown in seconds.
- `HealCoordinator.emit(event, mark_self_heal)` calls the callback and
  returns `True`. It returns `False` instead when the event's detector does
  not match the spec, or when the action is still cooling down.
- `ProxyUnreachableBurst.record(now)` returns `True` when a router reset
  should be escalated: 6 errors within 30 s, at most once every 2 minutes.
- `UnreachableTargetTracker` quarantines a target for 45 s once it fails 3
  times within 20 s for the same host. `snapshot_active(now)` returns the
  quarantined targets mapped to their expiry times.
- Smaller helpers:
  - `should_log_reconcile_applied(ReconcileAppliedSummary(...))`
  - `detect_docker_watch_restart(previous, current)`
  - `is_route_unreachable_error(detail, error)`
  - `is_address_in_use_error(error)`

### `dnsvard.diagnostics`

- `startup_failure(problem_code, error, *fixes)` returns a `StartupProblem`
  exception. Its message reads `startup problem: ...`, then `why: ...`, then
  one `fix: ...` line per fix. When no fixes are given, it defaults to
  running `dnsvard doctor`.
- `startup_build_routes_error(error)` classifies a route-building failure. It
  gives one of these problem codes:
  - `config_scope_labels`
  - `config_suffix_or_host_pattern`
  - `docker_discovery`
  - `route_build`
- `resolver_status_failure_detail(error)` describes a resolver status failure.
- `port_conflict_hints(listeners, port, key)` gives hints for a port that
  could not be bound.
- `self_heal_resolution_by_action(action_id, detail, port_hints)` returns a
  problem code and fix hints for a failing self-heal action.
- `self_heal_problem_lines(SelfHealProblem(...))` renders status lines for a
  self-heal problem.
- `component_for_action(action_id)` returns the component an action belongs
  to.
- Small helpers: `dedupe_strings`, `truncate_reconcile_error` (400
  characters) and `copy_string_map`.

### `dnsvard.route_health`

- `is_http_route_healthy(target)` checks a target in two steps: it must
  accept a TCP connection, then answer a `HEAD` request with a status below
  500.
- `is_http_route_healthy_cached(target, cache, now, probe)` caches results:
  healthy results for 45 s, unhealthy ones for 3 s.
- `prune_http_route_health_cache(cache, now)` drops cache entries older than
  3 minutes.
- `preserve_last_healthy_http_routes(routes, previous, cache, now, probe)`
  keeps a host's previous target while its new target is unhealthy. It only
  does so when the previous target is healthy.
- `route_targets_by_host(routes)` maps hostnames to their targets.
- Routes are `HttpRoute(hostname, target)`.

### `dnsvard.restart`

`restart_daemon_with_deps(state_dir, quiet, deps, managed_restart, out)`
tries `managed_restart()` first. It falls back to a direct restart if that
raises or returns `False`:

1. It stops the old process.
2. It starts a new one through `RestartDeps.run_background`.
3. It waits for a pid.

When no daemon ends up running, it raises `DaemonRestartError`. All process
operations come in through `RestartDeps`. The planning helpers
`read_daemon_process_state`, `direct_restart_plan` and
`is_daemon_already_running_error` are also exposed.

### `dnsvard.tracking`

- `ConfigFileTracker` fingerprints config files and counts the directories
  they live in:
  - `update(files)` replaces the tracked files;
  - `check(path)` reports whether a tracked file changed;
  - `stats()` returns the tracked file and watched directory counts.
- `read_file_fingerprint(path)` returns a file's SHA-256 hex digest.
- `set_delta(previous, current)` counts added and removed keys.
- `RouteSnapshot` holds the key sets of one pass.
- `resolver_sync_signature(domains, dns_listen)` builds a resolver sync
  signature.

### `dnsvard.binary_origin`

`is_go_run_executable(path)` reports whether a path points at a throwaway
binary in a `go-build` cache directory, for example under `/tmp/go-build...`
or `/var/folders/...`.

## Examples

```python
from dnsvard.completion import (
    COMPLETION_BLOCK_BEGIN, COMPLETION_BLOCK_END,
    completion_install_target, resolved_completion_shell,
)
from dnsvard.managed_block import upsert_managed_block

target = completion_install_target(resolved_completion_shell(""), "/home/me")
for rc_path in target.rc_paths:
    upsert_managed_block(rc_path, COMPLETION_BLOCK_BEGIN, COMPLETION_BLOCK_END, target.rc_block)
```

```python
from dnsvard.healing import HealActionId, HealCoordinator, HealDetector, HealEvent

coordinator = HealCoordinator()
event = HealEvent(HealDetector.TIMER, HealActionId.RESOLVER_DRIFT_RECONCILE, "drift")
coordinator.emit(event, lambda spec, ev: print(spec.action, ev.detail))  # True
coordinator.emit(event, lambda spec, ev: None)  # False: 30 s cooldown
```

```python
from dnsvard.route_health import HttpRoute, preserve_last_healthy_http_routes

routes, fallbacks = preserve_last_healthy_http_routes(
    [HttpRoute("app.test", "http://127.0.0.1:8081")],
    {"app.test": "http://127.0.0.1:8080"},
    {},
    probe=lambda target: target.endswith(":8080"),
)
# routes[0].target == "http://127.0.0.1:8080", fallbacks == 1
```

```python
from dnsvard.tracking import resolver_sync_signature, set_delta

set_delta({"a", "b"}, {"b", "c"})                              # (1, 1)
resolver_sync_signature(["Test.", "dev.test"], "127.0.0.1:1053")  # "dev.test,test|127.0.0.1:1053"
```

## What this package does not do

The package is a library of parts. It does not provide:

- a command-line program, so it installs no `dnsvard` command;
- a DNS server, an HTTP router or a TCP proxy;
- configuration loading or address allocation;
- installation of system resolvers or service manager entries;
- generation of the completion scripts themselves.

It also does not start, stop or signal processes itself. `restart` and
`tracking` act only through the callables you pass in, and nothing watches
the filesystem: `ConfigFileTracker.check` must be called when you learn of
a change.

## Installation

```
pip install .
```

Tests:

```
pip install ".[test]"
pytest
```