"""Change tracking for watched config files and route-set snapshots."""

from __future__ import annotations

import hashlib
import os
import threading
from dataclasses import dataclass, field
from typing import AbstractSet, Callable, Iterable, Optional, Tuple


def read_file_fingerprint(path: str) -> str:
    """Return the SHA-256 hex digest of a file's bytes, or "" if it cannot be read."""
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError:
        return ""
    return hashlib.sha256(data).hexdigest()


def set_delta(previous: AbstractSet[str], current: AbstractSet[str]) -> Tuple[int, int]:
    """Return (added, removed) counts going from previous to current."""
    return len(current - previous), len(previous - current)


def resolver_sync_signature(domains: Iterable[str], dns_listen: str) -> str:
    """Build a signature of the resolver setup: sorted suffixes and the DNS listener."""
    suffixes = sorted((d or "").strip().strip(".").lower() for d in domains)
    return ",".join(suffixes) + "|" + (dns_listen or "").strip()


@dataclass(frozen=True)
class RouteSnapshot:
    """Keys of the DNS records, HTTP routes and TCP routes applied in one pass."""

    dns: frozenset = field(default_factory=frozenset)
    http: frozenset = field(default_factory=frozenset)
    tcp: frozenset = field(default_factory=frozenset)


def _watch_existing_dir(directory: str) -> bool:
    return os.path.isdir(directory)


class ConfigFileTracker:
    """Tracks config files by content fingerprint and the directories they live in.

    add_watch is called once per new directory and returns whether watching
    it succeeded; by default a directory counts as watched when it exists.
    """

    def __init__(self, add_watch: Optional[Callable[[str], bool]] = None) -> None:
        self._add_watch = add_watch or _watch_existing_dir
        self._lock = threading.Lock()
        self._tracked: dict[str, str] = {}
        self._watched_dirs: set[str] = set()

    def update(self, config_files: Iterable[str]) -> None:
        """Replace the tracked files, fingerprinting each and watching its directory."""
        tracked: dict[str, str] = {}
        for raw in config_files:
            stripped = (raw or "").strip()
            if not stripped:
                continue
            path = os.path.normpath(stripped)
            directory = os.path.dirname(path) or "."
            with self._lock:
                watched = directory in self._watched_dirs
            if not watched and self._add_watch(directory):
                with self._lock:
                    self._watched_dirs.add(directory)
            tracked[path] = read_file_fingerprint(path)
        with self._lock:
            self._tracked = tracked

    def check(self, path: str) -> bool:
        """Report whether a tracked file's content changed since last seen."""
        path = os.path.normpath((path or "").strip() or ".")
        with self._lock:
            if path not in self._tracked:
                return False
            current = read_file_fingerprint(path)
            if current == self._tracked[path]:
                return False
            self._tracked[path] = current
            return True

    def stats(self) -> Tuple[int, int]:
        """Return (tracked file count, watched directory count)."""
        with self._lock:
            return len(self._tracked), len(self._watched_dirs)