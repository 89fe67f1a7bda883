"""Detect executables produced by ephemeral build-and-run workflows."""

from __future__ import annotations


def is_go_run_executable(path: str) -> bool:
    """Report whether the path points at a throwaway binary from a build cache."""
    clean = (path or "").strip().lower().replace("\\", "/")
    if not clean:
        return False
    if "/go-build" in clean and "/exe/" in clean:
        return True
    if "/tmp/go-build" in clean:
        return True
    if "/var/folders/" in clean and "go-build" in clean:
        return True
    return False