"""Maintain a delimited, tool-owned block of text inside a user file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]


def normalize_text_for_write(value: str) -> str:
    """Normalise line endings and surrounding blank lines; empty text stays empty."""
    value = value.replace("\r\n", "\n").strip("\n")
    if not value.strip():
        return ""
    return value + "\n"


def replace_managed_block(existing: str, begin: str, end: str, replacement: str) -> tuple[str, bool]:
    """Replace the block between markers, or append it; return (text, changed)."""
    begin_idx = existing.find(begin)
    end_idx = existing.find(end)
    if begin_idx >= 0 and end_idx > begin_idx:
        updated = existing[:begin_idx] + replacement + existing[end_idx + len(end):]
        updated = normalize_text_for_write(updated)
        if updated == normalize_text_for_write(existing):
            return existing, False
        return updated, True
    base = existing.rstrip("\n")
    if not base.strip():
        return replacement + "\n", True
    return base + "\n\n" + replacement + "\n", True


def remove_managed_block_text(existing: str, begin: str, end: str) -> tuple[str, bool]:
    """Cut the block between markers out of the text; return (text, changed)."""
    begin_idx = existing.find(begin)
    end_idx = existing.find(end)
    if begin_idx < 0 or end_idx <= begin_idx:
        return existing, False
    updated = existing[:begin_idx] + existing[end_idx + len(end):]
    return normalize_text_for_write(updated), True


def read_text_file_or_empty(path: PathLike) -> str:
    """Return the file's text, or an empty string when it does not exist."""
    try:
        with open(path, encoding="utf-8", newline="") as handle:
            return handle.read()
    except FileNotFoundError:
        return ""


def write_text_file(path: PathLike, value: str) -> None:
    """Write text, creating parent directories as needed."""
    target = Path(path)
    target.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8", newline="") as handle:
        handle.write(value)


def remove_file_if_exists(path: PathLike) -> None:
    """Delete a file, ignoring it being absent."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def upsert_managed_block(path: PathLike, begin: str, end: str, block: str) -> bool:
    """Insert or refresh the managed block in a file; return whether it changed."""
    begin = begin.strip()
    end = end.strip()
    block = block.strip()
    if not begin or not end or not block:
        raise ValueError("invalid managed block input")
    existing = read_text_file_or_empty(path)
    replacement = f"{begin}\n{block}\n{end}"
    updated, changed = replace_managed_block(existing, begin, end, replacement)
    if not changed:
        return False
    write_text_file(path, updated)
    return True


def remove_managed_block(path: PathLike, begin: str, end: str) -> bool:
    """Remove the managed block from a file; return whether it changed."""
    existing = read_text_file_or_empty(path)
    updated, changed = remove_managed_block_text(existing, begin.strip(), end.strip())
    if not changed:
        return False
    write_text_file(path, updated)
    return True


def has_managed_block(path: PathLike, begin: str, end: str) -> bool:
    """Report whether the file holds both markers in order."""
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as handle:
            text = handle.read()
    except FileNotFoundError:
        return False
    start = text.find(begin.strip())
    stop = text.find(end.strip())
    return start >= 0 and stop > start