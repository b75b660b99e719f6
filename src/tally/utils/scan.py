"""Locate the local .tally directory and build paths inside it."""

from __future__ import annotations

from pathlib import Path

from tally.constants import CONVERSATIONS, DEFAULT_STORAGE_DIR, RUNS


def scan_tally_directory(start: Path | None = None) -> Path:
    """Find the nearest .tally directory at or above start.

    Only a .tally directory that already contains ``conversations/``
    counts. If none is found, one is created in the current working
    directory.

    Args:
        start: Starting directory. Defaults to cwd.

    Returns:
        Path to the .tally directory.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / DEFAULT_STORAGE_DIR
        if (candidate / CONVERSATIONS).is_dir():
            return candidate
        if current == current.parent:
            break
        current = current.parent

    created = Path.cwd() / DEFAULT_STORAGE_DIR
    (created / CONVERSATIONS).mkdir(parents=True, exist_ok=True)
    return created


def has_tally_directory(start: Path | None = None) -> bool:
    """Return True if a .tally directory exists at or above start."""
    current = (start or Path.cwd()).resolve()
    while True:
        if (current / DEFAULT_STORAGE_DIR).is_dir():
            return True
        if current == current.parent:
            return False
        current = current.parent


def get_conversations_path(tally_path: Path) -> Path:
    return Path(tally_path) / CONVERSATIONS


def get_conversation_path(tally_path: Path, conversation_id: str) -> Path:
    return get_conversations_path(tally_path) / conversation_id


def get_runs_path(tally_path: Path, conversation_id: str) -> Path:
    return get_conversation_path(tally_path, conversation_id) / RUNS
