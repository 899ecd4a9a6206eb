"""
Translates host file notifications into event cache calls.

The host (an editor plugin, a file watcher) reports vault-relative paths.
Notifications are the only trigger for incremental updates of editable
calendars; the cache never polls the vault.
"""

import sys
from datetime import datetime
from typing import Optional

from .event_cache import CacheUpdate, EventCache
from .vault import VaultIO, normalize_path


def _debug_print(msg: str) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] WATCH: {msg}", file=sys.stderr)


class VaultChangeAdapter:
    """Forwards content-changed, renamed and deleted notifications to an EventCache."""

    def __init__(self, cache: EventCache, vault: Optional[VaultIO] = None):
        """
        Args:
            cache: The cache to keep up to date
            vault: Used to list the notes of a renamed folder; without it only
                renamed notes are re-read
        """
        self._cache = cache
        self._vault = vault

    async def on_changed(self, path: str) -> CacheUpdate:
        """A note was created or its content changed."""
        return await self._cache.file_updated(path)

    on_created = on_changed

    async def on_deleted(self, path: str) -> CacheUpdate:
        """A note or a folder was deleted."""
        return self._cache.delete_events_at_path(path)

    async def on_renamed(self, path: str, old_path: str) -> CacheUpdate:
        """
        A note or folder moved from old_path to path.

        Events under old_path are dropped and the new location is re-read, so
        events get new identifiers (or disappear when the new location belongs
        to no calendar).
        """
        path = normalize_path(path)
        removed = self._cache.delete_events_at_path(old_path).removed
        added: list[str] = []

        paths = [path]
        if self._vault is not None and not path.endswith(".md"):
            paths = await self._vault.list_files(path)
            _debug_print(f"Folder {old_path} -> {path}: re-reading {len(paths)} notes")
        for note in paths:
            update = await self._cache.file_updated(note)
            added.extend(update.added)
        return CacheUpdate(removed=removed, added=tuple(added))
