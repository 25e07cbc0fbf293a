"""
In-memory cache module for Knowledge Paths.

Contains the VaultCache class, which keeps the link and tag structure of
every vault note in memory so graph snapshots can be built without
rescanning the filesystem.
"""

import asyncio
import time
from datetime import date, datetime
from pathlib import Path
from typing import Any

import aiofiles
import structlog

from .config import settings
from .models import CachedNote
from .utils import INLINE_TAG_PATTERN, WIKILINK_PATTERN, parse_frontmatter, parse_tags

logger = structlog.get_logger(__name__)


def _frontmatter_timestamp(value: Any) -> float | None:
    """Convert a frontmatter date (date, datetime or ISO string) to epoch seconds."""
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).timestamp()
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip()).timestamp()
        except ValueError:
            return None
    return None


class VaultCache:
    """In-memory cache for vault notes.

    Refresh is incremental: only notes whose mtime changed are reloaded,
    deleted files are dropped and new files are added.
    """

    def __init__(self, vault_path: Path, ttl: int = 60):
        self.vault_path = vault_path
        self.ttl = ttl
        self._notes: dict[Path, CachedNote] = {}
        self._loaded_at: float = 0

    @property
    def is_stale(self) -> bool:
        return (time.time() - self._loaded_at) > self.ttl

    def _scan(self) -> dict[Path, float]:
        """Return {file: mtime} for visible markdown files."""
        found: dict[Path, float] = {}
        for note_file in self.vault_path.rglob("*.md"):
            rel_path = note_file.relative_to(self.vault_path)
            if any(part.startswith(".") for part in rel_path.parts):
                continue
            try:
                found[note_file] = note_file.stat().st_mtime
            except OSError:
                # Deleted between rglob and stat
                continue
        return found

    async def _load_note(self, note_file: Path) -> CachedNote | None:
        """Load a single note from disk, or None when it cannot be read."""
        rel_path = note_file.relative_to(self.vault_path)
        try:
            async with aiofiles.open(note_file, encoding="utf-8") as f:
                content = await f.read()
            stat = note_file.stat()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("note_read_failed", path=str(note_file), error=str(e))
            return None

        frontmatter, body = parse_frontmatter(content)
        tags = parse_tags(frontmatter.get("tags"))
        for inline in INLINE_TAG_PATTERN.findall(body):
            if inline not in tags:
                tags.append(inline)

        created = _frontmatter_timestamp(frontmatter.get("date"))
        return CachedNote(
            path=note_file,
            rel_path=rel_path,
            rel_path_str=rel_path.as_posix(),
            stem=note_file.stem,
            stem_lower=note_file.stem.lower(),
            frontmatter=frontmatter,
            links=sorted({link.strip() for link in WIKILINK_PATTERN.findall(content) if link.strip()}),
            tags=tags,
            type=str(frontmatter.get("type", "unknown")),
            created=created if created is not None else stat.st_ctime,
            mtime=stat.st_mtime,
            is_template=any(part.startswith("_Template") for part in rel_path.parts),
        )

    async def refresh(self, force: bool = False) -> None:
        """Reload notes from disk if the cache is stale.

        Args:
            force: If True, drops the cache and reloads every note.
        """
        if not force and not self.is_stale:
            return

        start_time = time.time()
        if force:
            self._notes.clear()

        on_disk = self._scan()
        to_load = [
            note_file
            for note_file, mtime in on_disk.items()
            if note_file not in self._notes or mtime > self._notes[note_file].mtime
        ]
        removed = [note_file for note_file in self._notes if note_file not in on_disk]
        for note_file in removed:
            del self._notes[note_file]

        results = await asyncio.gather(*(self._load_note(note_file) for note_file in to_load))
        for note_file, note in zip(to_load, results):
            if note is not None:
                self._notes[note_file] = note
            else:
                self._notes.pop(note_file, None)

        self._loaded_at = time.time()
        logger.info(
            "cache_refreshed",
            refresh_type="full" if force else "incremental",
            note_count=len(self._notes),
            reloaded=len(to_load),
            removed=len(removed),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )

    async def get_notes(self, include_templates: bool = False) -> list[CachedNote]:
        """Get all cached notes, sorted by path."""
        await self.refresh()
        notes = sorted(self._notes.values(), key=lambda n: n.rel_path_str)
        if include_templates:
            return notes
        return [n for n in notes if not n.is_template]


# Global cache instance
vault_cache = VaultCache(settings.vault_path, settings.cache_ttl)
