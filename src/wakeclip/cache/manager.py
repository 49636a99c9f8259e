"""Audio cache manager with size and age limits.

Keeps a durable mapping from cache key to audio file. The index is loaded
once at construction and written back through IndexStorage after every
mutating operation. Mutations are serialized by a per-manager asyncio.Lock
so that one request's eviction decisions are never overwritten by another's.
"""

import asyncio
import hashlib
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

from ..errors import InvalidInputError, StorageError
from . import get_cache_dir
from .models import (
    DEFAULT_EXPIRATION_HOURS,
    DEFAULT_MAX_SIZE_MB,
    AudioMetadata,
    CachedArtifact,
    CacheIndex,
    CacheStatistics,
)
from .storage import IndexStorage

logger = logging.getLogger(__name__)

# Fraction of the ceiling that put() evicts down to once the ceiling is hit
EVICTION_TARGET_RATIO = 0.8

_INVALID_FILENAME_CHARS = re.compile(r'[:/\\?%*|"<>]')


class AudioCacheManager:
    """Disk-backed cache of generated audio clips.

    Example:
        cache = AudioCacheManager(Path("/tmp/clips"), max_size_mb=50)

        path = await cache.put(audio_bytes, "alarm-1_gentle_...", metadata)
        artifact = await cache.get("alarm-1_gentle_...")
        if artifact:
            play(artifact.audio_path)

        await cache.maintain()
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        max_size_mb: float = DEFAULT_MAX_SIZE_MB,
        expiration_hours: float = DEFAULT_EXPIRATION_HOURS,
        storage: IndexStorage | None = None,
    ) -> None:
        """Initialize the cache and load its index.

        Args:
            cache_dir: Directory for cache storage (defaults to ~/.cache/wakeclip)
            max_size_mb: Size ceiling for all cached audio
            expiration_hours: Age after which an artifact is expired
            storage: Index persistence (defaults to SQLite in cache_dir)

        Raises:
            ValueError: If a limit is not positive
            StorageError: If the index cannot be loaded
        """
        if max_size_mb <= 0:
            raise ValueError(f"max_size_mb must be positive, got {max_size_mb}")
        if expiration_hours <= 0:
            raise ValueError(
                f"expiration_hours must be positive, got {expiration_hours}"
            )

        self.cache_dir = cache_dir or get_cache_dir()
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.audio_dir = self.cache_dir / "audio"
        self.audio_dir.mkdir(exist_ok=True)

        self.max_size_mb = max_size_mb
        self.expiration_hours = expiration_hours

        self.storage = storage or IndexStorage(self.cache_dir)
        self._index = self.storage.load() or CacheIndex()
        self._lock = asyncio.Lock()

        self._hits = 0
        self._requests = 0

        logger.debug(
            f"AudioCacheManager initialized at {self.cache_dir} with "
            f"{len(self._index)} entries, ceiling {max_size_mb} MB, "
            f"expiration {expiration_hours}h"
        )

    async def put(self, data: bytes, key: str, metadata: AudioMetadata) -> Path:
        """Store audio bytes under ``key``.

        Capacity is enforced against the projected post-insert size before the
        file is written, which may evict unrelated entries.

        Args:
            data: Audio bytes
            key: Cache key
            metadata: Producing request, voice and format details

        Returns:
            Path of the written audio file

        Raises:
            InvalidInputError: If data or key is empty
            StorageError: If the file or index cannot be written
        """
        if not data:
            raise InvalidInputError("Audio data is empty")
        if not key:
            raise InvalidInputError("Cache key cannot be empty")

        audio_path = self.audio_dir / f"{sanitize_filename(key)}.{metadata.format}"
        size_kb = len(data) / 1024.0

        async with self._lock:
            await self._enforce_limits(size_kb)

            try:
                await asyncio.to_thread(audio_path.write_bytes, data)
            except OSError as e:
                raise StorageError(f"Failed to write audio file {audio_path}: {e}", e) from e

            artifact = CachedArtifact(
                audio_path=audio_path,
                size_kb=size_kb,
                duration=metadata.duration,
                created_at=metadata.generated_at,
                voice_id=metadata.voice_id,
                request_id=metadata.request_id,
                format=metadata.format,
                quality=metadata.quality,
                text=metadata.text,
            )
            self._index.add(key, artifact)
            await self._persist()

        logger.debug(f"Cached {size_kb:.1f} KB under '{key}' at {audio_path}")
        return audio_path

    async def get(self, key: str) -> CachedArtifact | None:
        """Look up ``key``.

        Stale entries (file deleted externally) and expired entries are
        removed from the index as a side effect and reported as misses.

        Returns:
            The cached artifact on a hit, None on a miss
        """
        async with self._lock:
            self._requests += 1

            artifact = self._index.get(key)
            if artifact is None:
                logger.debug(f"Cache miss: '{key}' not in index")
                return None

            if not artifact.audio_path.exists():
                logger.warning(
                    f"Stale cache entry: audio file missing for '{key}': {artifact.audio_path}"
                )
                self._index.pop(key)
                await self._persist()
                return None

            if artifact.is_expired(self.expiration_hours):
                logger.debug(f"Cache miss: '{key}' expired (created {artifact.created_at})")
                self._index.pop(key)
                await self._delete_file(artifact.audio_path)
                await self._persist()
                return None

            self._hits += 1
            logger.debug(f"Cache hit for '{key}'")
            return artifact

    async def remove(self, key: str) -> None:
        """Remove ``key`` and its file.

        A file that cannot be deleted is left for the next maintenance pass.
        """
        async with self._lock:
            artifact = self._index.pop(key)
            if artifact is None:
                return
            await self._delete_file(artifact.audio_path)
            await self._persist()

    async def clear(self) -> None:
        """Delete every cached file, empty the index and reset hit counters.

        Raises:
            StorageError: If a file cannot be deleted or the index cannot be saved
        """
        async with self._lock:
            try:
                await asyncio.to_thread(self._remove_all_files)
            except OSError as e:
                raise StorageError(f"Failed to clear cache directory: {e}", e) from e

            self._index = CacheIndex()
            await self._persist()

            self._hits = 0
            self._requests = 0

        logger.info(f"Cleared audio cache at {self.cache_dir}")

    async def maintain(self) -> None:
        """Run the three maintenance phases and persist once.

        1. Age and size eviction against the full ceiling
        2. Orphan sweep: files on disk without an index entry
        3. Stale sweep: index entries whose file no longer exists
        """
        async with self._lock:
            evicted = self._index.cleanup(self.max_size_mb, self.expiration_hours)
            for artifact in evicted:
                await self._delete_file(artifact.audio_path)

            referenced = {
                artifact.audio_path.resolve() for artifact in self._index.entries.values()
            }
            orphans = [
                path
                for path in await asyncio.to_thread(lambda: list(self.audio_dir.iterdir()))
                if path.resolve() not in referenced
            ]
            for path in orphans:
                await self._delete_file(path)

            stale = [
                key
                for key, artifact in self._index.entries.items()
                if not artifact.audio_path.exists()
            ]
            for key in stale:
                del self._index.entries[key]
            self._index.recalculate_size()

            self._index.last_maintenance = datetime.now()
            await self._persist()

        logger.info(
            f"Cache maintenance: evicted {len(evicted)}, orphans {len(orphans)}, "
            f"stale {len(stale)}; {len(self._index)} entries, "
            f"{self._index.total_size_mb:.2f} MB"
        )

    async def statistics(self) -> CacheStatistics:
        """Compute a fresh statistics snapshot.

        Runs without the lock, so it may trail a concurrent mutation.
        """
        artifacts = list(self._index.entries.values())
        total_items = len(artifacts)
        now = datetime.now()

        return CacheStatistics(
            total_items=total_items,
            total_size_mb=self._index.total_size_mb,
            oldest_item_date=min((a.created_at for a in artifacts), default=None),
            newest_item_date=max((a.created_at for a in artifacts), default=None),
            average_file_size_kb=sum(a.size_kb for a in artifacts) / total_items
            if total_items
            else 0.0,
            expired_items_count=sum(
                1 for a in artifacts if a.is_expired(self.expiration_hours, now)
            ),
            available_storage_gb=self._available_storage_gb(),
            cache_hit_rate=self._hits / self._requests if self._requests else 0.0,
        )

    async def _enforce_limits(self, additional_size_kb: float) -> None:
        """Make room so that the insert leaves the cache within its ceiling.

        Evicts down to the soft target first, then keeps evicting the oldest
        entries while the incoming clip would still overflow the ceiling.
        """
        additional_mb = additional_size_kb / 1024.0
        projected_mb = self._index.total_size_mb + additional_mb
        if projected_mb <= self.max_size_mb:
            return

        target_mb = self.max_size_mb * EVICTION_TARGET_RATIO
        evicted = self._index.cleanup(target_mb, self.expiration_hours)
        evicted += self._index.cleanup(
            self.max_size_mb - additional_mb, self.expiration_hours
        )
        for artifact in evicted:
            await self._delete_file(artifact.audio_path)

        logger.info(
            f"Cache over ceiling ({projected_mb:.2f} MB projected): evicted "
            f"{len(evicted)} entries, {self._index.total_size_mb:.2f} MB remain"
        )
        await self._persist()

    async def _persist(self) -> None:
        await asyncio.to_thread(self.storage.save, self._index)

    async def _delete_file(self, path: Path) -> None:
        """Delete ``path``, downgrading failure to a warning."""
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete cached audio file {path}: {e}")

    def _remove_all_files(self) -> None:
        for path in self.audio_dir.iterdir():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()

    def _available_storage_gb(self) -> float:
        try:
            return shutil.disk_usage(self.cache_dir).free / (1024**3)
        except OSError as e:
            logger.warning(f"Failed to read available storage: {e}")
            return 0.0


def sanitize_filename(key: str) -> str:
    """Map a cache key onto a safe file name of at most 100 characters.

    The name is a readable prefix of the key followed by a digest of the
    whole key, so keys that share a long prefix still get distinct files.
    """
    prefix = _INVALID_FILENAME_CHARS.sub("_", key)[:83]
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
    return f"{prefix}_{digest}"
